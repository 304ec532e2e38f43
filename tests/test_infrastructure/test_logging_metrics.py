"""
Test infrastructure components: logging, redaction, metrics, retry.

These tests verify the production hardening infrastructure works correctly.
"""

import sqlite3
from datetime import datetime, timezone

import pytest

from guardianship_engine.kernel.errors import StreamVersionConflict
from guardianship_engine.kernel.event_store import SQLiteEventStore
from guardianship_engine.kernel.events import create_event
from guardianship_engine.kernel.logging import (
    LogOperation,
    configure_logging,
    get_correlation_id,
    get_logger,
    redact_context,
    set_correlation_id,
)
from guardianship_engine.kernel.metrics import (
    commands_processed_total,
    compliance_warnings_recorded_total,
    events_appended_total,
    stream_version_conflicts_total,
    track_command_duration,
)
from guardianship_engine.kernel.retry import retry_on_sqlite_lock
from guardianship_engine.kernel.time import TestTimeProvider
from guardianship_engine.service import GuardianshipService
from tests.helpers import property_command

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _created_event(stream_id: str, command_id: str = "cmd-1"):
    return create_event(
        event_id=f"evt-{stream_id}-{command_id}",
        aggregate_id=stream_id,
        aggregate_type="guardianship",
        event_type="GuardianshipCreated",
        occurred_at=T0,
        command_id=command_id,
        actor_id="clerk-1",
        version=1,
        payload={},
    )


class TestLoggingFramework:
    """Test structured logging framework."""

    def test_configure_logging_console(self) -> None:
        """Test logging configuration for console output."""
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)
        assert logger is not None

    def test_configure_logging_json(self) -> None:
        """Test logging configuration for JSON output."""
        configure_logging(json_output=True, log_level="DEBUG")
        logger = get_logger(__name__)
        assert logger is not None

    def test_correlation_id(self) -> None:
        """Test correlation ID context management."""
        cid = get_correlation_id()
        assert cid is not None
        assert len(cid) > 0

        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"

    def test_log_operation_context_manager(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with LogOperation(logger, "replace_guardian", guardianship_id="gdn-1"):
            pass

    def test_log_operation_with_exception(self) -> None:
        """Test LogOperation re-raises after logging the failure."""
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with pytest.raises(ValueError):
            with LogOperation(logger, "failing_operation"):
                raise ValueError("Test error")


class TestRedaction:
    """Personal and financial fields never reach a log line."""

    def test_sensitive_fields_redacted(self) -> None:
        redacted = redact_context(
            {
                "guardianship_id": "gdn-1",
                "date_of_birth": "2014-06-01",
                "criminal_record_details": "traffic offence 2009",
                "amount": "500000",
                "policy_number": "JUB-2025-0001",
                "actor_id": "clerk-1",
            }
        )

        assert redacted["guardianship_id"] == "gdn-1"
        for field in (
            "date_of_birth",
            "criminal_record_details",
            "amount",
            "policy_number",
            "actor_id",
        ):
            assert redacted[field] == "***REDACTED***"

    def test_redaction_leaves_input_untouched(self) -> None:
        context = {"amount": "1"}
        redact_context(context)
        assert context == {"amount": "1"}


class TestMetrics:
    """Test Prometheus metrics collection."""

    def test_events_appended_metric(self, event_store: SQLiteEventStore) -> None:
        """Test events_appended_total metric is incremented per stored event."""
        counter = events_appended_total.labels(
            aggregate_type="guardianship", event_type="GuardianshipCreated"
        )
        before = counter._value.get()

        event_store.commit(
            stream_id="gdn-metrics",
            stream_type="guardianship",
            expected_version=0,
            new_version=1,
            state={},
            events=[_created_event("gdn-metrics")],
            updated_at=T0,
        )

        assert counter._value.get() == before + 1

    def test_idempotent_commit_not_counted_twice(self, event_store: SQLiteEventStore) -> None:
        counter = events_appended_total.labels(
            aggregate_type="guardianship", event_type="GuardianshipCreated"
        )
        kwargs = {
            "stream_id": "gdn-idem",
            "stream_type": "guardianship",
            "expected_version": 0,
            "new_version": 1,
            "state": {},
            "events": [_created_event("gdn-idem")],
            "updated_at": T0,
        }
        event_store.commit(**kwargs)
        before = counter._value.get()

        event_store.commit(**kwargs)

        assert counter._value.get() == before

    def test_version_conflict_metric(self, event_store: SQLiteEventStore) -> None:
        counter = stream_version_conflicts_total.labels(aggregate_type="guardianship")
        event_store.commit(
            stream_id="gdn-conflict",
            stream_type="guardianship",
            expected_version=0,
            new_version=1,
            state={},
            events=[_created_event("gdn-conflict", "cmd-a")],
            updated_at=T0,
        )
        before = counter._value.get()

        with pytest.raises(StreamVersionConflict):
            event_store.commit(
                stream_id="gdn-conflict",
                stream_type="guardianship",
                expected_version=0,
                new_version=1,
                state={},
                events=[_created_event("gdn-conflict", "cmd-b")],
                updated_at=T0,
            )

        assert counter._value.get() == before + 1

    def test_track_command_duration_counts_outcomes(self) -> None:
        success = commands_processed_total.labels(command_type="metrics_check", status="success")
        failure = commands_processed_total.labels(command_type="metrics_check", status="failure")
        ok_before = success._value.get()
        failed_before = failure._value.get()

        @track_command_duration("metrics_check")
        def succeed() -> int:
            return 42

        @track_command_duration("metrics_check")
        def explode() -> None:
            raise RuntimeError("boom")

        assert succeed() == 42
        with pytest.raises(RuntimeError):
            explode()

        assert success._value.get() == ok_before + 1
        assert failure._value.get() == failed_before + 1

    def test_compliance_warning_metric(
        self, service: GuardianshipService, test_time: TestTimeProvider
    ) -> None:
        """A compliance check with findings counts one warning per finding."""
        service.create_guardianship(property_command())
        counter = compliance_warnings_recorded_total.labels(source="check")
        before = counter._value.get()

        # Bond expires 2026-01-15: within the 30-day warning horizon
        test_time.advance_days(350)
        warnings = service.check_compliance("gdn-1")

        assert len(warnings) == 1
        assert counter._value.get() == before + 1


class TestRetry:
    """Only SQLite lock contention is retried."""

    def test_retries_operational_error_then_succeeds(self) -> None:
        calls = []

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=1)
        def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_gives_up_after_max_attempts(self) -> None:
        calls = []

        @retry_on_sqlite_lock(max_attempts=2, min_wait_ms=1, max_wait_ms=1)
        def locked() -> None:
            calls.append(1)
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError):
            locked()
        assert len(calls) == 2

    def test_version_conflict_not_retried(self) -> None:
        calls = []

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=1)
        def conflicting() -> None:
            calls.append(1)
            raise StreamVersionConflict("gdn-1", 1, 2)

        with pytest.raises(StreamVersionConflict):
            conflicting()
        assert len(calls) == 1

"""
GuardianshipService - Main façade class

The primary interface to the guardianship engine. It hides snapshot
persistence, optimistic locking, the event outbox and the read-side registry
behind one method per lifecycle command and compliance query.

Example:
    >>> from guardianship_engine import GuardianshipService
    >>> service = GuardianshipService("guardianships.db")
    >>> g = service.create_guardianship(command)
    >>> service.grant_property_powers(g["guardianship_id"], "guardian-1")
    >>> service.post_guardian_bond(g["guardianship_id"], "guardian-1", ...)
    >>> service.calculate_compliance_deadlines(g["guardianship_id"])
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, TypeVar

from guardianship_engine.compliance import policy as compliance_policy
from guardianship_engine.compliance.engine import ComplianceEngine
from guardianship_engine.compliance.models import (
    ComplianceCalendar,
    ComplianceDeadline,
    ComplianceScore,
    PenaltyAssessment,
    ReportType,
)
from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.commands import (
    AddCoGuardian,
    CreateGuardianship,
    ReportSubmission,
)
from guardianship_engine.guardianship.models import (
    CourtOrder,
    GuardianEligibilityInfo,
    TerminationReason,
    WardInfoUpdate,
)
from guardianship_engine.guardianship.projections import GuardianshipRegistry
from guardianship_engine.guardianship.repository import GuardianshipRepository
from guardianship_engine.kernel.errors import GuardianshipNotFound, InvariantViolation
from guardianship_engine.kernel.event_store import SQLiteEventStore
from guardianship_engine.kernel.events import Event
from guardianship_engine.kernel.ids import generate_id
from guardianship_engine.kernel.logging import LogOperation, get_logger
from guardianship_engine.kernel.metrics import track_command_duration
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import RealTimeProvider, TimeProvider

logger = get_logger(__name__)

T = TypeVar("T")


class GuardianshipService:
    """
    Guardianship engine façade

    Provides a unified API for:
    - Establishing guardianships and managing their guardians
    - Bonds, allowances and annual reports
    - Ward lifecycle updates and dissolution
    - Compliance deadlines, scores, penalties and calendars
    - Policy gates on lifecycle transitions
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        policy: StatutoryPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the service

        Args:
            sqlite_path: Path to SQLite database
            policy: Statutory policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.policy = policy or StatutoryPolicy()
        self.time_provider = time_provider or RealTimeProvider()

        # Initialize infrastructure
        self.event_store = SQLiteEventStore(self.sqlite_path)
        self.repository = GuardianshipRepository(self.event_store, self.time_provider, self.policy)
        self.engine = ComplianceEngine(self.time_provider, self.policy)

        # Initialize projections
        self.registry = GuardianshipRegistry()
        self._rebuild_projections()

    def _rebuild_projections(self) -> None:
        """Rebuild the registry from the event outbox"""
        for event in self.event_store.load_all_events():
            self.registry.apply_event(event)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _load(self, guardianship_id: str) -> Guardianship:
        guardianship = self.repository.find(guardianship_id)
        if guardianship is None:
            raise GuardianshipNotFound(guardianship_id)
        return guardianship

    def _save(self, guardianship: Guardianship, expected_version: int) -> list[Event]:
        events = self.repository.save(guardianship, expected_version)
        for event in events:
            self.registry.apply_event(event)
        return events

    def _execute(
        self,
        command_type: str,
        guardianship_id: str,
        action: Callable[[Guardianship], T],
        actor_id: str,
    ) -> T:
        """
        Load, run one command, save with a version check

        A delegated guardian operation that fails leaves a compliance
        warning on the aggregate; that warning is saved before the error
        propagates. Any other failure saves nothing.
        """

        @track_command_duration(command_type)
        def run() -> T:
            with LogOperation(logger, command_type, guardianship_id=guardianship_id, actor_id=actor_id):
                guardianship = self._load(guardianship_id)
                expected_version = guardianship.version
                guardianship.for_command(generate_id(), actor_id)
                try:
                    result = action(guardianship)
                except InvariantViolation:
                    if guardianship.recorded_failure is not None:
                        self._save(guardianship, expected_version)
                    raise
                self._save(guardianship, expected_version)
                return result

        return run()

    def _now(self) -> datetime:
        return self.time_provider.now()

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    def create_guardianship(
        self, command: CreateGuardianship, actor_id: str = "system"
    ) -> dict[str, Any]:
        """
        Establish a guardianship

        Returns:
            JSON projection of the new guardianship
        """

        @track_command_duration("create_guardianship")
        def run() -> dict[str, Any]:
            with LogOperation(logger, "create_guardianship", ward_id=command.ward.ward_id, actor_id=actor_id):
                guardianship = Guardianship.create(
                    command,
                    time_provider=self.time_provider,
                    policy=self.policy,
                    command_id=generate_id(),
                    actor_id=actor_id,
                )
                self._save(guardianship, 0)
                return guardianship.to_json()

        return run()

    def add_co_guardian(
        self, guardianship_id: str, params: AddCoGuardian, actor_id: str = "system"
    ) -> dict[str, Any]:
        return self._execute(
            "add_co_guardian",
            guardianship_id,
            lambda g: g.add_co_guardian(params).to_json(self._now()),
            actor_id,
        )

    def replace_guardian(
        self,
        guardianship_id: str,
        outgoing_id: str,
        replacement_id: str,
        eligibility: GuardianEligibilityInfo,
        reason: TerminationReason | str,
        date: datetime | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        """
        Replace a guardian

        Returns:
            JSON projection of the replacement guardian
        """
        reason = TerminationReason(reason)
        return self._execute(
            "replace_guardian",
            guardianship_id,
            lambda g: g.replace_guardian(
                outgoing_id, replacement_id, eligibility, reason, date or self._now()
            ).to_json(self._now()),
            actor_id,
        )

    def remove_guardian(
        self,
        guardianship_id: str,
        guardian_id: str,
        reason: TerminationReason | str,
        date: datetime | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        reason = TerminationReason(reason)
        return self._execute(
            "remove_guardian",
            guardianship_id,
            lambda g: g.remove_guardian(guardian_id, reason, date or self._now()).to_json(self._now()),
            actor_id,
        )

    def update_ward_info(
        self, guardianship_id: str, update: WardInfoUpdate, actor_id: str = "system"
    ) -> dict[str, Any]:
        """
        Push a ward registry update (may dissolve the guardianship)

        Returns:
            JSON projection of the guardianship after the update
        """

        def action(g: Guardianship) -> dict[str, Any]:
            g.update_ward_info(update)
            return g.to_json()

        return self._execute("update_ward_info", guardianship_id, action, actor_id)

    def dissolve_guardianship(
        self,
        guardianship_id: str,
        reason: TerminationReason | str,
        date: datetime | None = None,
        court_order_number: str | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        reason = TerminationReason(reason)

        def action(g: Guardianship) -> dict[str, Any]:
            g.dissolve_guardianship(reason, date or self._now(), court_order_number)
            return g.to_json()

        return self._execute("dissolve_guardianship", guardianship_id, action, actor_id)

    def record_court_order(
        self, guardianship_id: str, court_order: CourtOrder, actor_id: str = "system"
    ) -> dict[str, Any]:
        def action(g: Guardianship) -> dict[str, Any]:
            g.record_court_order(court_order)
            return g.to_json()

        return self._execute("record_court_order", guardianship_id, action, actor_id)

    # ------------------------------------------------------------------
    # Guardian operations
    # ------------------------------------------------------------------

    def post_guardian_bond(
        self,
        guardianship_id: str,
        guardian_id: str,
        *,
        provider: str,
        policy_number: str,
        amount: Decimal,
        expiry_date: datetime,
        surety_details: str | None = None,
        court_approved_amount: Decimal | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        return self._execute(
            "post_guardian_bond",
            guardianship_id,
            lambda g: g.post_guardian_bond(
                guardian_id,
                provider=provider,
                policy_number=policy_number,
                amount=amount,
                expiry_date=expiry_date,
                surety_details=surety_details,
                court_approved_amount=court_approved_amount,
            ).to_json(self._now()),
            actor_id,
        )

    def renew_guardian_bond(
        self,
        guardianship_id: str,
        guardian_id: str,
        new_expiry: datetime,
        new_policy_number: str | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        return self._execute(
            "renew_guardian_bond",
            guardianship_id,
            lambda g: g.renew_guardian_bond(guardian_id, new_expiry, new_policy_number).to_json(
                self._now()
            ),
            actor_id,
        )

    def file_annual_report(
        self,
        guardianship_id: str,
        guardian_id: str,
        summary: str,
        report_date: datetime | None = None,
        approved_by: str | None = None,
        submission: ReportSubmission | None = None,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        return self._execute(
            "file_annual_report",
            guardianship_id,
            lambda g: g.file_annual_report(
                guardian_id, report_date or self._now(), summary, approved_by, submission
            ).to_json(self._now()),
            actor_id,
        )

    def grant_property_powers(
        self,
        guardianship_id: str,
        guardian_id: str,
        restrictions: list[str] | None = None,
        bond_waived: bool = False,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        return self._execute(
            "grant_property_powers",
            guardianship_id,
            lambda g: g.grant_property_powers(guardian_id, restrictions, bond_waived).to_json(
                self._now()
            ),
            actor_id,
        )

    def update_guardian_allowance(
        self,
        guardianship_id: str,
        guardian_id: str,
        amount: Decimal,
        approved_by: str,
        actor_id: str = "system",
    ) -> dict[str, Any]:
        return self._execute(
            "update_guardian_allowance",
            guardianship_id,
            lambda g: g.update_guardian_allowance(guardian_id, amount, approved_by).to_json(
                self._now()
            ),
            actor_id,
        )

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def check_compliance(self, guardianship_id: str, actor_id: str = "system") -> list[str]:
        """Recompute and store compliance warnings"""
        return self._execute(
            "check_compliance", guardianship_id, lambda g: g.check_compliance(), actor_id
        )

    def get_compliance_status(self, guardianship_id: str) -> dict[str, Any]:
        return self._load(guardianship_id).get_compliance_status()

    def calculate_compliance_deadlines(self, guardianship_id: str) -> list[ComplianceDeadline]:
        return self.engine.calculate_compliance_deadlines(self._load(guardianship_id))

    def calculate_compliance_score(self, guardianship_id: str) -> ComplianceScore:
        """Score a guardianship against every other stored guardianship"""
        population = [
            g
            for gid in self.repository.list_ids()
            if (g := self.repository.find(gid)) is not None
        ]
        return self.engine.calculate_compliance_score(self._load(guardianship_id), population)

    def calculate_penalties(self, guardianship_id: str) -> PenaltyAssessment:
        return self.engine.calculate_penalties(self._load(guardianship_id))

    def generate_compliance_calendar(
        self, guardianship_id: str, year: int, month: int | None = None
    ) -> ComplianceCalendar:
        return self.engine.generate_compliance_calendar(self._load(guardianship_id), year, month)

    # ------------------------------------------------------------------
    # Policy gates
    # ------------------------------------------------------------------

    def can_activate_guardianship(self, guardianship_id: str) -> None:
        compliance_policy.can_activate_guardianship(self._load(guardianship_id))

    def can_submit_compliance_report(
        self,
        guardianship_id: str,
        report_type: ReportType | str,
        submission_date: datetime | None = None,
        provided_sections: list[str] | None = None,
    ) -> None:
        compliance_policy.can_submit_compliance_report(
            self._load(guardianship_id),
            report_type,
            submission_date or self._now(),
            provided_sections,
        )

    def can_terminate_guardianship(
        self,
        guardianship_id: str,
        reason: str,
        has_outstanding_property_issues: bool = False,
    ) -> None:
        compliance_policy.can_terminate_guardianship(
            self._load(guardianship_id), reason, has_outstanding_property_issues
        )

    def can_convert_emergency_guardianship(
        self,
        guardianship_id: str,
        has_initial_assessment: bool,
        conversion_date: datetime | None = None,
    ) -> None:
        compliance_policy.can_convert_emergency_guardianship(
            self._load(guardianship_id), conversion_date or self._now(), has_initial_assessment
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_guardianship(self, guardianship_id: str) -> dict[str, Any]:
        return self._load(guardianship_id).to_json()

    def load(self, guardianship_id: str) -> Guardianship:
        """Load the aggregate itself (read-only use; changes are not saved)"""
        return self._load(guardianship_id)

    def list_guardianships(self, active_only: bool = False) -> list[dict[str, Any]]:
        """List registry summaries"""
        if active_only:
            return self.registry.list_active()
        return self.registry.list_all()

    def find_by_ward(self, ward_id: str) -> list[dict[str, Any]]:
        return [g.to_json() for g in self.repository.find_by_ward(ward_id)]

    def get_events(self, guardianship_id: str) -> list[Event]:
        """Audit trail of a guardianship"""
        return self.repository.events_for(guardianship_id)

    def get_policy(self) -> StatutoryPolicy:
        return self.policy

    def stats(self) -> dict[str, int]:
        return {
            **self.registry.counts(),
            "events": self.event_store.count_events(),
        }

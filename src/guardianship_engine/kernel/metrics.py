"""
Prometheus metrics for the guardianship engine.

Counts commands, persisted events, version conflicts, compliance warnings and
assessed penalties so operators can see where guardians are falling behind.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram

# ============================================================================
# Event Store Metrics
# ============================================================================

events_appended_total = Counter(
    "guardianship_events_appended_total",
    "Total number of domain events written to the outbox",
    ["aggregate_type", "event_type"],
)

stream_version_conflicts_total = Counter(
    "guardianship_stream_version_conflicts_total",
    "Total number of optimistic locking version conflicts",
    ["aggregate_type"],
)

# ============================================================================
# Command Processing Metrics
# ============================================================================

command_duration_seconds = Histogram(
    "guardianship_command_duration_seconds",
    "Duration of command processing in seconds",
    ["command_type"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

commands_processed_total = Counter(
    "guardianship_commands_processed_total",
    "Total number of commands processed",
    ["command_type", "status"],  # status: success, failure
)

# ============================================================================
# Compliance Metrics
# ============================================================================

compliance_warnings_recorded_total = Counter(
    "guardianship_compliance_warnings_recorded_total",
    "Total number of advisory compliance warnings recorded on aggregates",
    ["source"],  # source: check, command, carry_over, overlap
)

penalties_assessed_kes = Histogram(
    "guardianship_penalties_assessed_kes",
    "Total penalty per assessment in Kenya shillings",
    buckets=(0, 5000, 10000, 20000, 40000, 80000, 160000),
)

active_guardianships_total = Gauge(
    "guardianship_active_total",
    "Number of active guardianships known to the registry projection",
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_command_duration(command_type: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator recording duration and outcome of a command.

    Args:
        command_type: Label value for the command being processed
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                command_duration_seconds.labels(command_type=command_type).observe(
                    time.perf_counter() - start
                )
                commands_processed_total.labels(
                    command_type=command_type, status=status
                ).inc()

        return wrapper

    return decorator

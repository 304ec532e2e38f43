"""
Kernel - shared infrastructure for the guardianship engine

Errors, the event envelope, ids, injectable time, statutory configuration,
logging, metrics and the SQLite snapshot/outbox store.
"""

from guardianship_engine.kernel.errors import (
    EventReplayNotSupported,
    EventStoreError,
    GuardianshipEngineError,
    GuardianshipNotFound,
    InvariantViolation,
    StreamVersionConflict,
)
from guardianship_engine.kernel.events import Event, create_event
from guardianship_engine.kernel.ids import generate_id
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    "generate_id",
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    "StatutoryPolicy",
    "Event",
    "create_event",
    "GuardianshipEngineError",
    "EventStoreError",
    "EventReplayNotSupported",
    "GuardianshipNotFound",
    "StreamVersionConflict",
    "InvariantViolation",
]

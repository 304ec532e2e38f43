"""
Exception hierarchy for the guardianship engine

Two disjoint families live here. Invariant violations are hard, typed and
synchronous: the command that hit one did nothing and must not be retried.
Event store errors describe the persistence boundary, where a version
conflict means "somebody else saved first - reload and try again".

Compliance warnings are deliberately absent: they are strings accumulated on
the aggregate, never exceptions.
"""

from datetime import datetime


class GuardianshipEngineError(Exception):
    """Base exception for all guardianship engine errors"""

    pass


# Persistence


class EventStoreError(GuardianshipEngineError):
    """Base class for event store errors"""

    pass


class StreamVersionConflict(EventStoreError):
    """
    Raised when a save carries a stale expected version (optimistic locking)

    The engine never retries this internally - the caller reloads the
    aggregate, re-applies its command, and saves again.
    """

    def __init__(
        self, stream_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} version mismatch: "
            f"expected {expected_version}, got {actual_version}"
        )


class EventReplayNotSupported(GuardianshipEngineError):
    """
    Raised when asked to rebuild an aggregate from its event log

    Guardianships are persisted as snapshots; the event log is an audit
    trail and outbox, not a replay source.
    """

    def __init__(self, stream_id: str | None = None) -> None:
        self.stream_id = stream_id
        target = f" for {stream_id}" if stream_id else ""
        super().__init__(
            f"Rebuilding a guardianship from its event log is not supported{target} - "
            "load the stored snapshot instead"
        )


class GuardianshipNotFound(GuardianshipEngineError):
    """Raised when a guardianship does not exist in the store"""

    def __init__(self, guardianship_id: str) -> None:
        self.guardianship_id = guardianship_id
        super().__init__(f"Guardianship {guardianship_id} not found")


# Hard invariant violations


class InvariantViolation(GuardianshipEngineError):
    """
    Raised when a domain invariant would be violated

    Surfaced directly to the caller as a validation failure.
    """

    pass


class InvalidGuardianshipException(InvariantViolation):
    """Raised when a command is not valid for the guardianship's current state"""

    def __init__(self, message: str, guardianship_id: str | None = None) -> None:
        self.guardianship_id = guardianship_id
        super().__init__(message)


class GuardianIneligibleException(InvariantViolation):
    """Raised when a proposed guardian fails the eligibility checks"""

    def __init__(self, guardian_id: str, reasons: list[str]) -> None:
        self.guardian_id = guardian_id
        self.reasons = reasons
        super().__init__(
            f"Guardian {guardian_id} is not eligible: {'; '.join(reasons)}"
        )


class WardNotMinorException(InvariantViolation):
    """Raised when the ward is neither a minor nor legally incapacitated"""

    def __init__(self, ward_id: str, age: int) -> None:
        self.ward_id = ward_id
        self.age = age
        super().__init__(
            f"Ward {ward_id} is {age} years old and not incapacitated - "
            "guardianship applies only to minors or incapacitated persons"
        )


class WardNotFoundException(InvariantViolation):
    """Raised when the ward does not exist as a living person"""

    def __init__(self, ward_id: str, reason: str = "ward is deceased") -> None:
        self.ward_id = ward_id
        self.reason = reason
        super().__init__(f"Ward {ward_id} cannot be placed under guardianship: {reason}")


class GuardianNotFoundException(InvariantViolation):
    """Raised when a guardian id is not part of the guardianship"""

    def __init__(self, guardianship_id: str, guardian_id: str) -> None:
        self.guardianship_id = guardianship_id
        self.guardian_id = guardian_id
        super().__init__(
            f"Guardian {guardian_id} not found in guardianship {guardianship_id}"
        )


class MultipleGuardiansException(InvariantViolation):
    """Raised when adding a guardian would duplicate a guardian or an exclusive power"""

    def __init__(self, guardian_id: str, message: str) -> None:
        self.guardian_id = guardian_id
        super().__init__(message)


class MissingBondError(InvariantViolation):
    """Raised when property management is attempted without the S.72 bond"""

    def __init__(self, guardianship_id: str | None = None) -> None:
        self.guardianship_id = guardianship_id
        super().__init__("Guardianship requires a bond when managing property")


class MissingCourtApprovalError(InvariantViolation):
    """Raised when a transition needs a court order that is not on file"""

    def __init__(self, reason: str = "Court approval is required") -> None:
        self.reason = reason
        super().__init__(reason)


class ComplianceDeadlineError(InvariantViolation):
    """Raised when a report falls outside its permitted submission window"""

    def __init__(self, deadline: datetime, message: str | None = None) -> None:
        self.deadline = deadline
        super().__init__(
            message or f"Compliance deadline {deadline.date().isoformat()} has passed"
        )


class JurisdictionConflictError(InvariantViolation):
    """Raised when two legal regimes cannot govern the same guardianship"""

    def __init__(self, jurisdiction_a: str, jurisdiction_b: str) -> None:
        self.jurisdiction_a = jurisdiction_a
        self.jurisdiction_b = jurisdiction_b
        super().__init__(
            f"Jurisdiction conflict between {jurisdiction_a} and {jurisdiction_b}"
        )

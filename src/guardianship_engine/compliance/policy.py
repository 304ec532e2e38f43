"""
Compliance Policy - gates on lifecycle transitions

Stateless checks that decide whether a requested transition is legally
permitted. Each gate returns None when the transition may go ahead and
raises a typed InvariantViolation naming the first obstacle otherwise. They
read the guardianship but never change it.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field

from guardianship_engine.compliance.models import ReportType
from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.models import (
    BondStatus,
    GuardianshipType,
    Jurisdiction,
    ReportFrequency,
)
from guardianship_engine.kernel.errors import (
    ComplianceDeadlineError,
    InvalidGuardianshipException,
    JurisdictionConflictError,
    MissingBondError,
    MissingCourtApprovalError,
)
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import ensure_utc

# Regimes each jurisdiction cannot share a guardianship with
JURISDICTION_CONFLICTS: dict[Jurisdiction, set[Jurisdiction]] = {
    Jurisdiction.STATUTORY: {Jurisdiction.ISLAMIC, Jurisdiction.CUSTOMARY},
    Jurisdiction.ISLAMIC: {Jurisdiction.STATUTORY},
    Jurisdiction.CUSTOMARY: {Jurisdiction.STATUTORY},
    Jurisdiction.INTERNATIONAL: set(),
}


class ComplianceScheduleTemplate(BaseModel):
    """Reporting cadence and reminder lead times for a kind of guardianship"""

    frequency: ReportFrequency
    reminder_days: list[int] = Field(default_factory=list)

    model_config = {"frozen": True}


def _policy_of(guardianship: Guardianship, policy: StatutoryPolicy | None) -> StatutoryPolicy:
    return policy or guardianship.policy


def get_required_sections(report_type: ReportType | str) -> list[str]:
    """
    Sections a report of the given type must contain

    Raises:
        InvalidGuardianshipException: If the report type is unknown
    """
    try:
        return ReportType(report_type).required_sections()
    except ValueError:
        raise InvalidGuardianshipException(f"Invalid report type: {report_type}") from None


def can_activate_guardianship(guardianship: Guardianship) -> None:
    """
    Check a guardianship may start exercising its powers

    Raises:
        MissingBondError: Property is managed but a required bond is not posted
        MissingCourtApprovalError: A court order is needed for this type or jurisdiction
        InvalidGuardianshipException: There is no active primary guardian
    """
    gid = guardianship.guardianship_id
    manages_property = guardianship.requires_property_management()

    if manages_property and guardianship.bond_status is BondStatus.REQUIRED_PENDING:
        raise MissingBondError(gid)

    has_order = guardianship.court_order is not None
    if guardianship.guardianship_type is GuardianshipType.COURT_APPOINTED and not has_order:
        raise MissingCourtApprovalError("Court-appointed guardianship requires a court order")

    primary = guardianship.primary_guardian
    if primary is None or not primary.is_active:
        raise InvalidGuardianshipException(
            "Must have at least one active primary guardian", guardianship_id=gid
        )

    if has_order:
        return
    jurisdiction = guardianship.jurisdiction
    if jurisdiction in (Jurisdiction.STATUTORY, Jurisdiction.INTERNATIONAL):
        raise MissingCourtApprovalError(
            f"{jurisdiction.value} guardianship requires a court order"
        )
    if (
        jurisdiction is Jurisdiction.ISLAMIC
        and guardianship.guardianship_type is GuardianshipType.TESTAMENTARY
    ):
        raise MissingCourtApprovalError(
            "Testamentary guardianship under Islamic law requires a Kadhi's court order"
        )
    if jurisdiction is Jurisdiction.CUSTOMARY and manages_property:
        raise MissingCourtApprovalError(
            "Customary guardianship managing property requires a court order"
        )


def can_submit_compliance_report(
    guardianship: Guardianship,
    report_type: ReportType | str,
    submission_date: datetime,
    provided_sections: list[str] | None = None,
    policy: StatutoryPolicy | None = None,
) -> None:
    """
    Check a report may be filed on the given date

    Filing opens 30 days before the next due date and closes after a grace
    period that depends on the report type. When the sections being filed
    are supplied, every required section must be among them.

    Raises:
        InvalidGuardianshipException: Unknown report type, nothing scheduled,
            or required sections missing
        ComplianceDeadlineError: Too early, or past the grace deadline
    """
    policy = _policy_of(guardianship, policy)
    required = get_required_sections(report_type)
    type_name = ReportType(report_type).value

    next_due = guardianship.next_report_due()
    if next_due is None:
        raise InvalidGuardianshipException(
            "No compliance check scheduled", guardianship_id=guardianship.guardianship_id
        )

    submission_date = ensure_utc(submission_date)
    earliest = next_due - timedelta(days=policy.early_submission_days)
    if submission_date < earliest:
        raise ComplianceDeadlineError(
            next_due,
            f"Cannot submit report more than {policy.early_submission_days} days "
            f"before due date {next_due.date().isoformat()}",
        )

    grace_days = policy.report_type_grace_days.get(type_name, policy.annual_report_submission_window_days)
    deadline = next_due + timedelta(days=grace_days)
    if submission_date > deadline:
        raise ComplianceDeadlineError(deadline)

    if provided_sections is not None:
        missing = [s for s in required if s not in set(provided_sections)]
        if missing:
            raise InvalidGuardianshipException(
                f"Report is missing required sections: {', '.join(missing)}",
                guardianship_id=guardianship.guardianship_id,
            )


def can_terminate_guardianship(
    guardianship: Guardianship,
    reason: str,
    has_outstanding_property_issues: bool = False,
    policy: StatutoryPolicy | None = None,
) -> None:
    """
    Check a guardianship may be ended early

    An adult ward with capacity ends guardianship as of right. Otherwise
    reports must be up to date and the bond releasable; an incapacitated
    ward additionally needs a detailed reason and must not be left without
    a guardian.

    Args:
        guardianship: Guardianship to end
        reason: Free-text reason for the court
        has_outstanding_property_issues: Whether the estate still has open
            claims against the bond
        policy: Overrides the guardianship's own policy

    Raises:
        InvalidGuardianshipException: If any condition is not met
    """
    policy = _policy_of(guardianship, policy)
    gid = guardianship.guardianship_id
    ward = guardianship.ward

    if not ward.is_minor(policy.majority_age) and not ward.is_incapacitated:
        return

    if ward.is_incapacitated and len(reason or "") < policy.termination_reason_min_length:
        raise InvalidGuardianshipException(
            f"Detailed termination reason required (minimum "
            f"{policy.termination_reason_min_length} characters) for incapacitated ward",
            guardianship_id=gid,
        )

    if guardianship.overdue_compliance_checks() > 0:
        raise InvalidGuardianshipException(
            "Cannot terminate guardianship with overdue compliance reports", guardianship_id=gid
        )

    if (
        guardianship.requires_property_management()
        and guardianship.bond_status is BondStatus.POSTED
        and has_outstanding_property_issues
    ):
        raise InvalidGuardianshipException(
            "Cannot terminate guardianship with outstanding property issues", guardianship_id=gid
        )

    if ward.is_incapacitated and len(guardianship.active_guardians()) == 1:
        raise InvalidGuardianshipException(
            "Must appoint successor guardian for incapacitated ward", guardianship_id=gid
        )


def can_convert_emergency_guardianship(
    guardianship: Guardianship,
    conversion_date: datetime,
    has_initial_assessment: bool,
    policy: StatutoryPolicy | None = None,
) -> None:
    """
    Check an emergency guardianship may become a regular one

    Raises:
        InvalidGuardianshipException: Not an emergency guardianship, the
            emergency period has lapsed, or no initial assessment was made
        MissingCourtApprovalError: No court order on file
    """
    policy = _policy_of(guardianship, policy)
    gid = guardianship.guardianship_id
    if guardianship.guardianship_type is not GuardianshipType.EMERGENCY:
        raise InvalidGuardianshipException(
            f"Only emergency guardianships can be converted, not "
            f"{guardianship.guardianship_type.value}",
            guardianship_id=gid,
        )

    elapsed = (ensure_utc(conversion_date) - guardianship.established_date).days
    if elapsed > policy.emergency_max_days:
        raise InvalidGuardianshipException(
            f"Emergency guardianship cannot exceed {policy.emergency_max_days} days",
            guardianship_id=gid,
        )
    if guardianship.court_order is None:
        raise MissingCourtApprovalError("Converting an emergency guardianship requires a court order")
    if not has_initial_assessment:
        raise InvalidGuardianshipException(
            "Initial ward assessment required before conversion", guardianship_id=gid
        )


def calculate_compliance_schedule(
    guardianship_type: GuardianshipType,
    requires_property_management: bool,
    jurisdiction: Jurisdiction | None = None,
) -> ComplianceScheduleTemplate:
    """Reporting frequency and reminder lead days for a kind of guardianship"""
    if jurisdiction is Jurisdiction.INTERNATIONAL:
        return ComplianceScheduleTemplate(
            frequency=ReportFrequency.QUARTERLY if requires_property_management else ReportFrequency.ANNUAL,
            reminder_days=[90, 60, 30, 14],
        )
    if guardianship_type is GuardianshipType.TESTAMENTARY:
        return ComplianceScheduleTemplate(frequency=ReportFrequency.ANNUAL, reminder_days=[60, 30, 14])
    if guardianship_type is GuardianshipType.CUSTOMARY:
        return ComplianceScheduleTemplate(frequency=ReportFrequency.SEMI_ANNUAL, reminder_days=[30, 14])
    if guardianship_type is GuardianshipType.EMERGENCY:
        return ComplianceScheduleTemplate(frequency=ReportFrequency.MONTHLY, reminder_days=[7, 3, 1])
    if guardianship_type is GuardianshipType.COURT_APPOINTED:
        return ComplianceScheduleTemplate(
            frequency=ReportFrequency.QUARTERLY if requires_property_management else ReportFrequency.ANNUAL,
            reminder_days=[30, 14, 7],
        )
    return ComplianceScheduleTemplate(frequency=ReportFrequency.ANNUAL, reminder_days=[30, 14, 7])


def check_jurisdiction_conflict(
    jurisdiction_a: Jurisdiction | str, jurisdiction_b: Jurisdiction | str
) -> None:
    """
    Raises:
        JurisdictionConflictError: If either regime conflicts with the other
    """
    a = Jurisdiction(jurisdiction_a)
    b = Jurisdiction(jurisdiction_b)
    if b in JURISDICTION_CONFLICTS[a] or a in JURISDICTION_CONFLICTS[b]:
        raise JurisdictionConflictError(a.value, b.value)


def validate_bond_amount(
    estate_value: Decimal,
    bond_amount: Decimal,
    policy: StatutoryPolicy | None = None,
) -> None:
    """
    Check a bond is proportionate to the estate it secures

    Raises:
        InvalidGuardianshipException: Outside 50%-200% of the estate value
    """
    policy = policy or StatutoryPolicy()
    minimum = estate_value * policy.bond_min_estate_ratio
    maximum = estate_value * policy.bond_max_estate_ratio
    if bond_amount < minimum:
        raise InvalidGuardianshipException(
            f"Bond amount ({bond_amount}) is less than required minimum ({minimum})"
        )
    if bond_amount > maximum:
        raise InvalidGuardianshipException(
            f"Bond amount ({bond_amount}) exceeds reasonable maximum ({maximum})"
        )

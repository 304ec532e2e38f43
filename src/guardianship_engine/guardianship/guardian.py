"""
Guardian - one person's role in a guardianship

A Guardian is a child entity of the Guardianship aggregate. It is frozen:
every operation validates, then returns a new Guardian that the aggregate
swaps into its map. The aggregate never reaches past a Guardian into its
value objects.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from guardianship_engine.guardianship.models import (
    AppointmentSource,
    ReportStatus,
    S73Status,
    TerminationReason,
)
from guardianship_engine.guardianship.value_objects import (
    BondLedger,
    PowersGrant,
    ReportingSchedule,
)
from guardianship_engine.kernel.errors import InvalidGuardianshipException
from guardianship_engine.kernel.time import UtcDatetime, add_years, ensure_utc


class Guardian(BaseModel):
    """
    A guardian's appointment, powers, bond and reporting obligations

    Attributes:
        guardian_id: Person id of the guardian
        ward_id: Person id of the ward (never equal to guardian_id)
        is_primary: Whether this guardian is the primary point of contact
        appointment_date: When the appointment took effect
        appointment_source: Will, court, family or customary appointment
        powers: Legal powers held
        bond_required: Whether the court requires an S.72 bond
        bond: Posted bond, if any
        reporting_schedule: S.73 schedule, present once property powers are held
        annual_allowance: Court-approved maintenance allowance (KES)
        allowance_approved_by: Who approved the allowance
        is_active: False once the guardian's role has ended
        removed_date: When the role ended
        removal_reason: Why the role ended
    """

    guardian_id: str = Field(..., min_length=1)
    ward_id: str = Field(..., min_length=1)
    is_primary: bool = False
    appointment_date: UtcDatetime
    appointment_source: AppointmentSource
    powers: PowersGrant = Field(default_factory=PowersGrant)
    bond_required: bool = False
    bond: BondLedger | None = None
    reporting_schedule: ReportingSchedule | None = None
    annual_allowance: Decimal | None = None
    allowance_approved_by: str | None = None
    is_active: bool = True
    removed_date: UtcDatetime | None = None
    removal_reason: TerminationReason | None = None

    model_config = {"frozen": True}

    @classmethod
    def appoint(
        cls,
        *,
        guardian_id: str,
        ward_id: str,
        appointment_date: datetime,
        appointment_source: AppointmentSource,
        powers: PowersGrant | None = None,
        bond_required: bool | None = None,
        is_primary: bool = False,
        annual_allowance: Decimal | None = None,
        report_grace_period_days: int = 60,
    ) -> "Guardian":
        """
        Appoint a new guardian

        bond_required defaults to whether the powers include property
        management. A guardian with property powers gets an annual reporting
        schedule whose first report falls due a year after appointment.

        Raises:
            InvalidGuardianshipException: If guardian and ward are the same
                person, or the allowance is negative
        """
        if guardian_id == ward_id:
            raise InvalidGuardianshipException(
                f"Person {guardian_id} cannot be both guardian and ward"
            )
        if annual_allowance is not None and annual_allowance < 0:
            raise InvalidGuardianshipException("Annual allowance cannot be negative")

        powers = powers or PowersGrant()
        schedule = None
        if powers.has_property_management_powers:
            schedule = ReportingSchedule.create(
                add_years(appointment_date, 1),
                grace_period_days=report_grace_period_days,
            )

        return cls(
            guardian_id=guardian_id,
            ward_id=ward_id,
            is_primary=is_primary,
            appointment_date=appointment_date,
            appointment_source=appointment_source,
            powers=powers,
            bond_required=powers.requires_bond() if bond_required is None else bond_required,
            reporting_schedule=schedule,
            annual_allowance=annual_allowance,
        )

    # Queries

    @property
    def restrictions(self) -> list[str]:
        return self.powers.restrictions

    def requires_bond(self) -> bool:
        return self.bond_required and self.powers.requires_bond()

    def is_bond_posted(self) -> bool:
        return self.bond is not None

    def has_valid_bond(self, now: datetime) -> bool:
        return self.bond is not None and not self.bond.is_expired(now)

    def can_manage_property(self, now: datetime) -> bool:
        """Property powers held and, where a bond is required, a live bond posted"""
        if not self.powers.has_property_management_powers:
            return False
        return not self.bond_required or self.has_valid_bond(now)

    def requires_annual_report(self) -> bool:
        return self.is_active and self.powers.has_property_management_powers

    def has_overdue_report(self, now: datetime) -> bool:
        return (
            self.requires_annual_report()
            and self.reporting_schedule is not None
            and self.reporting_schedule.is_overdue(now)
        )

    def s73_compliance_status(self, now: datetime) -> S73Status:
        if not self.requires_annual_report():
            return S73Status.NOT_REQUIRED
        if self.has_overdue_report(now):
            return S73Status.NON_COMPLIANT
        return S73Status.COMPLIANT

    # Transitions

    def _require_active(self, action: str) -> None:
        if not self.is_active:
            raise InvalidGuardianshipException(
                f"Cannot {action}: guardian {self.guardian_id} is no longer active"
            )

    def post_bond(
        self,
        *,
        provider: str,
        policy_number: str,
        amount: Decimal,
        expiry_date: datetime,
        now: datetime,
        surety_details: str | None = None,
        court_approved_amount: Decimal | None = None,
    ) -> "Guardian":
        """
        Post an S.72 bond issued today

        A new bond may replace one that has already expired; a live bond
        must be renewed instead.

        Raises:
            InvalidGuardianshipException: If inactive, no bond is required, a live
                bond is already posted, the provider or policy number is blank,
                an amount is not positive or the expiry is not in the future
        """
        self._require_active("post bond")
        if not self.requires_bond():
            raise InvalidGuardianshipException(
                f"Guardian {self.guardian_id} is not required to post a bond"
            )
        if self.has_valid_bond(now):
            raise InvalidGuardianshipException(
                f"Guardian {self.guardian_id} already has a bond posted - renew it instead"
            )
        if not provider.strip():
            raise InvalidGuardianshipException("Bond provider is required")
        if not policy_number.strip():
            raise InvalidGuardianshipException("Bond policy number is required")
        if amount <= 0:
            raise InvalidGuardianshipException("Bond amount must be positive")
        if court_approved_amount is not None and court_approved_amount <= 0:
            raise InvalidGuardianshipException("Court approved bond amount must be positive")
        expiry_date = ensure_utc(expiry_date)
        if expiry_date <= now:
            raise InvalidGuardianshipException("Bond expiry date must be in the future")

        bond = BondLedger(
            provider=provider,
            policy_number=policy_number,
            amount=amount,
            issued_date=now,
            expiry_date=expiry_date,
            surety_details=surety_details,
            court_approved_amount=court_approved_amount,
        )
        return self.model_copy(update={"bond": bond})

    def renew_bond(
        self,
        new_expiry: datetime,
        now: datetime,
        new_policy_number: str | None = None,
    ) -> "Guardian":
        """
        Raises:
            InvalidGuardianshipException: If inactive, no bond is posted, or
                new_expiry is not in the future
        """
        self._require_active("renew bond")
        if self.bond is None:
            raise InvalidGuardianshipException(
                f"Guardian {self.guardian_id} has no bond to renew"
            )
        return self.model_copy(
            update={"bond": self.bond.renew(ensure_utc(new_expiry), now, new_policy_number)}
        )

    def file_annual_report(
        self, report_date: datetime, approved_by: str | None = None
    ) -> "Guardian":
        """
        Record an S.73 report; APPROVED when an approver is named, else SUBMITTED

        Raises:
            InvalidGuardianshipException: If the guardian is inactive or holds
                no property powers
        """
        self._require_active("file annual report")
        if not self.requires_annual_report() or self.reporting_schedule is None:
            raise InvalidGuardianshipException(
                f"Guardian {self.guardian_id} has no property powers and files no annual report"
            )

        status = ReportStatus.APPROVED if approved_by else ReportStatus.SUBMITTED
        schedule = self.reporting_schedule.file_report(ensure_utc(report_date), status)
        return self.model_copy(update={"reporting_schedule": schedule})

    def grant_property_powers(
        self,
        now: datetime,
        restrictions: list[str] | None = None,
        bond_waived: bool = False,
        report_grace_period_days: int = 60,
    ) -> "Guardian":
        """
        Grant property management powers

        The S.72 bond requirement attaches unless the court waived it, and an
        annual reporting schedule starts with the first report due a year out.
        Until a bond is posted the guardian still cannot manage property.

        Raises:
            InvalidGuardianshipException: If inactive or powers already held
        """
        self._require_active("grant property powers")
        powers = self.powers.grant_property_management(restrictions)
        schedule = self.reporting_schedule or ReportingSchedule.create(
            add_years(now, 1), grace_period_days=report_grace_period_days
        )
        return self.model_copy(
            update={
                "powers": powers,
                "bond_required": not bond_waived,
                "reporting_schedule": schedule,
            }
        )

    def update_allowance(self, amount: Decimal, approved_by: str) -> "Guardian":
        """
        Raises:
            InvalidGuardianshipException: If inactive or amount is negative
        """
        self._require_active("update allowance")
        if amount < 0:
            raise InvalidGuardianshipException("Annual allowance cannot be negative")
        return self.model_copy(
            update={"annual_allowance": amount, "allowance_approved_by": approved_by}
        )

    def terminate(self, reason: TerminationReason, date: datetime) -> "Guardian":
        """
        Raises:
            InvalidGuardianshipException: If the guardian is already inactive
        """
        if not self.is_active:
            raise InvalidGuardianshipException(
                f"Guardian {self.guardian_id} is already inactive"
            )
        return self.model_copy(
            update={
                "is_active": False,
                "is_primary": False,
                "removed_date": ensure_utc(date),
                "removal_reason": reason,
            }
        )

    def with_primary(self, is_primary: bool) -> "Guardian":
        return self.model_copy(update={"is_primary": is_primary})

    def to_json(self, now: datetime) -> dict[str, Any]:
        """Read-side view including derived compliance flags"""
        data = self.model_dump(mode="json")
        data["restrictions"] = list(self.restrictions)
        data["can_manage_property"] = self.can_manage_property(now)
        data["s73_compliance_status"] = self.s73_compliance_status(now).value
        return data

"""
Guardianship Value Objects - powers, bonds and reporting schedules

Each of these is a frozen pydantic model. Operations never modify an
instance; they validate and return a new one, which the Guardian entity
swaps in. Anything time-dependent takes `now` explicitly so that the
caller's injected clock decides what "expired" or "overdue" means.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from guardianship_engine.guardianship.models import PowerGroup, ReportFrequency, ReportStatus
from guardianship_engine.kernel.errors import InvalidGuardianshipException
from guardianship_engine.kernel.time import UtcDatetime, add_months, days_since, days_until


class PowersGrant(BaseModel):
    """
    The legal powers a guardian holds over the ward

    Property management is the consequential one: it triggers the S.72 bond
    requirement and S.73 annual accounts, and by convention comes paired with
    the power to make legal decisions.
    """

    has_property_management_powers: bool = False
    can_consent_to_medical: bool = True
    can_consent_to_marriage: bool = False
    can_make_legal_decisions: bool = False
    can_make_educational_decisions: bool = True
    restrictions: list[str] = Field(default_factory=list)
    special_instructions: str | None = None

    model_config = {"frozen": True}

    def grant_property_management(self, restrictions: list[str] | None = None) -> "PowersGrant":
        """
        Add property management (and legal decision) powers

        Raises:
            InvalidGuardianshipException: If property powers are already held
        """
        if self.has_property_management_powers:
            raise InvalidGuardianshipException("Property management powers already granted")

        return self.model_copy(
            update={
                "has_property_management_powers": True,
                "can_make_legal_decisions": True,
                "restrictions": [*self.restrictions, *(restrictions or [])],
            }
        )

    def with_restrictions(self, restrictions: list[str]) -> "PowersGrant":
        return self.model_copy(update={"restrictions": list(restrictions)})

    def requires_bond(self) -> bool:
        """S.72: managing a ward's property requires a bond"""
        return self.has_property_management_powers

    def power_groups(self) -> set[PowerGroup]:
        groups: set[PowerGroup] = set()
        if self.has_property_management_powers:
            groups.add(PowerGroup.PROPERTY)
        if self.can_consent_to_medical or self.can_make_educational_decisions:
            groups.add(PowerGroup.CARE)
        if self.can_make_legal_decisions or self.can_consent_to_marriage:
            groups.add(PowerGroup.LEGAL)
        return groups


class BondLedger(BaseModel):
    """
    A posted S.72 guardianship bond

    Attributes:
        provider: Insurer or surety company
        policy_number: Provider's policy reference
        amount: Sum assured in KES (> 0)
        issued_date: Start of cover
        expiry_date: End of cover (strictly after issued_date)
        surety_details: Personal sureties, if any
        court_approved_amount: Amount the court fixed, when it differs
    """

    provider: str = Field(..., min_length=1)
    policy_number: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    issued_date: UtcDatetime
    expiry_date: UtcDatetime
    surety_details: str | None = None
    court_approved_amount: Decimal | None = Field(default=None, gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _expiry_after_issue(self) -> "BondLedger":
        if self.expiry_date <= self.issued_date:
            raise ValueError("Bond expiry date must be after its issue date")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiry_date

    def is_expiring_soon(self, now: datetime, days: int = 60) -> bool:
        return self.expiry_date <= now + timedelta(days=days)

    def days_until_expiry(self, now: datetime) -> int:
        return days_until(self.expiry_date, now)

    def renew(
        self,
        new_expiry: datetime,
        now: datetime,
        new_policy_number: str | None = None,
    ) -> "BondLedger":
        """
        Renew cover from today until new_expiry

        Raises:
            InvalidGuardianshipException: If new_expiry is not in the future
        """
        if new_expiry <= now:
            raise InvalidGuardianshipException("Bond renewal expiry must be in the future")

        return self.model_copy(
            update={
                "issued_date": now,
                "expiry_date": new_expiry,
                "policy_number": new_policy_number or self.policy_number,
            }
        )


class ReportingSchedule(BaseModel):
    """
    S.73 reporting obligations of one guardian

    A report is overdue only once the statutory grace period after the due
    date has fully elapsed: exactly at the end of grace it is still on time.
    """

    frequency: ReportFrequency = ReportFrequency.ANNUAL
    first_report_due: UtcDatetime
    last_report_date: UtcDatetime | None = None
    next_report_due: UtcDatetime
    status: ReportStatus = ReportStatus.PENDING
    grace_period_days: int = Field(default=60, ge=0)
    overdue_notifications_sent: int = Field(default=0, ge=0)
    last_overdue_notification: UtcDatetime | None = None

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        first_report_due: datetime,
        frequency: ReportFrequency = ReportFrequency.ANNUAL,
        grace_period_days: int = 60,
    ) -> "ReportingSchedule":
        return cls(
            frequency=frequency,
            first_report_due=first_report_due,
            next_report_due=first_report_due,
            grace_period_days=grace_period_days,
        )

    def _advance_from(self, reference: datetime) -> datetime:
        return add_months(reference, self.frequency.interval_months())

    def grace_period_end(self) -> datetime:
        return self.next_report_due + timedelta(days=self.grace_period_days)

    def is_due(self, now: datetime) -> bool:
        return now >= self.next_report_due

    def is_overdue(self, now: datetime) -> bool:
        return now > self.grace_period_end()

    def is_in_grace_period(self, now: datetime) -> bool:
        return self.is_due(now) and not self.is_overdue(now)

    def days_until_due(self, now: datetime) -> int:
        return max(0, days_until(self.next_report_due, now))

    def days_overdue(self, now: datetime) -> int:
        if not self.is_overdue(now):
            return 0
        return days_since(self.grace_period_end(), now)

    def file_report(
        self, report_date: datetime, status: ReportStatus = ReportStatus.SUBMITTED
    ) -> "ReportingSchedule":
        """
        Record a filed report and roll the schedule forward

        ON_DEMAND has a zero interval, so its next due date stays at the
        filing date until the court sets one through extend_due_date.
        """
        return self.model_copy(
            update={
                "last_report_date": report_date,
                "next_report_due": self._advance_from(report_date),
                "status": status,
                "overdue_notifications_sent": 0,
                "last_overdue_notification": None,
            }
        )

    def should_send_overdue_reminder(self, now: datetime, interval_days: int = 7) -> bool:
        """True on first overdue detection, then at most once per interval"""
        if not self.is_overdue(now):
            return False
        if self.last_overdue_notification is None:
            return True
        return now - self.last_overdue_notification >= timedelta(days=interval_days)

    def record_overdue_notification(self, now: datetime) -> "ReportingSchedule":
        return self.model_copy(
            update={
                "overdue_notifications_sent": self.overdue_notifications_sent + 1,
                "last_overdue_notification": now,
                "status": ReportStatus.OVERDUE,
            }
        )

    def update_status(self, status: ReportStatus) -> "ReportingSchedule":
        return self.model_copy(update={"status": status})

    def extend_due_date(self, new_due: datetime) -> "ReportingSchedule":
        """
        Push the next due date out (court-granted extension)

        Raises:
            InvalidGuardianshipException: If new_due is not later than the current due date
        """
        if new_due <= self.next_report_due:
            raise InvalidGuardianshipException(
                "Extended due date must be after the current due date"
            )
        return self.model_copy(update={"next_report_due": new_due})

    def change_frequency(self, frequency: ReportFrequency) -> "ReportingSchedule":
        """Switch frequency; the next due date is recomputed from the last report, if any"""
        updated = self.model_copy(update={"frequency": frequency})
        if self.last_report_date is None or frequency is ReportFrequency.ON_DEMAND:
            return updated
        return updated.model_copy(
            update={"next_report_due": updated._advance_from(self.last_report_date)}
        )

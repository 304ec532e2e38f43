"""
Guardianship Domain Models - enums and input snapshots

The engine does not own wards, people or courts. It receives snapshots of
them from external registries (civil registration, eligibility vetting, the
court registry) and reasons over those snapshots. Everything here is frozen:
a changed fact arrives as a new snapshot, never as an in-place edit.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field

from guardianship_engine.kernel.time import UtcDatetime


class AppointmentSource(str, Enum):
    """Where a guardian's authority comes from"""

    FAMILY = "FAMILY"
    COURT = "COURT"
    WILL = "WILL"
    CUSTOMARY_LAW = "CUSTOMARY_LAW"


class GuardianshipType(str, Enum):
    """
    Legal basis of the guardianship

    The type decides which court approvals apply and how often reports
    fall due.
    """

    TESTAMENTARY = "TESTAMENTARY"  # Appointed by the deceased parent's will
    COURT_APPOINTED = "COURT_APPOINTED"
    NATURAL_PARENT = "NATURAL_PARENT"
    CUSTOMARY = "CUSTOMARY"  # Recognised under clan custom
    EMERGENCY = "EMERGENCY"  # Temporary, must be converted or lapse

    def default_appointment_source(self) -> AppointmentSource:
        return {
            GuardianshipType.TESTAMENTARY: AppointmentSource.WILL,
            GuardianshipType.COURT_APPOINTED: AppointmentSource.COURT,
            GuardianshipType.NATURAL_PARENT: AppointmentSource.FAMILY,
            GuardianshipType.CUSTOMARY: AppointmentSource.CUSTOMARY_LAW,
            GuardianshipType.EMERGENCY: AppointmentSource.COURT,
        }[self]


class Jurisdiction(str, Enum):
    """Body of law the guardianship is administered under"""

    STATUTORY = "STATUTORY"
    ISLAMIC = "ISLAMIC"
    CUSTOMARY = "CUSTOMARY"
    INTERNATIONAL = "INTERNATIONAL"


class ReportFrequency(str, Enum):
    """How often a guardian must account to the court"""

    ANNUAL = "ANNUAL"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    QUARTERLY = "QUARTERLY"
    MONTHLY = "MONTHLY"
    ON_DEMAND = "ON_DEMAND"

    def interval_months(self) -> int:
        """Months between reports (0 means no automatic advance)"""
        return {
            ReportFrequency.ANNUAL: 12,
            ReportFrequency.SEMI_ANNUAL: 6,
            ReportFrequency.QUARTERLY: 3,
            ReportFrequency.MONTHLY: 1,
            ReportFrequency.ON_DEMAND: 0,
        }[self]


class ReportStatus(str, Enum):
    """Status of the most recent report on a schedule"""

    PENDING = "PENDING"
    DUE = "DUE"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    OVERDUE = "OVERDUE"
    REJECTED = "REJECTED"


class TerminationReason(str, Enum):
    """Why a guardian's role, or the whole guardianship, ended"""

    WARD_REACHED_MAJORITY = "WARD_REACHED_MAJORITY"
    WARD_DECEASED = "WARD_DECEASED"
    WARD_REGAINED_CAPACITY = "WARD_REGAINED_CAPACITY"
    GUARDIAN_DECEASED = "GUARDIAN_DECEASED"
    GUARDIAN_INCAPACITATED = "GUARDIAN_INCAPACITATED"
    COURT_REMOVAL = "COURT_REMOVAL"
    COURT_ORDER = "COURT_ORDER"
    VOLUNTARY_RESIGNATION = "VOLUNTARY_RESIGNATION"
    ADOPTION_FINALIZED = "ADOPTION_FINALIZED"
    CUSTOMARY_TRANSFER = "CUSTOMARY_TRANSFER"


class BondStatus(str, Enum):
    """S.72 bond position of a guardianship as a whole"""

    NOT_REQUIRED = "NOT_REQUIRED"
    REQUIRED_PENDING = "REQUIRED_PENDING"
    POSTED = "POSTED"
    EXPIRED = "EXPIRED"


class S73Status(str, Enum):
    """S.73 reporting position of a single guardian"""

    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    NOT_REQUIRED = "NOT_REQUIRED"


class PowerGroup(str, Enum):
    """Groups of powers used to detect overlapping responsibilities"""

    PROPERTY = "PROPERTY"
    CARE = "CARE"  # Medical and educational decisions
    LEGAL = "LEGAL"  # Legal decisions and marriage consent


class WardInfo(BaseModel):
    """
    Snapshot of the ward supplied by the civil registry

    current_age is the registry's figure and is what eligibility is judged
    on; date_of_birth drives forward-looking dates such as majority.
    """

    ward_id: str = Field(..., min_length=1)
    date_of_birth: date
    is_deceased: bool = False
    is_incapacitated: bool = False
    current_age: int = Field(..., ge=0)
    updated_at: UtcDatetime | None = None

    model_config = {"frozen": True}

    def is_minor(self, majority_age: int = 18) -> bool:
        return self.current_age < majority_age


class WardInfoUpdate(BaseModel):
    """Partial ward snapshot pushed by the registry; unset fields keep their value"""

    date_of_birth: date | None = None
    is_deceased: bool | None = None
    is_incapacitated: bool | None = None
    current_age: int | None = Field(default=None, ge=0)


class GuardianEligibilityInfo(BaseModel):
    """
    Vetting result for a proposed guardian

    Produced by the eligibility-verification service; consumed only when a
    guardian is appointed, added or brought in as a replacement.
    """

    age: int = Field(..., ge=0)
    is_bankrupt: bool = False
    has_criminal_record: bool = False
    criminal_record_details: str | None = None
    is_incapacitated: bool = False
    clan_name: str | None = None

    model_config = {"frozen": True}


class CourtOrder(BaseModel):
    """Court order constituting or reviewing the guardianship"""

    order_number: str = Field(..., min_length=1)
    court_station: str = Field(..., min_length=1)
    order_date: UtcDatetime

    model_config = {"frozen": True}


class ElderApproval(BaseModel):
    """One elder's recorded consent to a customary appointment"""

    elder_name: str
    elder_role: str
    approved_at: UtcDatetime | None = None

    model_config = {"frozen": True}


class CustomaryLawDetails(BaseModel):
    """
    Evidence that a guardianship is recognised under clan custom

    Completeness is checked by the invariants module rather than by field
    constraints, so that every missing item is reported in one error.
    """

    ethnic_group: str = ""
    customary_authority: str = ""
    clan_name: str | None = None
    ceremony_date: UtcDatetime | None = None
    elder_approvals: list[ElderApproval] = Field(default_factory=list)
    special_conditions: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ComplianceCheck(BaseModel):
    """
    A report the guardian has put before the court

    Recorded when an annual report is filed; the compliance score is
    computed over these records.
    """

    check_id: str
    guardian_id: str
    report_type: str = "ANNUAL_WELFARE"
    due_date: UtcDatetime
    submission_date: UtcDatetime | None = None
    required_sections: list[str] = Field(default_factory=list)
    completed_sections: list[str] = Field(default_factory=list)
    quality_score: int | None = Field(default=None, ge=0, le=100)
    validation_error_count: int = Field(default=0, ge=0)
    attachment_types: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_submitted(self) -> bool:
        return self.submission_date is not None

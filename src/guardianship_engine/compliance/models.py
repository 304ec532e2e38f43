"""
Compliance Models - computed, never persisted

Deadlines, scores, penalties and calendars are recalculated from the
guardianship every time they are asked for, against the injected clock.
Nothing here is stored; a stale deadline is simply recomputed.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class DeadlineType(str, Enum):
    """Statutory obligations the engine tracks"""

    ANNUAL_REPORT = "ANNUAL_REPORT"  # S.73 LSA
    BOND_RENEWAL = "BOND_RENEWAL"  # S.72 LSA
    COURT_REVIEW = "COURT_REVIEW"  # Children Act
    SPECIAL_REPORT = "SPECIAL_REPORT"  # Final report before majority

    def task_description(self) -> str:
        return {
            DeadlineType.ANNUAL_REPORT: "Submit annual guardianship report to court",
            DeadlineType.BOND_RENEWAL: "Renew guardianship bond with insurance company",
            DeadlineType.COURT_REVIEW: "Prepare for court review hearing",
            DeadlineType.SPECIAL_REPORT: "Prepare final report for ward turning 18",
        }[self]


class DeadlinePriority(str, Enum):
    """Urgency of a deadline"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    def rank(self) -> int:
        """Sort key: most urgent first"""
        return {
            DeadlinePriority.CRITICAL: 0,
            DeadlinePriority.HIGH: 1,
            DeadlinePriority.MEDIUM: 2,
            DeadlinePriority.LOW: 3,
        }[self]


class ComplianceTrend(str, Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


class ReportType(str, Enum):
    """Kinds of report a guardian may put before the court"""

    ANNUAL_WELFARE = "ANNUAL_WELFARE"
    QUARTERLY_FINANCIAL = "QUARTERLY_FINANCIAL"
    MEDICAL_UPDATE = "MEDICAL_UPDATE"
    PROPERTY_MANAGEMENT = "PROPERTY_MANAGEMENT"

    def required_sections(self) -> list[str]:
        return {
            ReportType.ANNUAL_WELFARE: ["ward-status", "educational-progress", "health-updates"],
            ReportType.QUARTERLY_FINANCIAL: ["financial-statement", "bank-reconciliation"],
            ReportType.MEDICAL_UPDATE: ["health-updates", "medical-appointments"],
            ReportType.PROPERTY_MANAGEMENT: ["financial-statement", "property-inventory"],
        }[self]


class TaskStatus(str, Enum):
    OVERDUE = "OVERDUE"
    DUE_SOON = "DUE_SOON"
    UPCOMING = "UPCOMING"


class ReminderChannel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class PaymentMethod(str, Enum):
    MPESA = "MPESA"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH_COURT = "CASH_COURT"
    INSTALLMENTS = "INSTALLMENTS"


class ComplianceDeadline(BaseModel):
    """
    One statutory obligation with its dates and urgency

    due_date is when the obligation falls due, deadline_date the last day
    of the submission window, and grace_period_end the point after which
    it is overdue and penalties accrue.
    """

    type: DeadlineType
    guardian_id: str | None = None
    due_date: datetime
    deadline_date: datetime
    grace_period_end: datetime
    is_overdue: bool
    days_until_due: int = Field(..., ge=0)
    days_overdue: int = Field(..., ge=0)
    priority: DeadlinePriority
    legal_reference: str
    consequences: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ComplianceScore(BaseModel):
    """Weighted compliance score with its four components (all 0-100)"""

    overall: int = Field(..., ge=0, le=100)
    timeliness: int = Field(..., ge=0, le=100)
    completeness: int = Field(..., ge=0, le=100)
    accuracy: int = Field(..., ge=0, le=100)
    documentation: int = Field(..., ge=0, le=100)
    trend: ComplianceTrend
    compared_to_average: int
    checks_evaluated: int = 0
    recommendations: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class Penalty(BaseModel):
    """Penalty accrued on one overdue deadline"""

    deadline_type: DeadlineType
    guardian_id: str | None = None
    days_overdue: int
    amount: Decimal
    can_be_waived: bool
    waiver_conditions: list[str] = Field(default_factory=list)
    legal_reference: str

    model_config = {"frozen": True}


class PaymentOption(BaseModel):
    method: PaymentMethod
    minimum_amount: Decimal
    deadline: datetime
    installments: int | None = None

    model_config = {"frozen": True}


class PenaltyAssessment(BaseModel):
    """All penalties currently owed on a guardianship and how they can be paid"""

    guardianship_id: str
    penalties: list[Penalty] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    payment_deadline: datetime
    payment_options: list[PaymentOption] = Field(default_factory=list)

    model_config = {"frozen": True}


class ComplianceTask(BaseModel):
    """A to-do item derived from a deadline"""

    type: str  # DeadlineType value, or PREPARATION
    description: str
    due_date: datetime
    status: TaskStatus
    assigned_to: str

    model_config = {"frozen": True}


class Reminder(BaseModel):
    """A reminder for an external delivery service to dispatch"""

    channel: ReminderChannel
    date: datetime
    message: str
    deadline_type: DeadlineType

    model_config = {"frozen": True}


class ComplianceCalendar(BaseModel):
    """Deadlines, tasks and reminders for a year or a single month"""

    guardianship_id: str
    year: int
    month: int | None = None
    period: str  # Month name, or "Annual"
    deadlines: list[ComplianceDeadline] = Field(default_factory=list)
    tasks: list[ComplianceTask] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)

    model_config = {"frozen": True}

"""
Statutory Policy - the numbers the law hands us

Ages, grace periods, penalty tariffs and scoring weights used throughout the
engine. Defaults follow the Law of Succession Act (S.72 bonds, S.73 annual
accounts) and the Children Act; a court registry with a different practice
direction can override individual values without touching code.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


DEFAULT_CUSTOMARY_ELDER_ROLES: dict[str, list[str]] = {
    "KIKUYU": ["CLAN_ELDER"],
    "LUO": ["CLAN_ELDER", "LINEAGE_HEAD"],
    "KALENJIN": ["CLAN_ELDER"],
    "MAASAI": ["CLAN_ELDER", "AGE_SET_LEADER"],
    "LUHYA": ["CLAN_ELDER"],
    "KAMBA": ["CLAN_ELDER"],
}


class StatutoryPolicy(BaseModel):
    """
    Statutory and administrative parameters

    Every component accepts one of these and falls back to the defaults.
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    # Eligibility
    majority_age: int = Field(
        default=18, ge=1, description="Age at which a ward leaves guardianship"
    )
    guardian_min_age: int = Field(
        default=18, ge=1, description="Minimum age for an appointed guardian"
    )
    clan_guardian_min_age: int = Field(
        default=25,
        ge=18,
        description="Minimum age for a guardian appointed under clan custom",
    )
    customary_elder_roles: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CUSTOMARY_ELDER_ROLES.items()},
        description="Elder roles whose approval each ethnic group requires",
    )

    # S.73 reporting
    report_grace_period_days: int = Field(
        default=60, ge=0, description="Grace period after a report falls due"
    )
    annual_report_submission_window_days: int = Field(
        default=30, ge=0, description="Submission window after the annual report due date"
    )
    overdue_reminder_interval_days: int = Field(
        default=7, ge=1, description="Minimum days between overdue reminders"
    )
    early_submission_days: int = Field(
        default=30, ge=0, description="How early before the due date a report may be filed"
    )
    report_type_grace_days: dict[str, int] = Field(
        default_factory=lambda: {
            "ANNUAL_WELFARE": 30,
            "QUARTERLY_FINANCIAL": 15,
            "MEDICAL_UPDATE": 7,
            "PROPERTY_MANAGEMENT": 30,
        },
        description="Submission grace after the due date per report type",
    )

    # S.72 bonds
    bond_renewal_lead_days: int = Field(
        default=30, ge=0, description="Renewal falls due this many days before expiry"
    )
    bond_grace_days: int = Field(
        default=60, ge=0, description="Grace after bond expiry before penalties apply"
    )
    bond_expiring_soon_days: int = Field(
        default=60, ge=1, description="Default horizon for 'expiring soon'"
    )
    compliance_bond_warning_days: int = Field(
        default=30, ge=1, description="Bonds expiring within this horizon raise a warning"
    )
    bond_carry_over_years: int = Field(
        default=1, ge=1, description="Term of a bond carried over to a replacement guardian"
    )
    bond_min_estate_ratio: Decimal = Field(
        default=Decimal("0.5"), description="Smallest bond as a fraction of estate value"
    )
    bond_max_estate_ratio: Decimal = Field(
        default=Decimal("2.0"), description="Largest bond as a fraction of estate value"
    )

    # Court supervision
    court_review_interval_years: int = Field(
        default=2, ge=1, description="Years between court reviews of a minor's guardianship"
    )
    court_review_grace_days: int = Field(default=90, ge=0)
    special_report_lead_months: int = Field(
        default=3, ge=0, description="Final report falls due this long before majority"
    )
    special_report_grace_days: int = Field(default=30, ge=0)
    emergency_max_days: int = Field(
        default=90,
        ge=1,
        description="Emergency guardianship must be converted within this many days",
    )
    termination_reason_min_length: int = Field(
        default=50,
        ge=1,
        description="Minimum reason length to terminate guardianship of an incapacitated ward",
    )

    # Penalties (KES)
    penalty_base_kes: Decimal = Field(default=Decimal("5000"), ge=0)
    penalty_daily_kes: Decimal = Field(default=Decimal("500"), ge=0)
    penalty_max_kes: Decimal = Field(
        default=Decimal("20000"), ge=0, description="Cap on a single penalty"
    )
    penalty_waiver_max_days: int = Field(
        default=30, ge=0, description="Penalties are waivable below this many days overdue"
    )
    penalty_payment_days: int = Field(default=30, ge=1)
    mobile_money_cap_kes: Decimal = Field(default=Decimal("50000"), ge=0)
    installment_threshold_kes: Decimal = Field(default=Decimal("10000"), ge=0)
    installment_parts: int = Field(default=3, ge=2)
    installment_period_days: int = Field(default=90, ge=1)
    cash_court_extension_days: int = Field(default=7, ge=0)

    # Scoring
    required_attachment_types: list[str] = Field(
        default_factory=lambda: ["FINANCIAL_STATEMENT", "WARD_PHOTO", "SCHOOL_REPORT"],
        description="Attachments every submitted report should carry",
    )
    score_weight_timeliness: float = Field(default=0.30, ge=0.0, le=1.0)
    score_weight_completeness: float = Field(default=0.30, ge=0.0, le=1.0)
    score_weight_accuracy: float = Field(default=0.25, ge=0.0, le=1.0)
    score_weight_documentation: float = Field(default=0.15, ge=0.0, le=1.0)
    trend_significance_points: int = Field(default=5, ge=0)
    default_system_average_score: int = Field(default=75, ge=0, le=100)

    model_config = {"frozen": True}

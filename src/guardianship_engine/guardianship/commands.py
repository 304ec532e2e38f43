"""
Guardianship Commands - requests to change a guardianship

Commands carry everything a lifecycle method needs. Field constraints catch
malformed input; the aggregate and the invariants module decide whether the
request is legally permitted.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from guardianship_engine.guardianship.models import (
    AppointmentSource,
    CourtOrder,
    CustomaryLawDetails,
    GuardianEligibilityInfo,
    GuardianshipType,
    Jurisdiction,
    WardInfo,
)
from guardianship_engine.guardianship.value_objects import PowersGrant
from guardianship_engine.kernel.time import UtcDatetime


class BondDetails(BaseModel):
    """Bond posted together with the appointment"""

    provider: str = Field(..., min_length=1)
    policy_number: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    expiry_date: UtcDatetime
    surety_details: str | None = None
    court_approved_amount: Decimal | None = None


class CreateGuardianship(BaseModel):
    """
    Establish a guardianship with its first (primary) guardian

    bond_required defaults to whether the powers include property
    management. Customary details are mandatory when customary law applies.
    """

    guardianship_id: str | None = None
    ward: WardInfo
    guardian_id: str = Field(..., min_length=1)
    eligibility: GuardianEligibilityInfo
    guardianship_type: GuardianshipType
    appointment_date: UtcDatetime
    powers: PowersGrant = Field(default_factory=PowersGrant)
    bond_required: bool | None = None
    bond: BondDetails | None = None
    annual_allowance: Decimal | None = None
    customary_law_applies: bool = False
    customary_details: CustomaryLawDetails | None = None
    court_order: CourtOrder | None = None
    jurisdiction: Jurisdiction | None = None


class AddCoGuardian(BaseModel):
    """Appoint an additional guardian alongside the existing ones"""

    guardian_id: str = Field(..., min_length=1)
    eligibility: GuardianEligibilityInfo
    appointment_date: UtcDatetime
    appointment_source: AppointmentSource = AppointmentSource.COURT
    powers: PowersGrant = Field(default_factory=PowersGrant)
    bond_required: bool | None = None
    annual_allowance: Decimal | None = None


class ReportSubmission(BaseModel):
    """Content details of a filed report, recorded for compliance scoring"""

    report_type: str = "ANNUAL_WELFARE"
    required_sections: list[str] = Field(default_factory=list)
    completed_sections: list[str] = Field(default_factory=list)
    quality_score: int | None = Field(default=None, ge=0, le=100)
    validation_error_count: int = Field(default=0, ge=0)
    attachment_types: list[str] = Field(default_factory=list)

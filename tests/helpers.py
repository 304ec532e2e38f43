"""
Test Helper Functions - Builders

Reusable builders for wards, vetting results, commands and guardianships.
Every builder has sensible defaults so a test only spells out what it is
actually about.

Default ward: ward-1, born 2014-06-01, aged 10 on the test clock. Majority
therefore falls on 2032-06-01.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.commands import (
    AddCoGuardian,
    BondDetails,
    CreateGuardianship,
    ReportSubmission,
)
from guardianship_engine.guardianship.models import (
    CourtOrder,
    CustomaryLawDetails,
    ElderApproval,
    GuardianEligibilityInfo,
    GuardianshipType,
    WardInfo,
)
from guardianship_engine.guardianship.value_objects import PowersGrant
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import TimeProvider

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
FIRST_REPORT_DUE = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, 0, 0, tzinfo=timezone.utc)


def make_ward(
    ward_id: str = "ward-1",
    current_age: int = 10,
    date_of_birth: date = date(2014, 6, 1),
    **overrides: Any,
) -> WardInfo:
    return WardInfo(
        ward_id=ward_id,
        date_of_birth=date_of_birth,
        current_age=current_age,
        **overrides,
    )


def eligible(age: int = 40, **overrides: Any) -> GuardianEligibilityInfo:
    """Vetting result of a guardian with nothing against them"""
    return GuardianEligibilityInfo(age=age, **overrides)


def property_powers(**overrides: Any) -> PowersGrant:
    return PowersGrant(
        has_property_management_powers=True,
        can_make_legal_decisions=True,
        **overrides,
    )


def court_order(order_date: datetime = NOW) -> CourtOrder:
    return CourtOrder(
        order_number="HCFA 112/2025",
        court_station="Milimani",
        order_date=order_date,
    )


def bond_details(
    expiry_date: datetime = NOW + timedelta(days=365),
    amount: Decimal = Decimal("500000"),
) -> BondDetails:
    return BondDetails(
        provider="Jubilee Insurance",
        policy_number="JUB-2025-0001",
        amount=amount,
        expiry_date=expiry_date,
    )


def kikuyu_customary_details(clan_name: str | None = None) -> CustomaryLawDetails:
    return CustomaryLawDetails(
        ethnic_group="KIKUYU",
        customary_authority="Kiama council of elders",
        clan_name=clan_name,
        elder_approvals=[ElderApproval(elder_name="Mzee Kamau", elder_role="CLAN_ELDER")],
    )


def create_command(**overrides: Any) -> CreateGuardianship:
    """
    Builder for CreateGuardianship

    Defaults: court-appointed guardianship of ward-1 by guardian-1, with a
    court order dated today and only the default care powers.
    """
    fields: dict[str, Any] = {
        "guardianship_id": "gdn-1",
        "ward": make_ward(),
        "guardian_id": "guardian-1",
        "eligibility": eligible(),
        "guardianship_type": GuardianshipType.COURT_APPOINTED,
        "appointment_date": NOW,
        "court_order": court_order(),
    }
    fields.update(overrides)
    return CreateGuardianship(**fields)


def property_command(**overrides: Any) -> CreateGuardianship:
    """Guardianship whose primary guardian manages property under a posted bond"""
    fields: dict[str, Any] = {"powers": property_powers(), "bond": bond_details()}
    fields.update(overrides)
    return create_command(**fields)


def co_guardian(guardian_id: str = "guardian-2", **overrides: Any) -> AddCoGuardian:
    fields: dict[str, Any] = {
        "guardian_id": guardian_id,
        "eligibility": eligible(),
        "appointment_date": NOW,
    }
    fields.update(overrides)
    return AddCoGuardian(**fields)


def build_guardianship(
    time_provider: TimeProvider,
    command: CreateGuardianship | None = None,
    policy: StatutoryPolicy | None = None,
) -> Guardianship:
    return Guardianship.create(
        command or create_command(),
        time_provider=time_provider,
        policy=policy,
        actor_id="clerk-1",
    )


def submission(
    quality_score: int | None = 100,
    validation_error_count: int = 0,
    required_sections: list[str] | None = None,
    completed_sections: list[str] | None = None,
    attachment_types: list[str] | None = None,
) -> ReportSubmission:
    """A report submission; by default complete and fully documented"""
    sections = ["ward-status", "educational-progress", "health-updates"]
    return ReportSubmission(
        required_sections=sections if required_sections is None else required_sections,
        completed_sections=sections if completed_sections is None else completed_sections,
        quality_score=quality_score,
        validation_error_count=validation_error_count,
        attachment_types=(
            ["FINANCIAL_STATEMENT", "WARD_PHOTO", "SCHOOL_REPORT"]
            if attachment_types is None
            else attachment_types
        ),
    )

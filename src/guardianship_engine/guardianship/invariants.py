"""
Guardianship Invariants - eligibility and appointment rules

Pure functions: they take snapshots and a StatutoryPolicy and either return
or raise a typed InvariantViolation. The aggregate calls them before it
changes anything, so a failed command leaves no trace.
"""

from collections.abc import Iterable

from guardianship_engine.guardianship.guardian import Guardian
from guardianship_engine.guardianship.models import (
    CustomaryLawDetails,
    GuardianEligibilityInfo,
    PowerGroup,
    WardInfo,
)
from guardianship_engine.guardianship.value_objects import PowersGrant
from guardianship_engine.kernel.errors import (
    GuardianIneligibleException,
    InvalidGuardianshipException,
    MultipleGuardiansException,
    WardNotFoundException,
    WardNotMinorException,
)
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy


def guardian_ineligibility_reasons(
    eligibility: GuardianEligibilityInfo, policy: StatutoryPolicy
) -> list[str]:
    """Every reason the vetted person cannot act as guardian (empty if eligible)"""
    reasons = []
    if eligibility.age < policy.guardian_min_age:
        reasons.append(f"guardian must be at least {policy.guardian_min_age} years old")
    if eligibility.is_bankrupt:
        reasons.append("guardian is an undischarged bankrupt")
    if eligibility.is_incapacitated:
        reasons.append("guardian is legally incapacitated")
    if eligibility.has_criminal_record and not (eligibility.criminal_record_details or "").strip():
        reasons.append("guardian has an undocumented criminal record")
    return reasons


def validate_guardian_eligibility(
    guardian_id: str, eligibility: GuardianEligibilityInfo, policy: StatutoryPolicy
) -> None:
    """
    Raises:
        GuardianIneligibleException: Listing every failed criterion
    """
    reasons = guardian_ineligibility_reasons(eligibility, policy)
    if reasons:
        raise GuardianIneligibleException(guardian_id, reasons)


def validate_ward_eligibility(ward: WardInfo, policy: StatutoryPolicy) -> None:
    """
    A ward must be alive and either a minor or legally incapacitated

    Raises:
        WardNotFoundException: If the ward is deceased
        WardNotMinorException: If the ward is an adult with capacity
    """
    if ward.is_deceased:
        raise WardNotFoundException(ward.ward_id)
    if not ward.is_minor(policy.majority_age) and not ward.is_incapacitated:
        raise WardNotMinorException(ward.ward_id, ward.current_age)


def validate_not_self_guardian(guardian_id: str, ward_id: str) -> None:
    """
    Raises:
        InvalidGuardianshipException: If guardian and ward are the same person
    """
    if guardian_id == ward_id:
        raise InvalidGuardianshipException(
            f"Person {guardian_id} cannot be both guardian and ward"
        )


def validate_customary_details(
    details: CustomaryLawDetails | None, policy: StatutoryPolicy
) -> None:
    """
    Check that a customary appointment carries the evidence custom requires

    Needed: ethnic group, customary authority, at least one elder approval,
    and an approval from every elder role the group's custom names.

    Raises:
        InvalidGuardianshipException: Naming everything that is missing
    """
    if details is None:
        raise InvalidGuardianshipException(
            "Customary law guardianship requires customary law details"
        )

    missing = []
    if not details.ethnic_group.strip():
        missing.append("ethnic group")
    if not details.customary_authority.strip():
        missing.append("customary authority")
    if not details.elder_approvals:
        missing.append("at least one elder approval")

    required_roles = policy.customary_elder_roles.get(details.ethnic_group.strip().upper(), [])
    present_roles = {approval.elder_role.strip().upper() for approval in details.elder_approvals}
    for role in required_roles:
        if details.elder_approvals and role not in present_roles:
            missing.append(f"elder approval from {role}")

    if missing:
        raise InvalidGuardianshipException(
            f"Customary law details incomplete: missing {', '.join(missing)}"
        )


def validate_clan_guardian(
    guardian_id: str,
    eligibility: GuardianEligibilityInfo,
    details: CustomaryLawDetails | None,
    policy: StatutoryPolicy,
) -> None:
    """
    Clan rules for customary appointments that name a clan

    The guardian must belong to the ward's clan and meet the clan's minimum
    age for guardians.

    Raises:
        GuardianIneligibleException: If a clan rule is not met
    """
    if details is None or not details.clan_name:
        return

    reasons = []
    if eligibility.clan_name and eligibility.clan_name.strip().lower() != details.clan_name.strip().lower():
        reasons.append(
            f"guardian belongs to clan {eligibility.clan_name}, not {details.clan_name}"
        )
    if eligibility.age < policy.clan_guardian_min_age:
        reasons.append(
            f"clan guardians must be at least {policy.clan_guardian_min_age} years old"
        )
    if reasons:
        raise GuardianIneligibleException(guardian_id, reasons)


def validate_unique_marriage_consent(
    guardians: Iterable[Guardian], candidate_id: str, powers: PowersGrant
) -> None:
    """
    At most one active guardian may hold the power to consent to marriage

    Raises:
        MultipleGuardiansException: If another active guardian already holds it
    """
    if not powers.can_consent_to_marriage:
        return
    for guardian in guardians:
        if (
            guardian.is_active
            and guardian.guardian_id != candidate_id
            and guardian.powers.can_consent_to_marriage
        ):
            raise MultipleGuardiansException(
                candidate_id,
                f"Guardian {guardian.guardian_id} already holds marriage consent power - "
                "only one active guardian may hold it",
            )


def detect_role_overlaps(
    guardians: Iterable[Guardian], candidate_id: str, powers: PowersGrant
) -> dict[PowerGroup, list[str]]:
    """
    Power groups the candidate would share with existing active guardians

    Returns:
        Mapping of overlapping group to the guardian ids already holding it
    """
    candidate_groups = powers.power_groups()
    overlaps: dict[PowerGroup, list[str]] = {}
    for guardian in guardians:
        if not guardian.is_active or guardian.guardian_id == candidate_id:
            continue
        for group in candidate_groups & guardian.powers.power_groups():
            overlaps.setdefault(group, []).append(guardian.guardian_id)
    return overlaps

"""
Guardianship - the lifecycle aggregate

A guardianship is ACTIVE from the moment it is created until it is
dissolved, after which it is kept, inactive, for audit. It owns an ordered
map of Guardians (each independently active or inactive), the ward
snapshot and the court/customary context, and it is the only way to change
any of them.

Every command follows the same shape:

1. validate against invariants (raise before touching anything)
2. swap in new immutable Guardian / value-object records
3. commit: bump the version, stamp pending events, re-check invariants

Events are buffered in an outbox and handed to the repository by
pull_events() after a successful save. The aggregate is persisted as a
snapshot; rebuilding it from its events is deliberately unsupported.

Compliance warnings are the soft side of the model: they accumulate on the
aggregate, are logged and counted, but never raise.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from guardianship_engine.guardianship.commands import (
    AddCoGuardian,
    CreateGuardianship,
    ReportSubmission,
)
from guardianship_engine.guardianship.events import (
    AGGREGATE_TYPE,
    AnnualReportFiled,
    GuardianBondPosted,
    GuardianReplaced,
    GuardianshipCreated,
    GuardianshipDissolved,
    MultipleGuardiansAssigned,
    WardMajorityReached,
)
from guardianship_engine.guardianship.guardian import Guardian
from guardianship_engine.guardianship.invariants import (
    detect_role_overlaps,
    validate_clan_guardian,
    validate_customary_details,
    validate_guardian_eligibility,
    validate_not_self_guardian,
    validate_unique_marriage_consent,
    validate_ward_eligibility,
)
from guardianship_engine.guardianship.models import (
    BondStatus,
    ComplianceCheck,
    CourtOrder,
    CustomaryLawDetails,
    GuardianEligibilityInfo,
    GuardianshipType,
    Jurisdiction,
    PowerGroup,
    S73Status,
    TerminationReason,
    WardInfo,
    WardInfoUpdate,
)
from guardianship_engine.kernel.errors import (
    EventReplayNotSupported,
    GuardianNotFoundException,
    InvalidGuardianshipException,
    InvariantViolation,
    MultipleGuardiansException,
    WardNotFoundException,
    WardNotMinorException,
)
from guardianship_engine.kernel.events import Event, create_event
from guardianship_engine.kernel.ids import generate_id, generate_policy_number
from guardianship_engine.kernel.logging import get_logger
from guardianship_engine.kernel.metrics import compliance_warnings_recorded_total
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import (
    RealTimeProvider,
    TimeProvider,
    add_years,
    ensure_utc,
    start_of_day,
)

logger = get_logger(__name__)


class Guardianship:
    """
    Aggregate root of one ward's guardianship

    Single writer: an instance is mutated synchronously by one caller at a
    time. Concurrent writers are detected at save time by the repository's
    version check, never here.
    """

    def __init__(
        self,
        *,
        guardianship_id: str,
        ward: WardInfo,
        guardianship_type: GuardianshipType,
        jurisdiction: Jurisdiction,
        established_date: datetime,
        customary_law_applies: bool = False,
        customary_details: CustomaryLawDetails | None = None,
        court_order: CourtOrder | None = None,
        time_provider: TimeProvider | None = None,
        policy: StatutoryPolicy | None = None,
    ) -> None:
        self.guardianship_id = guardianship_id
        self.ward = ward
        self.guardianship_type = guardianship_type
        self.jurisdiction = jurisdiction
        self.established_date = established_date
        self.customary_law_applies = customary_law_applies
        self.customary_details = customary_details
        self.court_order = court_order

        self.guardians: dict[str, Guardian] = {}
        self.primary_guardian_id: str | None = None
        self.is_active = True
        self.dissolved_date: datetime | None = None
        self.dissolution_reason: TerminationReason | None = None
        self.compliance_warnings: list[str] = []
        self.last_compliance_check: datetime | None = None
        self.compliance_checks: list[ComplianceCheck] = []
        self.version = 0

        # Soft diagnostics from construction or loading
        self.load_warnings: list[str] = []
        # Warning left behind by the last failed guardian operation
        self.recorded_failure: str | None = None

        self.time_provider = time_provider or RealTimeProvider()
        self.policy = policy or StatutoryPolicy()

        self._pending_events: list[Event] = []
        self._command_id: str | None = None
        self._actor_id: str | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        command: CreateGuardianship,
        *,
        time_provider: TimeProvider | None = None,
        policy: StatutoryPolicy | None = None,
        command_id: str | None = None,
        actor_id: str | None = None,
    ) -> "Guardianship":
        """
        Establish a guardianship with its primary guardian

        Raises:
            InvalidGuardianshipException: If guardian and ward are the same person,
                customary details are incomplete, or a bond is supplied for a
                guardian who needs none
            GuardianIneligibleException: If the guardian fails vetting or clan rules
            WardNotFoundException: If the ward is deceased
            WardNotMinorException: If the ward is an adult with capacity
        """
        policy = policy or StatutoryPolicy()
        time_provider = time_provider or RealTimeProvider()
        now = time_provider.now()

        validate_not_self_guardian(command.guardian_id, command.ward.ward_id)
        validate_guardian_eligibility(command.guardian_id, command.eligibility, policy)
        validate_ward_eligibility(command.ward, policy)

        customary = (
            command.customary_law_applies
            or command.guardianship_type is GuardianshipType.CUSTOMARY
        )
        if customary:
            validate_customary_details(command.customary_details, policy)
            validate_clan_guardian(
                command.guardian_id, command.eligibility, command.customary_details, policy
            )

        jurisdiction = command.jurisdiction or (
            Jurisdiction.CUSTOMARY if customary else Jurisdiction.STATUTORY
        )
        ward = command.ward
        if ward.updated_at is None:
            ward = ward.model_copy(update={"updated_at": now})

        guardian = Guardian.appoint(
            guardian_id=command.guardian_id,
            ward_id=ward.ward_id,
            appointment_date=command.appointment_date,
            appointment_source=command.guardianship_type.default_appointment_source(),
            powers=command.powers,
            bond_required=command.bond_required,
            is_primary=True,
            annual_allowance=command.annual_allowance,
            report_grace_period_days=policy.report_grace_period_days,
        )
        if command.bond is not None:
            guardian = guardian.post_bond(
                provider=command.bond.provider,
                policy_number=command.bond.policy_number,
                amount=command.bond.amount,
                expiry_date=command.bond.expiry_date,
                now=now,
                surety_details=command.bond.surety_details,
                court_approved_amount=command.bond.court_approved_amount,
            )

        guardianship = cls(
            guardianship_id=command.guardianship_id or generate_id(),
            ward=ward,
            guardianship_type=command.guardianship_type,
            jurisdiction=jurisdiction,
            established_date=command.appointment_date,
            customary_law_applies=customary,
            customary_details=command.customary_details,
            court_order=command.court_order,
            time_provider=time_provider,
            policy=policy,
        )
        guardianship.for_command(command_id, actor_id)
        guardianship.guardians[guardian.guardian_id] = guardian
        guardianship.primary_guardian_id = guardian.guardian_id

        guardianship._commit(
            GuardianshipCreated(
                guardianship_id=guardianship.guardianship_id,
                ward_id=ward.ward_id,
                primary_guardian_id=guardian.guardian_id,
                guardianship_type=command.guardianship_type.value,
                jurisdiction=jurisdiction.value,
                established_date=command.appointment_date,
                customary_law_applies=customary,
                court_order_number=command.court_order.order_number if command.court_order else None,
            )
        )
        guardianship.load_warnings = guardianship.diagnose()
        return guardianship

    @classmethod
    def rebuild_from_events(cls, events: list[Event]) -> "Guardianship":
        """
        Guardianships are snapshot-persisted; the event log is an audit trail.

        Raises:
            EventReplayNotSupported: Always
        """
        raise EventReplayNotSupported(events[0].aggregate_id if events else None)

    def for_command(
        self, command_id: str | None = None, actor_id: str | None = None
    ) -> "Guardianship":
        """Tag subsequently emitted events with a command id and actor"""
        self._command_id = command_id
        self._actor_id = actor_id
        return self

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self.time_provider.now()

    def _require_active(self, action: str) -> None:
        if not self.is_active:
            raise InvalidGuardianshipException(
                f"Cannot {action}: guardianship {self.guardianship_id} is dissolved",
                guardianship_id=self.guardianship_id,
            )

    def _get_guardian(self, guardian_id: str) -> Guardian:
        guardian = self.guardians.get(guardian_id)
        if guardian is None:
            raise GuardianNotFoundException(self.guardianship_id, guardian_id)
        return guardian

    def _commit(self, *payloads: BaseModel) -> None:
        """Close a mutation: one version step per event (or one if none), then re-check invariants"""
        if not payloads:
            self.version += 1
        for payload in payloads:
            self.version += 1
            self._pending_events.append(
                create_event(
                    event_id=generate_id(),
                    aggregate_id=self.guardianship_id,
                    aggregate_type=AGGREGATE_TYPE,
                    event_type=type(payload).__name__,
                    occurred_at=self._now(),
                    command_id=self._command_id or generate_id(),
                    actor_id=self._actor_id,
                    version=self.version,
                    payload=payload.model_dump(mode="json"),
                )
            )
        self._assert_invariants()

    def _assert_invariants(self) -> None:
        active = self.active_guardians()
        if self.is_active and not active:
            raise InvalidGuardianshipException(
                f"Active guardianship {self.guardianship_id} has no active guardian",
                guardianship_id=self.guardianship_id,
            )
        if sum(1 for g in active if g.powers.can_consent_to_marriage) > 1:
            raise InvalidGuardianshipException(
                "More than one active guardian holds marriage consent power",
                guardianship_id=self.guardianship_id,
            )
        if self.primary_guardian_id is not None:
            primary = self.guardians.get(self.primary_guardian_id)
            if primary is None or not primary.is_active:
                raise InvalidGuardianshipException(
                    f"Primary guardian {self.primary_guardian_id} is not an active guardian",
                    guardianship_id=self.guardianship_id,
                )
        if self.ward.ward_id in self.guardians:
            raise InvalidGuardianshipException(
                f"Ward {self.ward.ward_id} is listed as their own guardian",
                guardianship_id=self.guardianship_id,
            )

    def _record_warning(self, message: str, source: str) -> None:
        self.compliance_warnings.append(message)
        compliance_warnings_recorded_total.labels(source=source).inc()
        logger.warning(
            "Compliance warning recorded",
            guardianship_id=self.guardianship_id,
            source=source,
            warning=message,
        )

    def _set_primary(self, guardian_id: str | None) -> None:
        if self.primary_guardian_id and self.primary_guardian_id in self.guardians:
            previous = self.guardians[self.primary_guardian_id]
            if previous.is_primary:
                self.guardians[previous.guardian_id] = previous.with_primary(False)
        self.primary_guardian_id = guardian_id
        if guardian_id is not None:
            self.guardians[guardian_id] = self.guardians[guardian_id].with_primary(True)

    def _terminate_all(self, reason: TerminationReason, date: datetime) -> list[str]:
        terminated = []
        for guardian in self.active_guardians():
            self.guardians[guardian.guardian_id] = guardian.terminate(reason, date)
            terminated.append(guardian.guardian_id)
        return terminated

    def _dissolve(
        self,
        reason: TerminationReason,
        date: datetime,
        court_order_number: str | None = None,
        preceding: BaseModel | None = None,
    ) -> None:
        date = ensure_utc(date)
        terminated = self._terminate_all(reason, date)
        self.primary_guardian_id = None
        self.is_active = False
        self.dissolved_date = date
        self.dissolution_reason = reason

        dissolved = GuardianshipDissolved(
            guardianship_id=self.guardianship_id,
            ward_id=self.ward.ward_id,
            reason=reason.value,
            dissolved_at=date,
            court_order_number=court_order_number,
            terminated_guardian_ids=terminated,
        )
        if preceding is not None:
            self._commit(preceding, dissolved)
        else:
            self._commit(dissolved)

        logger.info(
            "Guardianship dissolved",
            guardianship_id=self.guardianship_id,
            reason=reason.value,
            terminated_guardians=len(terminated),
        )

    def _apply_to_guardian(
        self,
        guardian_id: str,
        operation: str,
        change: Callable[[Guardian], Guardian],
    ) -> Guardian:
        """Run a Guardian transition; on failure leave a warning behind and re-raise"""
        guardian = self._get_guardian(guardian_id)
        try:
            updated = change(guardian)
        except InvariantViolation as e:
            message = f"{operation} failed for guardian {guardian_id}: {e}"
            self._record_warning(message, "command")
            self.recorded_failure = message
            self._commit()
            raise
        self.guardians[guardian_id] = updated
        return updated

    # ------------------------------------------------------------------
    # Guardian membership
    # ------------------------------------------------------------------

    def add_co_guardian(self, params: AddCoGuardian) -> Guardian:
        """
        Appoint an additional guardian

        Sharing property powers with an existing guardian is allowed but
        leaves a compliance warning, since two people then answer for the
        same estate.

        Raises:
            InvalidGuardianshipException: If dissolved, or the guardian is the ward
            MultipleGuardiansException: If already a guardian, or marriage consent
                power would be duplicated
            GuardianIneligibleException: If the guardian fails vetting or clan rules
        """
        self._require_active("add co-guardian")
        guardian_id = params.guardian_id
        if guardian_id in self.guardians:
            raise MultipleGuardiansException(
                guardian_id,
                f"Guardian {guardian_id} is already part of guardianship {self.guardianship_id}",
            )
        validate_not_self_guardian(guardian_id, self.ward.ward_id)
        validate_guardian_eligibility(guardian_id, params.eligibility, self.policy)
        if self.customary_law_applies:
            validate_clan_guardian(guardian_id, params.eligibility, self.customary_details, self.policy)
        validate_unique_marriage_consent(self.guardians.values(), guardian_id, params.powers)
        overlaps = detect_role_overlaps(self.guardians.values(), guardian_id, params.powers)

        guardian = Guardian.appoint(
            guardian_id=guardian_id,
            ward_id=self.ward.ward_id,
            appointment_date=params.appointment_date,
            appointment_source=params.appointment_source,
            powers=params.powers,
            bond_required=params.bond_required,
            is_primary=False,
            annual_allowance=params.annual_allowance,
            report_grace_period_days=self.policy.report_grace_period_days,
        )
        self.guardians[guardian_id] = guardian
        if self.primary_guardian_id is None:
            self._set_primary(guardian_id)

        if PowerGroup.PROPERTY in overlaps:
            self._record_warning(
                f"Property management overlap: guardian {guardian_id} shares property powers "
                f"with {', '.join(overlaps[PowerGroup.PROPERTY])}",
                "overlap",
            )

        self._commit(
            MultipleGuardiansAssigned(
                guardianship_id=self.guardianship_id,
                ward_id=self.ward.ward_id,
                guardian_id=guardian_id,
                active_guardian_ids=[g.guardian_id for g in self.active_guardians()],
                overlapping_power_groups=sorted(group.value for group in overlaps),
            )
        )
        return self.guardians[guardian_id]

    def replace_guardian(
        self,
        outgoing_id: str,
        replacement_id: str,
        eligibility: GuardianEligibilityInfo,
        reason: TerminationReason,
        date: datetime,
    ) -> Guardian:
        """
        Swap an active guardian for a new one

        The replacement inherits the outgoing guardian's powers and bond
        requirement unchanged, and the primary role if the outgoing guardian
        held it. A posted bond is carried over under a new policy number for
        one year from the replacement date; if that fails, the replacement
        still goes ahead and a compliance warning records the gap in cover.

        Raises:
            GuardianNotFoundException: If outgoing_id is not a guardian here
            InvalidGuardianshipException: If dissolved, the outgoing guardian is
                already inactive, or the replacement is the ward
            MultipleGuardiansException: If the replacement is already a guardian
            GuardianIneligibleException: If the replacement fails vetting or clan rules
        """
        self._require_active("replace guardian")
        date = ensure_utc(date)
        outgoing = self._get_guardian(outgoing_id)
        if not outgoing.is_active:
            raise InvalidGuardianshipException(
                f"Guardian {outgoing_id} is already inactive and cannot be replaced",
                guardianship_id=self.guardianship_id,
            )
        validate_not_self_guardian(replacement_id, self.ward.ward_id)
        if replacement_id in self.guardians:
            raise MultipleGuardiansException(
                replacement_id,
                f"Guardian {replacement_id} is already part of guardianship {self.guardianship_id}",
            )
        validate_guardian_eligibility(replacement_id, eligibility, self.policy)
        if self.customary_law_applies:
            validate_clan_guardian(replacement_id, eligibility, self.customary_details, self.policy)

        now = self._now()
        was_primary = self.primary_guardian_id == outgoing_id
        replacement = Guardian.appoint(
            guardian_id=replacement_id,
            ward_id=self.ward.ward_id,
            appointment_date=date,
            appointment_source=outgoing.appointment_source,
            powers=outgoing.powers,
            bond_required=outgoing.bond_required,
            is_primary=was_primary,
            report_grace_period_days=self.policy.report_grace_period_days,
        )

        bond_posted: GuardianBondPosted | None = None
        if outgoing.bond is not None and replacement.requires_bond():
            try:
                replacement = replacement.post_bond(
                    provider=outgoing.bond.provider,
                    policy_number=generate_policy_number(outgoing.bond.policy_number, replacement_id),
                    amount=outgoing.bond.amount,
                    expiry_date=add_years(date, self.policy.bond_carry_over_years),
                    now=now,
                    surety_details=outgoing.bond.surety_details,
                    court_approved_amount=outgoing.bond.court_approved_amount,
                )
            except InvariantViolation as e:
                self._record_warning(
                    f"Bond carry-over to replacement guardian {replacement_id} failed: {e} - "
                    "a new bond must be posted before property can be managed",
                    "carry_over",
                )
            else:
                bond_posted = GuardianBondPosted(
                    guardianship_id=self.guardianship_id,
                    guardian_id=replacement_id,
                    provider=replacement.bond.provider,
                    issued_date=replacement.bond.issued_date,
                    expiry_date=replacement.bond.expiry_date,
                    carried_over_from=outgoing_id,
                )

        self.guardians[outgoing_id] = outgoing.terminate(reason, date)
        self.guardians[replacement_id] = replacement
        if was_primary:
            self.primary_guardian_id = replacement_id

        replaced = GuardianReplaced(
            guardianship_id=self.guardianship_id,
            outgoing_guardian_id=outgoing_id,
            replacement_guardian_id=replacement_id,
            reason=reason.value,
            replaced_at=date,
            bond_carried_over=bond_posted is not None,
            is_primary=was_primary,
        )
        if bond_posted is not None:
            self._commit(replaced, bond_posted)
        else:
            self._commit(replaced)
        return replacement

    def remove_guardian(
        self, guardian_id: str, reason: TerminationReason, date: datetime
    ) -> Guardian:
        """
        End one guardian's role; the primary role passes to the next active guardian

        Raises:
            GuardianNotFoundException: If guardian_id is not a guardian here
            InvalidGuardianshipException: If dissolved, the guardian is already
                inactive, or it is the last active guardian (dissolve instead)
        """
        self._require_active("remove guardian")
        date = ensure_utc(date)
        guardian = self._get_guardian(guardian_id)
        if not guardian.is_active:
            raise InvalidGuardianshipException(
                f"Guardian {guardian_id} is already inactive",
                guardianship_id=self.guardianship_id,
            )
        if len(self.active_guardians()) <= 1:
            raise InvalidGuardianshipException(
                f"Cannot remove guardian {guardian_id}: it is the last active guardian - "
                "dissolve the guardianship instead",
                guardianship_id=self.guardianship_id,
            )

        removed = guardian.terminate(reason, date)
        self.guardians[guardian_id] = removed
        if self.primary_guardian_id == guardian_id:
            remaining = self.active_guardians()
            self.primary_guardian_id = None
            self._set_primary(remaining[0].guardian_id if remaining else None)

        self._commit()
        return removed

    # ------------------------------------------------------------------
    # Ward lifecycle
    # ------------------------------------------------------------------

    def update_ward_info(self, update: WardInfoUpdate) -> None:
        """
        Apply a registry update to the ward snapshot

        If the updated ward no longer qualifies for guardianship the
        guardianship dissolves itself: death dissolves with WARD_DECEASED, a
        minor turning 18 goes through handle_ward_reached_majority, an adult
        ward whose incapacity ended through handle_ward_regained_capacity.
        """
        now = self._now()
        previous = self.ward
        changes = update.model_dump(exclude_none=True)
        self.ward = previous.model_copy(update={**changes, "updated_at": now})

        if not self.is_active:
            self._commit()
            return

        try:
            validate_ward_eligibility(self.ward, self.policy)
        except WardNotFoundException:
            logger.info("Ward reported deceased, dissolving", guardianship_id=self.guardianship_id)
            self.handle_ward_death(now)
            return
        except WardNotMinorException:
            if previous.is_minor(self.policy.majority_age):
                self.handle_ward_reached_majority(now)
            elif previous.is_incapacitated:
                self.handle_ward_regained_capacity(now)
            else:
                self._dissolve(TerminationReason.WARD_REACHED_MAJORITY, now)
            return

        self._commit()

    def handle_ward_reached_majority(self, date: datetime) -> None:
        """
        Raises:
            InvalidGuardianshipException: If already dissolved
        """
        self._require_active("handle ward majority")
        date = ensure_utc(date)
        majority = WardMajorityReached(
            guardianship_id=self.guardianship_id,
            ward_id=self.ward.ward_id,
            majority_date=date,
            age=self.ward.current_age,
        )
        self._dissolve(TerminationReason.WARD_REACHED_MAJORITY, date, preceding=majority)

    def handle_ward_death(self, date: datetime) -> None:
        """
        Raises:
            InvalidGuardianshipException: If already dissolved
        """
        self._require_active("handle ward death")
        if not self.ward.is_deceased:
            self.ward = self.ward.model_copy(update={"is_deceased": True, "updated_at": self._now()})
        self._dissolve(TerminationReason.WARD_DECEASED, date)

    def handle_ward_regained_capacity(self, date: datetime) -> None:
        """
        Raises:
            InvalidGuardianshipException: If already dissolved
        """
        self._require_active("handle regained capacity")
        if self.ward.is_incapacitated:
            self.ward = self.ward.model_copy(
                update={"is_incapacitated": False, "updated_at": self._now()}
            )
        self._dissolve(TerminationReason.WARD_REGAINED_CAPACITY, date)

    def dissolve_guardianship(
        self,
        reason: TerminationReason,
        date: datetime,
        court_order_number: str | None = None,
    ) -> None:
        """
        Manually end the guardianship (terminal)

        Raises:
            InvalidGuardianshipException: If already dissolved
        """
        self._require_active("dissolve guardianship")
        self._dissolve(reason, date, court_order_number)

    def record_court_order(self, court_order: CourtOrder) -> None:
        """Attach the latest court order (e.g. after a review hearing)"""
        self.court_order = court_order
        self._commit()

    # ------------------------------------------------------------------
    # Delegated guardian operations
    # ------------------------------------------------------------------

    def post_guardian_bond(
        self,
        guardian_id: str,
        *,
        provider: str,
        policy_number: str,
        amount: Decimal,
        expiry_date: datetime,
        surety_details: str | None = None,
        court_approved_amount: Decimal | None = None,
    ) -> Guardian:
        now = self._now()
        expiry_date = ensure_utc(expiry_date)
        guardian = self._apply_to_guardian(
            guardian_id,
            "Posting bond",
            lambda g: g.post_bond(
                provider=provider,
                policy_number=policy_number,
                amount=amount,
                expiry_date=expiry_date,
                now=now,
                surety_details=surety_details,
                court_approved_amount=court_approved_amount,
            ),
        )
        self._commit(
            GuardianBondPosted(
                guardianship_id=self.guardianship_id,
                guardian_id=guardian_id,
                provider=provider,
                issued_date=now,
                expiry_date=expiry_date,
            )
        )
        return guardian

    def renew_guardian_bond(
        self,
        guardian_id: str,
        new_expiry: datetime,
        new_policy_number: str | None = None,
    ) -> Guardian:
        now = self._now()
        guardian = self._apply_to_guardian(
            guardian_id,
            "Renewing bond",
            lambda g: g.renew_bond(new_expiry, now, new_policy_number),
        )
        self._commit()
        return guardian

    def file_annual_report(
        self,
        guardian_id: str,
        report_date: datetime,
        summary: str,
        approved_by: str | None = None,
        submission: ReportSubmission | None = None,
    ) -> Guardian:
        """
        File an S.73 report and record it for compliance scoring

        The recorded check is measured against the due date that applied
        before this filing rolled the schedule forward.
        """
        report_date = ensure_utc(report_date)
        existing = self._get_guardian(guardian_id)
        due_date = (
            existing.reporting_schedule.next_report_due
            if existing.reporting_schedule is not None
            else report_date
        )
        guardian = self._apply_to_guardian(
            guardian_id,
            "Filing annual report",
            lambda g: g.file_annual_report(report_date, approved_by),
        )

        submission = submission or ReportSubmission()
        self.compliance_checks.append(
            ComplianceCheck(
                check_id=generate_id(),
                guardian_id=guardian_id,
                report_type=submission.report_type,
                due_date=due_date,
                submission_date=report_date,
                required_sections=submission.required_sections,
                completed_sections=submission.completed_sections,
                quality_score=submission.quality_score,
                validation_error_count=submission.validation_error_count,
                attachment_types=submission.attachment_types,
            )
        )

        schedule = guardian.reporting_schedule
        self._commit(
            AnnualReportFiled(
                guardianship_id=self.guardianship_id,
                guardian_id=guardian_id,
                report_date=report_date,
                status=schedule.status.value,
                summary=summary,
                next_report_due=schedule.next_report_due,
                approved_by=approved_by,
            )
        )
        return guardian

    def grant_property_powers(
        self,
        guardian_id: str,
        restrictions: list[str] | None = None,
        bond_waived: bool = False,
    ) -> Guardian:
        now = self._now()
        guardian = self._apply_to_guardian(
            guardian_id,
            "Granting property powers",
            lambda g: g.grant_property_powers(
                now,
                restrictions,
                bond_waived=bond_waived,
                report_grace_period_days=self.policy.report_grace_period_days,
            ),
        )
        self._commit()
        return guardian

    def update_guardian_allowance(
        self, guardian_id: str, amount: Decimal, approved_by: str
    ) -> Guardian:
        guardian = self._apply_to_guardian(
            guardian_id,
            "Updating allowance",
            lambda g: g.update_allowance(amount, approved_by),
        )
        self._commit()
        return guardian

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def diagnose(self) -> list[str]:
        """Current soft compliance findings, without recording them"""
        now = self._now()
        findings = []
        for guardian in self.active_guardians():
            gid = guardian.guardian_id
            if guardian.requires_bond():
                bond = guardian.bond
                if bond is None:
                    findings.append(
                        f"S.72 violation: guardian {gid} holds property powers without a posted bond"
                    )
                elif bond.is_expired(now):
                    findings.append(
                        f"S.72 violation: bond of guardian {gid} expired on "
                        f"{bond.expiry_date.date().isoformat()}"
                    )
                elif bond.is_expiring_soon(now, self.policy.compliance_bond_warning_days):
                    findings.append(
                        f"Bond of guardian {gid} expires in {bond.days_until_expiry(now)} days"
                    )
            if guardian.has_overdue_report(now):
                findings.append(
                    f"S.73 violation: annual report of guardian {gid} is "
                    f"{guardian.reporting_schedule.days_overdue(now)} days overdue"
                )
        if (
            self.is_active
            and not self.ward.is_minor(self.policy.majority_age)
            and not self.ward.is_incapacitated
        ):
            findings.append(
                f"Ward {self.ward.ward_id} has reached majority but the guardianship is still active"
            )
        return findings

    def check_compliance(self) -> list[str]:
        """
        Recompute compliance warnings

        Covers S.72 bond violations, S.73 overdue reports, a ward who has come
        of age under a still-active guardianship, and bonds expiring within the
        warning horizon. Advisory only: nothing here raises.
        """
        findings = self.diagnose()
        self.compliance_warnings = []
        for finding in findings:
            self._record_warning(finding, "check")
        self.last_compliance_check = self._now()
        self._commit()
        return list(self.compliance_warnings)

    def get_compliance_status(self) -> dict[str, Any]:
        """Summary of the recorded compliance position for dashboards"""
        now = self._now()
        return {
            "guardianship_id": self.guardianship_id,
            "is_compliant": not self.compliance_warnings,
            "warnings": list(self.compliance_warnings),
            "last_compliance_check": (
                self.last_compliance_check.isoformat() if self.last_compliance_check else None
            ),
            "bond_status": self.bond_status.value,
            "s73_status": {
                g.guardian_id: g.s73_compliance_status(now).value for g in self.active_guardians()
            },
            "overdue_reports": self.overdue_compliance_checks(),
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def active_guardians(self) -> list[Guardian]:
        return [g for g in self.guardians.values() if g.is_active]

    @property
    def primary_guardian(self) -> Guardian | None:
        if self.primary_guardian_id is None:
            return None
        return self.guardians.get(self.primary_guardian_id)

    def get_guardian(self, guardian_id: str) -> Guardian:
        return self._get_guardian(guardian_id)

    def can_manage_property(self, guardian_id: str | None = None) -> bool:
        """Whether the given guardian (default: the primary) may manage the ward's property"""
        target = guardian_id or self.primary_guardian_id
        if target is None:
            return False
        guardian = self._get_guardian(target)
        return guardian.is_active and guardian.can_manage_property(self._now())

    def requires_property_management(self) -> bool:
        return any(g.powers.has_property_management_powers for g in self.active_guardians())

    @property
    def bond_status(self) -> BondStatus:
        now = self._now()
        bonded = [g for g in self.active_guardians() if g.requires_bond()]
        if not bonded:
            return BondStatus.NOT_REQUIRED
        if any(g.bond is None for g in bonded):
            return BondStatus.REQUIRED_PENDING
        if any(g.bond.is_expired(now) for g in bonded):
            return BondStatus.EXPIRED
        return BondStatus.POSTED

    def next_report_due(self) -> datetime | None:
        """Earliest next S.73 due date among active reporting guardians"""
        dates = [
            g.reporting_schedule.next_report_due
            for g in self.active_guardians()
            if g.requires_annual_report() and g.reporting_schedule is not None
        ]
        return min(dates) if dates else None

    def overdue_compliance_checks(self) -> int:
        now = self._now()
        return sum(1 for g in self.active_guardians() if g.has_overdue_report(now))

    def s73_statuses(self) -> dict[str, S73Status]:
        now = self._now()
        return {g.guardian_id: g.s73_compliance_status(now) for g in self.active_guardians()}

    def majority_date(self) -> datetime:
        return add_years(start_of_day(self.ward.date_of_birth), self.policy.majority_age)

    def is_ward_minor(self) -> bool:
        return self.ward.is_minor(self.policy.majority_age)

    # ------------------------------------------------------------------
    # Outbox and serialisation
    # ------------------------------------------------------------------

    @property
    def pending_events(self) -> list[Event]:
        return list(self._pending_events)

    def pull_events(self) -> list[Event]:
        """Hand over buffered events (call after a successful save)"""
        events, self._pending_events = self._pending_events, []
        return events

    def to_json(self) -> dict[str, Any]:
        """Read-side projection of the guardianship"""
        now = self._now()
        return {
            "guardianship_id": self.guardianship_id,
            "ward": self.ward.model_dump(mode="json"),
            "guardianship_type": self.guardianship_type.value,
            "jurisdiction": self.jurisdiction.value,
            "established_date": self.established_date.isoformat(),
            "customary_law_applies": self.customary_law_applies,
            "customary_details": (
                self.customary_details.model_dump(mode="json") if self.customary_details else None
            ),
            "court_order": self.court_order.model_dump(mode="json") if self.court_order else None,
            "guardians": [g.to_json(now) for g in self.guardians.values()],
            "primary_guardian_id": self.primary_guardian_id,
            "active_guardian_count": len(self.active_guardians()),
            "is_active": self.is_active,
            "dissolved_date": self.dissolved_date.isoformat() if self.dissolved_date else None,
            "dissolution_reason": self.dissolution_reason.value if self.dissolution_reason else None,
            "bond_status": self.bond_status.value,
            "next_report_due": (
                self.next_report_due().isoformat() if self.next_report_due() else None
            ),
            "majority_date": self.majority_date().isoformat(),
            "compliance_warnings": list(self.compliance_warnings),
            "last_compliance_check": (
                self.last_compliance_check.isoformat() if self.last_compliance_check else None
            ),
            "version": self.version,
        }

    def to_snapshot(self) -> dict[str, Any]:
        """Complete JSON-serializable state for the snapshot store"""
        return {
            "guardianship_id": self.guardianship_id,
            "ward": self.ward.model_dump(mode="json"),
            "guardianship_type": self.guardianship_type.value,
            "jurisdiction": self.jurisdiction.value,
            "established_date": self.established_date.isoformat(),
            "customary_law_applies": self.customary_law_applies,
            "customary_details": (
                self.customary_details.model_dump(mode="json") if self.customary_details else None
            ),
            "court_order": self.court_order.model_dump(mode="json") if self.court_order else None,
            "guardians": [g.model_dump(mode="json") for g in self.guardians.values()],
            "primary_guardian_id": self.primary_guardian_id,
            "is_active": self.is_active,
            "dissolved_date": self.dissolved_date.isoformat() if self.dissolved_date else None,
            "dissolution_reason": self.dissolution_reason.value if self.dissolution_reason else None,
            "compliance_warnings": list(self.compliance_warnings),
            "last_compliance_check": (
                self.last_compliance_check.isoformat() if self.last_compliance_check else None
            ),
            "compliance_checks": [c.model_dump(mode="json") for c in self.compliance_checks],
            "version": self.version,
        }

    @classmethod
    def from_snapshot(
        cls,
        data: dict[str, Any],
        *,
        time_provider: TimeProvider | None = None,
        policy: StatutoryPolicy | None = None,
    ) -> "Guardianship":
        """
        Restore a guardianship from its snapshot

        Soft findings (an expired bond, an overdue report) are returned on
        load_warnings rather than raised.
        """
        guardianship = cls(
            guardianship_id=data["guardianship_id"],
            ward=WardInfo.model_validate(data["ward"]),
            guardianship_type=GuardianshipType(data["guardianship_type"]),
            jurisdiction=Jurisdiction(data["jurisdiction"]),
            established_date=datetime.fromisoformat(data["established_date"]),
            customary_law_applies=data["customary_law_applies"],
            customary_details=(
                CustomaryLawDetails.model_validate(data["customary_details"])
                if data.get("customary_details")
                else None
            ),
            court_order=(
                CourtOrder.model_validate(data["court_order"]) if data.get("court_order") else None
            ),
            time_provider=time_provider,
            policy=policy,
        )
        for raw in data["guardians"]:
            guardian = Guardian.model_validate(raw)
            guardianship.guardians[guardian.guardian_id] = guardian
        guardianship.primary_guardian_id = data.get("primary_guardian_id")
        guardianship.is_active = data["is_active"]
        if data.get("dissolved_date"):
            guardianship.dissolved_date = datetime.fromisoformat(data["dissolved_date"])
        if data.get("dissolution_reason"):
            guardianship.dissolution_reason = TerminationReason(data["dissolution_reason"])
        guardianship.compliance_warnings = list(data.get("compliance_warnings", []))
        if data.get("last_compliance_check"):
            guardianship.last_compliance_check = datetime.fromisoformat(
                data["last_compliance_check"]
            )
        guardianship.compliance_checks = [
            ComplianceCheck.model_validate(c) for c in data.get("compliance_checks", [])
        ]
        guardianship.version = data["version"]

        guardianship.load_warnings = guardianship.diagnose()
        if guardianship.load_warnings:
            logger.info(
                "Guardianship loaded with compliance findings",
                guardianship_id=guardianship.guardianship_id,
                findings=len(guardianship.load_warnings),
            )
        return guardianship

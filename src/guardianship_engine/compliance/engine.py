"""
Compliance Engine - deadlines, scores, penalties and calendars

A pure calculator over a Guardianship. It reads the aggregate, never
changes it, and takes "now" from the injected clock, so the same
guardianship on the same day always yields the same numbers.

Deadline windows:

- ANNUAL_REPORT (S.73): falls due on the schedule's next due date, must be
  filed within a 30-day window, and becomes overdue 60 days after that.
- BOND_RENEWAL (S.72): falls due 30 days before expiry, overdue 60 days
  after expiry.
- COURT_REVIEW (Children Act): every 2 years from the last court order (or
  establishment) while the ward is a minor, with 90 days' grace.
- SPECIAL_REPORT: the final report, due 3 months before the ward's
  majority.
"""

import calendar
import math
from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from statistics import mean

from guardianship_engine.compliance.models import (
    ComplianceCalendar,
    ComplianceDeadline,
    ComplianceScore,
    ComplianceTask,
    ComplianceTrend,
    DeadlinePriority,
    DeadlineType,
    PaymentMethod,
    PaymentOption,
    Penalty,
    PenaltyAssessment,
    Reminder,
    ReminderChannel,
    TaskStatus,
)
from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.models import ComplianceCheck
from guardianship_engine.kernel.logging import get_logger
from guardianship_engine.kernel.metrics import penalties_assessed_kes
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import (
    RealTimeProvider,
    TimeProvider,
    add_months,
    add_years,
    days_since,
    days_until,
)

logger = get_logger(__name__)

ANNUAL_REPORT_CONSEQUENCES = [
    "Court fine up to KES 20,000",
    "Possible removal as guardian",
    "Suspension of guardianship powers",
]
BOND_RENEWAL_CONSEQUENCES = [
    "Cannot access ward's property",
    "Court may appoint temporary manager",
    "Personal liability for losses",
]
COURT_REVIEW_CONSEQUENCES = [
    "Court may modify guardianship terms",
    "Possible change of guardian",
    "Increased court supervision",
]
SPECIAL_REPORT_CONSEQUENCES = ["Automatic termination of guardianship"]

WAIVER_CONDITIONS = [
    "First-time offense",
    "Valid reason for delay (e.g., illness, emergency)",
    "Payment plan agreement",
    "No previous penalties in last 12 months",
]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


class ComplianceEngine:
    """
    Calculator for a guardianship's compliance position

    Args:
        time_provider: Source of "now" (system clock if None)
        policy: Statutory parameters (defaults if None)
    """

    def __init__(
        self,
        time_provider: TimeProvider | None = None,
        policy: StatutoryPolicy | None = None,
    ) -> None:
        self.time_provider = time_provider or RealTimeProvider()
        self.policy = policy or StatutoryPolicy()

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------

    def _deadline(
        self,
        *,
        deadline_type: DeadlineType,
        due_date: datetime,
        deadline_date: datetime,
        grace_period_end: datetime,
        medium_within_days: int,
        high_within_days: int,
        legal_reference: str,
        consequences: list[str],
        guardian_id: str | None = None,
    ) -> ComplianceDeadline:
        now = self.time_provider.now()
        raw_days_until = days_until(due_date, now)
        is_overdue = now > grace_period_end
        days_overdue = days_since(grace_period_end, now) if is_overdue else 0

        priority = DeadlinePriority.LOW
        if raw_days_until <= medium_within_days:
            priority = DeadlinePriority.MEDIUM
        if raw_days_until <= high_within_days:
            priority = DeadlinePriority.HIGH
        if is_overdue:
            priority = DeadlinePriority.CRITICAL

        return ComplianceDeadline(
            type=deadline_type,
            guardian_id=guardian_id,
            due_date=due_date,
            deadline_date=deadline_date,
            grace_period_end=grace_period_end,
            is_overdue=is_overdue,
            days_until_due=max(0, raw_days_until),
            days_overdue=days_overdue,
            priority=priority,
            legal_reference=legal_reference,
            consequences=list(consequences),
        )

    def _annual_report_deadline(self, guardianship: Guardianship) -> ComplianceDeadline | None:
        next_due = guardianship.next_report_due()
        if next_due is None:
            return None
        deadline_date = next_due + timedelta(days=self.policy.annual_report_submission_window_days)
        return self._deadline(
            deadline_type=DeadlineType.ANNUAL_REPORT,
            due_date=next_due,
            deadline_date=deadline_date,
            grace_period_end=deadline_date + timedelta(days=self.policy.report_grace_period_days),
            medium_within_days=30,
            high_within_days=7,
            legal_reference="Section 73, Law of Succession Act",
            consequences=ANNUAL_REPORT_CONSEQUENCES,
        )

    def _bond_renewal_deadlines(self, guardianship: Guardianship) -> list[ComplianceDeadline]:
        deadlines = []
        for guardian in guardianship.active_guardians():
            if guardian.bond is None or not guardian.requires_bond():
                continue
            expiry = guardian.bond.expiry_date
            deadlines.append(
                self._deadline(
                    deadline_type=DeadlineType.BOND_RENEWAL,
                    guardian_id=guardian.guardian_id,
                    due_date=expiry - timedelta(days=self.policy.bond_renewal_lead_days),
                    deadline_date=expiry,
                    grace_period_end=expiry + timedelta(days=self.policy.bond_grace_days),
                    medium_within_days=60,
                    high_within_days=30,
                    legal_reference="Section 72, Law of Succession Act",
                    consequences=BOND_RENEWAL_CONSEQUENCES,
                )
            )
        return deadlines

    def _court_review_deadline(self, guardianship: Guardianship) -> ComplianceDeadline | None:
        if not guardianship.is_ward_minor():
            return None
        last_review = (
            guardianship.court_order.order_date
            if guardianship.court_order is not None
            else guardianship.established_date
        )
        next_review = add_years(last_review, self.policy.court_review_interval_years)
        return self._deadline(
            deadline_type=DeadlineType.COURT_REVIEW,
            due_date=next_review,
            deadline_date=next_review,
            grace_period_end=next_review + timedelta(days=self.policy.court_review_grace_days),
            medium_within_days=180,
            high_within_days=90,
            legal_reference="Children Act, Section 24",
            consequences=COURT_REVIEW_CONSEQUENCES,
        )

    def _special_report_deadline(self, guardianship: Guardianship) -> ComplianceDeadline | None:
        if not guardianship.is_ward_minor():
            return None
        now = self.time_provider.now()
        majority = guardianship.majority_date()
        due = add_months(majority, -self.policy.special_report_lead_months)
        return ComplianceDeadline(
            type=DeadlineType.SPECIAL_REPORT,
            due_date=due,
            deadline_date=majority,
            grace_period_end=majority + timedelta(days=self.policy.special_report_grace_days),
            is_overdue=False,
            days_until_due=max(0, days_until(due, now)),
            days_overdue=0,
            priority=DeadlinePriority.MEDIUM,
            legal_reference="Law of Succession Act",
            consequences=list(SPECIAL_REPORT_CONSEQUENCES),
        )

    def calculate_compliance_deadlines(self, guardianship: Guardianship) -> list[ComplianceDeadline]:
        """
        All open statutory deadlines, most urgent first

        Sorted by priority (CRITICAL, HIGH, MEDIUM, LOW), then by due date.
        A dissolved guardianship has no deadlines.
        """
        if not guardianship.is_active:
            return []

        deadlines: list[ComplianceDeadline] = []
        annual = self._annual_report_deadline(guardianship)
        if annual is not None:
            deadlines.append(annual)
        deadlines.extend(self._bond_renewal_deadlines(guardianship))
        review = self._court_review_deadline(guardianship)
        if review is not None:
            deadlines.append(review)
        special = self._special_report_deadline(guardianship)
        if special is not None:
            deadlines.append(special)

        return sorted(deadlines, key=lambda d: (d.priority.rank(), d.due_date))

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _timeliness(self, check: ComplianceCheck) -> float:
        days_late = max(0, days_since(check.due_date, check.submission_date))
        return max(0, 100 - 2 * days_late)

    def _completeness(self, check: ComplianceCheck) -> float:
        if not check.required_sections:
            return 100
        done = set(check.completed_sections)
        complete = sum(1 for section in check.required_sections if section in done)
        return complete / len(check.required_sections) * 100

    def _accuracy(self, check: ComplianceCheck) -> float:
        quality = check.quality_score if check.quality_score is not None else 100
        return max(0, quality - min(50, 5 * check.validation_error_count))

    def _documentation(self, check: ComplianceCheck) -> float:
        required = self.policy.required_attachment_types
        if not required:
            return 100
        provided = set(check.attachment_types)
        return sum(1 for doc in required if doc in provided) / len(required) * 100

    def _trend(self, checks: list[ComplianceCheck]) -> ComplianceTrend:
        recent = checks[-3:]
        if len(recent) < 2:
            return ComplianceTrend.STABLE

        scores = [c.quality_score if c.quality_score is not None else 100 for c in recent]
        first, last = scores[0], scores[-1]
        average = mean(scores)
        band = self.policy.trend_significance_points

        if last > first + band:
            return ComplianceTrend.IMPROVING
        if last < first - band:
            return ComplianceTrend.DECLINING
        if abs(last - average) <= band:
            return ComplianceTrend.STABLE
        return ComplianceTrend.IMPROVING if last > average else ComplianceTrend.DECLINING

    def system_average(self, population: Iterable[Guardianship]) -> int:
        """Mean report quality across guardianships that have filed anything"""
        per_guardianship = []
        for guardianship in population:
            submitted = [c for c in guardianship.compliance_checks if c.is_submitted]
            if submitted:
                per_guardianship.append(
                    mean(c.quality_score if c.quality_score is not None else 100 for c in submitted)
                )
        if not per_guardianship:
            return self.policy.default_system_average_score
        return round_half_up(mean(per_guardianship))

    def _recommendations(
        self,
        overall: int,
        timeliness: int,
        completeness: int,
        accuracy: int,
        documentation: int,
    ) -> list[str]:
        recommendations = []
        if overall < 80:
            recommendations.append("Improve overall compliance to avoid penalties")
        if timeliness < 70:
            recommendations.append("Submit reports earlier to avoid late penalties")
            recommendations.append("Set up automatic reminders for deadlines")
        if completeness < 80:
            recommendations.append("Ensure all required sections are completed")
            recommendations.append("Use the report checklist before submission")
        if accuracy < 85:
            recommendations.append("Double-check financial figures for accuracy")
            recommendations.append("Have another guardian review reports before submission")
        if documentation < 90:
            recommendations.append("Attach all required supporting documents")
            recommendations.append("Keep digital copies of important documents")
        if overall >= 90:
            recommendations.append("Maintain excellent compliance record")
            recommendations.append("Consider mentoring other guardians")
        return recommendations

    def calculate_compliance_score(
        self,
        guardianship: Guardianship,
        population: Iterable[Guardianship] = (),
    ) -> ComplianceScore:
        """
        Weighted compliance score over submitted reports

        With nothing submitted yet the guardian starts from a perfect score.

        Args:
            guardianship: Guardianship to score
            population: Other guardianships, for compared_to_average
        """
        average = self.system_average(population)
        submitted = sorted(
            (c for c in guardianship.compliance_checks if c.is_submitted),
            key=lambda c: c.submission_date,
        )
        if not submitted:
            return ComplianceScore(
                overall=100,
                timeliness=100,
                completeness=100,
                accuracy=100,
                documentation=100,
                trend=ComplianceTrend.STABLE,
                compared_to_average=100 - average,
                checks_evaluated=0,
                recommendations=[
                    "Maintain perfect compliance record",
                    "Set up automatic reminders",
                    "Keep all documents organized",
                ],
            )

        timeliness = _clamp_score(mean(self._timeliness(c) for c in submitted))
        completeness = _clamp_score(mean(self._completeness(c) for c in submitted))
        accuracy = _clamp_score(mean(self._accuracy(c) for c in submitted))
        documentation = _clamp_score(mean(self._documentation(c) for c in submitted))

        overall = _clamp_score(
            self.policy.score_weight_timeliness * timeliness
            + self.policy.score_weight_completeness * completeness
            + self.policy.score_weight_accuracy * accuracy
            + self.policy.score_weight_documentation * documentation
        )

        return ComplianceScore(
            overall=overall,
            timeliness=timeliness,
            completeness=completeness,
            accuracy=accuracy,
            documentation=documentation,
            trend=self._trend(submitted),
            compared_to_average=overall - average,
            checks_evaluated=len(submitted),
            recommendations=self._recommendations(
                overall, timeliness, completeness, accuracy, documentation
            ),
        )

    # ------------------------------------------------------------------
    # Penalties
    # ------------------------------------------------------------------

    def calculate_single_penalty(self, days_overdue: int) -> Decimal:
        """Base penalty plus a daily rate, capped: 5,000 + min(15,000, days x 500) KES"""
        base = self.policy.penalty_base_kes
        accrued = self.policy.penalty_daily_kes * max(0, days_overdue)
        return base + min(self.policy.penalty_max_kes - base, accrued)

    def _payment_options(self, total: Decimal, deadline: datetime) -> list[PaymentOption]:
        options = [
            PaymentOption(
                method=PaymentMethod.MPESA,
                minimum_amount=min(self.policy.mobile_money_cap_kes, total),
                deadline=deadline,
            ),
            PaymentOption(
                method=PaymentMethod.BANK_TRANSFER,
                minimum_amount=total,
                deadline=deadline,
            ),
            PaymentOption(
                method=PaymentMethod.CASH_COURT,
                minimum_amount=total,
                deadline=deadline + timedelta(days=self.policy.cash_court_extension_days),
            ),
        ]
        if total > self.policy.installment_threshold_kes:
            parts = self.policy.installment_parts
            options.append(
                PaymentOption(
                    method=PaymentMethod.INSTALLMENTS,
                    minimum_amount=Decimal(math.ceil(total / parts)),
                    deadline=deadline + timedelta(days=self.policy.installment_period_days),
                    installments=parts,
                )
            )
        return options

    def calculate_penalties(self, guardianship: Guardianship) -> PenaltyAssessment:
        """Penalties for every overdue deadline, their total and payment options"""
        now = self.time_provider.now()
        penalties = []
        for deadline in self.calculate_compliance_deadlines(guardianship):
            if not deadline.is_overdue:
                continue
            waivable = deadline.days_overdue < self.policy.penalty_waiver_max_days
            penalties.append(
                Penalty(
                    deadline_type=deadline.type,
                    guardian_id=deadline.guardian_id,
                    days_overdue=deadline.days_overdue,
                    amount=self.calculate_single_penalty(deadline.days_overdue),
                    can_be_waived=waivable,
                    waiver_conditions=list(WAIVER_CONDITIONS) if waivable else [],
                    legal_reference=deadline.legal_reference,
                )
            )

        total = sum((p.amount for p in penalties), Decimal("0"))
        payment_deadline = now + timedelta(days=self.policy.penalty_payment_days)
        if penalties:
            penalties_assessed_kes.observe(float(total))
            logger.info(
                "Penalties assessed",
                guardianship_id=guardianship.guardianship_id,
                penalty_count=len(penalties),
            )

        return PenaltyAssessment(
            guardianship_id=guardianship.guardianship_id,
            penalties=penalties,
            total_amount=total,
            payment_deadline=payment_deadline,
            payment_options=self._payment_options(total, payment_deadline),
        )

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------

    def _tasks(self, deadlines: list[ComplianceDeadline], assignee: str) -> list[ComplianceTask]:
        tasks = []
        for deadline in deadlines:
            if deadline.is_overdue:
                status = TaskStatus.OVERDUE
            elif deadline.days_until_due <= 7:
                status = TaskStatus.DUE_SOON
            else:
                status = TaskStatus.UPCOMING
            tasks.append(
                ComplianceTask(
                    type=deadline.type.value,
                    description=deadline.type.task_description(),
                    due_date=deadline.due_date,
                    status=status,
                    assigned_to=assignee,
                )
            )
            if not deadline.is_overdue and deadline.days_until_due > 0:
                tasks.append(
                    ComplianceTask(
                        type="PREPARATION",
                        description=f"Gather documents for {deadline.type.value}",
                        due_date=deadline.due_date - timedelta(days=7),
                        status=TaskStatus.UPCOMING,
                        assigned_to=assignee,
                    )
                )
        return tasks

    def _reminders(self, deadlines: list[ComplianceDeadline]) -> list[Reminder]:
        now = self.time_provider.now()
        reminders = []
        for deadline in deadlines:
            name = deadline.type.value
            if deadline.is_overdue:
                reminders.append(
                    Reminder(
                        channel=ReminderChannel.EMAIL,
                        date=now,
                        message=f"URGENT: {name} is {deadline.days_overdue} days overdue",
                        deadline_type=deadline.type,
                    )
                )
                continue
            if deadline.days_until_due > 30:
                reminders.append(
                    Reminder(
                        channel=ReminderChannel.EMAIL,
                        date=deadline.due_date - timedelta(days=30),
                        message=f"Upcoming {name} due in 30 days",
                        deadline_type=deadline.type,
                    )
                )
            if deadline.days_until_due > 7:
                reminders.append(
                    Reminder(
                        channel=ReminderChannel.SMS,
                        date=deadline.due_date - timedelta(days=7),
                        message=f"Reminder: {name} due in 7 days",
                        deadline_type=deadline.type,
                    )
                )
            if deadline.days_until_due > 1:
                reminders.append(
                    Reminder(
                        channel=ReminderChannel.PUSH,
                        date=deadline.due_date - timedelta(days=1),
                        message=f"Final reminder: {name} due tomorrow",
                        deadline_type=deadline.type,
                    )
                )
        return reminders

    def generate_compliance_calendar(
        self,
        guardianship: Guardianship,
        year: int,
        month: int | None = None,
    ) -> ComplianceCalendar:
        """
        Deadlines falling due in a year (or one month of it) with tasks and reminders

        Args:
            guardianship: Guardianship to plan for
            year: Calendar year
            month: 1-12, or None for the whole year
        """
        if month is not None and not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        deadlines = [
            d
            for d in self.calculate_compliance_deadlines(guardianship)
            if d.due_date.year == year and (month is None or d.due_date.month == month)
        ]
        primary = guardianship.primary_guardian
        assignee = primary.guardian_id if primary is not None else "Guardian"

        return ComplianceCalendar(
            guardianship_id=guardianship.guardianship_id,
            year=year,
            month=month,
            period=calendar.month_name[month] if month is not None else "Annual",
            deadlines=deadlines,
            tasks=self._tasks(deadlines, assignee),
            reminders=self._reminders(deadlines),
        )

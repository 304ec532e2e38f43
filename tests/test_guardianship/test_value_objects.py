"""
Tests for guardianship value objects - powers, bonds, reporting schedules

Fun fact: none of these objects can be changed after construction. Every
"update" here is a brand new object, which is why the tests compare the
original and the result side by side.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from guardianship_engine.guardianship.models import PowerGroup, ReportFrequency, ReportStatus
from guardianship_engine.guardianship.value_objects import (
    BondLedger,
    PowersGrant,
    ReportingSchedule,
)
from guardianship_engine.kernel.errors import InvalidGuardianshipException
from tests.helpers import FIRST_REPORT_DUE, NOW, utc


def make_bond(expiry: datetime = NOW + timedelta(days=365)) -> BondLedger:
    return BondLedger(
        provider="Jubilee Insurance",
        policy_number="JUB-2025-0001",
        amount=Decimal("500000"),
        issued_date=NOW,
        expiry_date=expiry,
    )


class TestPowersGrant:
    def test_defaults_are_care_only(self) -> None:
        powers = PowersGrant()

        assert not powers.has_property_management_powers
        assert powers.can_consent_to_medical
        assert powers.can_make_educational_decisions
        assert not powers.requires_bond()
        assert powers.power_groups() == {PowerGroup.CARE}

    def test_grant_property_management(self) -> None:
        powers = PowersGrant(restrictions=["no land sales"])

        granted = powers.grant_property_management(["court consent for sales over KES 1M"])

        assert granted.has_property_management_powers
        assert granted.can_make_legal_decisions
        assert granted.requires_bond()
        assert granted.restrictions == ["no land sales", "court consent for sales over KES 1M"]
        assert not powers.has_property_management_powers

    def test_grant_twice_rejected(self) -> None:
        granted = PowersGrant().grant_property_management()

        with pytest.raises(InvalidGuardianshipException, match="already granted"):
            granted.grant_property_management()

    def test_power_groups(self) -> None:
        powers = PowersGrant(
            has_property_management_powers=True,
            can_consent_to_medical=False,
            can_make_educational_decisions=False,
            can_consent_to_marriage=True,
        )
        assert powers.power_groups() == {PowerGroup.PROPERTY, PowerGroup.LEGAL}


class TestBondLedger:
    def test_expiry_must_follow_issue(self) -> None:
        with pytest.raises(ValidationError):
            make_bond(expiry=NOW)

    def test_amount_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            BondLedger(
                provider="Jubilee Insurance",
                policy_number="JUB-1",
                amount=Decimal("0"),
                issued_date=NOW,
                expiry_date=NOW + timedelta(days=1),
            )

    def test_expiry_queries(self) -> None:
        bond = make_bond(expiry=NOW + timedelta(days=45))

        assert not bond.is_expired(NOW)
        assert bond.is_expiring_soon(NOW)
        assert not bond.is_expiring_soon(NOW, days=30)
        assert bond.days_until_expiry(NOW) == 45
        # Expired only strictly after the expiry instant
        assert not bond.is_expired(bond.expiry_date)
        assert bond.is_expired(bond.expiry_date + timedelta(seconds=1))

    def test_renew(self) -> None:
        bond = make_bond()
        later = NOW + timedelta(days=300)

        renewed = bond.renew(later + timedelta(days=365), later, "JUB-2026-0002")

        assert renewed.issued_date == later
        assert renewed.expiry_date == later + timedelta(days=365)
        assert renewed.policy_number == "JUB-2026-0002"
        assert renewed.amount == bond.amount
        assert bond.policy_number == "JUB-2025-0001"

    def test_renew_keeps_policy_number_by_default(self) -> None:
        renewed = make_bond().renew(NOW + timedelta(days=800), NOW)
        assert renewed.policy_number == "JUB-2025-0001"

    def test_renew_into_past_rejected(self) -> None:
        with pytest.raises(InvalidGuardianshipException, match="must be in the future"):
            make_bond().renew(NOW, NOW)


class TestReportingSchedule:
    def test_create(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE)

        assert schedule.frequency is ReportFrequency.ANNUAL
        assert schedule.next_report_due == FIRST_REPORT_DUE
        assert schedule.status is ReportStatus.PENDING
        assert schedule.grace_period_end() == FIRST_REPORT_DUE + timedelta(days=60)

    def test_overdue_only_after_grace(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE)
        grace_end = schedule.grace_period_end()

        assert not schedule.is_due(NOW)
        assert schedule.is_due(FIRST_REPORT_DUE)
        assert schedule.is_in_grace_period(FIRST_REPORT_DUE + timedelta(days=10))
        # Exactly at the end of grace the report is still on time
        assert not schedule.is_overdue(grace_end)
        assert schedule.is_overdue(grace_end + timedelta(seconds=1))
        assert schedule.days_overdue(grace_end) == 0
        assert schedule.days_overdue(grace_end + timedelta(days=3)) == 3

    def test_days_until_due_never_negative(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE)
        assert schedule.days_until_due(NOW) == 365
        assert schedule.days_until_due(FIRST_REPORT_DUE + timedelta(days=5)) == 0

    def test_file_report_rolls_forward(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE).record_overdue_notification(NOW)

        filed = schedule.file_report(utc(2026, 1, 25), ReportStatus.APPROVED)

        assert filed.last_report_date == utc(2026, 1, 25)
        assert filed.next_report_due == utc(2027, 1, 25)
        assert filed.status is ReportStatus.APPROVED
        assert filed.overdue_notifications_sent == 0
        assert filed.last_overdue_notification is None

    def test_quarterly_frequency(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE, ReportFrequency.QUARTERLY)
        filed = schedule.file_report(utc(2025, 11, 30))
        assert filed.next_report_due == utc(2026, 2, 28)

    def test_on_demand_does_not_advance(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE, ReportFrequency.ON_DEMAND)
        filed = schedule.file_report(utc(2025, 6, 1))
        assert filed.next_report_due == utc(2025, 6, 1)

    def test_overdue_reminders_are_spaced(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE)
        overdue_at = schedule.grace_period_end() + timedelta(days=1)

        assert not schedule.should_send_overdue_reminder(NOW)
        assert schedule.should_send_overdue_reminder(overdue_at)

        notified = schedule.record_overdue_notification(overdue_at)
        assert notified.status is ReportStatus.OVERDUE
        assert notified.overdue_notifications_sent == 1
        assert not notified.should_send_overdue_reminder(overdue_at + timedelta(days=6))
        assert notified.should_send_overdue_reminder(overdue_at + timedelta(days=7))

    def test_extend_due_date(self) -> None:
        schedule = ReportingSchedule.create(FIRST_REPORT_DUE)

        extended = schedule.extend_due_date(FIRST_REPORT_DUE + timedelta(days=30))
        assert extended.next_report_due == FIRST_REPORT_DUE + timedelta(days=30)

        with pytest.raises(InvalidGuardianshipException):
            schedule.extend_due_date(FIRST_REPORT_DUE)

    def test_change_frequency_recomputes_from_last_report(self) -> None:
        filed = ReportingSchedule.create(FIRST_REPORT_DUE).file_report(utc(2026, 1, 10))

        semi = filed.change_frequency(ReportFrequency.SEMI_ANNUAL)
        assert semi.next_report_due == utc(2026, 7, 10)

        unfiled = ReportingSchedule.create(FIRST_REPORT_DUE).change_frequency(
            ReportFrequency.QUARTERLY
        )
        assert unfiled.next_report_due == FIRST_REPORT_DUE

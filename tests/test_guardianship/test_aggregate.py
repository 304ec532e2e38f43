"""
Tests for the Guardianship aggregate - the lifecycle state machine

Covers creation, guardian membership, ward lifecycle transitions,
delegated guardian operations, compliance checks and snapshots.

Fun fact: a guardianship never really disappears. Once dissolved it stays
in the store, inactive, so the court can always see who was responsible
for the child and when.
"""

import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.commands import CreateGuardianship
from guardianship_engine.guardianship.models import (
    BondStatus,
    GuardianshipType,
    Jurisdiction,
    ReportStatus,
    TerminationReason,
    WardInfoUpdate,
)
from guardianship_engine.guardianship.value_objects import PowersGrant
from guardianship_engine.kernel.errors import (
    EventReplayNotSupported,
    GuardianIneligibleException,
    GuardianNotFoundException,
    InvalidGuardianshipException,
    MultipleGuardiansException,
    WardNotFoundException,
    WardNotMinorException,
)
from guardianship_engine.kernel.time import TestTimeProvider
from tests.helpers import (
    FIRST_REPORT_DUE,
    NOW,
    bond_details,
    build_guardianship,
    co_guardian,
    court_order,
    create_command,
    eligible,
    kikuyu_customary_details,
    make_ward,
    property_command,
    property_powers,
    submission,
    utc,
)


def event_types(guardianship: Guardianship) -> list[str]:
    return [e.event_type for e in guardianship.pending_events]


def fresh(test_time: TestTimeProvider, command=None) -> Guardianship:
    """Build a guardianship and drop its creation event"""
    guardianship = build_guardianship(test_time, command)
    guardianship.pull_events()
    return guardianship


class TestCreate:
    def test_create_guardianship(self, test_time: TestTimeProvider) -> None:
        """Test that a guardianship starts active with its primary guardian"""
        g = build_guardianship(test_time)

        assert g.guardianship_id == "gdn-1"
        assert g.is_active
        assert g.version == 1
        assert g.jurisdiction is Jurisdiction.STATUTORY
        assert g.primary_guardian_id == "guardian-1"
        assert g.primary_guardian.is_primary
        assert g.bond_status is BondStatus.NOT_REQUIRED
        assert g.ward.updated_at == NOW
        assert g.load_warnings == []

        events = g.pending_events
        assert [e.event_type for e in events] == ["GuardianshipCreated"]
        assert events[0].version == 1
        assert events[0].actor_id == "clerk-1"
        assert events[0].payload["court_order_number"] == "HCFA 112/2025"

    def test_create_with_bond(self, test_time: TestTimeProvider) -> None:
        g = build_guardianship(test_time, property_command())

        assert g.bond_status is BondStatus.POSTED
        assert g.can_manage_property()
        assert g.requires_property_management()
        assert g.next_report_due() == FIRST_REPORT_DUE
        assert g.load_warnings == []

    def test_property_powers_without_bond_warns(self, test_time: TestTimeProvider) -> None:
        """Test that a missing S.72 bond is a load warning, not an error"""
        g = build_guardianship(test_time, create_command(powers=property_powers()))

        assert g.bond_status is BondStatus.REQUIRED_PENDING
        assert not g.can_manage_property()
        assert len(g.load_warnings) == 1
        assert "S.72 violation" in g.load_warnings[0]

    def test_create_from_json_without_offsets(self, test_time: TestTimeProvider) -> None:
        """Test that timestamps without a UTC offset are read as UTC"""
        command = CreateGuardianship.model_validate_json(
            json.dumps(
                {
                    "guardianship_id": "gdn-1",
                    "ward": make_ward().model_dump(mode="json"),
                    "guardian_id": "guardian-1",
                    "eligibility": {"age": 40},
                    "guardianship_type": "COURT_APPOINTED",
                    "appointment_date": "2025-01-15T12:00:00",
                    "court_order": {
                        "order_number": "HCFA 112/2025",
                        "court_station": "Milimani",
                        "order_date": "2025-01-15T12:00:00",
                    },
                    "powers": {
                        "has_property_management_powers": True,
                        "can_make_legal_decisions": True,
                    },
                    "bond": {
                        "provider": "Jubilee Insurance",
                        "policy_number": "JUB-2025-0001",
                        "amount": "500000",
                        "expiry_date": "2026-01-15T12:00:00",
                    },
                }
            )
        )

        g = build_guardianship(test_time, command)

        assert g.established_date == NOW
        assert g.court_order.order_date == NOW
        assert g.bond_status is BondStatus.POSTED
        assert g.next_report_due() == FIRST_REPORT_DUE
        assert g.load_warnings == []

    def test_bond_for_guardian_who_needs_none(self, test_time: TestTimeProvider) -> None:
        with pytest.raises(InvalidGuardianshipException, match="not required to post a bond"):
            build_guardianship(test_time, create_command(bond=bond_details()))

    def test_generated_id(self, test_time: TestTimeProvider) -> None:
        g = build_guardianship(test_time, create_command(guardianship_id=None))
        assert len(g.guardianship_id) == 36

    @pytest.mark.parametrize(
        ("overrides", "error"),
        [
            ({"guardian_id": "ward-1"}, InvalidGuardianshipException),
            ({"eligibility": eligible(is_bankrupt=True)}, GuardianIneligibleException),
            ({"ward": make_ward(current_age=19)}, WardNotMinorException),
            ({"ward": make_ward(is_deceased=True)}, WardNotFoundException),
        ],
    )
    def test_create_rejected(self, test_time: TestTimeProvider, overrides, error) -> None:
        with pytest.raises(error):
            build_guardianship(test_time, create_command(**overrides))

    def test_incapacitated_adult_ward(self, test_time: TestTimeProvider) -> None:
        ward = make_ward(current_age=34, date_of_birth=date(1990, 3, 1), is_incapacitated=True)
        g = build_guardianship(test_time, create_command(ward=ward))

        assert g.is_active
        assert not g.is_ward_minor()


class TestCustomary:
    def test_customary_guardianship(self, test_time: TestTimeProvider) -> None:
        g = build_guardianship(
            test_time,
            create_command(
                guardianship_type=GuardianshipType.CUSTOMARY,
                customary_details=kikuyu_customary_details(),
                court_order=None,
            ),
        )

        assert g.customary_law_applies
        assert g.jurisdiction is Jurisdiction.CUSTOMARY
        assert g.primary_guardian.appointment_source.value == "CUSTOMARY_LAW"

    def test_customary_without_details(self, test_time: TestTimeProvider) -> None:
        with pytest.raises(InvalidGuardianshipException, match="customary law details"):
            build_guardianship(test_time, create_command(customary_law_applies=True))

    def test_clan_rules_on_creation(self, test_time: TestTimeProvider) -> None:
        with pytest.raises(GuardianIneligibleException, match="at least 25"):
            build_guardianship(
                test_time,
                create_command(
                    guardianship_type=GuardianshipType.CUSTOMARY,
                    customary_details=kikuyu_customary_details("Anjiru"),
                    eligibility=eligible(age=22),
                ),
            )

    def test_clan_rules_on_co_guardian(self, test_time: TestTimeProvider) -> None:
        g = fresh(
            test_time,
            create_command(
                guardianship_type=GuardianshipType.CUSTOMARY,
                customary_details=kikuyu_customary_details("Anjiru"),
                eligibility=eligible(clan_name="Anjiru"),
            ),
        )

        with pytest.raises(GuardianIneligibleException, match="belongs to clan Ambui"):
            g.add_co_guardian(co_guardian(eligibility=eligible(clan_name="Ambui")))
        assert g.version == 1


class TestGuardianMembership:
    def test_add_co_guardian(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        added = g.add_co_guardian(co_guardian())

        assert added.guardian_id == "guardian-2"
        assert not added.is_primary
        assert g.primary_guardian_id == "guardian-1"
        assert g.version == 2
        assert event_types(g) == ["MultipleGuardiansAssigned"]
        assert g.pending_events[0].payload["active_guardian_ids"] == ["guardian-1", "guardian-2"]
        assert g.compliance_warnings == []

    def test_shared_property_powers_warn(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())

        g.add_co_guardian(co_guardian(powers=property_powers()))

        assert g.compliance_warnings == [
            "Property management overlap: guardian guardian-2 shares property powers with guardian-1"
        ]
        payload = g.pending_events[0].payload
        assert payload["overlapping_power_groups"] == ["CARE", "LEGAL", "PROPERTY"]

    def test_duplicate_guardian_rejected(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        with pytest.raises(MultipleGuardiansException):
            g.add_co_guardian(co_guardian("guardian-1"))
        assert g.version == 1

    def test_single_marriage_consent(self, test_time: TestTimeProvider) -> None:
        marriage = PowersGrant(can_consent_to_marriage=True)
        g = fresh(test_time, create_command(powers=marriage))

        with pytest.raises(MultipleGuardiansException, match="marriage consent"):
            g.add_co_guardian(co_guardian(powers=marriage))
        assert list(g.guardians) == ["guardian-1"]

    def test_replace_guardian_carries_bond(self, test_time: TestTimeProvider) -> None:
        """Test that the replacement inherits powers, primary role and the bond"""
        powers = property_powers(
            can_consent_to_medical=False,
            can_consent_to_marriage=True,
            restrictions=["no land sales", "school fees only"],
            special_instructions="Consult the ward's aunt on schooling",
        )
        g = fresh(test_time, property_command(powers=powers))
        replaced_at = NOW + timedelta(days=10)

        replacement = g.replace_guardian(
            "guardian-1", "guardian-2", eligible(), TerminationReason.GUARDIAN_DECEASED, replaced_at
        )

        assert replacement.is_primary
        assert replacement.powers == g.get_guardian("guardian-1").powers
        assert replacement.powers == powers
        assert replacement.bond.provider == "Jubilee Insurance"
        assert replacement.bond.policy_number.startswith("JUB-2025-0001-R-guardian")
        assert replacement.bond.expiry_date == replaced_at.replace(year=2026)
        assert g.primary_guardian_id == "guardian-2"

        outgoing = g.get_guardian("guardian-1")
        assert not outgoing.is_active
        assert outgoing.removal_reason is TerminationReason.GUARDIAN_DECEASED

        assert event_types(g) == ["GuardianReplaced", "GuardianBondPosted"]
        assert [e.version for e in g.pending_events] == [2, 3]
        assert g.pending_events[0].payload["bond_carried_over"] is True
        assert g.pending_events[1].payload["carried_over_from"] == "guardian-1"
        assert g.version == 3

    def test_failed_bond_carry_over_is_a_warning(self, test_time: TestTimeProvider) -> None:
        """Test that a carry-over that cannot be posted does not block the replacement"""
        g = fresh(test_time, property_command())

        # Backdated replacement: one year of cover from then ended 35 days ago
        replacement = g.replace_guardian(
            "guardian-1",
            "guardian-2",
            eligible(),
            TerminationReason.COURT_REMOVAL,
            NOW - timedelta(days=400),
        )

        assert replacement.bond is None
        assert g.bond_status is BondStatus.REQUIRED_PENDING
        assert len(g.compliance_warnings) == 1
        assert g.compliance_warnings[0].startswith(
            "Bond carry-over to replacement guardian guardian-2 failed"
        )
        assert event_types(g) == ["GuardianReplaced"]
        assert g.pending_events[0].payload["bond_carried_over"] is False
        assert g.version == 2

    def test_replace_rejections(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.add_co_guardian(co_guardian())

        with pytest.raises(GuardianNotFoundException):
            g.replace_guardian("nobody", "guardian-3", eligible(), TerminationReason.COURT_REMOVAL, NOW)
        with pytest.raises(MultipleGuardiansException):
            g.replace_guardian(
                "guardian-1", "guardian-2", eligible(), TerminationReason.COURT_REMOVAL, NOW
            )
        with pytest.raises(GuardianIneligibleException):
            g.replace_guardian(
                "guardian-1", "guardian-3", eligible(age=16), TerminationReason.COURT_REMOVAL, NOW
            )

        g.remove_guardian("guardian-2", TerminationReason.VOLUNTARY_RESIGNATION, NOW)
        with pytest.raises(InvalidGuardianshipException, match="already inactive"):
            g.replace_guardian(
                "guardian-2", "guardian-3", eligible(), TerminationReason.COURT_REMOVAL, NOW
            )

    def test_remove_primary_passes_role_on(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.add_co_guardian(co_guardian())

        removed = g.remove_guardian("guardian-1", TerminationReason.VOLUNTARY_RESIGNATION, NOW)

        assert not removed.is_active
        assert g.primary_guardian_id == "guardian-2"
        assert g.get_guardian("guardian-2").is_primary
        assert g.version == 3

    def test_last_guardian_cannot_be_removed(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        with pytest.raises(InvalidGuardianshipException, match="last active guardian"):
            g.remove_guardian("guardian-1", TerminationReason.VOLUNTARY_RESIGNATION, NOW)
        assert g.is_active
        assert g.version == 1


class TestWardLifecycle:
    def test_ordinary_update(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        test_time.advance_days(200)

        g.update_ward_info(WardInfoUpdate(current_age=11))

        assert g.ward.current_age == 11
        assert g.ward.updated_at == test_time.now()
        assert g.is_active
        assert g.version == 2
        assert g.pending_events == []

    def test_majority_dissolves(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        g.update_ward_info(WardInfoUpdate(current_age=18))

        assert not g.is_active
        assert g.dissolution_reason is TerminationReason.WARD_REACHED_MAJORITY
        assert g.dissolved_date == NOW
        assert g.primary_guardian_id is None
        assert g.active_guardians() == []
        assert event_types(g) == ["WardMajorityReached", "GuardianshipDissolved"]
        assert g.version == 3

    def test_death_dissolves(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        g.update_ward_info(WardInfoUpdate(is_deceased=True))

        assert g.dissolution_reason is TerminationReason.WARD_DECEASED
        assert event_types(g) == ["GuardianshipDissolved"]
        assert g.pending_events[0].payload["terminated_guardian_ids"] == ["guardian-1"]

    def test_regained_capacity_dissolves(self, test_time: TestTimeProvider) -> None:
        ward = make_ward(current_age=34, date_of_birth=date(1990, 3, 1), is_incapacitated=True)
        g = fresh(test_time, create_command(ward=ward))

        g.update_ward_info(WardInfoUpdate(is_incapacitated=False))

        assert g.dissolution_reason is TerminationReason.WARD_REGAINED_CAPACITY
        assert not g.ward.is_incapacitated

    def test_update_after_dissolution_is_recorded(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.dissolve_guardianship(TerminationReason.ADOPTION_FINALIZED, NOW)
        g.pull_events()

        g.update_ward_info(WardInfoUpdate(current_age=11))

        assert g.ward.current_age == 11
        assert g.dissolution_reason is TerminationReason.ADOPTION_FINALIZED
        assert g.pending_events == []

    def test_dissolve(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.add_co_guardian(co_guardian())
        g.pull_events()

        g.dissolve_guardianship(TerminationReason.COURT_ORDER, NOW, "HCFA 9/2026")

        assert not g.is_active
        assert all(not guardian.is_active for guardian in g.guardians.values())
        assert all(
            guardian.removal_reason is TerminationReason.COURT_ORDER
            for guardian in g.guardians.values()
        )
        payload = g.pending_events[0].payload
        assert payload["court_order_number"] == "HCFA 9/2026"
        assert payload["terminated_guardian_ids"] == ["guardian-1", "guardian-2"]

    def test_dissolved_is_terminal(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.dissolve_guardianship(TerminationReason.COURT_ORDER, NOW)

        with pytest.raises(InvalidGuardianshipException, match="is dissolved"):
            g.dissolve_guardianship(TerminationReason.COURT_ORDER, NOW)
        with pytest.raises(InvalidGuardianshipException, match="is dissolved"):
            g.add_co_guardian(co_guardian())
        with pytest.raises(InvalidGuardianshipException, match="is dissolved"):
            g.handle_ward_reached_majority(NOW)

    def test_majority_date(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        assert g.majority_date() == utc(2032, 6, 1, hour=0)
        assert g.is_ward_minor()


class TestGuardianOperations:
    def test_post_bond_after_granting_powers(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        g.grant_property_powers("guardian-1", ["no land sales"])
        assert g.bond_status is BondStatus.REQUIRED_PENDING
        assert not g.can_manage_property()

        b = bond_details()
        g.post_guardian_bond(
            "guardian-1",
            provider=b.provider,
            policy_number=b.policy_number,
            amount=b.amount,
            expiry_date=b.expiry_date,
        )

        assert g.bond_status is BondStatus.POSTED
        assert g.can_manage_property("guardian-1")
        assert event_types(g) == ["GuardianBondPosted"]
        assert g.version == 3

    def test_failed_operation_leaves_warning(self, test_time: TestTimeProvider) -> None:
        """Test that a failed guardian operation records a warning before re-raising"""
        g = fresh(test_time)

        with pytest.raises(InvalidGuardianshipException, match="not required to post a bond"):
            g.post_guardian_bond(
                "guardian-1",
                provider="Jubilee Insurance",
                policy_number="JUB-1",
                amount=Decimal("1000"),
                expiry_date=NOW + timedelta(days=365),
            )

        assert g.compliance_warnings[0].startswith("Posting bond failed for guardian guardian-1")
        assert g.recorded_failure == g.compliance_warnings[0]
        assert g.version == 2
        assert g.pending_events == []
        assert g.get_guardian("guardian-1").bond is None

    def test_blank_bond_provider_leaves_warning(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.grant_property_powers("guardian-1")
        g.pull_events()

        with pytest.raises(InvalidGuardianshipException, match="provider is required"):
            g.post_guardian_bond(
                "guardian-1",
                provider="",
                policy_number="JUB-1",
                amount=Decimal("500000"),
                expiry_date=NOW + timedelta(days=365),
            )

        (warning,) = g.compliance_warnings
        assert warning.startswith("Posting bond failed for guardian guardian-1")
        assert g.version == 3
        assert g.pending_events == []
        assert g.bond_status is BondStatus.REQUIRED_PENDING

    def test_unknown_guardian(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        with pytest.raises(GuardianNotFoundException):
            g.update_guardian_allowance("nobody", Decimal("1000"), "Hon. Justice Achieng")
        assert g.compliance_warnings == []
        assert g.version == 1

    def test_renew_bond(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        test_time.advance_days(340)

        renewed = g.renew_guardian_bond("guardian-1", NOW + timedelta(days=730), "JUB-2026-0007")

        assert renewed.bond.issued_date == test_time.now()
        assert renewed.bond.policy_number == "JUB-2026-0007"
        assert g.version == 2

    def test_file_annual_report(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        test_time.set_time(utc(2026, 1, 25))

        filed = g.file_annual_report(
            "guardian-1",
            utc(2026, 1, 25),
            "School fees paid, rent collected",
            approved_by="Deputy Registrar",
            submission=submission(quality_score=90),
        )

        assert filed.reporting_schedule.status is ReportStatus.APPROVED
        assert g.next_report_due() == utc(2027, 1, 25)

        check = g.compliance_checks[0]
        assert check.due_date == FIRST_REPORT_DUE
        assert check.submission_date == utc(2026, 1, 25)
        assert check.quality_score == 90

        assert event_types(g) == ["AnnualReportFiled"]
        payload = g.pending_events[0].payload
        assert payload["status"] == "APPROVED"
        assert payload["summary"] == "School fees paid, rent collected"

    def test_file_report_without_property_powers(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        with pytest.raises(InvalidGuardianshipException):
            g.file_annual_report("guardian-1", NOW, "Nothing to report")

        assert g.compliance_warnings[0].startswith(
            "Filing annual report failed for guardian guardian-1"
        )
        assert g.compliance_checks == []
        assert g.version == 2

    def test_update_allowance(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)

        guardian = g.update_guardian_allowance("guardian-1", Decimal("60000"), "Deputy Registrar")

        assert guardian.annual_allowance == Decimal("60000")
        assert g.get_guardian("guardian-1").allowance_approved_by == "Deputy Registrar"

    def test_record_court_order(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time)
        g.record_court_order(court_order(order_date=utc(2026, 3, 1)))

        assert g.court_order.order_date == utc(2026, 3, 1)
        assert g.version == 2


class TestCompliance:
    def test_compliant_guardianship(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())

        assert g.check_compliance() == []
        assert g.last_compliance_check == NOW
        assert g.version == 2

        status = g.get_compliance_status()
        assert status["is_compliant"] is True
        assert status["bond_status"] == "POSTED"
        assert status["s73_status"] == {"guardian-1": "COMPLIANT"}

    def test_check_compliance_records_violations(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        test_time.set_time(FIRST_REPORT_DUE + timedelta(days=61))

        warnings = g.check_compliance()

        assert warnings == [
            "S.72 violation: bond of guardian guardian-1 expired on 2026-01-15",
            "S.73 violation: annual report of guardian guardian-1 is 1 days overdue",
        ]
        assert g.compliance_warnings == warnings
        assert g.overdue_compliance_checks() == 1

        status = g.get_compliance_status()
        assert status["is_compliant"] is False
        assert status["bond_status"] == "EXPIRED"
        assert status["s73_status"] == {"guardian-1": "NON_COMPLIANT"}
        assert status["overdue_reports"] == 1

    def test_check_replaces_previous_warnings(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        test_time.set_time(FIRST_REPORT_DUE + timedelta(days=61))
        g.check_compliance()

        g.renew_guardian_bond("guardian-1", test_time.now() + timedelta(days=365))
        g.file_annual_report("guardian-1", test_time.now(), "Late but complete")

        assert g.check_compliance() == []
        assert g.compliance_warnings == []

    def test_expiring_bond_warns(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        test_time.set_time(FIRST_REPORT_DUE - timedelta(days=20))

        assert g.check_compliance() == ["Bond of guardian guardian-1 expires in 20 days"]


class TestSnapshots:
    def test_snapshot_round_trip(self, test_time: TestTimeProvider) -> None:
        g = fresh(test_time, property_command())
        g.add_co_guardian(co_guardian())
        g.file_annual_report("guardian-1", utc(2025, 12, 20), "Early report", submission=submission())

        restored = Guardianship.from_snapshot(g.to_snapshot(), time_provider=test_time)

        assert restored.to_json() == g.to_json()
        assert restored.compliance_checks == g.compliance_checks
        assert restored.pending_events == []

    def test_load_reports_adult_ward_under_active_guardianship(
        self, test_time: TestTimeProvider
    ) -> None:
        snapshot = fresh(test_time).to_snapshot()
        snapshot["ward"]["current_age"] = 18

        restored = Guardianship.from_snapshot(snapshot, time_provider=test_time)

        assert restored.is_active
        assert restored.load_warnings == [
            "Ward ward-1 has reached majority but the guardianship is still active"
        ]

    def test_event_replay_not_supported(self, test_time: TestTimeProvider) -> None:
        events = build_guardianship(test_time).pending_events

        with pytest.raises(EventReplayNotSupported) as exc_info:
            Guardianship.rebuild_from_events(events)
        assert exc_info.value.stream_id == "gdn-1"

    def test_pull_events_empties_outbox(self, test_time: TestTimeProvider) -> None:
        g = build_guardianship(test_time)

        pulled = g.pull_events()

        assert len(pulled) == 1
        assert g.pending_events == []

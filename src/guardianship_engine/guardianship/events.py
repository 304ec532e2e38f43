"""
Guardianship Events - what the outside world is told

Payload models for the events the aggregate emits. They are named in the
past tense and serialised into the Event envelope's payload.
"""

from datetime import datetime

from pydantic import BaseModel

AGGREGATE_TYPE = "guardianship"


class GuardianshipCreated(BaseModel):
    """A guardianship was established with its primary guardian"""

    guardianship_id: str
    ward_id: str
    primary_guardian_id: str
    guardianship_type: str
    jurisdiction: str
    established_date: datetime
    customary_law_applies: bool
    court_order_number: str | None


class MultipleGuardiansAssigned(BaseModel):
    """A co-guardian joined an existing guardianship"""

    guardianship_id: str
    ward_id: str
    guardian_id: str
    active_guardian_ids: list[str]
    overlapping_power_groups: list[str]


class GuardianReplaced(BaseModel):
    """An outgoing guardian was terminated and a replacement appointed"""

    guardianship_id: str
    outgoing_guardian_id: str
    replacement_guardian_id: str
    reason: str
    replaced_at: datetime
    bond_carried_over: bool
    is_primary: bool


class GuardianshipDissolved(BaseModel):
    """The guardianship reached its terminal state"""

    guardianship_id: str
    ward_id: str
    reason: str
    dissolved_at: datetime
    court_order_number: str | None
    terminated_guardian_ids: list[str]


class WardMajorityReached(BaseModel):
    """The ward turned 18 without incapacity"""

    guardianship_id: str
    ward_id: str
    majority_date: datetime
    age: int


class AnnualReportFiled(BaseModel):
    """A guardian filed an S.73 report"""

    guardianship_id: str
    guardian_id: str
    report_date: datetime
    status: str
    summary: str
    next_report_due: datetime
    approved_by: str | None


class GuardianBondPosted(BaseModel):
    """A guardian posted an S.72 bond"""

    guardianship_id: str
    guardian_id: str
    provider: str
    issued_date: datetime
    expiry_date: datetime
    carried_over_from: str | None = None

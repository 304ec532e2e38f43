"""
Guardianship Module - the lifecycle of a ward's guardianship

This module implements the state machine and its invariants:
- Appointing, adding, replacing and removing guardians
- S.72 bonds and S.73 annual reports per guardian
- Dissolution on majority, death, regained capacity or court order
- Soft compliance warnings that never block a command

Fun fact: Kenyan law lets a parent name a testamentary guardian in a will,
and that appointment survives the parent - which is why a guardian's
authority is tracked separately from the guardianship itself.
"""

from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.guardian import Guardian
from guardianship_engine.guardianship.models import (
    BondStatus,
    GuardianshipType,
    Jurisdiction,
    TerminationReason,
    WardInfo,
)
from guardianship_engine.guardianship.value_objects import (
    BondLedger,
    PowersGrant,
    ReportingSchedule,
)

__all__ = [
    "Guardianship",
    "Guardian",
    "GuardianshipType",
    "Jurisdiction",
    "TerminationReason",
    "BondStatus",
    "WardInfo",
    "PowersGrant",
    "BondLedger",
    "ReportingSchedule",
]

"""
Compliance Module - deadlines, scores, penalties and policy gates

Read-only calculations over a Guardianship: what falls due and when, how
well the guardian has reported so far, what is owed for lateness, and
whether a lifecycle transition is legally permitted.
"""

from guardianship_engine.compliance.engine import ComplianceEngine
from guardianship_engine.compliance.models import (
    ComplianceCalendar,
    ComplianceDeadline,
    ComplianceScore,
    DeadlinePriority,
    DeadlineType,
    PenaltyAssessment,
    ReportType,
)

__all__ = [
    "ComplianceEngine",
    "ComplianceCalendar",
    "ComplianceDeadline",
    "ComplianceScore",
    "DeadlinePriority",
    "DeadlineType",
    "PenaltyAssessment",
    "ReportType",
]

"""EHS Enforcement Engine - Data Models"""
from .db_models import (
    # Enums
    MetricsPeriod, CalculatedBy,
    # ORM
    UserDB, AgencyDB, OffenderDB, CaseDB, NoticeDB, MetricsSnapshotDB,
)
from .enforcement import (
    ActivityKind, ActivityFilter, ComplianceState, TimelineEventStatus,
    ActivityItem, ActivityPage,
    ComplianceStatus, TimelineIntervals, TimelineEvent,
    AgencyStat, MetricsSnapshot, PeriodResult,
)

__all__ = [
    "MetricsPeriod", "CalculatedBy",
    "UserDB", "AgencyDB", "OffenderDB", "CaseDB", "NoticeDB", "MetricsSnapshotDB",
    "ActivityKind", "ActivityFilter", "ComplianceState", "TimelineEventStatus",
    "ActivityItem", "ActivityPage",
    "ComplianceStatus", "TimelineIntervals", "TimelineEvent",
    "AgencyStat", "MetricsSnapshot", "PeriodResult",
]

"""
EHS Enforcement Engine - Derived Read Models

Value objects produced by the compliance classifier, the activity
aggregator and the metrics refresh engine. None of these are ORM rows:
ActivityItem, ComplianceStatus and timeline objects live for a single
read; MetricsSnapshot is the in-memory form of a cached metrics row.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Any

from .db_models import MetricsPeriod, CalculatedBy


# =============================================================================
# ENUMS
# =============================================================================

class ActivityKind(str, Enum):
    """Discriminator for merged feed items."""
    CASE = "case"
    NOTICE = "notice"


class ActivityFilter(str, Enum):
    ALL = "all"
    CASES = "cases"
    NOTICES = "notices"


class ComplianceState(str, Enum):
    PENDING = "pending"
    URGENT = "urgent"
    OVERDUE = "overdue"
    IMMEDIATE = "immediate"
    UNKNOWN = "unknown"


class TimelineEventStatus(str, Enum):
    COMPLETED = "completed"
    FUTURE = "future"


# =============================================================================
# ACTIVITY FEED
# =============================================================================

@dataclass(frozen=True)
class ActivityItem:
    """
    One row of the merged Case/Notice feed.

    fine_amount is always set for CASE items and always None for NOTICE items.
    """
    id: str
    kind: ActivityKind
    action_date: Optional[date]
    organization_name: str
    description: str
    type_label: str
    fine_amount: Optional[Decimal] = None
    agency_link: Optional[str] = None
    regulator_id: Optional[str] = None
    agency_code: Optional[str] = None

    @property
    def is_case(self) -> bool:
        return self.kind == ActivityKind.CASE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "action_date": self.action_date.isoformat() if self.action_date else None,
            "organization_name": self.organization_name,
            "description": self.description,
            "type_label": self.type_label,
            "fine_amount": str(self.fine_amount) if self.fine_amount is not None else None,
            "agency_link": self.agency_link,
            "regulator_id": self.regulator_id,
            "agency_code": self.agency_code,
        }


@dataclass
class ActivityPage:
    """A single page of the merged feed plus paging totals."""
    items: List[ActivityItem]
    total_count: int
    total_pages: int
    page: int
    page_size: int
    filter: ActivityFilter = ActivityFilter.ALL


# =============================================================================
# COMPLIANCE
# =============================================================================

@dataclass(frozen=True)
class ComplianceStatus:
    """
    Compliance position of a notice on a given day.

    At most one of days_remaining / days_overdue is set.
    Both are None for UNKNOWN.
    """
    status: ComplianceState
    days_remaining: Optional[int] = None
    days_overdue: Optional[int] = None

    @property
    def day_count(self) -> Optional[int]:
        """Signed day count: positive = remaining, negative = overdue."""
        if self.days_overdue is not None:
            return -self.days_overdue
        return self.days_remaining


@dataclass(frozen=True)
class TimelineIntervals:
    operative_period_days: Optional[int] = None
    total_compliance_period_days: Optional[int] = None


@dataclass(frozen=True)
class TimelineEvent:
    date: date
    label: str
    status: TimelineEventStatus
    description: str


# =============================================================================
# METRICS SNAPSHOTS
# =============================================================================

@dataclass
class AgencyStat:
    """All-time enforcement totals for one agency."""
    agency_code: str
    agency_name: str = ""
    enabled: bool = True
    case_count: int = 0
    notice_count: int = 0
    total_fines: Decimal = Decimal("0")
    case_percentage: float = 0.0
    action_percentage: float = 0.0

    @property
    def total_actions(self) -> int:
        return self.case_count + self.notice_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agency_code": self.agency_code,
            "agency_name": self.agency_name,
            "enabled": self.enabled,
            "case_count": self.case_count,
            "notice_count": self.notice_count,
            "total_actions": self.total_actions,
            "total_fines": str(self.total_fines),
            "case_percentage": self.case_percentage,
            "action_percentage": self.action_percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgencyStat":
        return cls(
            agency_code=data["agency_code"],
            agency_name=data.get("agency_name", ""),
            enabled=data.get("enabled", True),
            case_count=int(data.get("case_count", 0)),
            notice_count=int(data.get("notice_count", 0)),
            total_fines=Decimal(str(data.get("total_fines", "0"))),
            case_percentage=float(data.get("case_percentage", 0.0)),
            action_percentage=float(data.get("action_percentage", 0.0)),
        )


@dataclass
class MetricsSnapshot:
    """
    Complete aggregate view for one period.

    Always fully built in memory before MetricsStore.replace() is called,
    so a live row is never partially overwritten.
    """
    period: MetricsPeriod
    computed_at: datetime
    calculated_by: CalculatedBy
    period_label: str
    days_ago: int
    cutoff_date: date

    recent_cases_count: int = 0
    recent_notices_count: int = 0
    total_cases_count: int = 0
    total_notices_count: int = 0
    active_agencies_count: int = 0
    recent_fines_amount: Decimal = Decimal("0")
    recent_costs_amount: Decimal = Decimal("0")

    agency_stats: Dict[str, AgencyStat] = field(default_factory=dict)
    recent_activity: List[Dict[str, Any]] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        """Numeric counters only; used to compare refreshes."""
        return {
            "recent_cases_count": self.recent_cases_count,
            "recent_notices_count": self.recent_notices_count,
            "total_cases_count": self.total_cases_count,
            "total_notices_count": self.total_notices_count,
            "active_agencies_count": self.active_agencies_count,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.value,
            "period_label": self.period_label,
            "days_ago": self.days_ago,
            "cutoff_date": self.cutoff_date.isoformat(),
            "computed_at": self.computed_at.isoformat(),
            "calculated_by": self.calculated_by.value,
            **self.counts(),
            "recent_fines_amount": str(self.recent_fines_amount),
            "recent_costs_amount": str(self.recent_costs_amount),
            "agency_stats": {code: stat.to_dict() for code, stat in self.agency_stats.items()},
            "recent_activity": list(self.recent_activity),
        }


@dataclass
class PeriodResult:
    """Outcome of refreshing a single period: ok(snapshot) or error(reason)."""
    period: MetricsPeriod
    ok: bool
    snapshot: Optional[MetricsSnapshot] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, snapshot: MetricsSnapshot) -> "PeriodResult":
        return cls(period=snapshot.period, ok=True, snapshot=snapshot)

    @classmethod
    def failure(cls, period: MetricsPeriod, reason: str) -> "PeriodResult":
        return cls(period=period, ok=False, error=reason)

"""
Compliance Classifier

Derives a notice's compliance position from date arithmetic alone.

Key behaviors:
- IMMEDIATE for prohibition-style notices whose notice, operative and
  compliance dates coincide on or before today
- UNKNOWN when no compliance date is recorded (never raises)
- OVERDUE / URGENT / PENDING from compliance_date - today
- Due today counts as URGENT, not OVERDUE

Results are computed on every read and never persisted, so they cannot
go stale as "today" advances.
"""
import os
from datetime import date
from typing import Optional, List, FrozenSet

from ...models.enforcement import (
    ComplianceState,
    ComplianceStatus,
    TimelineIntervals,
    TimelineEvent,
    TimelineEventStatus,
)


# =============================================================================
# CLASSIFIER CONFIGURATION
# =============================================================================

DEFAULT_URGENT_THRESHOLD_DAYS = 7

URGENT_THRESHOLD_DAYS = int(
    os.getenv("COMPLIANCE_URGENT_DAYS", str(DEFAULT_URGENT_THRESHOLD_DAYS))
)

# Notice types whose requirements take effect the moment they are served.
# Deferred prohibitions carry a later operative date and are excluded.
IMMEDIATE_NOTICE_TYPES: FrozenSet[str] = frozenset({
    "prohibition notice",
    "immediate prohibition notice",
})


def is_immediate_type(action_type: Optional[str]) -> bool:
    """Check whether a notice type takes effect immediately."""
    if not action_type:
        return False
    return action_type.strip().lower() in IMMEDIATE_NOTICE_TYPES


def _days_between(start: Optional[date], end: Optional[date]) -> Optional[int]:
    if start is None or end is None:
        return None
    return (end - start).days


# =============================================================================
# COMPLIANCE CLASSIFIER
# =============================================================================

class ComplianceClassifier:
    """
    Pure classifier for notice compliance status.

    Accepts any object exposing notice_date, operative_date,
    compliance_date and action_type (NoticeDB rows included).
    """

    def __init__(self, urgent_threshold_days: Optional[int] = None):
        if urgent_threshold_days is None:
            urgent_threshold_days = URGENT_THRESHOLD_DAYS
        if urgent_threshold_days < 0:
            raise ValueError("urgent_threshold_days must be >= 0")
        self.urgent_threshold_days = urgent_threshold_days

    def classify(self, today: date, notice) -> ComplianceStatus:
        """
        Classify a notice relative to today.

        Returns a ComplianceStatus carrying days_remaining (delta >= 0)
        or days_overdue (delta < 0).
        """
        compliance_date = getattr(notice, "compliance_date", None)

        if self._is_immediate(today, notice):
            return ComplianceStatus(status=ComplianceState.IMMEDIATE, days_remaining=0)

        if compliance_date is None:
            return ComplianceStatus(status=ComplianceState.UNKNOWN)

        delta = (compliance_date - today).days

        if delta < 0:
            return ComplianceStatus(status=ComplianceState.OVERDUE, days_overdue=-delta)

        if delta <= self.urgent_threshold_days:
            return ComplianceStatus(status=ComplianceState.URGENT, days_remaining=delta)

        return ComplianceStatus(status=ComplianceState.PENDING, days_remaining=delta)

    def _is_immediate(self, today: date, notice) -> bool:
        if not is_immediate_type(getattr(notice, "action_type", None)):
            return False

        dates = {
            getattr(notice, "notice_date", None),
            getattr(notice, "operative_date", None),
            getattr(notice, "compliance_date", None),
        }
        if None in dates or len(dates) != 1:
            return False

        (effective_date,) = dates
        return effective_date <= today

    def timeline_intervals(self, notice) -> TimelineIntervals:
        """Days from service to operative date and to compliance date."""
        notice_date = getattr(notice, "notice_date", None)
        return TimelineIntervals(
            operative_period_days=_days_between(notice_date, getattr(notice, "operative_date", None)),
            total_compliance_period_days=_days_between(notice_date, getattr(notice, "compliance_date", None)),
        )

    def timeline_events(self, today: date, notice) -> List[TimelineEvent]:
        """Ordered milestones for a notice; missing dates are skipped."""
        regulator_id = getattr(notice, "regulator_id", None)
        issued = f"Notice {regulator_id} issued" if regulator_id else "Notice issued"
        milestones = [
            (getattr(notice, "notice_date", None), "Notice Issued", issued),
            (getattr(notice, "operative_date", None), "Operative Date", "Notice becomes legally enforceable"),
            (getattr(notice, "compliance_date", None), "Compliance Due", "All required actions must be completed"),
        ]

        events = []
        for milestone_date, label, description in milestones:
            if milestone_date is None:
                continue
            status = (
                TimelineEventStatus.COMPLETED
                if today >= milestone_date
                else TimelineEventStatus.FUTURE
            )
            events.append(TimelineEvent(
                date=milestone_date,
                label=label,
                status=status,
                description=description,
            ))

        return events


def classify(today: date, notice, urgent_threshold_days: Optional[int] = None) -> ComplianceStatus:
    """
    Convenience function to classify a single notice.

    Args:
        today: Reference date
        notice: Notice-like object
        urgent_threshold_days: Override for the urgent window

    Returns:
        ComplianceStatus
    """
    return ComplianceClassifier(urgent_threshold_days).classify(today, notice)

"""
EHS Enforcement Engine - Notice Compliance API Router

Compliance status is derived on every request from the notice's stored
dates and today's UTC date. It is never persisted.
"""
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.enforcement import ComplianceClassifier, EnforcementRepository


router = APIRouter(prefix="/notices", tags=["notices"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class TimelineEventResponse(BaseModel):
    date: str
    label: str
    status: str  # completed, future
    description: str


class ComplianceResponse(BaseModel):
    """Compliance position of a notice as of `as_of`."""
    notice_id: str
    regulator_id: str
    action_type: Optional[str] = None
    as_of: str
    status: str  # pending, urgent, overdue, immediate, unknown
    days_remaining: Optional[int] = None
    days_overdue: Optional[int] = None
    operative_period_days: Optional[int] = None
    total_compliance_period_days: Optional[int] = None
    timeline: List[TimelineEventResponse]


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("/{notice_id}/compliance", response_model=ComplianceResponse)
async def get_notice_compliance(
    notice_id: str,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """
    Classify a notice's compliance status.

    `as_of` overrides today's UTC date (useful for previews and reports).
    """
    notice = EnforcementRepository(db).get_notice(notice_id)
    if notice is None:
        raise HTTPException(status_code=404, detail="Notice not found")

    today = as_of or datetime.now(timezone.utc).date()
    classifier = ComplianceClassifier()
    status = classifier.classify(today, notice)
    intervals = classifier.timeline_intervals(notice)

    return ComplianceResponse(
        notice_id=notice.id,
        regulator_id=notice.regulator_id,
        action_type=notice.action_type,
        as_of=today.isoformat(),
        status=status.status.value,
        days_remaining=status.days_remaining,
        days_overdue=status.days_overdue,
        operative_period_days=intervals.operative_period_days,
        total_compliance_period_days=intervals.total_compliance_period_days,
        timeline=[
            TimelineEventResponse(
                date=event.date.isoformat(),
                label=event.label,
                status=event.status.value,
                description=event.description,
            )
            for event in classifier.timeline_events(today, notice)
        ],
    )

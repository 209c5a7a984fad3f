"""
EHS Enforcement Engine - Dashboard API Router

Read path for the dashboard:
- Cached metrics snapshots (computed on demand, not persisted, on a cache miss)
- Merged Case/Notice recent activity feed
- Server-sent "metrics:refreshed" events so open dashboards reload
"""
import asyncio
import json
import logging
from datetime import date
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import MetricsPeriod
from ..models.enforcement import ActivityItem, MetricsSnapshot
from ..services.enforcement import ActivityAggregator, EnforcementRepository, format_fine_amount
from ..services.metrics import (
    ChangeNotifier,
    ComputationError,
    MetricsRefreshEngine,
    METRICS_REFRESHED_TOPIC,
    PERIOD_ORDER,
    Subscription,
    get_notifier,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

EVENT_POLL_SECONDS = 1.0


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class AgencyStatResponse(BaseModel):
    agency_code: str
    agency_name: str
    enabled: bool
    case_count: int
    notice_count: int
    total_actions: int
    total_fines: str
    case_percentage: float
    action_percentage: float


class MetricsSnapshotResponse(BaseModel):
    """One period's cached (or freshly computed) metrics."""
    period: str
    period_label: str
    days_ago: int
    cutoff_date: str
    computed_at: str
    calculated_by: str
    cached: bool
    recent_cases_count: int
    recent_notices_count: int
    total_cases_count: int
    total_notices_count: int
    active_agencies_count: int
    recent_fines_amount: str
    recent_costs_amount: str
    agency_stats: Dict[str, AgencyStatResponse]
    recent_activity: List[dict]


class MetricsListResponse(BaseModel):
    metrics: List[MetricsSnapshotResponse]
    cached_periods: List[str]


class ActivityItemResponse(BaseModel):
    id: str
    kind: str
    is_case: bool
    action_date: str
    organization_name: str
    description: str
    type_label: str
    fine_amount: Optional[str] = None
    fine_display: str
    agency_link: Optional[str] = None
    regulator_id: Optional[str] = None
    agency_code: Optional[str] = None


class ActivityPageResponse(BaseModel):
    """Paginated recent activity."""
    items: List[ActivityItemResponse]
    total_count: int
    total_pages: int
    page: int
    page_size: int
    filter: str


def _computed(engine: MetricsRefreshEngine, period: MetricsPeriod) -> MetricsSnapshot:
    try:
        return engine.current_or_computed(period)
    except ComputationError as e:
        logger.error(f"On-demand metrics failed: {e}")
        raise HTTPException(status_code=503, detail=f"Metrics unavailable for {period.value}")


def _snapshot_response(snapshot: MetricsSnapshot, cached: bool) -> MetricsSnapshotResponse:
    data = snapshot.to_dict()
    return MetricsSnapshotResponse(cached=cached, **data)


def _item_response(item: ActivityItem) -> ActivityItemResponse:
    return ActivityItemResponse(
        id=item.id,
        kind=item.kind.value,
        is_case=item.is_case,
        action_date=item.action_date.isoformat(),
        organization_name=item.organization_name,
        description=item.description,
        type_label=item.type_label,
        fine_amount=str(item.fine_amount) if item.fine_amount is not None else None,
        fine_display=format_fine_amount(item.fine_amount),
        agency_link=item.agency_link,
        regulator_id=item.regulator_id,
        agency_code=item.agency_code,
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("/metrics", response_model=MetricsListResponse)
async def get_dashboard_metrics(db: Session = Depends(get_db)):
    """
    Current metrics for every period.

    Periods that have never been refreshed are computed on demand
    and returned with cached=false; nothing is written.
    """
    engine = MetricsRefreshEngine(db)
    stored = {s.period: s for s in engine.store.get_current_metrics()}

    metrics = []
    for period in PERIOD_ORDER:
        if period in stored:
            metrics.append(_snapshot_response(stored[period], cached=True))
        else:
            metrics.append(_snapshot_response(_computed(engine, period), cached=False))

    return MetricsListResponse(
        metrics=metrics,
        cached_periods=[p.value for p in PERIOD_ORDER if p in stored],
    )


@router.get("/metrics/{period}", response_model=MetricsSnapshotResponse)
async def get_period_metrics(period: str, db: Session = Depends(get_db)):
    """Metrics for a single period (week, month, year)."""
    try:
        metrics_period = MetricsPeriod(period)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown metrics period: {period}")

    engine = MetricsRefreshEngine(db)
    stored = engine.get_current(metrics_period)
    if stored is not None:
        return _snapshot_response(stored, cached=True)

    return _snapshot_response(_computed(engine, metrics_period), cached=False)


@router.get("/activity", response_model=ActivityPageResponse)
async def get_recent_activity(
    filter: str = Query("all"),
    page: str = Query("1"),
    page_size: Optional[str] = Query(None),
    agency_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Merged cases + notices, newest first.

    filter/page/page_size are taken as raw strings and never rejected:
    unknown filters fall back to "all", pages are clamped into range.
    """
    repo = EnforcementRepository(db)
    cases = repo.list_cases(agency_id=agency_id, date_from=date_from, date_to=date_to)
    notices = repo.list_notices(agency_id=agency_id, date_from=date_from, date_to=date_to)

    result = ActivityAggregator().merge(cases, notices, filter, page, page_size)

    return ActivityPageResponse(
        items=[_item_response(item) for item in result.items],
        total_count=result.total_count,
        total_pages=result.total_pages,
        page=result.page,
        page_size=result.page_size,
        filter=result.filter.value,
    )


# =============================================================================
# EVENT STREAM
# =============================================================================

def _sse(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def metrics_event_stream(
    subscription: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: float = EVENT_POLL_SECONDS,
) -> AsyncIterator[str]:
    """
    Relay refresh events as SSE frames until the client goes away
    or the subscription is closed. Always unsubscribes on exit.
    """
    try:
        yield _sse("connected", {"topic": subscription.topic})
        while True:
            for payload in subscription.drain():
                yield _sse(subscription.topic, payload)
            if subscription.closed or await is_disconnected():
                break
            await asyncio.sleep(poll_interval)
    finally:
        subscription.close()
        logger.debug(f"Dashboard event stream for '{subscription.topic}' closed")


@router.get("/events")
async def stream_dashboard_events(
    request: Request,
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """
    Server-Sent Events stream of "metrics:refreshed".

    Dashboards re-fetch /dashboard/metrics when an event arrives.
    """
    subscription = notifier.subscribe(METRICS_REFRESHED_TOPIC)
    return StreamingResponse(
        metrics_event_stream(subscription, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )

"""
EHS Enforcement Engine - Admin Router
Manual metrics refresh, gated to admin users.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models.db_models import UserDB, CalculatedBy
from ..models.enforcement import PeriodResult
from ..services.metrics import ChangeNotifier, MetricsRefreshEngine, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class PeriodRefreshResult(BaseModel):
    period: str
    status: str  # ok, error
    error: Optional[str] = None
    recent_cases_count: Optional[int] = None
    recent_notices_count: Optional[int] = None
    computed_at: Optional[str] = None


class MetricsRefreshResponse(BaseModel):
    """Per-period outcome of a manual refresh."""
    calculated_by: str
    refreshed: int
    failed: int
    results: List[PeriodRefreshResult]


def _result_item(result: PeriodResult) -> PeriodRefreshResult:
    if not result.ok:
        return PeriodRefreshResult(period=result.period.value, status="error", error=result.error)
    snapshot = result.snapshot
    return PeriodRefreshResult(
        period=result.period.value,
        status="ok",
        recent_cases_count=snapshot.recent_cases_count,
        recent_notices_count=snapshot.recent_notices_count,
        computed_at=snapshot.computed_at.isoformat(),
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/metrics/refresh", response_model=MetricsRefreshResponse)
async def refresh_metrics(
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """
    Recompute every metrics period now.

    Period failures are reported in the body (not as an HTTP error) so the
    admin sees which periods were refreshed and which kept their old snapshot.
    """
    logger.info(f"Admin {admin.id} triggered metrics refresh")

    results = MetricsRefreshEngine(db, notifier=notifier).refresh_all(CalculatedBy.ADMIN)
    items = [_result_item(r) for r in results]

    return MetricsRefreshResponse(
        calculated_by=CalculatedBy.ADMIN.value,
        refreshed=sum(1 for r in results if r.ok),
        failed=sum(1 for r in results if not r.ok),
        results=items,
    )

"""
Scheduler API Routes

Internal endpoints for system-automatic tasks.
Called by an external cron after scraping runs complete.
"""
import os

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.metrics import ChangeNotifier, get_notifier, run_scheduled_metrics_refresh


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/metrics-refresh", response_model=dict)
async def run_metrics_refresh(
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    _: bool = Depends(verify_internal_key),
):
    """
    Run the scheduled dashboard metrics refresh.

    System-automatic - snapshots are tagged calculated_by=automation.
    Period failures are logged and listed; they never fail the request.
    """
    return run_scheduled_metrics_refresh(db, notifier=notifier)

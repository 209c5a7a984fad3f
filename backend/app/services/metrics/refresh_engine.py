"""
Metrics Refresh Engine

Recomputes the cached dashboard metrics for every period and swaps each
snapshot into the MetricsStore.

Runs:
1. compute_snapshot() per period - reads only, builds the full snapshot in memory
2. MetricsStore.replace() per period - atomic single-period swap
3. One "metrics:refreshed" event after every period has been attempted

A failing period is reported as an error for that period only; the other
periods are still refreshed and the failed period's previous snapshot
stays live. compute_snapshot() never writes, so the dashboard can call it
directly on a cache miss.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.db_models import MetricsPeriod, CalculatedBy
from ...models.enforcement import AgencyStat, MetricsSnapshot, PeriodResult
from ..enforcement.activity_aggregator import ActivityAggregator, RECENT_ACTIVITY_LIMIT
from ..enforcement.repository import EnforcementRepository
from .change_notifier import ChangeNotifier, METRICS_REFRESHED_TOPIC, default_notifier
from .metrics_store import MetricsStore, PERIOD_ORDER


logger = logging.getLogger(__name__)


# =============================================================================
# PERIOD CONFIGURATION
# =============================================================================

PERIOD_CONFIG = {
    MetricsPeriod.WEEK: {
        "days": 7,
        "label": "Last 7 Days",
    },
    MetricsPeriod.MONTH: {
        "days": 30,
        "label": "Last 30 Days",
    },
    MetricsPeriod.YEAR: {
        "days": 365,
        "label": "Last 365 Days",
    },
}


class ComputationError(Exception):
    """Raised when the data queries behind one period's snapshot fail."""

    def __init__(self, period: MetricsPeriod, reason: str):
        self.period = period
        self.reason = reason
        super().__init__(f"{period.value}: {reason}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


# =============================================================================
# PURE AGGREGATION
# =============================================================================

def build_agency_stats(agencies, breakdown: Dict[str, Dict[str, Any]]) -> Dict[str, AgencyStat]:
    """
    Merge per-agency-id totals onto the agency list, keyed by agency code.
    Agencies without records get zero counts.
    """
    total_cases = sum(entry["case_count"] for entry in breakdown.values())
    total_actions = sum(
        entry["case_count"] + entry["notice_count"] for entry in breakdown.values()
    )

    stats = {}
    for agency in agencies:
        entry = breakdown.get(agency.id, {})
        case_count = entry.get("case_count", 0)
        notice_count = entry.get("notice_count", 0)
        stats[agency.code] = AgencyStat(
            agency_code=agency.code,
            agency_name=agency.name,
            enabled=bool(agency.enabled),
            case_count=case_count,
            notice_count=notice_count,
            total_fines=entry.get("total_fines", Decimal("0")),
            case_percentage=_percentage(case_count, total_cases),
            action_percentage=_percentage(case_count + notice_count, total_actions),
        )
    return stats


def compute_snapshot(
    repository: EnforcementRepository,
    period: MetricsPeriod,
    calculated_by: CalculatedBy,
    today: date,
    computed_at: datetime,
    aggregator: Optional[ActivityAggregator] = None,
) -> MetricsSnapshot:
    """
    Build a complete snapshot for one period without touching storage.

    Window is [today - days, today], inclusive at both ends.

    Raises:
        ComputationError: any underlying query failed
    """
    period = MetricsPeriod(period)
    config = PERIOD_CONFIG[period]
    cutoff_date = today - timedelta(days=config["days"])
    aggregator = aggregator or ActivityAggregator()

    try:
        recent_cases_count = repository.count_cases(date_from=cutoff_date, date_to=today)
        recent_notices_count = repository.count_notices(date_from=cutoff_date, date_to=today)
        total_cases_count = repository.count_cases()
        total_notices_count = repository.count_notices()
        recent_fines = repository.recent_fines_total(cutoff_date, today)
        recent_costs = repository.recent_costs_total(cutoff_date, today)

        agencies = repository.list_agencies()
        agency_stats = build_agency_stats(agencies, repository.agency_breakdown())

        recent_items = aggregator.recent(
            repository.list_cases(date_from=cutoff_date, date_to=today),
            repository.list_notices(date_from=cutoff_date, date_to=today),
            limit=RECENT_ACTIVITY_LIMIT,
        )
    except Exception as e:
        raise ComputationError(period, str(e)) from e

    return MetricsSnapshot(
        period=period,
        computed_at=computed_at,
        calculated_by=CalculatedBy(calculated_by),
        period_label=config["label"],
        days_ago=config["days"],
        cutoff_date=cutoff_date,
        recent_cases_count=recent_cases_count,
        recent_notices_count=recent_notices_count,
        total_cases_count=total_cases_count,
        total_notices_count=total_notices_count,
        active_agencies_count=sum(1 for agency in agencies if agency.enabled),
        recent_fines_amount=recent_fines,
        recent_costs_amount=recent_costs,
        agency_stats=agency_stats,
        recent_activity=[item.to_dict() for item in recent_items],
    )


# =============================================================================
# REFRESH ENGINE
# =============================================================================

class MetricsRefreshEngine:
    """
    Orchestrates per-period metric refreshes.

    Usage:
        engine = MetricsRefreshEngine(db, notifier=notifier)
        results = engine.refresh_all(CalculatedBy.ADMIN)
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[ChangeNotifier] = None,
        repository: Optional[EnforcementRepository] = None,
        store: Optional[MetricsStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.notifier = notifier or default_notifier
        self.repository = repository or EnforcementRepository(db)
        self.store = store or MetricsStore(db)
        self.clock = clock or _utcnow
        self.aggregator = ActivityAggregator()

    def refresh_all(self, calculated_by: Any = CalculatedBy.ADMIN) -> List[PeriodResult]:
        """
        Refresh week, month and year snapshots.

        Args:
            calculated_by: "admin" | "automation"

        Returns:
            One PeriodResult per period, in week/month/year order

        Raises:
            ValueError: calculated_by is not a known actor
        """
        actor = CalculatedBy(calculated_by)
        now = self.clock()
        today = now.date()
        logger.info(f"Starting metrics refresh (calculated_by: {actor.value})")

        results = []
        for period in PERIOD_ORDER:
            try:
                snapshot = compute_snapshot(
                    self.repository, period, actor, today, now, self.aggregator
                )
                self.store.replace(period, snapshot)
                results.append(PeriodResult.success(snapshot))
                logger.info(
                    f"Refreshed {period.value} metrics: "
                    f"{snapshot.recent_cases_count} cases, {snapshot.recent_notices_count} notices"
                )
            except Exception as e:
                self.db.rollback()
                results.append(PeriodResult.failure(period, str(e)))
                logger.error(f"Metrics refresh failed for {period.value}: {e}")

        refreshed = [r.period.value for r in results if r.ok]
        failed = [r.period.value for r in results if not r.ok]
        logger.info(f"Metrics refresh complete: {len(refreshed)} refreshed, {len(failed)} failed")

        try:
            self.notifier.publish(METRICS_REFRESHED_TOPIC, {
                "calculated_by": actor.value,
                "refreshed": refreshed,
                "failed": failed,
                "computed_at": now.isoformat(),
            })
        except Exception as e:
            # Snapshots are already committed at this point
            logger.error(f"Failed to publish {METRICS_REFRESHED_TOPIC}: {e}")

        return results

    def scheduled_refresh(self) -> List[PeriodResult]:
        """
        Automation entry point. Failures are logged, never raised,
        so a cron trigger cannot crash on a bad night.
        """
        try:
            results = self.refresh_all(CalculatedBy.AUTOMATION)
        except Exception as e:
            logger.error(f"Scheduled metrics refresh failed: {e}")
            return []

        for result in results:
            if not result.ok:
                logger.warning(f"Scheduled refresh left {result.period.value} stale: {result.error}")
        return results

    def get_current(self, period: MetricsPeriod) -> Optional[MetricsSnapshot]:
        """Stored snapshot for a period, or None before the first refresh."""
        return self.store.get(MetricsPeriod(period))

    def current_or_computed(
        self,
        period: MetricsPeriod,
        calculated_by: Any = CalculatedBy.AUTOMATION,
    ) -> MetricsSnapshot:
        """
        Stored snapshot, or an on-demand snapshot that is NOT persisted.
        Uses the same compute_snapshot() as refresh_all().
        """
        period = MetricsPeriod(period)
        stored = self.store.get(period)
        if stored is not None:
            return stored

        logger.info(f"No cached {period.value} metrics; computing on demand")
        now = self.clock()
        return compute_snapshot(
            self.repository, period, CalculatedBy(calculated_by), now.date(), now, self.aggregator
        )


def run_scheduled_metrics_refresh(db: Session, notifier: Optional[ChangeNotifier] = None) -> Dict[str, Any]:
    """
    Convenience function for the scheduler endpoint.

    Args:
        db: Database session
        notifier: Event bus (defaults to the process-wide notifier)

    Returns:
        Summary of the refresh
    """
    started_at = _utcnow()
    engine = MetricsRefreshEngine(db, notifier=notifier)
    results = engine.scheduled_refresh()
    completed_at = _utcnow()

    return {
        "task": "metrics_refresh",
        "started_at": started_at.isoformat(),
        "completed_at": completed_at.isoformat(),
        "duration_seconds": (completed_at - started_at).total_seconds(),
        "refreshed": [r.period.value for r in results if r.ok],
        "errors": [{"period": r.period.value, "error": r.error} for r in results if not r.ok],
    }

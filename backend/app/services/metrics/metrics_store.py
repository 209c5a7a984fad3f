"""
Metrics Store

Persistence for cached dashboard metrics - one live row per period,
current state only.

replace() is the ONLY write path. It swaps a period's row with a single
upsert keyed on the unique period column, under a per-period lock, so:
- concurrent replaces of the same period never interleave, in this process
  or across workers (last write wins on the period row)
- replaces of different periods proceed independently
- a failed replace rolls back and the previous row stays live
"""
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ...models.db_models import MetricsSnapshotDB, MetricsPeriod, CalculatedBy
from ...models.enforcement import AgencyStat, MetricsSnapshot


logger = logging.getLogger(__name__)

PERIOD_ORDER = [MetricsPeriod.WEEK, MetricsPeriod.MONTH, MetricsPeriod.YEAR]

# Shared by every store instance in the process
_PERIOD_LOCKS: Dict[MetricsPeriod, threading.Lock] = {
    period: threading.Lock() for period in MetricsPeriod
}


# Dialects with INSERT .. ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SnapshotStoreError(Exception):
    """Raised when a snapshot cannot be written."""
    pass


def snapshot_to_row(snapshot: MetricsSnapshot) -> MetricsSnapshotDB:
    return MetricsSnapshotDB(
        id=str(uuid4()),
        period=snapshot.period,
        period_label=snapshot.period_label,
        days_ago=snapshot.days_ago,
        cutoff_date=snapshot.cutoff_date,
        recent_cases_count=snapshot.recent_cases_count,
        recent_notices_count=snapshot.recent_notices_count,
        total_cases_count=snapshot.total_cases_count,
        total_notices_count=snapshot.total_notices_count,
        active_agencies_count=snapshot.active_agencies_count,
        recent_fines_amount=snapshot.recent_fines_amount,
        recent_costs_amount=snapshot.recent_costs_amount,
        agency_stats={code: stat.to_dict() for code, stat in snapshot.agency_stats.items()},
        recent_activity=list(snapshot.recent_activity),
        calculated_by=snapshot.calculated_by,
        computed_at=snapshot.computed_at,
    )


def row_values(row: MetricsSnapshotDB) -> Dict[str, Any]:
    return {column.name: getattr(row, column.key) for column in MetricsSnapshotDB.__table__.columns}


def build_upsert(dialect_name: str, values: Dict[str, Any]):
    """INSERT .. ON CONFLICT (period) DO UPDATE; the row id survives updates."""
    insert = _UPSERT_INSERTS[dialect_name]
    statement = insert(MetricsSnapshotDB.__table__).values(**values)
    return statement.on_conflict_do_update(
        index_elements=["period"],
        set_={name: statement.excluded[name] for name in values if name not in ("id", "period")},
    )


def row_to_snapshot(row: MetricsSnapshotDB) -> MetricsSnapshot:
    return MetricsSnapshot(
        period=MetricsPeriod(row.period),
        computed_at=row.computed_at,
        calculated_by=CalculatedBy(row.calculated_by),
        period_label=row.period_label,
        days_ago=row.days_ago,
        cutoff_date=row.cutoff_date,
        recent_cases_count=row.recent_cases_count or 0,
        recent_notices_count=row.recent_notices_count or 0,
        total_cases_count=row.total_cases_count or 0,
        total_notices_count=row.total_notices_count or 0,
        active_agencies_count=row.active_agencies_count or 0,
        recent_fines_amount=Decimal(str(row.recent_fines_amount or 0)),
        recent_costs_amount=Decimal(str(row.recent_costs_amount or 0)),
        agency_stats={
            code: AgencyStat.from_dict(data)
            for code, data in (row.agency_stats or {}).items()
        },
        recent_activity=list(row.recent_activity or []),
    )


class MetricsStore:
    """
    Reads and atomically replaces per-period metrics snapshots.

    Usage:
        store = MetricsStore(db)
        store.replace(MetricsPeriod.WEEK, snapshot)
        snapshots = store.get_current_metrics()
    """

    def __init__(self, db: Session):
        self.db = db

    def get_current_metrics(self) -> List[MetricsSnapshot]:
        """
        All live snapshots ordered week, month, year.
        Empty list when metrics have never been refreshed.
        """
        rows = self.db.query(MetricsSnapshotDB).all()
        by_period = {MetricsPeriod(row.period): row for row in rows}
        return [row_to_snapshot(by_period[p]) for p in PERIOD_ORDER if p in by_period]

    def get(self, period: MetricsPeriod) -> Optional[MetricsSnapshot]:
        row = self.db.query(MetricsSnapshotDB).filter(
            MetricsSnapshotDB.period == MetricsPeriod(period)
        ).first()
        return row_to_snapshot(row) if row else None

    def replace(self, period: MetricsPeriod, snapshot: MetricsSnapshot) -> MetricsSnapshot:
        """
        Swap the live snapshot for one period.

        Raises:
            ValueError: snapshot.period does not match period
            SnapshotStoreError: the write failed (previous row left intact)
        """
        period = MetricsPeriod(period)
        if snapshot.period != period:
            raise ValueError(
                f"Snapshot period {snapshot.period.value} does not match {period.value}"
            )

        dialect_name = self.db.get_bind().dialect.name

        with _PERIOD_LOCKS[period]:
            try:
                row = snapshot_to_row(snapshot)
                if dialect_name in _UPSERT_INSERTS:
                    self.db.execute(build_upsert(dialect_name, row_values(row)))
                else:
                    self.db.query(MetricsSnapshotDB).filter(
                        MetricsSnapshotDB.period == period
                    ).delete(synchronize_session=False)
                    self.db.flush()
                    self.db.add(row)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to replace {period.value} metrics snapshot: {e}")
                raise SnapshotStoreError(str(e)) from e

        logger.info(f"Replaced {period.value} metrics snapshot (calculated_by={snapshot.calculated_by.value})")
        return snapshot


"""
Dashboard Metrics Cache

- MetricsStore: one live snapshot per period, atomic per-period replace
- MetricsRefreshEngine: recompute + swap + notify
- ChangeNotifier: in-process pub/sub for "metrics:refreshed"
"""

from .change_notifier import (
    ChangeNotifier,
    Subscription,
    METRICS_REFRESHED_TOPIC,
    default_notifier,
    get_notifier,
)
from .metrics_store import MetricsStore, SnapshotStoreError, PERIOD_ORDER
from .refresh_engine import (
    MetricsRefreshEngine,
    ComputationError,
    PERIOD_CONFIG,
    compute_snapshot,
    run_scheduled_metrics_refresh,
)

__all__ = [
    'ChangeNotifier',
    'Subscription',
    'METRICS_REFRESHED_TOPIC',
    'default_notifier',
    'get_notifier',
    'MetricsStore',
    'SnapshotStoreError',
    'PERIOD_ORDER',
    'MetricsRefreshEngine',
    'ComputationError',
    'PERIOD_CONFIG',
    'compute_snapshot',
    'run_scheduled_metrics_refresh',
]

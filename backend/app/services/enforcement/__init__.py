"""
Enforcement Read Services

Pure derivations over case and notice records:
- ComplianceClassifier: notice compliance status from date arithmetic
- ActivityAggregator: merged, filtered, paginated Case/Notice feed
- EnforcementRepository: fixed parameterized read queries
"""

from .compliance_classifier import ComplianceClassifier, classify, is_immediate_type
from .activity_aggregator import ActivityAggregator, format_fine_amount, normalize_filter
from .repository import EnforcementRepository

__all__ = [
    'ComplianceClassifier',
    'classify',
    'is_immediate_type',
    'ActivityAggregator',
    'format_fine_amount',
    'normalize_filter',
    'EnforcementRepository',
]

"""
Tests for the notice Compliance Classifier.

Key tests:
1. pending / urgent / overdue from compliance_date - today
2. Due today is URGENT (never OVERDUE)
3. IMMEDIATE only for prohibition-style notices with coinciding dates
4. Missing compliance date -> UNKNOWN, no exception
5. Timeline intervals and milestone events tolerate missing dates
"""
import pytest
from datetime import date, timedelta

from app.models.db_models import NoticeDB
from app.models.enforcement import ComplianceState, TimelineEventStatus
from app.services.enforcement.compliance_classifier import (
    ComplianceClassifier,
    classify,
    is_immediate_type,
)


TODAY = date(2026, 10, 17)


def notice(compliance_offset=None, action_type="Improvement Notice", notice_date=None, operative_date=None, **kwargs):
    compliance_date = TODAY + timedelta(days=compliance_offset) if compliance_offset is not None else None
    return NoticeDB(
        regulator_id=kwargs.pop("regulator_id", "IN-1001"),
        action_type=action_type,
        notice_date=notice_date,
        operative_date=operative_date,
        compliance_date=compliance_date,
        **kwargs,
    )


@pytest.fixture
def classifier():
    return ComplianceClassifier(urgent_threshold_days=7)


# =============================================================================
# DAY-COUNT STATUSES
# =============================================================================

class TestDayCountStatuses:
    """Sign of compliance_date - today plus the urgent threshold decide the status."""

    def test_thirty_days_out_is_pending(self, classifier):
        status = classifier.classify(TODAY, notice(30))

        assert status.status == ComplianceState.PENDING
        assert status.days_remaining == 30
        assert status.days_overdue is None

    def test_fifteen_days_past_is_overdue(self, classifier):
        status = classifier.classify(TODAY, notice(-15))

        assert status.status == ComplianceState.OVERDUE
        assert status.days_overdue == 15
        assert status.days_remaining is None
        assert status.day_count == -15

    def test_three_days_out_is_urgent(self, classifier):
        status = classifier.classify(TODAY, notice(3))

        assert status.status == ComplianceState.URGENT
        assert status.days_remaining == 3

    def test_due_today_is_urgent_not_overdue(self, classifier):
        status = classifier.classify(TODAY, notice(0))

        assert status.status == ComplianceState.URGENT
        assert status.days_remaining == 0
        assert status.days_overdue is None

    def test_yesterday_is_overdue_by_one(self, classifier):
        status = classifier.classify(TODAY, notice(-1))

        assert status.status == ComplianceState.OVERDUE
        assert status.days_overdue == 1

    def test_threshold_boundary_is_urgent(self, classifier):
        assert classifier.classify(TODAY, notice(7)).status == ComplianceState.URGENT
        assert classifier.classify(TODAY, notice(8)).status == ComplianceState.PENDING

    def test_custom_threshold(self):
        classifier = ComplianceClassifier(urgent_threshold_days=14)

        assert classifier.classify(TODAY, notice(14)).status == ComplianceState.URGENT
        assert classifier.classify(TODAY, notice(15)).status == ComplianceState.PENDING

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            ComplianceClassifier(urgent_threshold_days=-1)

    @pytest.mark.parametrize("offset", range(-40, 41, 3))
    def test_exactly_one_status_per_delta(self, classifier, offset):
        status = classifier.classify(TODAY, notice(offset))

        if offset < 0:
            expected = ComplianceState.OVERDUE
        elif offset <= 7:
            expected = ComplianceState.URGENT
        else:
            expected = ComplianceState.PENDING
        assert status.status == expected
        assert (status.days_remaining is None) != (status.days_overdue is None)
        assert status.day_count == offset

    def test_module_level_classify(self):
        assert classify(TODAY, notice(30)).status == ComplianceState.PENDING


# =============================================================================
# IMMEDIATE & UNKNOWN
# =============================================================================

class TestImmediateAndUnknown:
    """Prohibition-style notices and missing data."""

    def test_prohibition_with_coinciding_past_dates_is_immediate(self, classifier):
        served = TODAY - timedelta(days=5)
        n = notice(-5, action_type="Prohibition Notice", notice_date=served, operative_date=served)

        status = classifier.classify(TODAY, n)

        assert status.status == ComplianceState.IMMEDIATE

    def test_prohibition_served_today_is_immediate(self, classifier):
        n = notice(0, action_type="prohibition notice", notice_date=TODAY, operative_date=TODAY)

        assert classifier.classify(TODAY, n).status == ComplianceState.IMMEDIATE

    def test_prohibition_with_future_dates_is_not_immediate(self, classifier):
        later = TODAY + timedelta(days=3)
        n = notice(3, action_type="Prohibition Notice", notice_date=later, operative_date=later)

        assert classifier.classify(TODAY, n).status == ComplianceState.URGENT

    def test_prohibition_with_differing_dates_falls_back_to_day_count(self, classifier):
        n = notice(
            -5,
            action_type="Prohibition Notice",
            notice_date=TODAY - timedelta(days=20),
            operative_date=TODAY - timedelta(days=5),
        )

        status = classifier.classify(TODAY, n)

        assert status.status == ComplianceState.OVERDUE
        assert status.days_overdue == 5

    def test_improvement_notice_never_immediate(self, classifier):
        served = TODAY - timedelta(days=5)
        n = notice(-5, action_type="Improvement Notice", notice_date=served, operative_date=served)

        assert classifier.classify(TODAY, n).status == ComplianceState.OVERDUE

    def test_deferred_prohibition_is_not_immediate_type(self):
        assert is_immediate_type("Prohibition Notice")
        assert is_immediate_type("  Immediate Prohibition Notice ")
        assert not is_immediate_type("Deferred Prohibition Notice")
        assert not is_immediate_type(None)

    def test_missing_compliance_date_is_unknown(self, classifier):
        status = classifier.classify(TODAY, notice(None))

        assert status.status == ComplianceState.UNKNOWN
        assert status.days_remaining is None
        assert status.days_overdue is None

    def test_prohibition_missing_compliance_date_is_unknown(self, classifier):
        n = notice(None, action_type="Prohibition Notice", notice_date=TODAY, operative_date=TODAY)

        assert classifier.classify(TODAY, n).status == ComplianceState.UNKNOWN


# =============================================================================
# TIMELINE
# =============================================================================

class TestTimeline:
    """Intervals and milestone events."""

    def test_intervals(self, classifier):
        n = notice(
            60,
            notice_date=TODAY,
            operative_date=TODAY + timedelta(days=21),
        )

        intervals = classifier.timeline_intervals(n)

        assert intervals.operative_period_days == 21
        assert intervals.total_compliance_period_days == 60

    def test_intervals_missing_inputs(self, classifier):
        intervals = classifier.timeline_intervals(notice(30, notice_date=None))

        assert intervals.operative_period_days is None
        assert intervals.total_compliance_period_days is None

    def test_intervals_missing_operative_only(self, classifier):
        intervals = classifier.timeline_intervals(notice(30, notice_date=TODAY))

        assert intervals.operative_period_days is None
        assert intervals.total_compliance_period_days == 30

    def test_events_in_order_with_status(self, classifier):
        n = notice(
            10,
            notice_date=TODAY - timedelta(days=30),
            operative_date=TODAY,
            regulator_id="IN-42",
        )

        events = classifier.timeline_events(TODAY, n)

        assert [e.label for e in events] == ["Notice Issued", "Operative Date", "Compliance Due"]
        assert [e.status for e in events] == [
            TimelineEventStatus.COMPLETED,
            TimelineEventStatus.COMPLETED,
            TimelineEventStatus.FUTURE,
        ]
        assert events[0].description == "Notice IN-42 issued"

    def test_events_skip_missing_dates(self, classifier):
        events = classifier.timeline_events(TODAY, notice(None, notice_date=TODAY))

        assert len(events) == 1
        assert events[0].label == "Notice Issued"

"""
Tests for the Activity Aggregator.

Key tests:
1. Case/Notice mapping (labels, fines, organization fallback)
2. Undated items dropped
3. Filter purity and totals (cases + notices == all)
4. Deterministic ordering with id tie-break
5. Page clamping and defaulting - never raises
6. Fine display formatting
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from app.models.db_models import AgencyDB, CaseDB, NoticeDB, OffenderDB
from app.models.enforcement import ActivityFilter, ActivityKind
from app.services.enforcement.activity_aggregator import (
    ActivityAggregator,
    calculate_total_pages,
    clamp_page,
    format_fine_amount,
    normalize_filter,
)


TODAY = date(2026, 10, 17)
HSE = AgencyDB(id="agency-hse", code="hse", name="Health and Safety Executive")


def case(id, days_ago, fine="25000.00", action_type=None, offender="Test Company Ltd", breaches=None):
    return CaseDB(
        id=id,
        regulator_id=f"HSE-{id}",
        action_date=TODAY - timedelta(days=days_ago) if days_ago is not None else None,
        fine_amount=Decimal(fine) if fine is not None else None,
        action_type=action_type,
        breaches=breaches,
        url=f"https://www.hse.gov.uk/prosecutions/{id}",
        offender=OffenderDB(name=offender) if offender else None,
        agency=HSE,
    )


def notice(id, days_ago, action_type="Improvement Notice", notice_days_ago=None, offender="Example Corp"):
    return NoticeDB(
        id=id,
        regulator_id=f"IN-{id}",
        action_date=TODAY - timedelta(days=days_ago) if days_ago is not None else None,
        notice_date=TODAY - timedelta(days=notice_days_ago) if notice_days_ago is not None else None,
        action_type=action_type,
        url=f"https://www.hse.gov.uk/notices/{id}",
        offender=OffenderDB(name=offender) if offender else None,
        agency=HSE,
    )


@pytest.fixture
def aggregator():
    return ActivityAggregator()


@pytest.fixture
def sample():
    cases = [case("case-1", 2, "25000.00"), case("case-2", 7, "45000.00")]
    notices = [notice("notice-1", 1), notice("notice-2", 4, "Prohibition Notice"), notice("notice-3", 6, "Crown Notice")]
    return cases, notices


# =============================================================================
# MAPPING
# =============================================================================

class TestMapping:
    """Records become ActivityItems with kind-specific payloads."""

    def test_case_item(self, aggregator):
        page = aggregator.merge([case("c1", 0, breaches="Failed to ensure safety")], [], "all")
        item = page.items[0]

        assert item.kind == ActivityKind.CASE
        assert item.is_case
        assert item.type_label == "Court Case"
        assert item.fine_amount == Decimal("25000.00")
        assert item.organization_name == "Test Company Ltd"
        assert item.description == "Failed to ensure safety"
        assert item.agency_link == "https://www.hse.gov.uk/prosecutions/c1"
        assert item.agency_code == "hse"

    def test_case_without_fine_gets_zero(self, aggregator):
        item = aggregator.merge([case("c1", 0, fine=None)], [], "cases").items[0]

        assert item.fine_amount == Decimal("0")

    def test_notice_item(self, aggregator):
        item = aggregator.merge([], [notice("n1", 0, action_type=None)], "all").items[0]

        assert item.kind == ActivityKind.NOTICE
        assert item.fine_amount is None
        assert item.type_label == "Enforcement Notice"
        assert item.description == "Enforcement notice issued"

    def test_missing_offender_is_unknown_organization(self, aggregator):
        item = aggregator.merge([case("c1", 0, offender=None)], [], "all").items[0]

        assert item.organization_name == "Unknown Organization"

    def test_notice_falls_back_to_notice_date(self, aggregator):
        item = aggregator.merge([], [notice("n1", None, notice_days_ago=3)], "all").items[0]

        assert item.action_date == TODAY - timedelta(days=3)

    def test_undated_items_dropped(self, aggregator):
        page = aggregator.merge(
            [case("c1", None), case("c2", 1)],
            [notice("n1", None), notice("n2", 2)],
            "all",
        )

        assert page.total_count == 2
        assert {i.id for i in page.items} == {"c2", "n2"}


# =============================================================================
# FILTERING & ORDERING
# =============================================================================

class TestFilteringAndOrdering:
    """Type purity, totals and determinism."""

    def test_cases_filter_scenario(self, aggregator, sample):
        cases, notices = sample

        page = aggregator.merge(cases, notices, "cases", page=1, page_size=10)

        assert len(page.items) == 2
        assert [i.id for i in page.items] == ["case-1", "case-2"]
        assert all(i.kind == ActivityKind.CASE for i in page.items)
        assert all(i.fine_amount is not None for i in page.items)
        assert page.items[0].action_date > page.items[1].action_date

    def test_notices_filter_has_no_fines(self, aggregator, sample):
        cases, notices = sample

        page = aggregator.merge(cases, notices, ActivityFilter.NOTICES)

        assert page.total_count == 3
        assert all(i.fine_amount is None for i in page.items)

    def test_filter_totals_add_up(self, aggregator, sample):
        cases, notices = sample
        cases = cases + [case("case-undated", None)]

        all_total = aggregator.merge(cases, notices, "all").total_count
        case_total = aggregator.merge(cases, notices, "cases").total_count
        notice_total = aggregator.merge(cases, notices, "notices").total_count

        assert all_total == 5
        assert case_total + notice_total == all_total

    def test_all_sorted_by_date_desc(self, aggregator, sample):
        cases, notices = sample

        page = aggregator.merge(cases, notices, "all")

        assert [i.id for i in page.items] == ["notice-1", "case-1", "notice-2", "notice-3", "case-2"]

    def test_same_day_ties_broken_by_id(self, aggregator):
        cases = [case("b-case", 1), case("d-case", 1)]
        notices = [notice("c-notice", 1), notice("a-notice", 1)]

        first = aggregator.merge(cases, notices, "all")
        second = aggregator.merge(list(reversed(cases)), list(reversed(notices)), "all")

        assert [i.id for i in first.items] == ["a-notice", "b-case", "c-notice", "d-case"]
        assert [i.id for i in second.items] == [i.id for i in first.items]

    @pytest.mark.parametrize("value", ["bogus", None, 42, "", "CASES "])
    def test_unknown_filter_defaults(self, value):
        expected = ActivityFilter.CASES if value == "CASES " else ActivityFilter.ALL
        assert normalize_filter(value) == expected

    def test_unknown_filter_returns_everything(self, aggregator, sample):
        cases, notices = sample

        page = aggregator.merge(cases, notices, "everything")

        assert page.filter == ActivityFilter.ALL
        assert page.total_count == 5


# =============================================================================
# PAGINATION
# =============================================================================

class TestPagination:
    """Pages are clamped; bad input degrades instead of raising."""

    @pytest.fixture
    def many(self):
        return [case(f"c{i:02d}", i) for i in range(23)], []

    def test_page_slices(self, aggregator, many):
        cases, notices = many

        page = aggregator.merge(cases, notices, "all", page=3, page_size=10)

        assert page.total_count == 23
        assert page.total_pages == 3
        assert page.page == 3
        assert [i.id for i in page.items] == ["c20", "c21", "c22"]

    @pytest.mark.parametrize("requested,expected", [
        (0, 1), (-4, 1), (99, 3), ("2", 2), ("abc", 1), (None, 1), (2.7, 2),
    ])
    def test_page_clamped(self, aggregator, many, requested, expected):
        cases, notices = many

        page = aggregator.merge(cases, notices, "all", page=requested, page_size=10)

        assert page.page == expected
        assert len(page.items) == (3 if expected == 3 else 10)

    def test_invalid_page_size_uses_default(self, aggregator, many):
        cases, notices = many

        page = aggregator.merge(cases, notices, "all", page=1, page_size=0)

        assert page.page_size == 10

    def test_empty_feed_has_one_page(self, aggregator):
        page = aggregator.merge([], [], "all", page=5)

        assert page.items == []
        assert page.total_count == 0
        assert page.total_pages == 1
        assert page.page == 1

    def test_helpers(self):
        assert calculate_total_pages(0, 10) == 1
        assert calculate_total_pages(10, 10) == 1
        assert calculate_total_pages(11, 10) == 2
        assert clamp_page("7", 3) == 3

    def test_recent_limit(self, aggregator, many):
        cases, notices = many

        items = aggregator.recent(cases, notices, limit=5)

        assert [i.id for i in items] == ["c00", "c01", "c02", "c03", "c04"]


# =============================================================================
# DISPLAY
# =============================================================================

class TestFormatFineAmount:

    @pytest.mark.parametrize("amount,expected", [
        (None, "N/A"),
        (Decimal("25000.00"), "£25,000"),
        (Decimal("1234.5"), "£1,234.50"),
        (120000, "£120,000"),
        ("45000", "£45,000"),
        ("not money", "not money"),
    ])
    def test_format(self, amount, expected):
        assert format_fine_amount(amount) == expected

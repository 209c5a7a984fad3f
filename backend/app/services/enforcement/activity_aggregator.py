"""
Activity Aggregator

Merges court cases and enforcement notices into one chronological,
filterable, paginated feed for the dashboard's Recent Activity table.

Inputs are already-loaded collections (see EnforcementRepository); the
merge itself performs no I/O. Malformed filter/page arguments are never
raised - they are defaulted or clamped.

Ordering: action_date descending, then item id ascending so that
same-day cases and notices always come back in the same order.
"""
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from ...models.enforcement import (
    ActivityFilter,
    ActivityItem,
    ActivityKind,
    ActivityPage,
)


DEFAULT_PAGE_SIZE = 10
RECENT_ACTIVITY_LIMIT = 100

DEFAULT_CASE_LABEL = "Court Case"
DEFAULT_NOTICE_LABEL = "Enforcement Notice"
DEFAULT_CASE_DESCRIPTION = "Court case proceeding"
DEFAULT_NOTICE_DESCRIPTION = "Enforcement notice issued"
UNKNOWN_ORGANIZATION = "Unknown Organization"


# =============================================================================
# INPUT NORMALIZATION
# =============================================================================

def normalize_filter(value: Any) -> ActivityFilter:
    """Coerce a filter argument; anything unrecognized becomes ALL."""
    if isinstance(value, ActivityFilter):
        return value
    if isinstance(value, str):
        try:
            return ActivityFilter(value.strip().lower())
        except ValueError:
            return ActivityFilter.ALL
    return ActivityFilter.ALL


def _coerce_positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def clamp_page(page: Any, total_pages: int) -> int:
    """Clamp a requested page into [1, total_pages]."""
    requested = _coerce_positive_int(page, 1)
    return max(1, min(requested, total_pages))


def calculate_total_pages(total_count: int, page_size: int) -> int:
    """ceil(total / size), never less than 1."""
    if total_count <= 0:
        return 1
    return math.ceil(total_count / page_size)


# =============================================================================
# RECORD MAPPING
# =============================================================================

def _organization_name(record) -> str:
    offender = getattr(record, "offender", None)
    name = getattr(offender, "name", None) if offender is not None else None
    if isinstance(name, str) and name:
        return name
    return UNKNOWN_ORGANIZATION


def _agency_code(record) -> Optional[str]:
    agency = getattr(record, "agency", None)
    return getattr(agency, "code", None) if agency is not None else None


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def case_to_item(case) -> ActivityItem:
    """Map a case record to a CASE feed item. Fine defaults to 0, never None."""
    return ActivityItem(
        id=str(case.id),
        kind=ActivityKind.CASE,
        action_date=getattr(case, "action_date", None),
        organization_name=_organization_name(case),
        description=getattr(case, "breaches", None) or DEFAULT_CASE_DESCRIPTION,
        type_label=getattr(case, "action_type", None) or DEFAULT_CASE_LABEL,
        fine_amount=_to_decimal(getattr(case, "fine_amount", None)),
        agency_link=getattr(case, "url", None),
        regulator_id=getattr(case, "regulator_id", None),
        agency_code=_agency_code(case),
    )


def notice_to_item(notice) -> ActivityItem:
    """Map a notice record to a NOTICE feed item. Notices never carry a fine."""
    action_date = getattr(notice, "action_date", None) or getattr(notice, "notice_date", None)
    return ActivityItem(
        id=str(notice.id),
        kind=ActivityKind.NOTICE,
        action_date=action_date,
        organization_name=_organization_name(notice),
        description=getattr(notice, "breaches", None) or DEFAULT_NOTICE_DESCRIPTION,
        type_label=getattr(notice, "action_type", None) or DEFAULT_NOTICE_LABEL,
        fine_amount=None,
        agency_link=getattr(notice, "url", None),
        regulator_id=getattr(notice, "regulator_id", None),
        agency_code=_agency_code(notice),
    )


_MAPPERS = {
    ActivityKind.CASE: case_to_item,
    ActivityKind.NOTICE: notice_to_item,
}

_FILTER_KINDS = {
    ActivityFilter.ALL: {ActivityKind.CASE, ActivityKind.NOTICE},
    ActivityFilter.CASES: {ActivityKind.CASE},
    ActivityFilter.NOTICES: {ActivityKind.NOTICE},
}


def _sort_key(item: ActivityItem):
    # Negated ordinal gives date-descending while id stays ascending
    return (-item.action_date.toordinal(), item.id)


# =============================================================================
# ACTIVITY AGGREGATOR
# =============================================================================

class ActivityAggregator:
    """
    Stateless merge of cases and notices into ActivityItems.

    Usage:
        aggregator = ActivityAggregator()
        page = aggregator.merge(cases, notices, "cases", page=2)
    """

    def __init__(self, default_page_size: int = DEFAULT_PAGE_SIZE):
        self.default_page_size = _coerce_positive_int(default_page_size, DEFAULT_PAGE_SIZE)

    def build_items(
        self,
        cases: Iterable,
        notices: Iterable,
        activity_filter: Any = ActivityFilter.ALL,
    ) -> List[ActivityItem]:
        """
        Map, drop undated, filter and sort - everything except pagination.
        """
        wanted = _FILTER_KINDS[normalize_filter(activity_filter)]

        items = []
        for kind, records in ((ActivityKind.CASE, cases or []), (ActivityKind.NOTICE, notices or [])):
            if kind not in wanted:
                continue
            mapper = _MAPPERS[kind]
            for record in records:
                item = mapper(record)
                if item.action_date is None:
                    continue
                items.append(item)

        items.sort(key=_sort_key)
        return items

    def merge(
        self,
        cases: Iterable,
        notices: Iterable,
        activity_filter: Any = ActivityFilter.ALL,
        page: Any = 1,
        page_size: Any = None,
    ) -> ActivityPage:
        """
        Merge, filter, sort and paginate.

        Args:
            cases: Case records (pre-filtered upstream by agency/date if needed)
            notices: Notice records
            activity_filter: "all" | "cases" | "notices" (unknown -> all)
            page: 1-based page number, clamped into range
            page_size: Items per page (invalid -> default)

        Returns:
            ActivityPage
        """
        normalized_filter = normalize_filter(activity_filter)
        size = _coerce_positive_int(page_size, self.default_page_size)

        items = self.build_items(cases, notices, normalized_filter)

        total_count = len(items)
        total_pages = calculate_total_pages(total_count, size)
        current_page = clamp_page(page, total_pages)

        start = (current_page - 1) * size
        return ActivityPage(
            items=items[start:start + size],
            total_count=total_count,
            total_pages=total_pages,
            page=current_page,
            page_size=size,
            filter=normalized_filter,
        )

    def recent(
        self,
        cases: Iterable,
        notices: Iterable,
        limit: int = RECENT_ACTIVITY_LIMIT,
    ) -> List[ActivityItem]:
        """Top-N newest items across both record kinds."""
        return self.build_items(cases, notices)[:max(limit, 0)]


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def format_fine_amount(amount: Any) -> str:
    """
    Format a fine for display: £25,000 or £1,234.50; N/A when absent.
    Unparseable strings are returned unchanged.
    """
    if amount is None:
        return "N/A"
    if isinstance(amount, str):
        try:
            amount = Decimal(amount)
        except InvalidOperation:
            return amount
    value = _to_decimal(amount)
    if value == value.to_integral_value():
        return f"£{int(value):,}"
    return f"£{value:,.2f}"

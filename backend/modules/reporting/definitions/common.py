# backend/modules/reporting/definitions/common.py

"""Filter declarations and stages shared by several report definitions."""

from typing import Any, Dict, List, Optional

from ..constants import ORDER_DATE_CONVERTED, ORDER_DATE_FIELD
from ..schemas.filter_schemas import (
    DateRangeValue,
    FilterOption,
    FilterSpec,
    FilterType,
    MultiSelectValue,
    SearchValue,
)
from ..schemas.report_schemas import ReportParams
from ..services.date_windows import DateWindow, build_window
from ..services.pipeline_builders import (
    build_search_clause,
    committed_status_clause,
    date_conversion_stage,
    window_clause,
)

COMMITTED_STATUS_OPTIONS = tuple(
    FilterOption(value=status, label=status.capitalize())
    for status in ("confirmed", "processing", "packed", "shipped", "delivered", "completed", "refunded")
)


def date_range_filter(key: str = "dateRange") -> FilterSpec:
    return FilterSpec(key=key, type=FilterType.DATE_RANGE, label="Date Range")


def search_filter(placeholder: str = "Search...") -> FilterSpec:
    return FilterSpec(key="search", type=FilterType.SEARCH, label="Search", placeholder=placeholder)


def order_status_filter() -> FilterSpec:
    return FilterSpec(
        key="status",
        type=FilterType.MULTI_SELECT,
        label="Order Status",
        options=COMMITTED_STATUS_OPTIONS,
    )


def report_window(params: ReportParams, key: str = "dateRange") -> DateWindow:
    """The requested date range, or the default trailing window"""
    value = params.filters.get(key)
    if isinstance(value, DateRangeValue):
        return DateWindow(start=value.start, end=value.end)
    return build_window(None, None)


def search_text(params: ReportParams) -> Optional[str]:
    value = params.filters.get("search")
    return value.text if isinstance(value, SearchValue) else None


def number_filter(params: ReportParams, key: str) -> Optional[float]:
    value = params.filters.get(key)
    return getattr(value, "value", None)


def sales_order_match(params: ReportParams, search_fields: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """
    Date conversion and match stages for reports over sales orders.

    Without an explicit status selection only committed orders are counted.
    """
    match: Dict[str, Any] = window_clause(report_window(params))
    status = params.filters.get("status")
    if isinstance(status, MultiSelectValue) and status.values:
        match["status"] = {"$in": status.sorted_values()}
    else:
        match.update(committed_status_clause())
    if search_fields:
        match.update(build_search_clause(search_fields, search_text(params)))
    return [date_conversion_stage(ORDER_DATE_FIELD, ORDER_DATE_CONVERTED), {"$match": match}]

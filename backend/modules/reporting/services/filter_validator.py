# backend/modules/reporting/services/filter_validator.py

"""
Filter parsing and validation.

Raw query values are turned into typed filter values according to the
report's filter specs. Expected validation failures are returned as
structured `FilterError` records rather than raised.
"""

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..constants import ALL_SENTINEL
from ..exceptions import ReportValidationError
from ..schemas.filter_schemas import (
    DateRangeValue,
    FilterError,
    FilterErrorCode,
    FilterSpec,
    FilterType,
    FilterValue,
    MultiSelectValue,
    NumberValue,
    SearchValue,
    SelectValue,
)
from ..schemas.report_schemas import (
    ExportFormat,
    Pagination,
    ReportDefinition,
    ReportParams,
    SortDirection,
    SortSpec,
)
from .date_windows import parse_timestamp

logger = logging.getLogger(__name__)

# Accepted key pairs for a JSON-encoded date range
_RANGE_KEYS = (("start", "end"), ("startDate", "endDate"))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple, set, frozenset)) and not value:
        return True
    return False


def _parse_date_range(spec: FilterSpec, raw: Any) -> Tuple[Optional[FilterValue], Optional[FilterError]]:
    error = FilterError(
        FilterErrorCode.INVALID_DATE_RANGE,
        spec.key,
        f"{spec.display_name} must have chronologically ordered start and end dates",
    )
    payload = raw
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except ValueError:
            return None, error
    if not isinstance(payload, Mapping):
        return None, error

    for start_key, end_key in _RANGE_KEYS:
        if payload.get(start_key) and payload.get(end_key):
            try:
                start = parse_timestamp(payload[start_key])
                end = parse_timestamp(payload[end_key], end_of_day=True)
            except (TypeError, ValueError):
                return None, error
            if start > end:
                return None, error
            return DateRangeValue(start=start, end=end), None
    return None, error


def _parse_multi_select(raw: Any) -> MultiSelectValue:
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = [str(item) for item in raw]
    return MultiSelectValue(values=frozenset(item.strip() for item in items if item.strip()))


def _parse_number(spec: FilterSpec, raw: Any) -> Tuple[Optional[FilterValue], Optional[FilterError]]:
    try:
        number = float(raw)
    except (TypeError, ValueError):
        number = None
    if number is None or not math.isfinite(number):
        return None, FilterError(
            FilterErrorCode.INVALID_NUMBER, spec.key, f"{spec.display_name} must be a number"
        )
    return NumberValue(value=number), None


def _parse_select(spec: FilterSpec, raw: Any) -> Tuple[Optional[FilterValue], Optional[FilterError]]:
    value = str(raw).strip()
    if spec.options and value != ALL_SENTINEL:
        if value not in {option.value for option in spec.options}:
            return None, FilterError(
                FilterErrorCode.INVALID_OPTION,
                spec.key,
                f"{spec.display_name} has an invalid value",
            )
    return SelectValue(value=value), None


def parse_filters(
    raw_filters: Mapping[str, Any], specs: Sequence[FilterSpec]
) -> Tuple[Dict[str, FilterValue], List[FilterError]]:
    """
    Parse raw filter input against `specs`.

    Keys not declared in `specs` are ignored. Returns the typed values
    that parsed cleanly together with every error found.
    """
    values: Dict[str, FilterValue] = {}
    errors: List[FilterError] = []

    for spec in specs:
        raw = raw_filters.get(spec.key)
        if _is_blank(raw):
            if spec.required:
                errors.append(
                    FilterError(
                        FilterErrorCode.MISSING_FILTER,
                        spec.key,
                        f"{spec.display_name} is required",
                    )
                )
            continue

        value: Optional[FilterValue] = None
        error: Optional[FilterError] = None
        if spec.type == FilterType.DATE_RANGE:
            value, error = _parse_date_range(spec, raw)
        elif spec.type == FilterType.MULTI_SELECT:
            value = _parse_multi_select(raw)
        elif spec.type == FilterType.NUMBER:
            value, error = _parse_number(spec, raw)
        elif spec.type == FilterType.SELECT:
            value, error = _parse_select(spec, raw)
        else:
            value = SearchValue(text=str(raw).strip())

        if error:
            errors.append(error)
        elif value is not None:
            values[spec.key] = value

    return values, errors


def validate_filters(raw_filters: Mapping[str, Any], specs: Sequence[FilterSpec]) -> List[FilterError]:
    """Validate raw filters; an empty list means the input is acceptable"""
    _, errors = parse_filters(raw_filters, specs)
    return errors


def _parse_int(name: str, raw: Optional[str], default: int, errors: List[Dict[str, str]]) -> int:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        errors.append({"code": "InvalidPagination", "key": name, "message": f"{name} must be an integer"})
        return default


def build_report_params(
    definition: ReportDefinition,
    query: Mapping[str, Any],
    default_page_size: int,
    max_page_size: int,
) -> ReportParams:
    """
    Build validated ReportParams from raw query parameters.

    Raises ReportValidationError listing every problem found; nothing is
    sent to the store when this fails.
    """
    filters, filter_errors = parse_filters(query, definition.filters)
    errors: List[Dict[str, str]] = [error.to_dict() for error in filter_errors]

    page = _parse_int("page", query.get("page"), 1, errors)
    page_size = _parse_int("pageSize", query.get("pageSize"), default_page_size, errors)
    if page < 1:
        errors.append({"code": "InvalidPagination", "key": "page", "message": "Page number must be greater than 0"})
    if page_size < 1 or page_size > max_page_size:
        errors.append(
            {
                "code": "InvalidPagination",
                "key": "pageSize",
                "message": f"Page size must be between 1 and {max_page_size}",
            }
        )

    sort = None
    sort_by = query.get("sortBy")
    if sort_by:
        column = definition.get_column(sort_by)
        try:
            direction = SortDirection(str(query.get("sortOrder") or "desc").lower())
        except ValueError:
            direction = SortDirection.DESC
            errors.append({"code": "InvalidSort", "key": "sortOrder", "message": "Sort order must be asc or desc"})
        if column is None or not column.sortable:
            errors.append({"code": "InvalidSort", "key": "sortBy", "message": f"Invalid sort column: {sort_by}"})
        else:
            sort = SortSpec(column=sort_by, direction=direction)

    export = None
    export_raw = query.get("export")
    if export_raw:
        try:
            export = ExportFormat(str(export_raw).lower())
        except ValueError:
            export = None
        if export is None or export not in definition.export_formats:
            errors.append(
                {"code": "InvalidExport", "key": "export", "message": f"Unsupported export format: {export_raw}"}
            )

    if errors:
        logger.info(
            f"Rejected parameters for report {definition.id}: "
            f"{sorted({error['key'] for error in errors})}"
        )
        raise ReportValidationError("Invalid filters", errors)

    return ReportParams(
        filters=filters,
        pagination=Pagination(page=page, page_size=page_size),
        sort=sort,
        export=export,
    )

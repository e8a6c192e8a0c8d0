# backend/modules/reporting/tests/test_filter_validator.py

import json
import pytest
from datetime import datetime, timezone

from modules.reporting.definitions import SALES_BY_CUSTOMER, SALES_ORDER_STATUS
from modules.reporting.exceptions import ReportValidationError
from modules.reporting.schemas.filter_schemas import (
    DateRangeValue,
    FilterErrorCode,
    FilterOption,
    FilterSpec,
    FilterType,
    MultiSelectValue,
    NumberValue,
    SearchValue,
    SelectValue,
)
from modules.reporting.schemas.report_schemas import ExportFormat, SortDirection
from modules.reporting.services.filter_validator import (
    build_report_params,
    parse_filters,
    validate_filters,
)

SPECS = (
    FilterSpec(key="dateRange", type=FilterType.DATE_RANGE, label="Date Range", required=True),
    FilterSpec(key="category", type=FilterType.MULTI_SELECT),
    FilterSpec(key="minAmount", type=FilterType.NUMBER, label="Minimum Amount"),
    FilterSpec(
        key="customerType",
        type=FilterType.SELECT,
        options=(FilterOption("b2b", "B2B"), FilterOption("b2c", "B2C")),
    ),
    FilterSpec(key="search", type=FilterType.SEARCH),
)

JULY = json.dumps({"start": "2025-07-01", "end": "2025-07-31"})


class TestParseFilters:
    """Raw query values are parsed into typed filter values"""

    def test_valid_input(self):
        values, errors = parse_filters(
            {
                "dateRange": JULY,
                "category": "Tools, Garden,Tools",
                "minAmount": "250.5",
                "customerType": "b2b",
                "search": "  acme ",
            },
            SPECS,
        )

        assert errors == []
        assert values["dateRange"] == DateRangeValue(
            start=datetime(2025, 7, 1, tzinfo=timezone.utc),
            end=datetime(2025, 7, 31, 23, 59, 59, 999000, tzinfo=timezone.utc),
        )
        assert values["category"] == MultiSelectValue(values=frozenset({"Tools", "Garden"}))
        assert values["minAmount"] == NumberValue(value=250.5)
        assert values["customerType"] == SelectValue(value="b2b")
        assert values["search"] == SearchValue(text="acme")

    def test_missing_required_filter(self):
        values, errors = parse_filters({}, SPECS)

        assert values == {}
        assert len(errors) == 1
        assert errors[0].code == FilterErrorCode.MISSING_FILTER
        assert errors[0].key == "dateRange"

    def test_blank_optional_filters_are_absent(self):
        values, errors = parse_filters(
            {"dateRange": JULY, "category": "", "minAmount": "   ", "search": ""},
            SPECS,
        )

        assert errors == []
        assert set(values) == {"dateRange"}

    def test_unknown_keys_are_ignored(self):
        values, errors = parse_filters({"dateRange": JULY, "color": "red"}, SPECS)

        assert errors == []
        assert "color" not in values

    def test_start_date_end_date_keys(self):
        raw = {"startDate": "2025-07-01T00:00:00Z", "endDate": "2025-07-15T00:00:00Z"}
        values, errors = parse_filters({"dateRange": raw}, SPECS)

        assert errors == []
        assert values["dateRange"].start == datetime(2025, 7, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "raw",
        [
            json.dumps({"start": "2025-08-01", "end": "2025-07-01"}),
            json.dumps({"start": "2025-07-01", "end": "nonsense"}),
            json.dumps({"start": "2025-07-01"}),
            "{not json",
            json.dumps(["2025-07-01", "2025-07-31"]),
        ],
    )
    def test_invalid_date_range(self, raw):
        _, errors = parse_filters({"dateRange": raw}, SPECS)

        assert [error.code for error in errors] == [FilterErrorCode.INVALID_DATE_RANGE]

    @pytest.mark.parametrize("raw", ["abc", "inf", "nan"])
    def test_invalid_number(self, raw):
        values, errors = parse_filters({"dateRange": JULY, "minAmount": raw}, SPECS)

        assert "minAmount" not in values
        assert errors[0].code == FilterErrorCode.INVALID_NUMBER
        assert errors[0].message == "Minimum Amount must be a number"

    def test_select_rejects_unknown_option(self):
        _, errors = parse_filters({"dateRange": JULY, "customerType": "wholesale"}, SPECS)

        assert errors[0].code == FilterErrorCode.INVALID_OPTION

    def test_select_accepts_all(self):
        values, errors = parse_filters({"dateRange": JULY, "customerType": "all"}, SPECS)

        assert errors == []
        assert values["customerType"] == SelectValue(value="all")

    def test_multi_select_list_input(self):
        values, _ = parse_filters({"dateRange": JULY, "category": ["a", "b", "a"]}, SPECS)

        assert values["category"].sorted_values() == ["a", "b"]

    def test_every_error_is_reported(self):
        errors = validate_filters({"minAmount": "abc", "customerType": "x"}, SPECS)

        assert {error.key for error in errors} == {"dateRange", "minAmount", "customerType"}


class TestBuildReportParams:

    def test_defaults(self):
        params = build_report_params(SALES_BY_CUSTOMER, {}, 50, 200)

        assert params.pagination.page == 1
        assert params.pagination.page_size == 50
        assert params.sort is None
        assert params.export is None

    def test_sort_and_export(self):
        params = build_report_params(
            SALES_BY_CUSTOMER,
            {"sortBy": "customerName", "sortOrder": "ASC", "export": "csv", "page": "2"},
            50,
            200,
        )

        assert params.sort.column == "customerName"
        assert params.sort.direction == SortDirection.ASC
        assert params.export == ExportFormat.CSV
        assert params.pagination.skip == 50

    @pytest.mark.parametrize(
        "query,key",
        [
            ({"pageSize": "500"}, "pageSize"),
            ({"pageSize": "0"}, "pageSize"),
            ({"page": "0"}, "page"),
            ({"page": "two"}, "page"),
            ({"sortBy": "password"}, "sortBy"),
            ({"sortBy": "totalSales", "sortOrder": "sideways"}, "sortOrder"),
            ({"export": "xml"}, "export"),
        ],
    )
    def test_rejected_parameters(self, query, key):
        with pytest.raises(ReportValidationError) as exc_info:
            build_report_params(SALES_BY_CUSTOMER, query, 50, 200)

        assert key in {error["key"] for error in exc_info.value.errors}

    def test_unsortable_column(self):
        with pytest.raises(ReportValidationError):
            build_report_params(SALES_ORDER_STATUS, {"sortBy": "count"}, 50, 200)

    def test_filter_errors_are_structured(self):
        with pytest.raises(ReportValidationError) as exc_info:
            build_report_params(SALES_BY_CUSTOMER, {"dateRange": "garbage"}, 50, 200)

        assert exc_info.value.errors[0]["code"] == "InvalidDateRange"
        assert exc_info.value.errors[0]["key"] == "dateRange"

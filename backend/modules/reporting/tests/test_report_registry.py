# backend/modules/reporting/tests/test_report_registry.py

import pytest

from modules.reporting.definitions import SALES_BY_CUSTOMER, SALES_BY_ITEM
from modules.reporting.services.report_registry import ReportRegistry


class TestReportRegistry:
    """Catalog lookup of report definitions"""

    def test_default_catalog(self, registry):
        assert len(registry) == 5
        assert registry.categories() == ["inventory", "payables", "sales"]
        assert "sales-by-customer" in registry

    def test_duplicate_ids_are_rejected(self):
        with pytest.raises(ValueError):
            ReportRegistry([SALES_BY_CUSTOMER, SALES_BY_CUSTOMER])

    def test_unknown_report(self, registry):
        assert registry.get_report("sales-by-planet") is None
        assert registry.resolve("sales", "by-planet") is None

    @pytest.mark.parametrize("report_id", ["by-customer", "sales-by-customer"])
    def test_resolve_with_or_without_prefix(self, registry, report_id):
        assert registry.resolve("sales", report_id) is SALES_BY_CUSTOMER

    def test_resolve_status_reports(self, registry):
        assert registry.resolve("sales", "order-status").id == "sales-order-status"
        assert registry.resolve("payables", "purchase-order-status").id == "payables-purchase-order-status"

    def test_resolve_requires_matching_category(self, registry):
        assert registry.resolve("inventory", "sales-by-customer") is None

    def test_reports_by_category(self, registry):
        sales = registry.reports_by_category("sales")

        assert {report.id for report in sales} == {"sales-by-customer", "sales-by-item", "sales-order-status"}
        with pytest.raises(ValueError):
            registry.reports_by_category("weather")

    def test_metadata(self):
        registry = ReportRegistry([SALES_BY_CUSTOMER, SALES_BY_ITEM])
        metadata = registry.metadata()

        assert metadata["total"] == 2
        assert metadata["categories"] == ["sales"]
        assert [entry["id"] for entry in metadata["grouped_reports"]["sales"]] == [
            "sales-by-customer",
            "sales-by-item",
        ]
        assert metadata["reports"][0]["exportFormats"] == ["excel", "csv", "pdf"]

    def test_all_reports_keeps_registration_order(self, registry):
        assert [report.id for report in registry.all_reports()] == [
            "sales-by-customer",
            "sales-by-item",
            "sales-order-status",
            "inventory-summary",
            "payables-purchase-order-status",
        ]

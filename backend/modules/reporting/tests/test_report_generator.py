# backend/modules/reporting/tests/test_report_generator.py

import pytest
from unittest.mock import MagicMock

from bson import Decimal128, ObjectId

from modules.reporting.constants import PURCHASE_ORDER_STATUSES
from modules.reporting.definitions import (
    INVENTORY_SUMMARY,
    PURCHASE_ORDER_STATUS,
    SALES_BY_CUSTOMER,
    SALES_BY_ITEM,
)
from modules.reporting.exceptions import ReportStoreError, ReportValidationError
from modules.reporting.schemas.report_schemas import (
    ExportFormat,
    Pagination,
    ReportParams,
    SortDirection,
    SortSpec,
)
from modules.reporting.services.report_generator import ReportGenerator


def _customer_row(name, total):
    return {
        "customerId": name.lower(),
        "customerName": name,
        "company": "",
        "customerType": "B2C",
        "invoiceCount": 2,
        "totalSales": total,
        "totalTax": 0,
        "salesWithTax": total,
        "averageOrderValue": total / 2,
    }


def _pipeline(store):
    return store.aggregate.call_args.args[1]


class TestGenerateReport:
    """Paginated execution of a registered report"""

    @pytest.mark.asyncio
    async def test_page_two(self, generator, store, facet_result):
        store.aggregate.return_value = facet_result([_customer_row("Acme", 100.0)], total=120)
        params = generator.parse_params(SALES_BY_CUSTOMER, {"page": "2"})

        result = await generator.generate_report(SALES_BY_CUSTOMER, params)

        facet = _pipeline(store)[-1]["$facet"]
        assert facet["rows"] == [{"$skip": 50}, {"$limit": 50}]
        assert _pipeline(store)[-2] == {"$sort": {"totalSales": -1, "customerId": 1}}
        assert result.pagination.total == 120
        assert result.pagination.total_pages == 3
        assert result.metadata["report_id"] == "sales-by-customer"
        assert result.metadata["cached"] is False

    @pytest.mark.asyncio
    async def test_page_beyond_total(self, generator, store, facet_result):
        store.aggregate.return_value = facet_result([], total=120)
        params = ReportParams(pagination=Pagination(page=9, page_size=50))

        result = await generator.generate_report(SALES_BY_CUSTOMER, params)

        assert result.results == ()
        assert result.pagination.total == 120

    @pytest.mark.asyncio
    async def test_empty_store_result(self, generator, store):
        store.aggregate.return_value = []

        result = await generator.generate_report(SALES_BY_CUSTOMER, ReportParams())

        assert result.results == ()
        assert result.pagination.total == 0
        assert result.pagination.total_pages == 0
        assert result.summary["totalRevenue"] == 0.0
        assert result.summary["avgOrderValue"] == 0.0

    @pytest.mark.asyncio
    async def test_summary_and_bson_values(self, generator, store, facet_result):
        row = _customer_row("Acme", 0)
        row["customerId"] = ObjectId("64b7f0c2a1b2c3d4e5f60718")
        row["totalSales"] = Decimal128("10.005")
        store.aggregate.return_value = facet_result(
            [row],
            summary={
                "totalCustomers": 4,
                "totalRevenue": 1000,
                "totalOrders": 8,
                "b2bCustomers": 1,
                "b2bRevenue": 250,
            },
        )

        result = await generator.generate_report(SALES_BY_CUSTOMER, ReportParams())

        assert result.results[0]["customerId"] == "64b7f0c2a1b2c3d4e5f60718"
        assert result.results[0]["totalSales"] == 10.01
        assert result.summary["avgCustomerValue"] == 250.0
        assert result.summary["avgOrderValue"] == 125.0
        assert result.summary["b2bRevenuePercentage"] == 25.0
        assert result.summary["b2cRevenuePercentage"] == 75.0
        assert result.summary["b2cCustomers"] == 3

    @pytest.mark.asyncio
    async def test_revenue_share(self, generator, store, facet_result):
        rows = [
            {"productId": "p1", "productName": "Drill", "revenue": 300.0, "cost": 100.0},
            {"productId": "p2", "productName": "Saw", "revenue": 100.0, "cost": 50.0},
        ]
        store.aggregate.return_value = facet_result(
            rows,
            total=5,
            summary={"totalProducts": 5, "totalRevenue": 1000.0, "totalCost": 400.0, "totalQuantity": 20},
        )

        result = await generator.generate_report(SALES_BY_ITEM, ReportParams())

        assert [row["revenueShare"] for row in result.results] == [30.0, 10.0]
        assert result.summary["totalProfit"] == 600.0
        assert result.summary["avgMargin"] == 60.0

    @pytest.mark.asyncio
    async def test_explicit_sort(self, generator, store, facet_result):
        store.aggregate.return_value = facet_result([])
        params = ReportParams(sort=SortSpec("customerName", SortDirection.ASC))

        await generator.generate_report(SALES_BY_CUSTOMER, params)

        assert _pipeline(store)[-2] == {"$sort": {"customerName": 1, "customerId": 1}}


class TestInventorySummaryReport:

    @pytest.mark.asyncio
    async def test_warehouse_and_search_filters(self, generator, store, facet_result):
        store.aggregate.return_value = facet_result([])
        params = generator.parse_params(
            INVENTORY_SUMMARY,
            {"warehouse": "64b7f0c2a1b2c3d4e5f60718", "search": "drill", "stockLevel": "low"},
        )

        await generator.generate_report(INVENTORY_SUMMARY, params)

        pipeline = _pipeline(store)
        match = pipeline[0]["$match"]
        assert match["$and"][0]["$or"] == [{"status": "active"}, {"isActive": True}]
        assert match["$and"][1]["$or"][0] == {"name": {"$regex": "drill", "$options": "i"}}
        assert "inventory.locations" in match
        assert {"$match": {"stockStatus": "low"}} in pipeline
        assert store.aggregate.call_args.args[0] == "products"


class TestStatusFunnelReport:

    @pytest.mark.asyncio
    async def test_purchase_funnel_is_backfilled(self, generator, store):
        store.aggregate.return_value = [
            {"status": "received", "count": 6, "totalValue": 600.0},
            {"status": "draft", "count": 2, "totalValue": 50.0},
            {"status": "pending", "count": 2, "totalValue": 150.0},
        ]

        result = await generator.generate_report(PURCHASE_ORDER_STATUS, ReportParams())

        assert [row["status"] for row in result.results] == PURCHASE_ORDER_STATUSES
        assert len(result.results) == 8
        approved = next(row for row in result.results if row["status"] == "approved")
        assert approved["count"] == 0
        assert approved["percentage"] == 0
        received = next(row for row in result.results if row["status"] == "received")
        assert received["percentage"] == 60.0
        assert result.pagination.total == 8
        assert result.summary == {"count": 10, "totalValue": 800.0}

    @pytest.mark.asyncio
    async def test_funnel_pages_are_sliced(self, generator, store):
        store.aggregate.return_value = []

        result = await generator.generate_report(
            PURCHASE_ORDER_STATUS, ReportParams(pagination=Pagination(page=2, page_size=5))
        )

        assert [row["status"] for row in result.results] == PURCHASE_ORDER_STATUSES[5:]
        assert result.pagination.total_pages == 2


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            ReportParams(pagination=Pagination(page=0)),
            ReportParams(pagination=Pagination(page_size=500)),
            ReportParams(sort=SortSpec("password")),
            ReportParams(sort=SortSpec("revenueShare")),
        ],
    )
    async def test_rejected_before_store_access(self, generator, store, params):
        with pytest.raises(ReportValidationError):
            await generator.generate_report(SALES_BY_ITEM, params)

        store.aggregate.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure(self, generator, store):
        store.aggregate.side_effect = RuntimeError("connection reset")

        with pytest.raises(ReportStoreError) as exc_info:
            await generator.generate_report(SALES_BY_CUSTOMER, ReportParams())

        assert exc_info.value.status_code == 500
        assert exc_info.value.reason == "connection reset"


def _export_store(store, rows, total=None, summary=None):
    """Answer the capped row cursor and the rows-free totals facet separately"""
    count = len(rows) if total is None else total
    totals = [{"total": [{"total": count}] if count else []}]
    if summary is not None:
        totals[0]["summary"] = [summary]

    async def aggregate(collection, pipeline):
        return rows if "$limit" in pipeline[-1] else totals

    store.aggregate.side_effect = aggregate


class TestExportReport:

    @pytest.mark.asyncio
    async def test_csv_export_of_empty_result(self, generator, store):
        _export_store(store, [])
        params = ReportParams(export=ExportFormat.CSV)

        content = await generator.export_report(SALES_BY_CUSTOMER, params)

        header = ",".join(column.label for column in SALES_BY_CUSTOMER.export_columns)
        assert content.decode("utf-8").strip() == header

    @pytest.mark.asyncio
    async def test_export_rows_bypass_facet(self, generator, store):
        _export_store(store, [_customer_row("Acme", 10.0)], total=5000)
        params = ReportParams(pagination=Pagination(page=3, page_size=10), export=ExportFormat.CSV)

        content = await generator.export_report(SALES_BY_CUSTOMER, params)

        pipelines = [call.args[1] for call in store.aggregate.call_args_list]
        rows_pipeline = next(p for p in pipelines if "$limit" in p[-1])
        totals_pipeline = next(p for p in pipelines if "$facet" in p[-1])
        assert rows_pipeline[-2:] == [{"$sort": {"totalSales": -1, "customerId": 1}}, {"$limit": 1000}]
        assert not any("$facet" in stage for stage in rows_pipeline)
        assert "rows" not in totals_pipeline[-1]["$facet"]
        assert "summary" in totals_pipeline[-1]["$facet"]
        assert content.decode("utf-8").count("\n") == 2

    @pytest.mark.asyncio
    async def test_export_summary_comes_from_totals(self, store, settings):
        export_service = MagicMock()
        export_service.export.return_value = b"ok"
        generator = ReportGenerator(store, settings, export_service)
        _export_store(
            store,
            [{"productId": "p1", "productName": "Drill", "revenue": 250.0, "cost": 100.0}],
            summary={"totalProducts": 1, "totalRevenue": 1000.0, "totalCost": 400.0, "totalQuantity": 4},
        )

        await generator.export_report(SALES_BY_ITEM, ReportParams(export=ExportFormat.EXCEL))

        _, _, _, rows, summary = export_service.export.call_args.args
        assert rows[0]["revenueShare"] == 25.0
        assert summary["totalProfit"] == 600.0

    @pytest.mark.asyncio
    async def test_funnel_export(self, generator, store):
        store.aggregate.return_value = [{"status": "received", "count": 2, "totalValue": 20.0}]

        content = await generator.export_report(PURCHASE_ORDER_STATUS, ReportParams(export=ExportFormat.CSV))

        assert content.decode("utf-8").count("\n") == len(PURCHASE_ORDER_STATUSES) + 1

    @pytest.mark.asyncio
    async def test_serialization_failure_returns_none(self, store, settings):
        export_service = MagicMock()
        export_service.export.side_effect = ValueError("cannot serialize")
        generator = ReportGenerator(store, settings, export_service)
        _export_store(store, [_customer_row("Acme", 10.0)])

        content = await generator.export_report(SALES_BY_CUSTOMER, ReportParams(export=ExportFormat.PDF))

        assert content is None

    @pytest.mark.asyncio
    async def test_export_requires_format(self, generator, store):
        with pytest.raises(ReportValidationError):
            await generator.export_report(SALES_BY_CUSTOMER, ReportParams())

        store.aggregate.assert_not_called()

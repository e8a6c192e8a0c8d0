# backend/modules/reporting/definitions/order_status.py

"""
Order status funnels for sales and purchase orders.

Both reports always return one row per lifecycle status, in process
order, including statuses with no orders in the window.
"""

from typing import Any, Dict, Optional

from ..constants import PURCHASE_ORDER_STATUSES, PURCHASE_ORDERS, SALES_ORDER_STATUSES, SALES_ORDERS
from ..schemas.filter_schemas import DynamicSource, FilterSpec, FilterType, SelectValue
from ..schemas.report_schemas import (
    BucketSpec,
    ColumnSpec,
    ColumnType,
    ReportCategory,
    ReportDefinition,
    ReportParams,
    SortDirection,
    SortSpec,
    Stages,
)
from ..services.pipeline_builders import build_status_funnel_pipeline, id_candidates, is_active_dimension
from .common import date_range_filter, report_window

FUNNEL_COLUMNS = (
    ColumnSpec("status", "Status", sortable=False),
    ColumnSpec("count", "Orders", ColumnType.NUMBER, sortable=False),
    ColumnSpec("totalValue", "Total Value", ColumnType.CURRENCY, sortable=False),
    ColumnSpec("percentage", "Share %", ColumnType.PERCENTAGE, sortable=False),
)


def _selected(params: ReportParams, key: str) -> Optional[str]:
    value = params.filters.get(key)
    if isinstance(value, SelectValue) and is_active_dimension(value.value):
        return value.value
    return None


def build_sales_status_pipeline(params: ReportParams) -> Stages:
    return build_status_funnel_pipeline(
        report_window(params), {"warehouse": _selected(params, "warehouse")}
    )


def build_purchase_status_pipeline(params: ReportParams) -> Stages:
    extra: Dict[str, Any] = {}
    supplier = _selected(params, "supplier")
    if supplier:
        extra["supplierId"] = {"$in": id_candidates(supplier)}
    return build_status_funnel_pipeline(
        report_window(params),
        {"warehouse": _selected(params, "warehouse")},
        extra_match=extra,
    )


def _warehouse_filter() -> FilterSpec:
    return FilterSpec(
        key="warehouse",
        type=FilterType.SELECT,
        label="Warehouse",
        dynamic_source=DynamicSource(type="warehouse", collection="warehouses"),
    )


SALES_ORDER_STATUS = ReportDefinition(
    id="sales-order-status",
    name="Sales Order Status",
    category=ReportCategory.SALES,
    description="Sales orders per lifecycle status, from draft to refunded",
    collection=SALES_ORDERS,
    columns=FUNNEL_COLUMNS,
    filters=(date_range_filter(), _warehouse_filter()),
    default_sort=SortSpec("status", SortDirection.ASC),
    tie_breaker="status",
    build_pipeline=build_sales_status_pipeline,
    buckets=BucketSpec(
        field="status",
        values=tuple(SALES_ORDER_STATUSES),
        metrics=("count", "totalValue"),
    ),
)

PURCHASE_ORDER_STATUS = ReportDefinition(
    id="payables-purchase-order-status",
    name="Purchase Order Status",
    category=ReportCategory.PAYABLES,
    description="Purchase orders per lifecycle status, from draft to received",
    collection=PURCHASE_ORDERS,
    columns=FUNNEL_COLUMNS,
    filters=(
        date_range_filter(),
        _warehouse_filter(),
        FilterSpec(key="supplier", type=FilterType.SELECT, label="Supplier"),
    ),
    default_sort=SortSpec("status", SortDirection.ASC),
    tie_breaker="status",
    build_pipeline=build_purchase_status_pipeline,
    buckets=BucketSpec(
        field="status",
        values=tuple(PURCHASE_ORDER_STATUSES),
        metrics=("count", "totalValue"),
    ),
)

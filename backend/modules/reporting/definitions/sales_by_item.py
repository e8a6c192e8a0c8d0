# backend/modules/reporting/definitions/sales_by_item.py

"""Product performance: best sellers, slow movers and margins."""

from typing import Any, Dict, List

from ..constants import SALES_ORDERS, SLOW_MOVER_MAX_QUANTITY, TOP_PERFORMER_LIMIT
from ..schemas.filter_schemas import (
    DynamicSource,
    FilterOption,
    FilterSpec,
    FilterType,
    SelectValue,
)
from ..schemas.report_schemas import (
    ColumnSpec,
    ColumnType,
    ReportCategory,
    ReportDefinition,
    ReportParams,
    SortSpec,
    Stages,
)
from ..services.pipeline_builders import build_search_clause, safe_ratio, selection_clause
from ..services.shaping import percent_of_total, round_money, safe_divide
from .common import (
    date_range_filter,
    number_filter,
    order_status_filter,
    sales_order_match,
    search_filter,
    search_text,
)

SEARCH_FIELDS = ["items.product.name", "items.product.sku"]


def build_pipeline(params: ReportParams) -> Stages:
    pipeline = sales_order_match(params)
    pipeline.append({"$unwind": "$items"})

    item_match: Dict[str, Any] = {}
    item_match.update(selection_clause("items.product.category", params.filters.get("category")))
    item_match.update(selection_clause("items.product.brand", params.filters.get("brand")))
    item_match.update(build_search_clause(SEARCH_FIELDS, search_text(params)))
    if item_match:
        pipeline.append({"$match": item_match})

    quantity = {"$ifNull": ["$items.quantity", 0]}
    pipeline.extend(
        [
            {
                "$group": {
                    "_id": "$items.productId",
                    "sku": {"$first": "$items.product.sku"},
                    "productName": {"$first": "$items.product.name"},
                    "category": {"$first": "$items.product.category"},
                    "brand": {"$first": "$items.product.brand"},
                    "quantitySold": {"$sum": quantity},
                    "revenue": {
                        "$sum": {
                            "$ifNull": [
                                "$items.total",
                                {"$multiply": [quantity, {"$ifNull": ["$items.unitPrice", 0]}]},
                            ]
                        }
                    },
                    "cost": {"$sum": {"$multiply": [quantity, {"$ifNull": ["$items.costPrice", 0]}]}},
                    "orders": {"$addToSet": "$_id"},
                }
            },
            {
                "$project": {
                    "_id": 0,
                    "productId": {"$toString": "$_id"},
                    "sku": 1,
                    "productName": 1,
                    "category": {"$ifNull": ["$category", "Uncategorized"]},
                    "brand": {"$ifNull": ["$brand", ""]},
                    "quantitySold": 1,
                    "revenue": 1,
                    "cost": 1,
                    "profit": {"$subtract": ["$revenue", "$cost"]},
                    "margin": safe_ratio({"$subtract": ["$revenue", "$cost"]}, "$revenue", 100),
                    "orderCount": {"$size": "$orders"},
                }
            },
        ]
    )

    min_quantity = number_filter(params, "minQuantity")
    if min_quantity and min_quantity > 0:
        pipeline.append({"$match": {"quantitySold": {"$gte": min_quantity}}})

    performance = params.filters.get("performanceType")
    if isinstance(performance, SelectValue) and performance.value == "top":
        pipeline.extend([{"$sort": {"revenue": -1, "productId": 1}}, {"$limit": TOP_PERFORMER_LIMIT}])
    elif isinstance(performance, SelectValue) and performance.value == "slow":
        pipeline.append({"$match": {"quantitySold": {"$lte": SLOW_MOVER_MAX_QUANTITY}}})
    return pipeline


def summary_pipeline() -> Stages:
    return [
        {
            "$group": {
                "_id": None,
                "totalProducts": {"$sum": 1},
                "totalRevenue": {"$sum": "$revenue"},
                "totalCost": {"$sum": "$cost"},
                "totalQuantity": {"$sum": "$quantitySold"},
            }
        }
    ]


def summarize(raw: Dict[str, Any]) -> Dict[str, float]:
    total_products = raw.get("totalProducts", 0)
    total_revenue = raw.get("totalRevenue", 0)
    total_cost = raw.get("totalCost", 0)
    total_quantity = raw.get("totalQuantity", 0)
    total_profit = total_revenue - total_cost
    return {
        "totalProducts": total_products,
        "totalRevenue": round_money(total_revenue),
        "totalCost": round_money(total_cost),
        "totalProfit": round_money(total_profit),
        "totalQuantity": total_quantity,
        "avgMargin": round_money(safe_divide(total_profit, total_revenue) * 100),
        "avgRevenuePerProduct": round_money(safe_divide(total_revenue, total_products)),
        "avgQuantityPerProduct": round_money(safe_divide(total_quantity, total_products)),
    }


def post_process(rows: List[Dict[str, Any]], summary: Dict[str, float]) -> List[Dict[str, Any]]:
    """Each product's share of revenue across the whole filtered set"""
    return percent_of_total(rows, "revenue", "revenueShare", total=summary.get("totalRevenue") or 0)


def _dynamic_multi_select(key: str, label: str) -> FilterSpec:
    return FilterSpec(
        key=key,
        type=FilterType.MULTI_SELECT,
        label=label,
        dynamic_source=DynamicSource(type=key, collection="products"),
    )


SALES_BY_ITEM = ReportDefinition(
    id="sales-by-item",
    name="Sales by Item",
    category=ReportCategory.SALES,
    description="Analyze product performance, identify best sellers and slow movers",
    collection=SALES_ORDERS,
    columns=(
        ColumnSpec("sku", "SKU"),
        ColumnSpec("productName", "Product Name"),
        ColumnSpec("category", "Category"),
        ColumnSpec("brand", "Brand"),
        ColumnSpec("quantitySold", "Qty Sold", ColumnType.NUMBER),
        ColumnSpec("revenue", "Revenue", ColumnType.CURRENCY),
        ColumnSpec("cost", "Cost", ColumnType.CURRENCY),
        ColumnSpec("profit", "Profit", ColumnType.CURRENCY),
        ColumnSpec("margin", "Margin %", ColumnType.PERCENTAGE),
        ColumnSpec("orderCount", "Orders", ColumnType.NUMBER),
        ColumnSpec("revenueShare", "Revenue %", ColumnType.PERCENTAGE, sortable=False),
    ),
    filters=(
        date_range_filter(),
        _dynamic_multi_select("category", "Category"),
        _dynamic_multi_select("brand", "Brand"),
        order_status_filter(),
        FilterSpec(
            key="minQuantity",
            type=FilterType.NUMBER,
            label="Min Quantity",
            placeholder="Minimum quantity sold",
        ),
        FilterSpec(
            key="performanceType",
            type=FilterType.SELECT,
            label="Performance",
            options=(
                FilterOption("all", "All Products"),
                FilterOption("top", "Top Performers"),
                FilterOption("slow", "Slow Movers"),
            ),
            default="all",
        ),
        search_filter("Search products..."),
    ),
    default_sort=SortSpec("revenue"),
    tie_breaker="productId",
    build_pipeline=build_pipeline,
    summary_pipeline=summary_pipeline,
    summarize=summarize,
    post_process=post_process,
)

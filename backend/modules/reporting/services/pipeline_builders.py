# backend/modules/reporting/services/pipeline_builders.py

"""
Aggregation pipeline builders.

Every builder is a pure function returning a fresh list of stage
documents. Builders that filter by date always convert the stored date
field first (dates may be stored as ISO strings) and only ever compare
range boundaries against the converted field.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from bson import ObjectId

from ..constants import (
    ALL_SENTINEL,
    DEFAULT_TOP_LIMIT,
    DIMENSION_FIELDS,
    NON_COMMITTED_STATUSES,
    ORDER_DATE_CONVERTED,
    ORDER_DATE_FIELD,
    OVERSTOCK_MULTIPLIER,
    TREND_DATE_FORMATS,
)
from ..schemas.filter_schemas import FilterValue, MultiSelectValue, SelectValue
from ..schemas.report_schemas import Pagination, SortSpec
from .date_windows import DateWindow, trend_granularity

Stage = Dict[str, Any]
DimensionFilters = Mapping[str, Optional[str]]

# Dimensions whose values are document ids, stored either as ObjectId or string
_ID_DIMENSIONS = {"warehouse", "salesRep"}

ORDER_REVENUE = "$financial.grandTotal"
ORDER_CUSTOMER = {"$ifNull": ["$customerId", "$customer.email"]}


# ---------------------------------------------------------------------------
# Shared stages and clauses
# ---------------------------------------------------------------------------


def date_conversion_stage(
    source: str = ORDER_DATE_FIELD, target: str = ORDER_DATE_CONVERTED
) -> Stage:
    """Normalize a stored date (ISO string or native date) into a real date"""
    return {
        "$addFields": {
            target: {
                "$convert": {
                    "input": f"${source}",
                    "to": "date",
                    "onError": None,
                    "onNull": None,
                }
            }
        }
    }


def window_clause(window: DateWindow, field: str = ORDER_DATE_CONVERTED) -> Dict[str, Any]:
    return {field: {"$gte": window.start, "$lte": window.end}}


def committed_status_clause() -> Dict[str, Any]:
    return {"status": {"$nin": list(NON_COMMITTED_STATUSES)}}


def id_candidates(value: str) -> List[Any]:
    """Match an id stored either as a string or as an ObjectId"""
    candidates: List[Any] = [value]
    if ObjectId.is_valid(value):
        candidates.append(ObjectId(value))
    return candidates


def is_active_dimension(value: Optional[str]) -> bool:
    return bool(value) and value != ALL_SENTINEL


def dimension_clauses(
    dimensions: Optional[DimensionFilters], exclude: Iterable[str] = ()
) -> Dict[str, Any]:
    """
    Equality matches for dimension filters.

    A dimension is only matched when a value other than "all" was passed.
    """
    clauses: Dict[str, Any] = {}
    if not dimensions:
        return clauses
    excluded = set(exclude)
    for name, field in DIMENSION_FIELDS.items():
        value = dimensions.get(name)
        if name in excluded or not is_active_dimension(value):
            continue
        if name in _ID_DIMENSIONS:
            clauses[field] = {"$in": id_candidates(value)}
        else:
            clauses[field] = value
    return clauses


def selection_clause(field: str, value: Optional[FilterValue]) -> Dict[str, Any]:
    """Match clause for a select or multi-select filter value"""
    if isinstance(value, MultiSelectValue) and value.values:
        return {field: {"$in": value.sorted_values()}}
    if isinstance(value, SelectValue) and is_active_dimension(value.value):
        return {field: value.value}
    return {}


def build_search_clause(fields: Sequence[str], text: Optional[str]) -> Dict[str, Any]:
    """Case-insensitive literal search over several fields"""
    if not text:
        return {}
    pattern = re.escape(text)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def sales_match_stage(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    committed_only: bool = True,
    exclude_dimensions: Iterable[str] = (),
    extra: Optional[Dict[str, Any]] = None,
) -> Stage:
    match: Dict[str, Any] = {}
    if committed_only:
        match.update(committed_status_clause())
    match.update(dimension_clauses(dimensions, exclude_dimensions))
    match.update(window_clause(window))
    if extra:
        match.update(extra)
    return {"$match": match}


def safe_ratio(numerator: Any, denominator: Any, multiplier: Optional[float] = None) -> Dict[str, Any]:
    """Division expression that yields 0 for a zero denominator"""
    quotient: Dict[str, Any] = {"$divide": [numerator, denominator]}
    if multiplier is not None:
        quotient = {"$multiply": [quotient, multiplier]}
    return {"$cond": [{"$eq": [denominator, 0]}, 0, quotient]}


def build_sort_stage(sort: SortSpec, tie_breaker: Optional[str] = None) -> Stage:
    """Sort stage with a deterministic secondary key"""
    order = {sort.column: sort.direction.mongo_order}
    if tie_breaker and tie_breaker != sort.column:
        order[tie_breaker] = 1
    return {"$sort": order}


def build_totals_facet(summary_stages: Optional[List[Stage]] = None) -> Stage:
    """Exact row count and optional summary, without the rows themselves"""
    facet: Dict[str, List[Stage]] = {"total": [{"$count": "total"}]}
    if summary_stages:
        facet["summary"] = summary_stages
    return {"$facet": facet}


def build_paginated_facet(
    pagination: Pagination, summary_stages: Optional[List[Stage]] = None
) -> Stage:
    """
    Final stage for paginated reports.

    One pass yields the requested page, the exact number of matching rows
    and, when given, the summary computed over all rows.
    """
    facet: Dict[str, List[Stage]] = {
        "rows": [{"$skip": pagination.skip}, {"$limit": pagination.page_size}],
    }
    facet.update(build_totals_facet(summary_stages)["$facet"])
    return {"$facet": facet}


# ---------------------------------------------------------------------------
# Sales KPIs and trend
# ---------------------------------------------------------------------------


def _kpi_branch(period: str, window: DateWindow) -> List[Stage]:
    return [
        {"$match": window_clause(window)},
        {
            "$group": {
                "_id": None,
                "revenue": {"$sum": ORDER_REVENUE},
                "orders": {"$sum": 1},
                "quantity": {"$sum": {"$sum": "$items.quantity"}},
                "customers": {"$addToSet": ORDER_CUSTOMER},
            }
        },
        {
            "$project": {
                "_id": 0,
                "period": {"$literal": period},
                "revenue": 1,
                "orders": 1,
                "quantity": 1,
                "avgOrderValue": safe_ratio("$revenue", "$orders"),
                "uniqueCustomers": {"$size": "$customers"},
                "conversionRate": safe_ratio("$orders", {"$size": "$customers"}, 100),
            }
        },
    ]


def build_sales_kpis_pipeline(
    window: DateWindow,
    comparison: Optional[DateWindow] = None,
    dimensions: Optional[DimensionFilters] = None,
) -> List[Stage]:
    """
    KPIs for the current and comparison windows in a single pass.

    The `$facet` output holds a `current` and a `comparison` branch, each
    with at most one row tagged with its `period`.
    """
    comparison = comparison or window.comparison()
    match: Dict[str, Any] = {
        **committed_status_clause(),
        **dimension_clauses(dimensions),
        "$or": [window_clause(window), window_clause(comparison)],
    }
    return [
        date_conversion_stage(),
        {"$match": match},
        {
            "$facet": {
                "current": _kpi_branch("current", window),
                "comparison": _kpi_branch("comparison", comparison),
            }
        },
    ]


def build_sales_trend_pipeline(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    granularity: Optional[str] = None,
) -> List[Stage]:
    """Revenue and order counts per calendar bucket within the window"""
    granularity = granularity or trend_granularity(window)
    date_format = TREND_DATE_FORMATS[granularity]
    return [
        date_conversion_stage(),
        sales_match_stage(window, dimensions),
        {
            "$group": {
                "_id": {"$dateToString": {"format": date_format, "date": f"${ORDER_DATE_CONVERTED}"}},
                "revenue": {"$sum": ORDER_REVENUE},
                "orders": {"$sum": 1},
                "quantity": {"$sum": {"$sum": "$items.quantity"}},
            }
        },
        {"$sort": {"_id": 1}},
        {
            "$project": {
                "_id": 0,
                "date": "$_id",
                "revenue": 1,
                "orders": 1,
                "quantity": 1,
                "avgOrderValue": safe_ratio("$revenue", "$orders"),
            }
        },
    ]


# ---------------------------------------------------------------------------
# Dimensional breakdowns
# ---------------------------------------------------------------------------


def _order_breakdown(
    window: DateWindow,
    dimensions: Optional[DimensionFilters],
    group_key: Any,
    output_key: str,
    exclude_dimensions: Iterable[str] = (),
    extra_match: Optional[Dict[str, Any]] = None,
) -> List[Stage]:
    return [
        date_conversion_stage(),
        sales_match_stage(window, dimensions, exclude_dimensions=exclude_dimensions, extra=extra_match),
        {
            "$group": {
                "_id": group_key,
                "revenue": {"$sum": ORDER_REVENUE},
                "orders": {"$sum": 1},
                "customers": {"$addToSet": ORDER_CUSTOMER},
            }
        },
        {"$sort": {"revenue": -1, "_id": 1}},
        {
            "$project": {
                "_id": 0,
                output_key: "$_id",
                "revenue": 1,
                "orders": 1,
                "customers": {"$size": "$customers"},
                "avgOrderValue": safe_ratio("$revenue", "$orders"),
            }
        },
    ]


def build_channel_performance_pipeline(
    window: DateWindow, dimensions: Optional[DimensionFilters] = None
) -> List[Stage]:
    return _order_breakdown(
        window,
        dimensions,
        {"$ifNull": ["$channel", "unknown"]},
        "channel",
        exclude_dimensions=("channel",),
    )


def build_source_distribution_pipeline(
    window: DateWindow, dimensions: Optional[DimensionFilters] = None
) -> List[Stage]:
    return _order_breakdown(window, dimensions, {"$ifNull": ["$source", "unknown"]}, "source")


def build_payment_methods_pipeline(
    window: DateWindow, dimensions: Optional[DimensionFilters] = None
) -> List[Stage]:
    pipeline = _order_breakdown(
        window, dimensions, {"$ifNull": ["$payment.method", "other"]}, "method"
    )
    pipeline[-1]["$project"]["count"] = "$orders"
    return pipeline


def build_customer_segments_pipeline(
    window: DateWindow, dimensions: Optional[DimensionFilters] = None
) -> List[Stage]:
    """Customers, revenue and orders per sales channel segment"""
    pipeline = _order_breakdown(
        window,
        dimensions,
        {"$ifNull": ["$channel", "Unknown"]},
        "segment",
        exclude_dimensions=("channel",),
    )
    project = pipeline[-1]["$project"]
    project["customerCount"] = project.pop("customers")
    project["orderCount"] = project.pop("orders")
    return pipeline


def build_sales_rep_performance_pipeline(
    window: DateWindow, dimensions: Optional[DimensionFilters] = None
) -> List[Stage]:
    return [
        date_conversion_stage(),
        sales_match_stage(
            window,
            dimensions,
            exclude_dimensions=("salesRep",),
            extra={"salesPersonId": {"$exists": True, "$ne": None}},
        ),
        {
            "$group": {
                "_id": "$salesPersonId",
                "name": {"$first": "$salesPerson.name"},
                "revenue": {"$sum": ORDER_REVENUE},
                "orders": {"$sum": 1},
                "customers": {"$addToSet": ORDER_CUSTOMER},
            }
        },
        {"$sort": {"revenue": -1, "_id": 1}},
        {
            "$project": {
                "_id": 0,
                "repId": {"$toString": "$_id"},
                "name": 1,
                "revenue": 1,
                "orders": 1,
                "avgOrderValue": safe_ratio("$revenue", "$orders"),
                "conversionRate": safe_ratio("$orders", {"$size": "$customers"}, 100),
            }
        },
    ]


def _item_breakdown(
    window: DateWindow,
    dimensions: Optional[DimensionFilters],
    group_field: str,
    output_key: str,
    limit: Optional[int],
) -> List[Stage]:
    pipeline: List[Stage] = [
        date_conversion_stage(),
        sales_match_stage(window, dimensions),
        {"$unwind": "$items"},
        {
            "$group": {
                "_id": {"$ifNull": [f"${group_field}", "Uncategorized"]},
                "revenue": {"$sum": "$items.total"},
                "quantity": {"$sum": "$items.quantity"},
                "orders": {"$addToSet": "$_id"},
            }
        },
        {"$sort": {"revenue": -1, "_id": 1}},
    ]
    if limit:
        pipeline.append({"$limit": limit})
    pipeline.append(
        {
            "$project": {
                "_id": 0,
                output_key: "$_id",
                "revenue": 1,
                "quantity": 1,
                "orderCount": {"$size": "$orders"},
            }
        }
    )
    return pipeline


def build_category_performance_pipeline(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    limit: Optional[int] = DEFAULT_TOP_LIMIT,
) -> List[Stage]:
    return _item_breakdown(window, dimensions, "items.product.category", "name", limit)


def build_brand_performance_pipeline(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    limit: Optional[int] = DEFAULT_TOP_LIMIT,
) -> List[Stage]:
    return _item_breakdown(window, dimensions, "items.product.brand", "brand", limit)


def build_top_products_pipeline(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    limit: int = DEFAULT_TOP_LIMIT,
) -> List[Stage]:
    return [
        date_conversion_stage(),
        sales_match_stage(window, dimensions),
        {"$unwind": "$items"},
        {
            "$group": {
                "_id": "$items.productId",
                "name": {"$first": "$items.product.name"},
                "sku": {"$first": "$items.product.sku"},
                "category": {"$first": "$items.product.category"},
                "unitsSold": {"$sum": "$items.quantity"},
                "revenue": {"$sum": "$items.total"},
                "totalPrice": {"$sum": {"$multiply": ["$items.quantity", "$items.unitPrice"]}},
            }
        },
        {"$sort": {"revenue": -1, "_id": 1}},
        {"$limit": limit},
        {
            "$project": {
                "_id": 0,
                "productId": {"$toString": "$_id"},
                "name": 1,
                "sku": 1,
                "category": 1,
                "unitsSold": 1,
                "revenue": 1,
                "avgPrice": safe_ratio("$totalPrice", "$unitsSold"),
            }
        },
    ]


def build_top_customers_pipeline(
    window: DateWindow,
    dimensions: Optional[DimensionFilters] = None,
    limit: int = DEFAULT_TOP_LIMIT,
) -> List[Stage]:
    return [
        date_conversion_stage(),
        sales_match_stage(window, dimensions),
        {
            "$group": {
                "_id": ORDER_CUSTOMER,
                "name": {"$first": "$customer.name"},
                "company": {"$first": "$customer.company"},
                "revenue": {"$sum": ORDER_REVENUE},
                "orders": {"$sum": 1},
            }
        },
        {"$sort": {"revenue": -1, "_id": 1}},
        {"$limit": limit},
        {
            "$project": {
                "_id": 0,
                "customerId": {"$toString": "$_id"},
                "name": 1,
                "company": {"$ifNull": ["$company", ""]},
                "revenue": 1,
                "orders": 1,
                "avgOrderValue": safe_ratio("$revenue", "$orders"),
            }
        },
    ]


# ---------------------------------------------------------------------------
# Funnels
# ---------------------------------------------------------------------------


def build_status_funnel_pipeline(
    window: Optional[DateWindow],
    dimensions: Optional[DimensionFilters] = None,
    date_field: str = ORDER_DATE_FIELD,
    value_field: str = ORDER_REVENUE,
    extra_match: Optional[Dict[str, Any]] = None,
) -> List[Stage]:
    """
    Order counts per lifecycle status.

    No status is excluded. The canonical process order and the zero rows
    for absent statuses are applied when the result is shaped.
    """
    converted = f"{date_field}Converted"
    match: Dict[str, Any] = dict(dimension_clauses(dimensions))
    if window is not None:
        match.update(window_clause(window, converted))
    if extra_match:
        match.update(extra_match)
    return [
        date_conversion_stage(date_field, converted),
        {"$match": match},
        {
            "$group": {
                "_id": {"$toLower": {"$ifNull": ["$status", "unknown"]}},
                "count": {"$sum": 1},
                "totalValue": {"$sum": {"$ifNull": [value_field, 0]}},
            }
        },
        {"$sort": {"_id": 1}},
        {"$project": {"_id": 0, "status": "$_id", "count": 1, "totalValue": 1}},
    ]


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


def active_product_clause() -> Dict[str, Any]:
    return {"$or": [{"status": "active"}, {"isActive": True}]}


def stock_quantity_expression(warehouse: Optional[str] = None) -> Dict[str, Any]:
    """Stock on hand, either in total or at a single warehouse"""
    if not is_active_dimension(warehouse):
        return {"$ifNull": ["$inventory.currentStock", 0]}
    located = {
        "$filter": {
            "input": {"$ifNull": ["$inventory.locations", []]},
            "cond": {"$eq": [{"$toString": "$$this.warehouseId"}, warehouse]},
        }
    }
    return {"$ifNull": [{"$arrayElemAt": [{"$map": {"input": located, "in": "$$this.quantity"}}, 0]}, 0]}


def stock_status_expression(quantity: str = "$stockQuantity") -> Dict[str, Any]:
    """Classify stock as out, low, high or normal against the reorder point"""
    reorder_point = {"$ifNull": ["$inventory.reorderPoint", 0]}
    return {
        "$switch": {
            "branches": [
                {"case": {"$lte": [quantity, 0]}, "then": "out"},
                {"case": {"$lte": [quantity, reorder_point]}, "then": "low"},
                {
                    "case": {"$gte": [quantity, {"$multiply": [reorder_point, OVERSTOCK_MULTIPLIER]}]},
                    "then": "high",
                },
            ],
            "default": "normal",
        }
    }


def stock_fields_stage(warehouse: Optional[str] = None) -> List[Stage]:
    return [
        {"$addFields": {"stockQuantity": stock_quantity_expression(warehouse)}},
        {
            "$addFields": {
                "stockStatus": stock_status_expression("$stockQuantity"),
                "stockValue": {
                    "$multiply": ["$stockQuantity", {"$ifNull": ["$pricing.cost", 0]}]
                },
            }
        },
    ]


def _warehouse_location_clause(warehouse: Optional[str]) -> Dict[str, Any]:
    if not is_active_dimension(warehouse):
        return {}
    return {"inventory.locations.warehouseId": {"$in": id_candidates(warehouse)}}


def build_inventory_kpis_pipeline(warehouse: Optional[str] = None) -> List[Stage]:
    return [
        {"$match": {**active_product_clause(), **_warehouse_location_clause(warehouse)}},
        *stock_fields_stage(warehouse),
        {
            "$group": {
                "_id": None,
                "totalProducts": {"$sum": 1},
                "totalUnits": {"$sum": "$stockQuantity"},
                "totalValue": {"$sum": "$stockValue"},
                "lowStockCount": {"$sum": {"$cond": [{"$eq": ["$stockStatus", "low"]}, 1, 0]}},
                "outOfStockCount": {"$sum": {"$cond": [{"$eq": ["$stockStatus", "out"]}, 1, 0]}},
                "overstockCount": {"$sum": {"$cond": [{"$eq": ["$stockStatus", "high"]}, 1, 0]}},
            }
        },
        {"$project": {"_id": 0}},
    ]


def build_warehouse_distribution_pipeline(warehouse: Optional[str] = None) -> List[Stage]:
    pipeline: List[Stage] = [
        {"$match": active_product_clause()},
        {"$unwind": "$inventory.locations"},
    ]
    location_clause = _warehouse_location_clause(warehouse)
    if location_clause:
        pipeline.append({"$match": location_clause})
    pipeline.extend(
        [
            {
                "$group": {
                    "_id": {"$toString": "$inventory.locations.warehouseId"},
                    "warehouse": {"$first": "$inventory.locations.warehouseName"},
                    "totalStock": {"$sum": "$inventory.locations.quantity"},
                    "stockValue": {
                        "$sum": {
                            "$multiply": [
                                "$inventory.locations.quantity",
                                {"$ifNull": ["$pricing.cost", 0]},
                            ]
                        }
                    },
                    "products": {"$addToSet": "$_id"},
                    "categories": {"$addToSet": "$category.name"},
                }
            },
            {"$sort": {"stockValue": -1, "_id": 1}},
            {
                "$project": {
                    "_id": 0,
                    "warehouseId": "$_id",
                    "warehouse": 1,
                    "totalStock": 1,
                    "stockValue": 1,
                    "uniqueProductCount": {"$size": "$products"},
                    "categoryCount": {"$size": "$categories"},
                }
            },
        ]
    )
    return pipeline


def build_low_stock_pipeline(warehouse: Optional[str] = None, limit: int = 20) -> List[Stage]:
    """Products below their reorder point, most critical first"""
    reorder_point = {"$ifNull": ["$inventory.reorderPoint", 0]}
    return [
        {"$match": {**active_product_clause(), **_warehouse_location_clause(warehouse)}},
        {"$addFields": {"stockQuantity": stock_quantity_expression(warehouse)}},
        {
            "$match": {
                "$expr": {
                    "$and": [
                        {"$gt": [reorder_point, 0]},
                        {"$lt": ["$stockQuantity", reorder_point]},
                    ]
                }
            }
        },
        {
            "$addFields": {
                "stockPercentage": safe_ratio("$stockQuantity", reorder_point, 100),
                "stockDeficit": {"$subtract": [reorder_point, "$stockQuantity"]},
            }
        },
        {"$sort": {"stockPercentage": 1, "sku": 1}},
        {"$limit": limit},
        {
            "$project": {
                "_id": 0,
                "productId": {"$toString": "$_id"},
                "name": 1,
                "sku": 1,
                "category": "$category.name",
                "currentStock": "$stockQuantity",
                "reorderPoint": reorder_point,
                "stockPercentage": 1,
                "stockDeficit": 1,
                "value": {"$multiply": ["$stockDeficit", {"$ifNull": ["$pricing.cost", 0]}]},
            }
        },
    ]

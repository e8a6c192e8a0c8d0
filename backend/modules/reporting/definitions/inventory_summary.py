# backend/modules/reporting/definitions/inventory_summary.py

"""Current stock levels with valuation by product, optionally per warehouse."""

from typing import Any, Dict

from ..constants import PRODUCTS
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
from ..services.pipeline_builders import (
    active_product_clause,
    build_search_clause,
    id_candidates,
    is_active_dimension,
    selection_clause,
    stock_fields_stage,
)
from ..services.shaping import round_money
from .common import number_filter, search_filter, search_text

SEARCH_FIELDS = ["name", "sku", "description"]


def _selected_warehouse(params: ReportParams):
    value = params.filters.get("warehouse")
    if isinstance(value, SelectValue) and is_active_dimension(value.value):
        return value.value
    return None


def build_pipeline(params: ReportParams) -> Stages:
    warehouse = _selected_warehouse(params)
    match: Dict[str, Any] = dict(active_product_clause())
    match.update(selection_clause("category.name", params.filters.get("category")))
    match.update(selection_clause("brand", params.filters.get("brand")))
    search = build_search_clause(SEARCH_FIELDS, search_text(params))
    if search:
        match = {"$and": [match, search]}
    if warehouse:
        match["inventory.locations"] = {
            "$elemMatch": {"warehouseId": {"$in": id_candidates(warehouse)}, "quantity": {"$gt": 0}}
        }

    pipeline: Stages = [{"$match": match}, *stock_fields_stage(warehouse)]

    stock_level = params.filters.get("stockLevel")
    if isinstance(stock_level, SelectValue) and is_active_dimension(stock_level.value):
        pipeline.append({"$match": {"stockStatus": stock_level.value}})

    min_value = number_filter(params, "minValue")
    if min_value and min_value > 0:
        pipeline.append({"$match": {"stockValue": {"$gte": min_value}}})

    reserved = {"$ifNull": ["$inventory.reservedStock", 0]}
    pipeline.append(
        {
            "$project": {
                "_id": 0,
                "productId": {"$toString": "$_id"},
                "sku": 1,
                "name": 1,
                "category": {"$ifNull": ["$category.name", "Uncategorized"]},
                "brand": {"$ifNull": ["$brand", ""]},
                "currentStock": "$stockQuantity",
                "reservedStock": reserved,
                "availableStock": {"$max": [{"$subtract": ["$stockQuantity", reserved]}, 0]},
                "unitCost": {"$ifNull": ["$pricing.cost", 0]},
                "stockValue": 1,
                "stockStatus": 1,
            }
        }
    )
    return pipeline


def summary_pipeline() -> Stages:
    def count_status(status):
        return {"$sum": {"$cond": [{"$eq": ["$stockStatus", status]}, 1, 0]}}

    return [
        {
            "$group": {
                "_id": None,
                "totalProducts": {"$sum": 1},
                "totalUnits": {"$sum": "$currentStock"},
                "totalValue": {"$sum": "$stockValue"},
                "lowStockCount": count_status("low"),
                "outOfStockCount": count_status("out"),
                "overstockCount": count_status("high"),
            }
        }
    ]


def summarize(raw: Dict[str, Any]) -> Dict[str, float]:
    return {
        "totalProducts": raw.get("totalProducts", 0),
        "totalUnits": raw.get("totalUnits", 0),
        "totalValue": round_money(raw.get("totalValue")),
        "lowStockCount": raw.get("lowStockCount", 0),
        "outOfStockCount": raw.get("outOfStockCount", 0),
        "overstockCount": raw.get("overstockCount", 0),
    }


INVENTORY_SUMMARY = ReportDefinition(
    id="inventory-summary",
    name="Inventory Summary",
    category=ReportCategory.INVENTORY,
    description="Current stock levels overview with valuation by product and warehouse",
    collection=PRODUCTS,
    columns=(
        ColumnSpec("sku", "SKU"),
        ColumnSpec("name", "Product Name"),
        ColumnSpec("category", "Category"),
        ColumnSpec("brand", "Brand"),
        ColumnSpec("currentStock", "Current Stock", ColumnType.NUMBER),
        ColumnSpec("availableStock", "Available", ColumnType.NUMBER),
        ColumnSpec("reservedStock", "Reserved", ColumnType.NUMBER),
        ColumnSpec("unitCost", "Unit Cost", ColumnType.CURRENCY),
        ColumnSpec("stockValue", "Stock Value", ColumnType.CURRENCY),
        ColumnSpec("stockStatus", "Status"),
    ),
    filters=(
        FilterSpec(
            key="category",
            type=FilterType.MULTI_SELECT,
            label="Category",
            dynamic_source=DynamicSource(type="category", collection="products"),
        ),
        FilterSpec(
            key="brand",
            type=FilterType.MULTI_SELECT,
            label="Brand",
            dynamic_source=DynamicSource(type="brand", collection="products"),
        ),
        FilterSpec(
            key="stockLevel",
            type=FilterType.SELECT,
            label="Stock Level",
            options=(
                FilterOption("all", "All Levels"),
                FilterOption("low", "Low Stock"),
                FilterOption("normal", "Normal Stock"),
                FilterOption("high", "Overstocked"),
                FilterOption("out", "Out of Stock"),
            ),
            default="all",
        ),
        FilterSpec(
            key="warehouse",
            type=FilterType.SELECT,
            label="Warehouse",
            dynamic_source=DynamicSource(type="warehouse", collection="warehouses"),
        ),
        FilterSpec(key="minValue", type=FilterType.NUMBER, label="Min Stock Value", placeholder="Minimum value"),
        search_filter("Search products..."),
    ),
    default_sort=SortSpec("stockValue"),
    tie_breaker="productId",
    build_pipeline=build_pipeline,
    summary_pipeline=summary_pipeline,
    summarize=summarize,
)

# backend/modules/reporting/definitions/sales_by_customer.py

"""Revenue by customer, with B2B / B2C segmentation in the summary."""

from typing import Any, Dict

from ..constants import SALES_ORDERS
from ..schemas.filter_schemas import FilterOption, FilterSpec, FilterType, SelectValue
from ..schemas.report_schemas import (
    ColumnSpec,
    ColumnType,
    ReportCategory,
    ReportDefinition,
    ReportParams,
    SortSpec,
    Stages,
)
from ..services.pipeline_builders import safe_ratio
from ..services.shaping import round_money, safe_divide
from .common import date_range_filter, number_filter, order_status_filter, sales_order_match, search_filter

SEARCH_FIELDS = ["customer.name", "customer.company", "customer.email"]


def build_pipeline(params: ReportParams) -> Stages:
    pipeline = sales_order_match(params, SEARCH_FIELDS)

    customer_type = params.filters.get("customerType")
    if isinstance(customer_type, SelectValue) and customer_type.value == "b2b":
        pipeline.append({"$match": {"customer.isB2B": True}})
    elif isinstance(customer_type, SelectValue) and customer_type.value == "b2c":
        pipeline.append({"$match": {"customer.isB2B": {"$ne": True}}})

    pipeline.extend(
        [
            {
                "$group": {
                    "_id": {"$ifNull": ["$customerId", "$customer.email"]},
                    "customerName": {"$first": "$customer.name"},
                    "company": {"$first": "$customer.company"},
                    "isB2B": {"$first": "$customer.isB2B"},
                    "invoiceCount": {"$sum": 1},
                    "totalSales": {"$sum": "$financial.subtotal"},
                    "totalTax": {"$sum": "$financial.totalTax"},
                    "salesWithTax": {"$sum": "$financial.grandTotal"},
                }
            },
            {
                "$project": {
                    "_id": 0,
                    "customerId": {"$toString": "$_id"},
                    "customerName": 1,
                    "company": {"$ifNull": ["$company", ""]},
                    "customerType": {"$cond": [{"$eq": ["$isB2B", True]}, "B2B", "B2C"]},
                    "invoiceCount": 1,
                    "totalSales": 1,
                    "totalTax": 1,
                    "salesWithTax": 1,
                    "averageOrderValue": safe_ratio("$salesWithTax", "$invoiceCount"),
                }
            },
        ]
    )

    min_amount = number_filter(params, "minAmount")
    if min_amount and min_amount > 0:
        pipeline.append({"$match": {"totalSales": {"$gte": min_amount}}})
    return pipeline


def summary_pipeline() -> Stages:
    is_b2b = {"$eq": ["$customerType", "B2B"]}
    return [
        {
            "$group": {
                "_id": None,
                "totalCustomers": {"$sum": 1},
                "totalRevenue": {"$sum": "$salesWithTax"},
                "totalOrders": {"$sum": "$invoiceCount"},
                "b2bCustomers": {"$sum": {"$cond": [is_b2b, 1, 0]}},
                "b2bRevenue": {"$sum": {"$cond": [is_b2b, "$salesWithTax", 0]}},
            }
        }
    ]


def summarize(raw: Dict[str, Any]) -> Dict[str, float]:
    total_customers = raw.get("totalCustomers", 0)
    total_revenue = raw.get("totalRevenue", 0)
    total_orders = raw.get("totalOrders", 0)
    b2b_customers = raw.get("b2bCustomers", 0)
    b2b_revenue = raw.get("b2bRevenue", 0)
    b2c_revenue = total_revenue - b2b_revenue
    return {
        "totalCustomers": total_customers,
        "totalRevenue": round_money(total_revenue),
        "totalOrders": total_orders,
        "avgCustomerValue": round_money(safe_divide(total_revenue, total_customers)),
        "avgOrderValue": round_money(safe_divide(total_revenue, total_orders)),
        "b2bCustomers": b2b_customers,
        "b2cCustomers": total_customers - b2b_customers,
        "b2bRevenue": round_money(b2b_revenue),
        "b2cRevenue": round_money(b2c_revenue),
        "b2bRevenuePercentage": round_money(safe_divide(b2b_revenue, total_revenue) * 100),
        "b2cRevenuePercentage": round_money(safe_divide(b2c_revenue, total_revenue) * 100),
    }


SALES_BY_CUSTOMER = ReportDefinition(
    id="sales-by-customer",
    name="Sales by Customer",
    category=ReportCategory.SALES,
    description="Analyze revenue by customer, identify top customers and customer segments",
    collection=SALES_ORDERS,
    columns=(
        ColumnSpec("customerName", "Customer Name"),
        ColumnSpec("company", "Company"),
        ColumnSpec("customerType", "Type"),
        ColumnSpec("invoiceCount", "Orders", ColumnType.NUMBER),
        ColumnSpec("totalSales", "Sales", ColumnType.CURRENCY),
        ColumnSpec("totalTax", "Tax", ColumnType.CURRENCY),
        ColumnSpec("salesWithTax", "Total", ColumnType.CURRENCY),
        ColumnSpec("averageOrderValue", "Avg Order", ColumnType.CURRENCY),
    ),
    filters=(
        date_range_filter(),
        FilterSpec(
            key="customerType",
            type=FilterType.SELECT,
            label="Customer Type",
            options=(
                FilterOption("all", "All Customers"),
                FilterOption("b2b", "B2B Only"),
                FilterOption("b2c", "B2C Only"),
            ),
            default="all",
        ),
        order_status_filter(),
        FilterSpec(key="minAmount", type=FilterType.NUMBER, label="Minimum Sales", placeholder="Min amount"),
        search_filter("Search customer..."),
    ),
    default_sort=SortSpec("totalSales"),
    tie_breaker="customerId",
    build_pipeline=build_pipeline,
    summary_pipeline=summary_pipeline,
    summarize=summarize,
)

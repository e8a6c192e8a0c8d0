# backend/modules/reporting/services/sales_analytics_service.py

"""
Sales analytics view.

Combines KPIs with period-over-period changes, the sales trend, the
dimensional breakdowns, top products and the order status funnel.
"""

import logging
from typing import Any, Dict, List, Optional

from ..constants import PAYMENT_METHODS, SALES_ORDER_STATUSES, SALES_ORDERS
from .analytics_base import AnalyticsService
from .date_windows import DateWindow
from .pipeline_builders import (
    DimensionFilters,
    build_channel_performance_pipeline,
    build_payment_methods_pipeline,
    build_sales_kpis_pipeline,
    build_sales_rep_performance_pipeline,
    build_sales_trend_pipeline,
    build_source_distribution_pipeline,
    build_status_funnel_pipeline,
    build_top_products_pipeline,
)
from .shaping import (
    MetricComparison,
    backfill_buckets,
    order_by_sequence,
    percent_of_total,
    round_fields,
)

logger = logging.getLogger(__name__)

KPI_METRICS = ("revenue", "orders", "avgOrderValue", "conversionRate")
COUNT_METRICS = ("orders", "totalOrders")
MONEY_FIELDS = ("revenue", "avgOrderValue", "avgPrice", "totalValue", "conversionRate")


def split_kpi_periods(kpi_result: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Current and comparison KPI rows from the faceted KPI output"""
    facet = kpi_result[0] if kpi_result else {}
    periods = {}
    for period in ("current", "comparison"):
        rows = facet.get(period) or []
        periods[period] = rows[0] if rows else {}
    return periods


def kpi_comparisons(kpi_result: List[Dict[str, Any]]) -> Dict[str, MetricComparison]:
    periods = split_kpi_periods(kpi_result)
    return {
        metric: MetricComparison.build(
            periods["current"].get(metric, 0),
            periods["comparison"].get(metric, 0),
            count=metric in COUNT_METRICS,
        )
        for metric in KPI_METRICS
    }


def round_rows(rows: List[Dict[str, Any]], fields=MONEY_FIELDS) -> List[Dict[str, Any]]:
    return [round_fields(row, fields) for row in rows]


class SalesAnalyticsService(AnalyticsService):
    """Builds the sales analytics view"""

    view_name = "sales"

    async def get_sales_analytics(
        self, window: DateWindow, dimensions: Optional[DimensionFilters] = None
    ) -> Dict[str, Any]:
        comparison = window.comparison()
        results = await self.run_pipelines(
            {
                "kpis": (SALES_ORDERS, build_sales_kpis_pipeline(window, comparison, dimensions)),
                "trend": (SALES_ORDERS, build_sales_trend_pipeline(window, dimensions)),
                "channels": (SALES_ORDERS, build_channel_performance_pipeline(window, dimensions)),
                "sources": (SALES_ORDERS, build_source_distribution_pipeline(window, dimensions)),
                "payments": (SALES_ORDERS, build_payment_methods_pipeline(window, dimensions)),
                "products": (SALES_ORDERS, build_top_products_pipeline(window, dimensions)),
                "reps": (SALES_ORDERS, build_sales_rep_performance_pipeline(window, dimensions)),
                "funnel": (SALES_ORDERS, build_status_funnel_pipeline(window, dimensions)),
            }
        )

        comparisons = kpi_comparisons(results["kpis"])
        metrics: Dict[str, float] = {}
        for metric, values in comparisons.items():
            metrics[metric] = values.current
            metrics[f"{metric}Change"] = values.percent_change

        payment_methods = backfill_buckets(
            results["payments"],
            "method",
            PAYMENT_METHODS,
            {"revenue": 0, "orders": 0, "count": 0, "customers": 0, "avgOrderValue": 0},
        )
        funnel = backfill_buckets(results["funnel"], "status", SALES_ORDER_STATUSES, {"count": 0, "totalValue": 0})

        return {
            "metrics": metrics,
            "salesTrend": round_rows(results["trend"]),
            "channelPerformance": round_rows(percent_of_total(results["channels"], "revenue")),
            "sourceDistribution": round_rows(percent_of_total(results["sources"], "revenue")),
            "paymentMethods": round_rows(
                order_by_sequence(percent_of_total(payment_methods, "revenue"), "method", PAYMENT_METHODS)
            ),
            "topProducts": round_rows(results["products"]),
            "salesRepPerformance": round_rows(results["reps"]),
            "orderStatusFunnel": round_rows(
                order_by_sequence(percent_of_total(funnel, "count"), "status", SALES_ORDER_STATUSES)
            ),
        }

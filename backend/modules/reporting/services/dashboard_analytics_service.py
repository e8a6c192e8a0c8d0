# backend/modules/reporting/services/dashboard_analytics_service.py

import logging
from typing import Any, Dict, List, Optional

from ..constants import DASHBOARD_TOP_CATEGORIES, PRODUCTS, SALES_ORDERS
from .analytics_base import AnalyticsService
from .date_windows import DateWindow
from .pipeline_builders import (
    build_category_performance_pipeline,
    build_customer_segments_pipeline,
    build_inventory_kpis_pipeline,
    build_sales_kpis_pipeline,
    build_sales_trend_pipeline,
)
from .sales_analytics_service import COUNT_METRICS, round_rows, split_kpi_periods
from .shaping import MetricComparison, percent_of_total, round_money, safe_divide

logger = logging.getLogger(__name__)

# Quarterly turnover estimate from the revenue of the window
TURNOVER_PERIODS_PER_YEAR = 4


def _derived_kpis(kpis: Dict[str, Any], inventory_value: float) -> Dict[str, float]:
    revenue = kpis.get("revenue", 0)
    customers = kpis.get("uniqueCustomers", 0)
    return {
        "totalRevenue": revenue,
        "totalOrders": kpis.get("orders", 0),
        "avgOrderValue": kpis.get("avgOrderValue", 0),
        "conversionRate": kpis.get("conversionRate", 0),
        "inventoryTurnover": safe_divide(revenue, inventory_value) * TURNOVER_PERIODS_PER_YEAR,
        "customerLifetimeValue": safe_divide(revenue, customers),
    }


class DashboardAnalyticsService(AnalyticsService):
    """Builds the executive dashboard view"""

    view_name = "dashboard"

    async def get_dashboard(self, window: DateWindow, warehouse: Optional[str] = None) -> Dict[str, Any]:
        dimensions = {"warehouse": warehouse}
        results = await self.run_pipelines(
            {
                "kpis": (SALES_ORDERS, build_sales_kpis_pipeline(window, window.comparison(), dimensions)),
                "trend": (SALES_ORDERS, build_sales_trend_pipeline(window, dimensions, granularity="day")),
                "categories": (
                    SALES_ORDERS,
                    build_category_performance_pipeline(window, dimensions, limit=DASHBOARD_TOP_CATEGORIES),
                ),
                "segments": (SALES_ORDERS, build_customer_segments_pipeline(window, dimensions)),
                "inventory": (PRODUCTS, build_inventory_kpis_pipeline(warehouse)),
            }
        )

        inventory = results["inventory"][0] if results["inventory"] else {}
        inventory_value = inventory.get("totalValue", 0)
        periods = split_kpi_periods(results["kpis"])
        current = _derived_kpis(periods["current"], inventory_value)
        previous = _derived_kpis(periods["comparison"], inventory_value)

        kpis = {}
        for name, value in current.items():
            comparison = MetricComparison.build(value, previous[name], count=name in COUNT_METRICS)
            kpis[name] = {"value": comparison.current, "change": comparison.percent_change}

        return {
            "kpis": kpis,
            "salesTrend": [
                {"date": row["date"], "revenue": round_money(row.get("revenue")), "orders": row.get("orders", 0)}
                for row in results["trend"]
            ],
            "topCategories": round_rows(percent_of_total(results["categories"], "revenue")),
            "customerSegments": round_rows(
                [
                    {
                        "segment": row.get("segment"),
                        "count": row.get("customerCount", 0),
                        "revenue": row.get("revenue", 0),
                        "orderCount": row.get("orderCount", 0),
                        "avgOrderValue": row.get("avgOrderValue", 0),
                    }
                    for row in results["segments"]
                ]
            ),
            "inventory": {
                "totalProducts": inventory.get("totalProducts", 0),
                "totalUnits": inventory.get("totalUnits", 0),
                "totalValue": round_money(inventory_value),
                "lowStock": inventory.get("lowStockCount", 0),
                "outOfStock": inventory.get("outOfStockCount", 0),
                "overstock": inventory.get("overstockCount", 0),
            },
            "insights": self._insights(inventory),
        }

    @staticmethod
    def _insights(inventory: Dict[str, Any]) -> List[Dict[str, str]]:
        insights = []
        low_stock = inventory.get("lowStockCount", 0)
        if low_stock:
            insights.append(
                {
                    "type": "alert",
                    "title": "Low Stock Alert",
                    "description": f"{low_stock} products below reorder point",
                }
            )
        out_of_stock = inventory.get("outOfStockCount", 0)
        if out_of_stock:
            insights.append(
                {
                    "type": "alert",
                    "title": "Out of Stock",
                    "description": f"{out_of_stock} products have no stock on hand",
                }
            )
        return insights

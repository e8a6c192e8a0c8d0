# backend/modules/reporting/services/inventory_analytics_service.py

from typing import Any, Dict, Optional

from ..constants import PRODUCTS
from .analytics_base import AnalyticsService
from .pipeline_builders import (
    build_inventory_kpis_pipeline,
    build_low_stock_pipeline,
    build_warehouse_distribution_pipeline,
)
from .sales_analytics_service import round_rows
from .shaping import percent_of_total, round_fields

STOCK_FIELDS = ("stockValue", "value", "stockPercentage", "totalValue", "percentage")


class InventoryAnalyticsService(AnalyticsService):
    """Stock KPIs, distribution across warehouses and low stock alerts"""

    view_name = "inventory"

    async def get_inventory_analytics(self, warehouse: Optional[str] = None) -> Dict[str, Any]:
        results = await self.run_pipelines(
            {
                "kpis": (PRODUCTS, build_inventory_kpis_pipeline(warehouse)),
                "warehouses": (PRODUCTS, build_warehouse_distribution_pipeline(warehouse)),
                "lowStock": (PRODUCTS, build_low_stock_pipeline(warehouse)),
            }
        )

        kpis = results["kpis"][0] if results["kpis"] else {
            "totalProducts": 0,
            "totalUnits": 0,
            "totalValue": 0,
            "lowStockCount": 0,
            "outOfStockCount": 0,
            "overstockCount": 0,
        }
        return {
            "kpis": round_fields(kpis, STOCK_FIELDS),
            "warehouseDistribution": round_rows(
                percent_of_total(results["warehouses"], "stockValue"), STOCK_FIELDS
            ),
            "lowStockAlerts": round_rows(results["lowStock"], STOCK_FIELDS),
        }

# backend/modules/reporting/routers/analytics_router.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import logging

from core.database import AggregationStore, get_store

from ..constants import ALL_SENTINEL
from ..exceptions import ReportingBaseException
from ..services.dashboard_analytics_service import DashboardAnalyticsService
from ..services.date_windows import build_window
from ..services.inventory_analytics_service import InventoryAnalyticsService
from ..services.sales_analytics_service import SalesAnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])
logger = logging.getLogger(__name__)


@router.get("/sales")
async def get_sales_analytics(
    start_date: Optional[str] = Query(None, alias="startDate", description="Window start (ISO date)"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Window end (ISO date)"),
    warehouse: str = Query(ALL_SENTINEL),
    channel: str = Query(ALL_SENTINEL),
    sales_rep: str = Query(ALL_SENTINEL, alias="salesRep"),
    store: AggregationStore = Depends(get_store),
):
    """
    Sales analytics for a date window.

    KPIs are compared with the preceding window of the same length.
    """
    try:
        window = build_window(start_date, end_date)
        service = SalesAnalyticsService(store)
        return await service.get_sales_analytics(
            window, {"warehouse": warehouse, "channel": channel, "salesRep": sales_rep}
        )

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ReportingBaseException:
        raise
    except Exception as e:
        logger.error(f"Error getting sales analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch sales analytics",
        )


@router.get("/dashboard")
async def get_dashboard_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    warehouse: str = Query(ALL_SENTINEL),
    store: AggregationStore = Depends(get_store),
):
    """Dashboard KPIs, daily trend, top categories, customer segments and stock overview."""
    try:
        window = build_window(start_date, end_date)
        service = DashboardAnalyticsService(store)
        return await service.get_dashboard(window, warehouse)

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ReportingBaseException:
        raise
    except Exception as e:
        logger.error(f"Error getting dashboard analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch dashboard analytics",
        )


@router.get("/inventory")
async def get_inventory_analytics(
    warehouse: str = Query(ALL_SENTINEL),
    store: AggregationStore = Depends(get_store),
):
    try:
        service = InventoryAnalyticsService(store)
        return await service.get_inventory_analytics(warehouse)

    except ReportingBaseException:
        raise
    except Exception as e:
        logger.error(f"Error getting inventory analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch inventory analytics",
        )

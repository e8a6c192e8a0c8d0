# backend/modules/reporting/routers/__init__.py

from .reports_router import router as reports_router
from .analytics_router import router as analytics_router

__all__ = ["reports_router", "analytics_router"]

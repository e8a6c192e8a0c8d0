# backend/modules/reporting/services/filter_options_service.py

"""
Dynamic filter options.

Loads the selectable values for filters whose options depend on store
contents, such as warehouses, categories, brands and customers.
"""

import logging
from typing import Any, Dict, List, Optional

from core.database import AggregationStore

from ..constants import CUSTOMERS, FILTER_OPTION_TYPES, PRODUCTS, STATUS_OPTION_COLLECTIONS, WAREHOUSES
from ..exceptions import ReportingBaseException, ReportStoreError, ReportValidationError
from ..utils.query_monitor import monitor_pipeline

logger = logging.getLogger(__name__)

Option = Dict[str, Any]


class FilterOptionsService:
    """Serves `{value, label}` option lists for report filters"""

    def __init__(self, store: AggregationStore):
        self.store = store

    async def get_filter_options(self, filter_type: Optional[str], collection: Optional[str]) -> List[Option]:
        if not filter_type or not collection:
            raise ReportValidationError("Missing required parameters: type and collection")
        if filter_type not in FILTER_OPTION_TYPES:
            raise ReportValidationError(f"Unknown filter type: {filter_type}")

        try:
            if filter_type == "warehouse":
                return await self._warehouse_options()
            if filter_type in ("category", "brand"):
                return await self._product_attribute_options(filter_type)
            if filter_type == "customer":
                return await self._customer_options()
            return await self._status_options(collection)
        except ReportingBaseException:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch {filter_type} filter options: {e}")
            raise ReportStoreError("filter_options", str(e))

    @monitor_pipeline("warehouse_options")
    async def _warehouse_options(self) -> List[Option]:
        warehouses = await self.store.find(
            WAREHOUSES, {"status": "active"}, {"_id": 1, "name": 1}, sort=[("name", 1)]
        )
        return [{"value": str(wh["_id"]), "label": wh.get("name") or str(wh["_id"])} for wh in warehouses]

    @monitor_pipeline("product_attribute_options")
    async def _product_attribute_options(self, filter_type: str) -> List[Option]:
        field = "$category.name" if filter_type == "category" else "$brand"
        values = await self.store.aggregate(
            PRODUCTS,
            [
                {"$group": {"_id": field}},
                {"$match": {"_id": {"$nin": [None, ""]}}},
                {"$sort": {"_id": 1}},
            ],
        )
        return [{"value": row["_id"], "label": row["_id"]} for row in values]

    @monitor_pipeline("customer_options")
    async def _customer_options(self) -> List[Option]:
        customers = await self.store.find(
            CUSTOMERS, {"status": "active"}, {"_id": 1, "name": 1, "company": 1}, sort=[("name", 1)]
        )
        return [
            {"value": str(customer["_id"]), "label": customer.get("company") or customer.get("name") or ""}
            for customer in customers
        ]

    @monitor_pipeline("status_options")
    async def _status_options(self, collection: str) -> List[Option]:
        if collection not in STATUS_OPTION_COLLECTIONS:
            raise ReportValidationError(f"Unsupported collection: {collection}")
        statuses = await self.store.distinct(collection, "status")
        return [
            {"value": status, "label": status[:1].upper() + status[1:]}
            for status in sorted(s for s in statuses if isinstance(s, str) and s)
        ]

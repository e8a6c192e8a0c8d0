# backend/modules/reporting/definitions/__init__.py

from .inventory_summary import INVENTORY_SUMMARY
from .order_status import PURCHASE_ORDER_STATUS, SALES_ORDER_STATUS
from .sales_by_customer import SALES_BY_CUSTOMER
from .sales_by_item import SALES_BY_ITEM

DEFAULT_REPORTS = (
    SALES_BY_CUSTOMER,
    SALES_BY_ITEM,
    SALES_ORDER_STATUS,
    INVENTORY_SUMMARY,
    PURCHASE_ORDER_STATUS,
)

__all__ = [
    "DEFAULT_REPORTS",
    "INVENTORY_SUMMARY",
    "PURCHASE_ORDER_STATUS",
    "SALES_BY_CUSTOMER",
    "SALES_BY_ITEM",
    "SALES_ORDER_STATUS",
]

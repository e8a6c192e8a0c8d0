# backend/modules/reporting/constants.py

"""
Constants for the reporting module.

Centralizes status vocabularies, dimension mappings and thresholds.
"""

# Sentinel meaning "no restriction" for dimension and select filters
ALL_SENTINEL = "all"

# Top-N lists
DEFAULT_TOP_LIMIT = 10
DASHBOARD_TOP_CATEGORIES = 5

# Export Configuration
EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}
EXPORT_EXTENSIONS = {"csv": "csv", "excel": "xlsx", "pdf": "pdf"}

# Collections
SALES_ORDERS = "salesorders"
PURCHASE_ORDERS = "purchaseorders"
PRODUCTS = "products"
CUSTOMERS = "customers"
WAREHOUSES = "warehouses"

# Date fields (stored as ISO strings or native dates) and their converted aliases
ORDER_DATE_FIELD = "dates.orderDate"
ORDER_DATE_CONVERTED = "dates.orderDateConverted"

# Sales order lifecycle, in process order
SALES_ORDER_STATUSES = [
    "draft",
    "confirmed",
    "processing",
    "packed",
    "shipped",
    "delivered",
    "completed",
    "cancelled",
    "refunded",
]

# Purchase order lifecycle, in process order
PURCHASE_ORDER_STATUSES = [
    "draft",
    "pending",
    "approved",
    "ordered",
    "partial",
    "received",
    "completed",
    "cancelled",
]

# Statuses that do not represent committed business activity. Every sales
# metric family (KPIs, trends, breakdowns, top-N) excludes exactly this set.
NON_COMMITTED_STATUSES = ["draft", "cancelled"]

PAYMENT_METHODS = ["cash", "card", "bank_transfer", "check", "online", "credit", "other"]

# Query parameter name -> document field for dimension filters
DIMENSION_FIELDS = {
    "warehouse": "warehouseId",
    "channel": "channel",
    "salesRep": "salesPersonId",
}

# Trend bucketing thresholds (window length in days)
TREND_WEEKLY_THRESHOLD_DAYS = 92
TREND_MONTHLY_THRESHOLD_DAYS = 731

TREND_DATE_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%G-W%V",
    "month": "%Y-%m",
}

# Default reporting window when a report is requested without a date range
DEFAULT_WINDOW_DAYS = 30

# Inventory stock status thresholds relative to reorder point
OVERSTOCK_MULTIPLIER = 3

# Filter option types served by the filter-options provider
FILTER_OPTION_TYPES = ["warehouse", "category", "brand", "customer", "status"]
STATUS_OPTION_COLLECTIONS = [SALES_ORDERS, PURCHASE_ORDERS, PRODUCTS, CUSTOMERS, WAREHOUSES]

# Error Messages
ERROR_MESSAGES = {
    "report_not_found": "Report with ID '{report_id}' does not exist",
    "invalid_filters": "Invalid filters",
    "store_failure": "Failed to generate report",
    "export_failed": "Failed to generate export",
    "analytics_failed": "Failed to fetch {view} analytics",
}

# Sales-by-item performance segments
TOP_PERFORMER_LIMIT = 40
SLOW_MOVER_MAX_QUANTITY = 5

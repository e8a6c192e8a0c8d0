# backend/modules/reporting/__init__.py

"""
Reporting Module - Report Catalog & Analytics Aggregations

This module turns report requests (filters, date ranges, sorting, export
formats) into aggregation pipelines executed by the document store, and
shapes the raw output into stable, presentation-ready payloads.

Key Features:
- Registry of report definitions with typed filter schemas
- Pipeline builders for KPIs with period comparison, trends, breakdowns,
  top-N lists and status funnels
- Paginated report execution with exact totals and summaries
- Export capabilities (CSV, PDF, Excel)
- Composite sales, dashboard and inventory analytics views

Components:
- Definitions: Static report catalog entries
- Services: Validation, pipeline building, execution and shaping
- Schemas: Filter value types, report definitions, API responses
- Routers: FastAPI endpoints for reports and analytics
- Tests: Pytest coverage of builders, shaping, generator and routes
"""

__version__ = "1.0.0"

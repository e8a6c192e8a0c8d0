# backend/modules/reporting/services/report_generator.py

"""
Report generation and export.

Executes a report definition against the store: the definition's pipeline
is extended with the sort and a single `$facet` so the requested page, the
exact row count and the summary come back from one aggregation. Exports
read their rows from a sorted, capped cursor instead.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bson import Decimal128, ObjectId

from core.config import Settings, get_settings
from core.database import AggregationStore

from ..exceptions import ReportingBaseException, ReportStoreError, ReportValidationError
from ..schemas.report_schemas import (
    ColumnType,
    Pagination,
    PaginationInfo,
    ReportDefinition,
    ReportParams,
    ReportResult,
)
from ..utils.query_monitor import elapsed_ms, monitor_pipeline
from .export_service import ExportService
from .filter_validator import build_report_params
from .pipeline_builders import build_paginated_facet, build_sort_stage, build_totals_facet
from .shaping import backfill_buckets, order_by_sequence, percent_of_total, round_fields, sum_field

logger = logging.getLogger(__name__)

ROUNDED_COLUMN_TYPES = (ColumnType.CURRENCY, ColumnType.PERCENTAGE)


def _plain_value(value: Any) -> Any:
    """Convert BSON-specific scalars into JSON friendly values"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _plain_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain_value(item) for item in value]
    return value


class ReportGenerator:
    """Runs registered reports and serializes their results"""

    def __init__(
        self,
        store: AggregationStore,
        settings: Optional[Settings] = None,
        export_service: Optional[ExportService] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.export_service = export_service or ExportService()

    def parse_params(self, definition: ReportDefinition, query: Mapping[str, Any]) -> ReportParams:
        """Validate raw query parameters for `definition`"""
        return build_report_params(
            definition,
            query,
            default_page_size=self.settings.report_default_page_size,
            max_page_size=self.settings.report_max_page_size,
        )

    async def generate_report(self, definition: ReportDefinition, params: ReportParams) -> ReportResult:
        """
        Execute one page of a report.

        Raises ReportValidationError before any store I/O when the
        parameters are out of bounds, and ReportStoreError when the store
        fails.
        """
        self._check_params(definition, params)
        started = time.perf_counter()

        rows, total, summary = await self._execute(definition, params, params.pagination)

        pagination = PaginationInfo(
            page=params.pagination.page,
            page_size=params.pagination.page_size,
            total=total,
        )
        execution_time = elapsed_ms(started)
        logger.info(
            f"Report {definition.id} generated: page {pagination.page}/{pagination.total_pages}, "
            f"{len(rows)} rows in {execution_time}ms"
        )
        return ReportResult(
            results=tuple(rows),
            pagination=pagination,
            summary=summary,
            metadata={
                "generated_at": datetime.now(timezone.utc),
                "execution_time": execution_time,
                "cached": False,
                "report_id": definition.id,
                "report_name": definition.name,
            },
        )

    async def export_report(self, definition: ReportDefinition, params: ReportParams) -> Optional[bytes]:
        """
        Serialize the complete result set in the requested export format.

        The row count is capped at `max_export_rows`. Returns None when the
        rows cannot be serialized; store failures still raise.
        """
        if params.export is None:
            raise ReportValidationError(
                "Invalid filters",
                [{"code": "InvalidExport", "key": "export", "message": "Export format is required"}],
            )
        self._check_params(definition, params, paginate=False)

        cap = self.settings.max_export_rows
        rows, total, summary = await self._execute_export(definition, params, cap)
        if total > cap:
            logger.warning(f"Export of report {definition.id} truncated to {cap} of {total} rows")

        try:
            content = self.export_service.export(
                params.export,
                definition.name,
                definition.export_columns,
                rows,
                summary,
            )
        except Exception as e:
            logger.error(f"Error exporting report {definition.id} as {params.export.value}: {e}")
            return None

        logger.info(f"Report {definition.id} exported as {params.export.value}: {len(rows)} rows")
        return content

    def _check_params(self, definition: ReportDefinition, params: ReportParams, paginate: bool = True) -> None:
        errors: List[Dict[str, str]] = []
        if paginate:
            if params.pagination.page < 1:
                errors.append(
                    {"code": "InvalidPagination", "key": "page", "message": "Page number must be greater than 0"}
                )
            if not 1 <= params.pagination.page_size <= self.settings.report_max_page_size:
                errors.append(
                    {
                        "code": "InvalidPagination",
                        "key": "pageSize",
                        "message": f"Page size must be between 1 and {self.settings.report_max_page_size}",
                    }
                )
        if params.sort is not None:
            column = definition.get_column(params.sort.column)
            if column is None or not column.sortable:
                errors.append(
                    {"code": "InvalidSort", "key": "sortBy", "message": f"Invalid sort column: {params.sort.column}"}
                )
        if errors:
            raise ReportValidationError("Invalid filters", errors)

    async def _execute(
        self, definition: ReportDefinition, params: ReportParams, pagination: Pagination
    ) -> Tuple[List[Dict[str, Any]], int, Optional[Dict[str, Any]]]:
        pipeline = definition.build_pipeline(params)

        if definition.buckets is not None:
            documents = await self._aggregate(definition, params, pipeline)
            return self._shape_buckets(definition, documents, pagination)

        sort = params.sort or definition.default_sort
        summary_stages = definition.summary_pipeline() if definition.summary_pipeline else None
        pipeline = pipeline + [
            build_sort_stage(sort, definition.tie_breaker),
            build_paginated_facet(pagination, summary_stages),
        ]
        documents = await self._aggregate(definition, params, pipeline)

        facet = documents[0] if documents else {}
        return self._shape_rows(definition, facet.get("rows", []), facet)

    async def _execute_export(
        self, definition: ReportDefinition, params: ReportParams, cap: int
    ) -> Tuple[List[Dict[str, Any]], int, Optional[Dict[str, Any]]]:
        """
        Fetch up to `cap` rows for an export.

        Rows come back as a plain cursor rather than inside a `$facet`, whose
        single output document is bound by the BSON size limit; the count
        and summary run as a separate rows-free aggregation.
        """
        pipeline = definition.build_pipeline(params)

        if definition.buckets is not None:
            documents = await self._aggregate(definition, params, pipeline)
            return self._shape_buckets(definition, documents, Pagination(page=1, page_size=cap))

        sort = params.sort or definition.default_sort
        summary_stages = definition.summary_pipeline() if definition.summary_pipeline else None
        rows, totals = await asyncio.gather(
            self._aggregate(
                definition,
                params,
                pipeline + [build_sort_stage(sort, definition.tie_breaker), {"$limit": cap}],
            ),
            self._aggregate(definition, params, pipeline + [build_totals_facet(summary_stages)]),
        )
        return self._shape_rows(definition, rows, totals[0] if totals else {})

    def _shape_rows(
        self, definition: ReportDefinition, raw_rows: List[Dict[str, Any]], facet: Dict[str, Any]
    ) -> Tuple[List[Dict[str, Any]], int, Optional[Dict[str, Any]]]:
        rows = [_plain_value(row) for row in raw_rows]
        total_docs = facet.get("total") or []
        total = total_docs[0].get("total", 0) if total_docs else 0

        summary = None
        if definition.summarize is not None:
            summary_docs = facet.get("summary") or [{}]
            summary = definition.summarize(_plain_value(summary_docs[0]))
        if definition.post_process is not None:
            rows = definition.post_process(rows, summary or {})
        return self._round_rows(definition, rows), total, summary

    def _shape_buckets(
        self,
        definition: ReportDefinition,
        documents: List[Dict[str, Any]],
        pagination: Pagination,
    ) -> Tuple[List[Dict[str, Any]], int, Dict[str, Any]]:
        """Backfill, order and slice a report with a fixed key set"""
        buckets = definition.buckets
        rows = backfill_buckets(
            [_plain_value(document) for document in documents],
            buckets.field,
            buckets.values,
            {metric: 0 for metric in buckets.metrics},
        )
        rows = order_by_sequence(rows, buckets.field, buckets.values)
        rows = percent_of_total(rows, buckets.share_of)

        summary = {metric: sum_field(rows, metric) for metric in buckets.metrics}
        if definition.summarize is not None:
            summary = definition.summarize(summary)

        page_rows = rows[pagination.skip : pagination.skip + pagination.page_size]
        money = [key for key, value in summary.items() if isinstance(value, float)]
        return self._round_rows(definition, page_rows), len(rows), round_fields(summary, money)

    def _round_rows(self, definition: ReportDefinition, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        fields = [column.key for column in definition.columns if column.type in ROUNDED_COLUMN_TYPES]
        return [round_fields(row, fields) for row in rows]

    @monitor_pipeline("report_pipeline")
    async def _aggregate(
        self, definition: ReportDefinition, params: ReportParams, pipeline: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        try:
            return await self.store.aggregate(definition.collection, pipeline)
        except ReportingBaseException:
            raise
        except Exception as e:
            # Filter values may carry customer data; only keys are logged
            logger.error(
                f"Store failure for report {definition.id} "
                f"(filters: {sorted(params.filters.keys())}): {e}"
            )
            raise ReportStoreError("aggregate", str(e))

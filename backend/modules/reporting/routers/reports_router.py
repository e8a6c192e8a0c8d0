# backend/modules/reporting/routers/reports_router.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from typing import List, Optional
import logging

from core.config import get_settings
from core.database import AggregationStore, get_store

from ..constants import EXPORT_MEDIA_TYPES
from ..exceptions import ReportExportError, ReportingBaseException, ReportNotFoundError
from ..schemas.report_schemas import (
    FilterOptionResponse,
    ReportCatalogData,
    ReportCatalogResponse,
    ReportResponse,
)
from ..services.export_service import build_export_filename
from ..services.filter_options_service import FilterOptionsService
from ..services.report_generator import ReportGenerator
from ..services.report_registry import ReportRegistry, get_registry

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = logging.getLogger(__name__)


def get_report_generator(store: AggregationStore = Depends(get_store)) -> ReportGenerator:
    return ReportGenerator(store, get_settings())


def get_filter_options_service(store: AggregationStore = Depends(get_store)) -> FilterOptionsService:
    return FilterOptionsService(store)


@router.get("", response_model=ReportCatalogResponse)
async def list_reports(registry: ReportRegistry = Depends(get_registry)):
    """List every available report, also grouped by category."""
    return ReportCatalogResponse(data=ReportCatalogData(**registry.metadata()))


@router.get("/filters", response_model=List[FilterOptionResponse])
async def get_filter_options(
    type: Optional[str] = Query(None, description="Filter type: warehouse, category, brand, customer or status"),
    collection: Optional[str] = Query(None, description="Collection the options are loaded from"),
    service: FilterOptionsService = Depends(get_filter_options_service),
):
    """
    Get dynamic filter options for report filters.

    Returns `{value, label}` pairs for the requested filter type.
    """
    try:
        return await service.get_filter_options(type, collection)

    except ReportingBaseException:
        raise
    except Exception as e:
        logger.error(f"Error fetching filter options for type {type}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch filter options",
        )


@router.get("/{category}/{report_id}")
async def get_report(
    category: str,
    report_id: str,
    request: Request,
    registry: ReportRegistry = Depends(get_registry),
    generator: ReportGenerator = Depends(get_report_generator),
):
    """
    Run a report.

    Query parameters: `page`, `pageSize`, `sortBy`, `sortOrder`, `export`
    and one parameter per report filter. With `export` the response is the
    file itself; otherwise a page of rows with pagination, summary and
    execution metadata.
    """
    definition = registry.resolve(category, report_id)
    if definition is None:
        raise ReportNotFoundError(registry.full_report_id(category, report_id))

    params = generator.parse_params(definition, dict(request.query_params))

    if params.export is not None:
        content = await generator.export_report(definition, params)
        if content is None:
            raise ReportExportError(definition.id, params.export.value, "serialization failed")

        filename = build_export_filename(definition.id, params.export)
        return Response(
            content=content,
            media_type=EXPORT_MEDIA_TYPES[params.export.value],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    result = await generator.generate_report(definition, params)
    return ReportResponse.from_result(result)

# backend/modules/reporting/schemas/report_schemas.py

"""
Report definitions, per-request parameters, execution results and the
Pydantic response envelopes served by the reports API.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .filter_schemas import FilterSpec, FilterValue


class ReportCategory(str, Enum):
    """Report catalog categories"""

    SALES = "sales"
    INVENTORY = "inventory"
    RECEIVABLES = "receivables"
    PAYABLES = "payables"
    ACTIVITY = "activity"


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"
    BOOLEAN = "boolean"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def mongo_order(self) -> int:
        return 1 if self is SortDirection.ASC else -1


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    label: str
    type: ColumnType = ColumnType.STRING
    sortable: bool = True
    exportable: bool = True


@dataclass(frozen=True)
class SortSpec:
    column: str
    direction: SortDirection = SortDirection.DESC


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    page_size: int = 50

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class ReportParams:
    """Per-request report input, built fresh for every request"""

    filters: Mapping[str, FilterValue] = field(default_factory=dict)
    pagination: Pagination = field(default_factory=Pagination)
    sort: Optional[SortSpec] = None
    export: Optional[ExportFormat] = None


@dataclass(frozen=True)
class BucketSpec:
    """
    Fixed key set a report must always return.

    Rows missing from the aggregation output are backfilled with zero
    metrics and the final list follows the order of `values`.
    """

    field: str
    values: Tuple[str, ...]
    metrics: Tuple[str, ...] = ("count",)
    share_of: str = "count"


Stages = List[Dict[str, Any]]


@dataclass(frozen=True)
class ReportDefinition:
    """Static, immutable description of one reportable view"""

    id: str
    name: str
    category: ReportCategory
    description: str
    collection: str
    columns: Tuple[ColumnSpec, ...]
    filters: Tuple[FilterSpec, ...]
    default_sort: SortSpec
    tie_breaker: str
    build_pipeline: Callable[[ReportParams], Stages]
    export_formats: Tuple[ExportFormat, ...] = (
        ExportFormat.EXCEL,
        ExportFormat.CSV,
        ExportFormat.PDF,
    )
    summary_pipeline: Optional[Callable[[], Stages]] = None
    summarize: Optional[Callable[[Dict[str, Any]], Dict[str, float]]] = None
    post_process: Optional[
        Callable[[List[Dict[str, Any]], Dict[str, float]], List[Dict[str, Any]]]
    ] = None
    buckets: Optional[BucketSpec] = None

    def get_column(self, key: str) -> Optional[ColumnSpec]:
        return next((column for column in self.columns if column.key == key), None)

    @property
    def export_columns(self) -> List[ColumnSpec]:
        return [column for column in self.columns if column.exportable]

    def metadata(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "exportFormats": [fmt.value for fmt in self.export_formats],
        }


@dataclass(frozen=True)
class PaginationInfo:
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


@dataclass(frozen=True)
class ReportResult:
    """Outcome of one report execution; discarded after serialization"""

    results: Tuple[Dict[str, Any], ...]
    pagination: PaginationInfo
    summary: Optional[Dict[str, float]] = None
    metadata: Optional[Dict[str, Any]] = None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationResponse(CamelModel):
    total_pages: int
    total_records: int
    current_page: int
    page_size: int


class ReportMetadataResponse(CamelModel):
    generated_at: datetime
    execution_time: int = Field(description="Execution time in milliseconds")
    cached: bool = False
    report_id: str
    report_name: str


class ReportResponse(CamelModel):
    """Response envelope for a paginated report"""

    success: bool = True
    data: List[Dict[str, Any]]
    pagination: PaginationResponse
    summary: Optional[Dict[str, Any]] = None
    metadata: Optional[ReportMetadataResponse] = None

    @classmethod
    def from_result(cls, result: ReportResult) -> "ReportResponse":
        return cls(
            data=list(result.results),
            pagination=PaginationResponse(
                total_pages=result.pagination.total_pages,
                total_records=result.pagination.total,
                current_page=result.pagination.page,
                page_size=result.pagination.page_size,
            ),
            summary=result.summary,
            metadata=ReportMetadataResponse(**result.metadata) if result.metadata else None,
        )


class ReportCatalogEntry(CamelModel):
    id: str
    name: str
    category: str
    description: str
    export_formats: List[str]


class ReportCatalogData(CamelModel):
    reports: List[ReportCatalogEntry]
    grouped_reports: Dict[str, List[ReportCatalogEntry]]
    categories: List[str]
    total: int


class ReportCatalogResponse(CamelModel):
    success: bool = True
    data: ReportCatalogData


class FilterOptionResponse(BaseModel):
    value: Any
    label: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[Any] = None

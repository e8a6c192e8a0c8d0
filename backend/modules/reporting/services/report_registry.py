# backend/modules/reporting/services/report_registry.py

"""
Report registry.

Holds the catalog of report definitions. The registry is built once at
startup and injected where needed; it is never mutated afterwards.
"""

import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional

from ..definitions import DEFAULT_REPORTS
from ..schemas.report_schemas import ReportCategory, ReportDefinition

logger = logging.getLogger(__name__)


class ReportRegistry:
    """Immutable lookup of report definitions by id"""

    def __init__(self, definitions: Iterable[ReportDefinition]):
        reports: Dict[str, ReportDefinition] = {}
        for definition in definitions:
            if definition.id in reports:
                raise ValueError(f"Duplicate report id: {definition.id}")
            reports[definition.id] = definition
        self._reports = MappingProxyType(reports)

    def __contains__(self, report_id: str) -> bool:
        return report_id in self._reports

    def __len__(self) -> int:
        return len(self._reports)

    def get_report(self, report_id: str) -> Optional[ReportDefinition]:
        return self._reports.get(report_id)

    @staticmethod
    def full_report_id(category: str, report_id: str) -> str:
        """Report ids in URLs may be given with or without the category prefix"""
        if report_id.startswith(f"{category}-"):
            return report_id
        return f"{category}-{report_id}"

    def resolve(self, category: str, report_id: str) -> Optional[ReportDefinition]:
        """Find a report addressed by category and id within that category"""
        definition = self._reports.get(self.full_report_id(category, report_id))
        if definition is None:
            definition = self._reports.get(report_id)
        if definition is None or definition.category.value != category:
            return None
        return definition

    def all_reports(self) -> List[ReportDefinition]:
        return list(self._reports.values())

    def reports_by_category(self, category) -> List[ReportDefinition]:
        category = ReportCategory(category)
        return [report for report in self._reports.values() if report.category == category]

    def categories(self) -> List[str]:
        return sorted({report.category.value for report in self._reports.values()})

    def metadata(self) -> Dict[str, object]:
        reports = [report.metadata() for report in self._reports.values()]
        grouped: Dict[str, List[Dict]] = {}
        for entry in reports:
            grouped.setdefault(entry["category"], []).append(entry)
        return {
            "reports": reports,
            "grouped_reports": grouped,
            "categories": self.categories(),
            "total": len(reports),
        }


def build_default_registry() -> ReportRegistry:
    registry = ReportRegistry(DEFAULT_REPORTS)
    logger.info(f"Report registry initialized with {len(registry)} reports")
    return registry


@lru_cache()
def get_registry() -> ReportRegistry:
    """FastAPI dependency returning the process-wide registry"""
    return build_default_registry()

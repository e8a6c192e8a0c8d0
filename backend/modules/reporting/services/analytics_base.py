# backend/modules/reporting/services/analytics_base.py

"""Concurrent pipeline execution shared by the composite analytics views."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Tuple

from core.database import AggregationStore

from ..constants import ERROR_MESSAGES
from ..exceptions import ReportStoreError
from ..utils.query_monitor import elapsed_ms

logger = logging.getLogger(__name__)

PipelineSet = Dict[str, Tuple[str, List[Dict[str, Any]]]]


class AnalyticsService:
    """Base class for views assembled from several independent pipelines"""

    view_name = "analytics"

    def __init__(self, store: AggregationStore):
        self.store = store

    async def run_pipelines(self, pipelines: PipelineSet) -> Dict[str, List[Dict[str, Any]]]:
        """
        Run every pipeline concurrently and return results by name.

        The view fails as a whole when any pipeline fails.
        """
        names = list(pipelines)
        started = time.perf_counter()
        results = await asyncio.gather(
            *[self.store.aggregate(collection, pipeline) for collection, pipeline in pipelines.values()],
            return_exceptions=True,
        )

        failures = [(name, result) for name, result in zip(names, results) if isinstance(result, Exception)]
        if failures:
            for name, error in failures:
                logger.error(f"{self.view_name} pipeline '{name}' failed: {error}")
            raise ReportStoreError(
                self.view_name,
                ERROR_MESSAGES["analytics_failed"].format(view=self.view_name),
            )

        logger.info(f"{self.view_name} analytics: {len(names)} pipelines in {elapsed_ms(started)}ms")
        return dict(zip(names, results))

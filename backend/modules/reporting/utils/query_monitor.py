# backend/modules/reporting/utils/query_monitor.py

"""
Pipeline timing utilities.

Times aggregation calls and logs the ones exceeding the configured slow
query threshold. Nothing is retained between calls.
"""

import time
import functools
import logging
from typing import Callable, Optional

from core.config import get_settings

logger = logging.getLogger(__name__)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a `time.perf_counter()` reading"""
    return int((time.perf_counter() - started) * 1000)


def monitor_pipeline(name: Optional[str] = None, threshold_ms: Optional[int] = None):
    """
    Decorator for coroutines that execute an aggregation pipeline.

    Logs at WARNING when the call exceeds the slow query threshold and at
    DEBUG otherwise.
    """

    def decorator(func: Callable):
        label = name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            limit = threshold_ms if threshold_ms is not None else get_settings().slow_query_threshold_ms
            started = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = elapsed_ms(started)
                if duration > limit:
                    logger.warning(f"Slow pipeline detected: {label} took {duration}ms")
                else:
                    logger.debug(f"Pipeline {label} completed in {duration}ms")

        return wrapper

    return decorator

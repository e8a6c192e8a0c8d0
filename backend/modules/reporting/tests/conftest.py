# backend/modules/reporting/tests/conftest.py

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from core.config import Settings
from core.database import get_store
from modules.reporting.services.date_windows import DateWindow, END_OF_DAY
from modules.reporting.services.report_generator import ReportGenerator
from modules.reporting.services.report_registry import build_default_registry


def build_facet_result(rows, total=None, summary=None):
    """Shape of the single document returned by a paginated report pipeline"""
    document = {
        "rows": rows,
        "total": [{"total": len(rows) if total is None else total}] if (rows or total) else [],
    }
    if summary is not None:
        document["summary"] = [summary]
    return [document]


@pytest.fixture
def facet_result():
    return build_facet_result


@pytest.fixture
def store():
    """Document store double exposing the AggregationStore interface"""
    mock = MagicMock()
    mock.aggregate = AsyncMock(return_value=[])
    mock.find = AsyncMock(return_value=[])
    mock.distinct = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def settings():
    return Settings(
        report_default_page_size=50,
        report_max_page_size=200,
        max_export_rows=1000,
        slow_query_threshold_ms=1000,
    )


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def generator(store, settings):
    return ReportGenerator(store, settings)


@pytest.fixture
def july_window():
    """The calendar month of July 2025, inclusive of its last millisecond"""
    return DateWindow(
        start=datetime(2025, 7, 1, tzinfo=timezone.utc),
        end=datetime.combine(datetime(2025, 7, 31).date(), END_OF_DAY, timezone.utc),
    )


@pytest.fixture
def client(store):
    from app.main import app

    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

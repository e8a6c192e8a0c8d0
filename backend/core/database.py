# backend/core/database.py

"""
Document store access for the reporting engine.

The engine only ever issues read-only aggregation and find queries, so the
store is exposed through the small `AggregationStore` interface. The
production implementation wraps a motor client; tests substitute mocks.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import get_settings

logger = logging.getLogger(__name__)


class AggregationStore(Protocol):
    """Read-only query interface consumed by the reporting services"""

    async def aggregate(
        self, collection: str, pipeline: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]: ...

    async def find(
        self,
        collection: str,
        query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> List[Dict[str, Any]]: ...

    async def distinct(
        self, collection: str, field: str, query: Optional[Dict[str, Any]] = None
    ) -> List[Any]: ...


class MotorAggregationStore:
    """AggregationStore backed by an async motor database handle"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def aggregate(
        self, collection: str, pipeline: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        cursor = self.db[collection].aggregate(pipeline, allowDiskUse=True)
        return await cursor.to_list(length=None)

    async def find(
        self,
        collection: str,
        query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> List[Dict[str, Any]]:
        cursor = self.db[collection].find(query, projection)
        if sort:
            cursor = cursor.sort(sort)
        return await cursor.to_list(length=None)

    async def distinct(
        self, collection: str, field: str, query: Optional[Dict[str, Any]] = None
    ) -> List[Any]:
        return await self.db[collection].distinct(field, query or {})


_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """Return the process-wide motor client, creating it lazily"""
    global _client
    if _client is None:
        settings = get_settings()
        _client = AsyncIOMotorClient(
            settings.mongodb_url,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            tz_aware=True,
        )
        logger.info(f"MongoDB client created for database '{settings.mongodb_database}'")
    return _client


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB client closed")


def get_store() -> AggregationStore:
    """FastAPI dependency returning the store for the configured database"""
    settings = get_settings()
    return MotorAggregationStore(get_client()[settings.mongodb_database])

"""Graph database connection management."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from arango import ArangoClient
from arango.exceptions import ArangoError

from transit_graph.config import Settings, get_settings
from transit_graph.logging import get_logger
from transit_graph.services.gtfs_static.store import GraphStore, GraphStoreError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from arango.database import StandardDatabase

logger = get_logger(__name__)


def create_client(settings: Settings | None = None) -> ArangoClient:
    """Create an ArangoDB client for the configured hosts."""
    settings = settings or get_settings()
    return ArangoClient(
        hosts=settings.arango_url,
        request_timeout=settings.arango_request_timeout_sec,
    )


def connect_database(client: ArangoClient, settings: Settings | None = None) -> StandardDatabase:
    """Open the loader database, creating it on first use."""
    settings = settings or get_settings()
    sys_db = client.db(
        "_system",
        username=settings.arango_username,
        password=settings.arango_password,
    )
    if not sys_db.has_database(settings.arango_database):
        sys_db.create_database(settings.arango_database)
        logger.info("Created graph database", database=settings.arango_database)
    return client.db(
        settings.arango_database,
        username=settings.arango_username,
        password=settings.arango_password,
    )


@asynccontextmanager
async def open_graph_store(settings: Settings | None = None) -> AsyncGenerator[GraphStore, None]:
    """Context manager yielding a connected ``GraphStore``.

    Raises:
        GraphStoreError: If the database cannot be reached or created.
    """
    settings = settings or get_settings()
    client = create_client(settings)
    try:
        try:
            db = await asyncio.to_thread(connect_database, client, settings)
        except ArangoError as exc:
            raise GraphStoreError(f"Cannot open graph database: {exc}") from exc
        yield GraphStore(db)
    finally:
        client.close()


async def check_database_connection() -> bool:
    """Check if the graph database is reachable."""
    try:
        async with open_graph_store() as store:
            return await store.ping()
    except Exception:
        return False

"""Graph store gateway over ArangoDB.

Owns the loader's collections and exposes async save / bulk import / query
operations. python-arango is a blocking client, so every call is pushed to a
worker thread to keep the event loop free for the other table files.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from arango.exceptions import ArangoError

from transit_graph.logging import get_logger
from transit_graph.services.gtfs_static.schema_definitions import (
    COLLECTIONS,
    CollectionDefinition,
)

if TYPE_CHECKING:
    from arango.database import StandardDatabase

logger = get_logger(__name__)


class GraphStoreError(Exception):
    """Raised when a graph database operation fails."""


class GraphStore:
    """Async gateway to the loader's document and edge collections."""

    def __init__(self, db: StandardDatabase) -> None:
        self._db = db

    @property
    def database_name(self) -> str:
        return self._db.name

    async def reset(self) -> None:
        """Truncate or create every declared collection and ensure its indexes."""
        for definition in COLLECTIONS:
            await self.truncate_or_create(definition)
        logger.info(
            "Graph collections reset",
            database=self.database_name,
            collections=len(COLLECTIONS),
        )

    async def truncate_or_create(self, definition: CollectionDefinition) -> None:
        """Start a collection from a clean slate.

        Existing collections are truncated (indexes survive); missing ones are
        created with the right type. Declared indexes are ensured either way.

        Raises:
            GraphStoreError: On any database failure.
        """
        await self._call(self._truncate_or_create_sync, definition)

    async def save(self, collection: str, document: dict[str, Any]) -> None:
        """Insert a single document; a document whose key already exists is ignored.

        Raises:
            GraphStoreError: On any database failure.
        """
        await self._call(self._save_sync, collection, document)

    async def import_documents(self, collection: str, documents: list[dict[str, Any]]) -> int:
        """Bulk import documents, returning how many were created.

        Duplicates are ignored; any other failure aborts the whole import.

        Raises:
            GraphStoreError: On any database failure.
        """
        if not documents:
            return 0
        return await self._call(self._import_sync, collection, documents)

    async def run_query(
        self,
        query: str,
        bind_vars: dict[str, Any] | None = None,
        intermediate_commit_count: int | None = None,
    ) -> dict[str, Any]:
        """Execute an AQL query and return its statistics.

        Raises:
            GraphStoreError: On any database failure.
        """
        return await self._call(self._query_sync, query, bind_vars, intermediate_commit_count)

    async def count(self, collection: str) -> int:
        """Return the number of documents in a collection."""
        return await self._call(lambda: int(self._db.collection(collection).count()))

    async def ping(self) -> bool:
        """Check that the database answers."""
        try:
            await self._call(self._db.version)
        except GraphStoreError:
            return False
        return True

    async def _call(self, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except ArangoError as exc:
            raise GraphStoreError(str(exc)) from exc

    def _truncate_or_create_sync(self, definition: CollectionDefinition) -> None:
        if self._db.has_collection(definition.name):
            collection = self._db.collection(definition.name)
            collection.truncate()
            action = "truncated"
        else:
            collection = self._db.create_collection(definition.name, edge=definition.edge)
            action = "created"

        for index in definition.indexes:
            collection.add_index(dict(index))

        logger.debug(
            "Collection ready",
            collection=definition.name,
            edge=definition.edge,
            action=action,
            indexes=len(definition.indexes),
        )

    def _save_sync(self, collection: str, document: dict[str, Any]) -> None:
        self._db.collection(collection).insert(document, overwrite_mode="ignore", silent=True)

    def _import_sync(self, collection: str, documents: list[dict[str, Any]]) -> int:
        result = self._db.collection(collection).import_bulk(
            documents,
            halt_on_error=True,
            details=False,
            on_duplicate="ignore",
        )
        return int(result.get("created", 0))

    def _query_sync(
        self,
        query: str,
        bind_vars: dict[str, Any] | None,
        intermediate_commit_count: int | None,
    ) -> dict[str, Any]:
        cursor = self._db.aql.execute(
            query,
            bind_vars=bind_vars,
            intermediate_commit_count=intermediate_commit_count,
        )
        stats = dict(cursor.statistics() or {})
        cursor.close(ignore_missing=True)
        return stats

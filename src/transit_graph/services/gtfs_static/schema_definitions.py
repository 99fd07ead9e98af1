"""Graph collections and indexes owned by the loader.

``COLLECTIONS`` lists every document and edge collection with the indexes
that must exist before a load starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from transit_graph.models.gtfs import RelationKind, TableKind

SERVICE_INDEX: dict[str, Any] = {
    "type": "persistent",
    "name": "service",
    "fields": ["serviceId"],
    "unique": False,
}

GEO_INDEX: dict[str, Any] = {
    "type": "geo",
    "name": "location",
    "fields": ["lat", "lon"],
}

# Derived edges are inserted with ignoreErrors, this index turns re-runs into no-ops
FROM_TO_INDEX: dict[str, Any] = {
    "type": "persistent",
    "name": "fromto",
    "fields": ["_from", "_to"],
    "unique": True,
}


@dataclass(frozen=True)
class CollectionDefinition:
    """A collection to truncate or create at the start of every run."""

    name: str
    edge: bool = False
    indexes: tuple[dict[str, Any], ...] = ()


COLLECTIONS: tuple[CollectionDefinition, ...] = (
    # Vertices
    CollectionDefinition(TableKind.AGENCY.value),
    CollectionDefinition(TableKind.TRIPS.value),
    CollectionDefinition(TableKind.STOPS.value, indexes=(GEO_INDEX,)),
    CollectionDefinition(TableKind.STOP_TIMES.value),
    CollectionDefinition(TableKind.ROUTES.value),
    CollectionDefinition(TableKind.CALENDAR.value, indexes=(SERVICE_INDEX,)),
    CollectionDefinition(TableKind.CALENDAR_DATES.value, indexes=(SERVICE_INDEX,)),
    # Edges
    CollectionDefinition(TableKind.PATHWAYS.value, edge=True),
    CollectionDefinition(RelationKind.PART_OF_TRIP.value, edge=True),
    CollectionDefinition(RelationKind.PART_OF_STOP.value, edge=True, indexes=(FROM_TO_INDEX,)),
    CollectionDefinition(RelationKind.LOCATED_AT.value, edge=True),
    CollectionDefinition(RelationKind.USES.value, edge=True),
    CollectionDefinition(RelationKind.PRECEDES.value, edge=True, indexes=(FROM_TO_INDEX,)),
    CollectionDefinition(RelationKind.OPERATES.value, edge=True, indexes=(FROM_TO_INDEX,)),
    CollectionDefinition(RelationKind.SERVES.value, edge=True, indexes=(FROM_TO_INDEX,)),
    CollectionDefinition(RelationKind.HAS_ROUTES.value, edge=True, indexes=(FROM_TO_INDEX,)),
)

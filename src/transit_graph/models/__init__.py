"""Graph document models for the GTFS static feed."""

from transit_graph.models.gtfs import (
    Agency,
    Calendar,
    CalendarDate,
    GraphDocument,
    Pathway,
    RelationKind,
    Relationship,
    Route,
    Stop,
    StopTime,
    TableKind,
    Trip,
    document_id,
)

__all__ = [
    "Agency",
    "Calendar",
    "CalendarDate",
    "GraphDocument",
    "Pathway",
    "RelationKind",
    "Relationship",
    "Route",
    "Stop",
    "StopTime",
    "TableKind",
    "Trip",
    "document_id",
]

"""GTFS entity mapper - turns normalized rows into graph documents and edges.

Each feed table is a ``FeedTable`` variant that carries its own mapping
function, so the importer never branches on the table kind itself.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

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
from transit_graph.services.gtfs_static.normalizer import (
    decode_bool,
    decode_tristate,
    normalize_color,
    parse_float,
    parse_gtfs_date,
    parse_int,
    require,
)
from transit_graph.services.gtfs_static.parser import REQUIRED_COLUMNS

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class MappedRecord:
    """One entity plus the relationships derived from the same row."""

    entity: GraphDocument
    relationships: list[Relationship] = field(default_factory=list)


@dataclass(frozen=True)
class FeedTable:
    """A feed table variant.

    ``bulk`` tables are buffered and bulk-imported; the others are small and
    saved row by row.
    """

    kind: TableKind
    mapper: Callable[[dict[str, Any]], MappedRecord]
    bulk: bool

    @property
    def collection(self) -> str:
        return self.kind.value

    @property
    def required_columns(self) -> frozenset[str]:
        return frozenset(REQUIRED_COLUMNS.get(self.kind, ()))

    def map(self, record: dict[str, Any]) -> MappedRecord:
        return self.mapper(record)


def _edge(kind: RelationKind, from_id: str, to_id: str) -> Relationship:
    return Relationship(kind=kind, from_id=from_id, to_id=to_id)


def map_agency(record: dict[str, Any]) -> MappedRecord:
    return MappedRecord(
        Agency(
            key=record.get("agency_id"),
            name=record.get("agency_name"),
            url=record.get("agency_url"),
            timezone=record.get("agency_timezone"),
            lang=record.get("agency_lang"),
            phone=record.get("agency_phone"),
            email=record.get("agency_email"),
        )
    )


def map_stop(record: dict[str, Any]) -> MappedRecord:
    """Map a stops.txt row; child stops also get a ``part_of_stop`` edge."""
    stop_id = require(record, "stop_id", "stops")
    parent_station = record.get("parent_station")
    stop = Stop(
        key=stop_id,
        code=record.get("stop_code"),
        name=record.get("stop_name"),
        desc=record.get("stop_desc"),
        lon=parse_float(record.get("stop_lon"), "stop_lon"),
        lat=parse_float(record.get("stop_lat"), "stop_lat"),
        zone_id=record.get("zone_id"),
        url=record.get("stop_url"),
        location_type=parse_int(record.get("location_type"), "location_type"),
        parent_station=parent_station,
        timezone=record.get("stop_timezone"),
        level_id=record.get("level_id"),
        wheelchair_boarding=decode_tristate(record.get("wheelchair_boarding")),
        platform_code=record.get("platform_code"),
    )
    relationships = []
    if parent_station:
        relationships.append(
            _edge(
                RelationKind.PART_OF_STOP,
                document_id(TableKind.STOPS, stop_id),
                document_id(TableKind.STOPS, parent_station),
            )
        )
    return MappedRecord(stop, relationships)


def map_route(record: dict[str, Any]) -> MappedRecord:
    route_id = require(record, "route_id", "routes")
    agency_id = record.get("agency_id")
    route = Route(
        key=route_id,
        agency_id=agency_id,
        short_name=record.get("route_short_name"),
        long_name=record.get("route_long_name"),
        desc=record.get("route_desc"),
        type=parse_int(record.get("route_type"), "route_type"),
        url=record.get("route_url"),
        color=normalize_color(record.get("route_color")),
        text_color=normalize_color(record.get("route_text_color")),
        sort_order=parse_int(record.get("route_sort_order"), "route_sort_order"),
    )
    relationships = []
    # agency_id is optional for single-agency feeds
    if agency_id:
        relationships.append(
            _edge(
                RelationKind.OPERATES,
                document_id(TableKind.AGENCY, agency_id),
                document_id(TableKind.ROUTES, route_id),
            )
        )
    return MappedRecord(route, relationships)


def map_trip(record: dict[str, Any]) -> MappedRecord:
    trip_id = require(record, "trip_id", "trips")
    route_id = require(record, "route_id", "trips")
    trip = Trip(
        key=trip_id,
        route_id=route_id,
        service_id=record.get("service_id"),
        headsign=record.get("trip_headsign"),
        short_name=record.get("trip_short_name"),
        direction_id=parse_int(record.get("direction_id"), "direction_id"),
        block_id=record.get("block_id"),
        shape_id=record.get("shape_id"),
        wheelchair_accessible=decode_tristate(record.get("wheelchair_accessible")),
        bikes_allowed=decode_tristate(record.get("bikes_allowed")),
    )
    uses = _edge(
        RelationKind.USES,
        document_id(TableKind.TRIPS, trip_id),
        document_id(TableKind.ROUTES, route_id),
    )
    return MappedRecord(trip, [uses])


def map_stop_time(record: dict[str, Any]) -> MappedRecord:
    """Map a stop_times.txt row to a StopTime with a freshly minted key."""
    trip_id = require(record, "trip_id", "stop_times")
    stop_id = require(record, "stop_id", "stop_times")
    stop_sequence = parse_int(require(record, "stop_sequence", "stop_times"), "stop_sequence")
    key = uuid.uuid4().hex
    stop_time = StopTime(
        key=key,
        trip_id=trip_id,
        stop_id=stop_id,
        arrival_time=record.get("arrival_time"),
        departure_time=record.get("departure_time"),
        stop_sequence=stop_sequence,
        pickup_type=parse_int(record.get("pickup_type"), "pickup_type"),
        drop_off_type=parse_int(record.get("drop_off_type"), "drop_off_type"),
        local_zone_id=record.get("local_zone_id"),
        stop_headsign=record.get("stop_headsign"),
        timepoint=parse_int(record.get("timepoint"), "timepoint"),
    )
    own_id = document_id(TableKind.STOP_TIMES, key)
    return MappedRecord(
        stop_time,
        [
            _edge(RelationKind.PART_OF_TRIP, own_id, document_id(TableKind.TRIPS, trip_id)),
            _edge(RelationKind.LOCATED_AT, own_id, document_id(TableKind.STOPS, stop_id)),
        ],
    )


def map_calendar(record: dict[str, Any]) -> MappedRecord:
    return MappedRecord(
        Calendar(
            service_id=require(record, "service_id", "calendar"),
            monday=decode_bool(record.get("monday")),
            tuesday=decode_bool(record.get("tuesday")),
            wednesday=decode_bool(record.get("wednesday")),
            thursday=decode_bool(record.get("thursday")),
            friday=decode_bool(record.get("friday")),
            saturday=decode_bool(record.get("saturday")),
            sunday=decode_bool(record.get("sunday")),
            start_date=parse_gtfs_date(require(record, "start_date", "calendar")),
            end_date=parse_gtfs_date(require(record, "end_date", "calendar")),
        )
    )


def map_calendar_date(record: dict[str, Any]) -> MappedRecord:
    return MappedRecord(
        CalendarDate(
            service_id=require(record, "service_id", "calendar_dates"),
            date=parse_gtfs_date(require(record, "date", "calendar_dates")),
            exception_type=parse_int(
                require(record, "exception_type", "calendar_dates"), "exception_type"
            ),
        )
    )


def map_pathway(record: dict[str, Any]) -> MappedRecord:
    """Map a pathways.txt row. The pathway is itself the edge between stops."""
    return MappedRecord(
        Pathway(
            key=require(record, "pathway_id", "pathways"),
            from_id=document_id(TableKind.STOPS, require(record, "from_stop_id", "pathways")),
            to_id=document_id(TableKind.STOPS, require(record, "to_stop_id", "pathways")),
            mode=parse_int(record.get("pathway_mode"), "pathway_mode"),
            is_bidirectional=decode_bool(record.get("is_bidirectional")),
            length=parse_float(record.get("length"), "length"),
            traversal_time=parse_int(record.get("traversal_time"), "traversal_time"),
            stair_count=parse_int(record.get("stair_count"), "stair_count"),
            max_slope=parse_float(record.get("max_slope"), "max_slope"),
            min_width=parse_float(record.get("min_width"), "min_width"),
            signposted_as=record.get("signposted_as"),
            reversed_signposted_as=record.get("reversed_signposted_as"),
        )
    )


FEED_TABLES: dict[TableKind, FeedTable] = {
    table.kind: table
    for table in (
        FeedTable(TableKind.AGENCY, map_agency, bulk=False),
        FeedTable(TableKind.STOPS, map_stop, bulk=True),
        FeedTable(TableKind.ROUTES, map_route, bulk=True),
        FeedTable(TableKind.TRIPS, map_trip, bulk=True),
        FeedTable(TableKind.STOP_TIMES, map_stop_time, bulk=True),
        FeedTable(TableKind.CALENDAR, map_calendar, bulk=False),
        FeedTable(TableKind.CALENDAR_DATES, map_calendar_date, bulk=False),
        FeedTable(TableKind.PATHWAYS, map_pathway, bulk=False),
    )
}


def map_record(kind: TableKind, record: dict[str, Any]) -> MappedRecord:
    """Map one normalized record of the given table kind.

    Raises:
        NormalizationError: If a required field is missing or a number is invalid.
        DateParseError: If a calendar date is malformed.
    """
    return FEED_TABLES[kind].map(record)

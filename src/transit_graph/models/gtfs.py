"""GTFS static graph models: vertex documents and edge documents."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TableKind(str, Enum):
    """Feed tables loaded into the graph. Values match the collection names."""

    AGENCY = "agency"
    STOPS = "stops"
    ROUTES = "routes"
    TRIPS = "trips"
    STOP_TIMES = "stop_times"
    CALENDAR = "calendar"
    CALENDAR_DATES = "calendar_dates"
    PATHWAYS = "pathways"

    @property
    def filename(self) -> str:
        return f"{self.value}.txt"

    @classmethod
    def from_filename(cls, filename: str) -> TableKind | None:
        """Return the table kind for e.g. ``stop_times.txt``, or None if unknown."""
        if not filename.endswith(".txt"):
            return None
        try:
            return cls(filename[: -len(".txt")])
        except ValueError:
            return None


class RelationKind(str, Enum):
    """Edge collections. Values match the collection names."""

    PART_OF_TRIP = "part_of_trip"
    LOCATED_AT = "located_at"
    USES = "uses"
    PART_OF_STOP = "part_of_stop"
    OPERATES = "operates"
    SERVES = "serves"
    PRECEDES = "precedes"
    HAS_ROUTES = "has_routes"


def document_id(collection: TableKind | str, key: str) -> str:
    """Build an ArangoDB document handle such as ``trips/T1``."""
    name = collection.value if isinstance(collection, TableKind) else collection
    return f"{name}/{key}"


class GraphDocument(BaseModel):
    """Base for every persisted document. Attributes are stored in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize for the store; unset optional attributes are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Agency(GraphDocument):
    key: str | None = Field(default=None, alias="_key")
    name: str | None = None
    url: str | None = None
    timezone: str | None = None
    lang: str | None = None
    phone: str | None = None
    email: str | None = None


class Stop(GraphDocument):
    """Stop, station, entrance or node. Geo-indexed on (lat, lon)."""

    key: str = Field(alias="_key")
    code: str | None = None
    name: str | None = None
    desc: str | None = None
    lon: float | None = None
    lat: float | None = None
    zone_id: str | None = None
    url: str | None = None
    location_type: int | None = None
    parent_station: str | None = None
    timezone: str | None = None
    level_id: str | None = None
    # None means no accessibility information
    wheelchair_boarding: bool | None = None
    platform_code: str | None = None


class Route(GraphDocument):
    key: str = Field(alias="_key")
    agency_id: str | None = None
    short_name: str | None = None
    long_name: str | None = None
    desc: str | None = None
    type: int | None = None
    url: str | None = None
    color: str | None = None
    text_color: str | None = None
    sort_order: int | None = None


class Trip(GraphDocument):
    key: str = Field(alias="_key")
    route_id: str
    service_id: str | None = None
    headsign: str | None = None
    short_name: str | None = None
    direction_id: int | None = None
    block_id: str | None = None
    shape_id: str | None = None
    wheelchair_accessible: bool | None = None
    bikes_allowed: bool | None = None


class StopTime(GraphDocument):
    """One scheduled call of a trip at a stop.

    The key is minted per row: (trip, stop) is not unique when a trip
    revisits a stop, so ordering relies on ``stop_sequence``.
    """

    key: str = Field(alias="_key")
    trip_id: str
    stop_id: str
    arrival_time: str | None = None
    departure_time: str | None = None
    stop_sequence: int
    pickup_type: int | None = None
    drop_off_type: int | None = None
    local_zone_id: str | None = None
    stop_headsign: str | None = None
    timepoint: int | None = None


class Calendar(GraphDocument):
    service_id: str
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    start_date: str
    end_date: str


class CalendarDate(GraphDocument):
    service_id: str
    date: str
    # 1 = service added, 2 = service removed
    exception_type: int


class Pathway(GraphDocument):
    """Walkable link between two stops, stored directly as an edge document."""

    key: str = Field(alias="_key")
    from_id: str = Field(alias="_from")
    to_id: str = Field(alias="_to")
    mode: int | None = None
    is_bidirectional: bool
    length: float | None = None
    traversal_time: int | None = None
    stair_count: int | None = None
    max_slope: float | None = None
    min_width: float | None = None
    signposted_as: str | None = None
    reversed_signposted_as: str | None = None


class Relationship(BaseModel):
    """Directed edge between two documents, carrying no payload."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: RelationKind
    from_id: str = Field(alias="_from")
    to_id: str = Field(alias="_to")

    def to_document(self) -> dict[str, Any]:
        return {"_from": self.from_id, "_to": self.to_id}

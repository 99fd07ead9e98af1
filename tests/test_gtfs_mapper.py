"""Tests for the entity mapper - documents and relationships per table."""

from __future__ import annotations

import pytest

from transit_graph.models.gtfs import RelationKind, StopTime, TableKind
from transit_graph.services.gtfs_static.mapper import FEED_TABLES, map_record
from transit_graph.services.gtfs_static.normalizer import (
    DateParseError,
    NormalizationError,
    normalize_record,
)


def _map(kind: TableKind, **fields: str):
    return map_record(kind, normalize_record(fields))


class TestFeedTables:
    def test_every_table_kind_registered(self) -> None:
        assert set(FEED_TABLES) == set(TableKind)

    def test_bulk_tables(self) -> None:
        bulk = {kind for kind, table in FEED_TABLES.items() if table.bulk}
        assert bulk == {TableKind.STOPS, TableKind.ROUTES, TableKind.TRIPS, TableKind.STOP_TIMES}

    def test_required_columns(self) -> None:
        assert FEED_TABLES[TableKind.STOP_TIMES].required_columns == {
            "trip_id",
            "stop_id",
            "stop_sequence",
        }
        assert FEED_TABLES[TableKind.AGENCY].required_columns == frozenset()


class TestStopMapping:
    def test_child_stop_emits_part_of_stop(self) -> None:
        mapped = _map(TableKind.STOPS, stop_id="S1", stop_name="Quai 1", parent_station="STA")

        assert mapped.entity.to_document()["_key"] == "S1"
        assert len(mapped.relationships) == 1
        edge = mapped.relationships[0]
        assert edge.kind is RelationKind.PART_OF_STOP
        assert edge.to_document() == {"_from": "stops/S1", "_to": "stops/STA"}

    def test_empty_parent_station_emits_nothing(self) -> None:
        mapped = _map(TableKind.STOPS, stop_id="S2", parent_station="")
        assert mapped.relationships == []

    def test_document_uses_camel_case_and_omits_unknowns(self) -> None:
        mapped = _map(
            TableKind.STOPS,
            stop_id="S1",
            stop_lat="48.8",
            stop_lon="2.3",
            zone_id="1",
            location_type="0",
            wheelchair_boarding="0",
        )
        doc = mapped.entity.to_document()

        assert doc["lat"] == pytest.approx(48.8)
        assert doc["zoneId"] == "1"
        assert doc["locationType"] == 0
        assert "wheelchairBoarding" not in doc
        assert "name" not in doc

    def test_wheelchair_boarding_decoded(self) -> None:
        accessible = _map(TableKind.STOPS, stop_id="S1", wheelchair_boarding="1")
        inaccessible = _map(TableKind.STOPS, stop_id="S1", wheelchair_boarding="2")

        assert accessible.entity.to_document()["wheelchairBoarding"] is True
        assert inaccessible.entity.to_document()["wheelchairBoarding"] is False

    def test_invalid_coordinate_fails_row(self) -> None:
        with pytest.raises(NormalizationError):
            _map(TableKind.STOPS, stop_id="S1", stop_lat="north")


class TestRouteMapping:
    def test_operates_edge_and_color(self) -> None:
        mapped = _map(
            TableKind.ROUTES,
            route_id="R1",
            agency_id="A1",
            route_type="3",
            route_color="FF0000",
        )
        doc = mapped.entity.to_document()

        assert doc["color"] == "#FF0000"
        assert doc["type"] == 3
        assert [edge.to_document() for edge in mapped.relationships] == [
            {"_from": "agency/A1", "_to": "routes/R1"}
        ]
        assert mapped.relationships[0].kind is RelationKind.OPERATES

    def test_route_without_agency(self) -> None:
        assert _map(TableKind.ROUTES, route_id="R1").relationships == []


class TestTripMapping:
    def test_uses_edge(self) -> None:
        mapped = _map(
            TableKind.TRIPS,
            trip_id="T1",
            route_id="R1",
            service_id="WD",
            bikes_allowed="2",
        )
        doc = mapped.entity.to_document()

        assert doc["_key"] == "T1"
        assert doc["serviceId"] == "WD"
        assert doc["bikesAllowed"] is False
        assert "wheelchairAccessible" not in doc
        assert mapped.relationships[0].kind is RelationKind.USES
        assert mapped.relationships[0].to_document() == {"_from": "trips/T1", "_to": "routes/R1"}

    def test_missing_route_id_fails(self) -> None:
        with pytest.raises(NormalizationError, match="route_id"):
            _map(TableKind.TRIPS, trip_id="T1")


class TestStopTimeMapping:
    def test_one_entity_two_edges(self) -> None:
        mapped = _map(
            TableKind.STOP_TIMES,
            trip_id="T1",
            stop_id="S1",
            stop_sequence="1",
            arrival_time="25:01:30",
        )
        entity = mapped.entity
        assert isinstance(entity, StopTime)
        own_id = f"stop_times/{entity.key}"

        kinds = [edge.kind for edge in mapped.relationships]
        assert kinds == [RelationKind.PART_OF_TRIP, RelationKind.LOCATED_AT]
        assert all(edge.from_id == own_id for edge in mapped.relationships)
        assert mapped.relationships[0].to_id == "trips/T1"
        assert mapped.relationships[1].to_id == "stops/S1"
        assert entity.to_document()["stopSequence"] == 1
        assert entity.to_document()["arrivalTime"] == "25:01:30"

    def test_keys_are_unique_per_row(self) -> None:
        row = {"trip_id": "T1", "stop_id": "S1", "stop_sequence": "1"}
        first = map_record(TableKind.STOP_TIMES, row)
        second = map_record(TableKind.STOP_TIMES, row)
        assert first.entity.key != second.entity.key

    def test_non_numeric_sequence_fails(self) -> None:
        with pytest.raises(NormalizationError, match="stop_sequence"):
            _map(TableKind.STOP_TIMES, trip_id="T1", stop_id="S1", stop_sequence="first")


class TestCalendarMapping:
    def test_calendar(self) -> None:
        mapped = _map(
            TableKind.CALENDAR,
            service_id="WD",
            monday="1",
            tuesday="0",
            wednesday="1",
            thursday="1",
            friday="1",
            saturday="0",
            sunday="",
            start_date="20240101",
            end_date="20241231",
        )
        doc = mapped.entity.to_document()

        assert doc["serviceId"] == "WD"
        assert doc["monday"] is True
        assert doc["tuesday"] is False
        assert doc["sunday"] is False
        assert doc["startDate"] == "2024-01-01"
        assert doc["endDate"] == "2024-12-31"
        assert "_key" not in doc
        assert mapped.relationships == []

    def test_calendar_bad_date(self) -> None:
        with pytest.raises(DateParseError):
            _map(TableKind.CALENDAR, service_id="WD", start_date="2024011", end_date="20241231")

    def test_calendar_date(self) -> None:
        doc = _map(
            TableKind.CALENDAR_DATES, service_id="WD", date="20240501", exception_type="2"
        ).entity.to_document()
        assert doc == {"serviceId": "WD", "date": "2024-05-01", "exceptionType": 2}


class TestPathwayAndAgency:
    def test_pathway_is_edge_document(self) -> None:
        doc = _map(
            TableKind.PATHWAYS,
            pathway_id="P1",
            from_stop_id="STA",
            to_stop_id="S1",
            pathway_mode="1",
            is_bidirectional="1",
        ).entity.to_document()

        assert doc["_key"] == "P1"
        assert doc["_from"] == "stops/STA"
        assert doc["_to"] == "stops/S1"
        assert doc["isBidirectional"] is True
        assert doc["mode"] == 1

    def test_agency_without_id(self) -> None:
        doc = _map(TableKind.AGENCY, agency_name="Metro").entity.to_document()
        assert doc == {"name": "Metro"}

"""Tests for BatchAccumulator - threshold splicing and entity/edge alignment."""

from __future__ import annotations

import pytest

from transit_graph.models.gtfs import RelationKind, Relationship, StopTime, TableKind
from transit_graph.services.gtfs_static.batcher import BatchAccumulator
from transit_graph.services.gtfs_static.mapper import MappedRecord

_STOP_TIME = StopTime(key="st", trip_id="T1", stop_id="S1", stop_sequence=1)
_EDGES = [
    Relationship(kind=RelationKind.PART_OF_TRIP, from_id="stop_times/st", to_id="trips/T1"),
    Relationship(kind=RelationKind.LOCATED_AT, from_id="stop_times/st", to_id="stops/S1"),
]


def _stop_time_record(index: int) -> MappedRecord:
    entity = StopTime(key=f"st{index}", trip_id="T1", stop_id="S1", stop_sequence=index)
    own_id = f"stop_times/st{index}"
    return MappedRecord(
        entity,
        [
            Relationship(kind=RelationKind.PART_OF_TRIP, from_id=own_id, to_id="trips/T1"),
            Relationship(kind=RelationKind.LOCATED_AT, from_id=own_id, to_id="stops/S1"),
        ],
    )


class TestBatchAccumulator:
    """Tests for take/drain behaviour."""

    def test_take_returns_none_below_threshold(self) -> None:
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=3)
        acc.add(_stop_time_record(1))
        acc.add(_stop_time_record(2))
        assert acc.take() is None
        assert len(acc) == 2

    def test_take_at_threshold(self) -> None:
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=2)
        for i in range(3):
            acc.add(_stop_time_record(i))

        batch = acc.take()

        assert batch is not None
        assert [e.key for e in batch.entities] == ["st0", "st1"]
        assert len(batch.relationships) == 4
        assert len(acc) == 1
        assert acc.pending_relationships == 2

    def test_edges_follow_their_entities(self) -> None:
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=2)
        for i in range(5):
            acc.add(_stop_time_record(i))

        batch = acc.take()
        assert batch is not None
        assert {edge.from_id for edge in batch.relationships} == {
            "stop_times/st0",
            "stop_times/st1",
        }

    def test_mixed_edge_counts(self) -> None:
        acc = BatchAccumulator(TableKind.STOPS, threshold=2)
        plain = MappedRecord(_STOP_TIME, [])
        child = MappedRecord(_STOP_TIME, _EDGES[:1])
        acc.add(plain)
        acc.add(child)
        acc.add(child)

        batch = acc.take()
        assert batch is not None
        assert len(batch.entities) == 2
        assert len(batch.relationships) == 1
        assert acc.pending_relationships == 1

    def test_drain_returns_rest_then_none(self) -> None:
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=10)
        acc.add(_stop_time_record(1))

        batch = acc.drain()
        assert batch is not None
        assert len(batch.entities) == 1
        assert len(batch.relationships) == 2
        assert acc.drain() is None

    def test_drain_empty(self) -> None:
        assert BatchAccumulator(TableKind.TRIPS, threshold=1).drain() is None

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            BatchAccumulator(TableKind.TRIPS, threshold=0)

    def test_large_feed_splices(self) -> None:
        """120 000 stop_times at 50 000: two full batches, then 20 000 on drain."""
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=50_000)
        record = MappedRecord(_STOP_TIME, _EDGES)
        for _ in range(120_000):
            acc.add(record)

        first = acc.take()
        second = acc.take()
        assert first is not None
        assert second is not None
        assert (len(first.entities), len(first.relationships)) == (50_000, 100_000)
        assert (len(second.entities), len(second.relationships)) == (50_000, 100_000)
        assert acc.take() is None

        rest = acc.drain()
        assert rest is not None
        assert (len(rest.entities), len(rest.relationships)) == (20_000, 40_000)

    def test_relationships_by_kind(self) -> None:
        acc = BatchAccumulator(TableKind.STOP_TIMES, threshold=2)
        acc.add(_stop_time_record(1))
        acc.add(_stop_time_record(2))

        batch = acc.take()
        assert batch is not None
        grouped = batch.relationships_by_kind()
        assert set(grouped) == {RelationKind.PART_OF_TRIP, RelationKind.LOCATED_AT}
        assert [edge.from_id for edge in grouped[RelationKind.PART_OF_TRIP]] == [
            "stop_times/st1",
            "stop_times/st2",
        ]
        assert str(batch) == "Batch of 2 stop_times documents and 4 edges"

    def test_default_threshold_from_settings(self) -> None:
        assert BatchAccumulator(TableKind.TRIPS).threshold == 50_000

"""Per-table batch accumulator for bulk graph imports."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from transit_graph.config import get_settings

if TYPE_CHECKING:
    from transit_graph.models.gtfs import GraphDocument, RelationKind, Relationship, TableKind
    from transit_graph.services.gtfs_static.mapper import MappedRecord

DEFAULT_BATCH_SIZE = 50_000


@dataclass
class Batch:
    """Entities of one table and the relationships emitted alongside them."""

    table: TableKind
    entities: list[GraphDocument] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Batch of {len(self.entities)} {self.table.value} documents "
            f"and {len(self.relationships)} edges"
        )

    def relationships_by_kind(self) -> dict[RelationKind, list[Relationship]]:
        """Group edges by target collection, preserving order within each."""
        grouped: dict[RelationKind, list[Relationship]] = defaultdict(list)
        for relationship in self.relationships:
            grouped[relationship.kind].append(relationship)
        return dict(grouped)


class BatchAccumulator:
    """Buffers mapped records of one table and releases fixed-size batches.

    Order is FIFO. Relationships stay attached to the entity whose row emitted
    them, so a batch of N stop_times carries exactly their 2N edges.

    Usage:
        accumulator = BatchAccumulator(TableKind.STOP_TIMES, threshold=50_000)
        accumulator.add(mapped)
        batch = accumulator.take()    # None until the threshold is reached
        ...
        rest = accumulator.drain()    # end of file
    """

    def __init__(self, table: TableKind, threshold: int | None = None) -> None:
        self.table = table
        self.threshold = threshold if threshold is not None else get_settings().import_batch_size
        if self.threshold < 1:
            raise ValueError(f"Batch threshold must be positive, got {self.threshold}")
        self._entities: list[GraphDocument] = []
        self._relationships: list[Relationship] = []
        # Number of relationships emitted by each buffered entity
        self._edge_counts: list[int] = []

    def __len__(self) -> int:
        return len(self._entities)

    @property
    def pending_relationships(self) -> int:
        return len(self._relationships)

    def add(self, mapped: MappedRecord) -> None:
        """Buffer one mapped record."""
        self._entities.append(mapped.entity)
        self._relationships.extend(mapped.relationships)
        self._edge_counts.append(len(mapped.relationships))

    def take(self) -> Batch | None:
        """Remove and return the first ``threshold`` records if that many are buffered."""
        if len(self._entities) < self.threshold:
            return None
        return self._splice(self.threshold)

    def drain(self) -> Batch | None:
        """Remove and return everything still buffered, or None when empty."""
        if not self._entities and not self._relationships:
            return None
        return self._splice(len(self._entities))

    def _splice(self, size: int) -> Batch:
        edge_count = sum(self._edge_counts[:size])
        batch = Batch(
            table=self.table,
            entities=self._entities[:size],
            relationships=self._relationships[:edge_count],
        )
        del self._entities[:size]
        del self._relationships[:edge_count]
        del self._edge_counts[:size]
        return batch

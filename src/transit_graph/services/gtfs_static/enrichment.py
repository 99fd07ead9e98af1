"""Post-load graph enrichment: derived edges computed inside ArangoDB.

Every job is a single AQL write query. Inserts use ``ignoreErrors`` and the
target collections carry a unique (_from, _to) index, so running a job again
over the same data creates nothing new.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from transit_graph.config import get_settings
from transit_graph.logging import get_logger
from transit_graph.models.gtfs import RelationKind, TableKind
from transit_graph.services.gtfs_static.store import GraphStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transit_graph.services.gtfs_static.store import GraphStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnrichmentJob:
    """A named AQL query that fills one derived edge collection."""

    name: str
    target: RelationKind
    query: str


PRECEDES_JOB = EnrichmentJob(
    name="precedes",
    target=RelationKind.PRECEDES,
    query="""
    WITH stop_times
    FOR trip IN trips
        LET calls = (
            FOR stop_time IN 1 INBOUND trip part_of_trip
                RETURN { id: stop_time._id, sequence: stop_time.stopSequence }
        )
        FOR earlier IN calls
            FOR later IN calls
                FILTER later.sequence == earlier.sequence + 1
                INSERT { _from: earlier.id, _to: later.id } INTO precedes
                    OPTIONS { ignoreErrors: true }
    """,
)

SERVES_JOB = EnrichmentJob(
    name="serves",
    target=RelationKind.SERVES,
    query="""
    FOR trip IN trips
        FILTER trip.serviceId != null
        FOR service IN calendar
            FILTER service.serviceId == trip.serviceId
            INSERT { _from: service._id, _to: trip._id } INTO serves
                OPTIONS { ignoreErrors: true }
    """,
)

HAS_ROUTES_JOB = EnrichmentJob(
    name="has_routes",
    target=RelationKind.HAS_ROUTES,
    query="""
    WITH stop_times, trips, routes
    FOR stop IN stops
        LET route_ids = UNIQUE(
            FOR route IN 3 INBOUND stop located_at, OUTBOUND part_of_trip, OUTBOUND uses
                RETURN route._id
        )
        FOR route_id IN route_ids
            INSERT { _from: stop._id, _to: route_id } INTO has_routes
                OPTIONS { ignoreErrors: true }
    """,
)

ENRICHMENT_JOBS: dict[str, EnrichmentJob] = {
    job.name: job for job in (PRECEDES_JOB, SERVES_JOB, HAS_ROUTES_JOB)
}

_SERVICE_TABLES = frozenset({TableKind.CALENDAR, TableKind.TRIPS})


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment job run."""

    job: str
    status: str = "success"
    duration_ms: int = 0
    stats: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "stats": self.stats,
            "error": self.error,
        }


class EnrichmentTriggers:
    """Decides which enrichment jobs become due as table files finish.

    All table files of the feed are registered as open up front. Call
    ``close`` after a file reaches a terminal state; it returns the jobs that
    are now due, each at most once per run:

    - precedes: once stop_times has closed successfully;
    - serves: once neither calendar nor trips is open (a table missing from
      the feed counts as closed);
    - has_routes: once no table is open.
    """

    def __init__(self, tables: Iterable[TableKind]) -> None:
        self._open: set[TableKind] = set(tables)
        self._fired: set[str] = set()

    @property
    def open_tables(self) -> frozenset[TableKind]:
        return frozenset(self._open)

    @property
    def fired(self) -> frozenset[str]:
        return frozenset(self._fired)

    def close(self, table: TableKind, succeeded: bool = True) -> list[EnrichmentJob]:
        self._open.discard(table)

        due: list[EnrichmentJob] = []
        if table is TableKind.STOP_TIMES and succeeded:
            due.append(PRECEDES_JOB)
        if table in _SERVICE_TABLES and not (self._open & _SERVICE_TABLES):
            due.append(SERVES_JOB)
        if not self._open:
            due.append(HAS_ROUTES_JOB)

        ready = [job for job in due if job.name not in self._fired]
        self._fired.update(job.name for job in ready)
        return ready


async def run_enrichment(
    store: GraphStore,
    job: EnrichmentJob,
    intermediate_commit_count: int | None = None,
) -> EnrichmentResult:
    """Run one enrichment job.

    A failing query is logged and reported in the result, never raised, so
    the rest of the import carries on.
    """
    if intermediate_commit_count is None:
        intermediate_commit_count = get_settings().intermediate_commit_count

    logger.info("Running graph enrichment", job=job.name, target=job.target.value)
    started = time.monotonic()
    result = EnrichmentResult(job=job.name)
    try:
        result.stats = await store.run_query(
            job.query,
            intermediate_commit_count=intermediate_commit_count,
        )
    except GraphStoreError as exc:
        result.status = "failed"
        result.error = str(exc)
        logger.error("Graph enrichment failed", job=job.name, error=str(exc))
    result.duration_ms = int((time.monotonic() - started) * 1000)

    if result.status == "success":
        logger.info(
            "Graph enrichment complete",
            job=job.name,
            duration_ms=result.duration_ms,
            modified=result.stats.get("modified"),
            ignored=result.stats.get("ignored"),
        )
    return result


async def run_enrichment_jobs(
    store: GraphStore,
    names: Iterable[str] | None = None,
    intermediate_commit_count: int | None = None,
) -> list[EnrichmentResult]:
    """Run the named jobs (all of them by default) one after another.

    Raises:
        KeyError: If a job name is unknown.
    """
    selected = list(names) if names is not None else list(ENRICHMENT_JOBS)
    jobs = [ENRICHMENT_JOBS[name] for name in selected]
    return [await run_enrichment(store, job, intermediate_commit_count) for job in jobs]

"""GTFS graph importer - orchestrates fetch, per-table loading and enrichment."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from transit_graph.config import get_settings
from transit_graph.logging import get_logger, import_log_context
from transit_graph.services.gtfs_static.batcher import Batch, BatchAccumulator
from transit_graph.services.gtfs_static.enrichment import EnrichmentTriggers, run_enrichment
from transit_graph.services.gtfs_static.fetcher import GtfsStaticFetcher
from transit_graph.services.gtfs_static.mapper import FEED_TABLES, FeedTable, MappedRecord
from transit_graph.services.gtfs_static.normalizer import (
    DateParseError,
    NormalizationError,
    normalize_record,
)
from transit_graph.services.gtfs_static.parser import FeedReadError, GtfsParser
from transit_graph.services.gtfs_static.reader import GtfsFeedDirectory
from transit_graph.services.gtfs_static.store import GraphStoreError

if TYPE_CHECKING:
    from transit_graph.models.gtfs import TableKind
    from transit_graph.services.gtfs_static.enrichment import EnrichmentJob
    from transit_graph.services.gtfs_static.store import GraphStore

logger = get_logger(__name__)


class FileState(str, Enum):
    """Lifecycle of one table file during a run."""

    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"
    FAILED = "failed"


class ImportReport:
    """Collects import metrics, file states, enrichment outcomes, warnings and errors."""

    def __init__(self, source: str, feed_hash: str = "", import_id: str | None = None) -> None:
        self.import_id = import_id or str(uuid.uuid4())
        self.source = source
        self.feed_hash = feed_hash
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: datetime | None = None
        self.duration_ms: int | None = None
        self.counts: dict[str, dict[str, int]] = {}
        self.states: dict[str, str] = {}
        self.enrichment: dict[str, dict[str, Any]] = {}
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def init_table(self, table: str) -> None:
        self.counts[table] = {
            "read": 0,
            "inserted": 0,
            "relationships": 0,
            "skipped": 0,
            "failed": 0,
        }
        self.states[table] = FileState.OPEN.value

    def finish(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.ended_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "failed" if self.errors else "success",
            "import_id": self.import_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "source": self.source,
            "feed_hash": self.feed_hash,
            "counts": self.counts,
            "states": self.states,
            "enrichment": self.enrichment,
            "warnings": self.warnings[:100],  # cap for response size
            "errors": self.errors[:100],
        }


class GtfsGraphImporter:
    """Loads a GTFS static feed into the graph store.

    Every table file is ingested by its own task; rows within a file are
    handled strictly in order and each batch write is awaited before the next
    row is read. Enrichment jobs run as soon as the files they read from are
    done (see ``EnrichmentTriggers``).

    Usage:
        async with open_graph_store() as store:
            importer = GtfsGraphImporter(store)
            report = await importer.run("remote", url)
    """

    def __init__(
        self,
        store: GraphStore,
        batch_size: int | None = None,
        intermediate_commit_count: int | None = None,
        strict: bool | None = None,
        fetcher: GtfsStaticFetcher | None = None,
    ) -> None:
        settings = get_settings()
        self.batch_size = batch_size if batch_size is not None else settings.import_batch_size
        self.intermediate_commit_count = (
            intermediate_commit_count
            if intermediate_commit_count is not None
            else settings.intermediate_commit_count
        )
        self.strict = strict if strict is not None else settings.gtfs_import_strict
        self._store = store
        self._fetcher = fetcher or GtfsStaticFetcher(timeout_sec=settings.gtfs_fetch_timeout_sec)

    async def run(
        self,
        source_type: str,
        source: str,
        cleanup: bool | None = None,
        work_dir: str | Path | None = None,
    ) -> ImportReport:
        """Execute the full import pipeline.

        Args:
            source_type: "remote" (URL), "local" (zip path) or "directory"
                (already extracted feed).
            source: URL or filesystem path.
            cleanup: Delete the extracted feed after a successful run. Defaults
                to GTFS_CLEANUP_AFTER_IMPORT.
            work_dir: Where the archive is downloaded and extracted.

        Returns:
            ImportReport with full metrics.

        Raises:
            FetchError: If the archive cannot be downloaded.
            InvalidZipError: If the archive is not a ZIP.
            FileNotFoundError: If a local source does not exist.
        """
        settings = get_settings()
        cleanup = cleanup if cleanup is not None else settings.gtfs_cleanup_after_import
        work_dir = work_dir if work_dir is not None else settings.gtfs_work_dir

        import_id = str(uuid.uuid4())
        with import_log_context(import_id=import_id):
            logger.info(
                "Starting GTFS graph import",
                source_type=source_type,
                source=source,
                batch_size=self.batch_size,
                strict=self.strict,
            )

            try:
                workspace = await self._fetcher.prepare(source_type, source, work_dir)
            except ValueError as exc:
                report = ImportReport(source=source, import_id=import_id)
                report.errors.append(str(exc))
                report.finish()
                return report

            report = ImportReport(source=source, feed_hash=workspace.feed_hash, import_id=import_id)
            await self.load_directory(workspace.feed_dir, report)

            if cleanup and not report.errors:
                workspace.cleanup()

            report.finish()
            logger.info(
                "GTFS graph import complete",
                duration_ms=report.duration_ms,
                counts=report.counts,
                states=report.states,
                warnings_count=len(report.warnings),
                errors_count=len(report.errors),
            )
            return report

    async def load_directory(
        self, directory: str | Path, report: ImportReport | None = None
    ) -> ImportReport:
        """Reset the graph and load every known table file of ``directory``."""
        report = report or ImportReport(source=str(directory))
        feed = GtfsFeedDirectory(directory)
        tables = feed.tables()

        await self._store.reset()

        triggers = EnrichmentTriggers(tables)
        for kind in tables:
            report.init_table(kind.value)

        await asyncio.gather(
            *(self._ingest_table(kind, path, triggers, report) for kind, path in tables.items())
        )
        return report

    async def _ingest_table(
        self,
        kind: TableKind,
        path: Path,
        triggers: EnrichmentTriggers,
        report: ImportReport,
    ) -> None:
        with import_log_context(table=kind.value):
            succeeded = False
            try:
                succeeded = await self._load_table(FEED_TABLES[kind], path, report)
            except Exception as exc:
                self._abort(kind.value, exc, report)
            finally:
                report.states[kind.value] = (
                    FileState.CLOSED if succeeded else FileState.FAILED
                ).value
                logger.info(
                    "Table file closed",
                    state=report.states[kind.value],
                    counts=report.counts[kind.value],
                    still_open=sorted(table.value for table in triggers.open_tables - {kind}),
                )
                jobs = triggers.close(kind, succeeded=succeeded)

            for job in jobs:
                await self._run_job(job, report)

    async def _load_table(self, table: FeedTable, path: Path, report: ImportReport) -> bool:
        """Stream, map and write one table file. Returns False if the file aborted."""
        name = table.kind.value
        counts = report.counts[name]
        parser = GtfsParser(path, table.kind, table.required_columns)
        accumulator = BatchAccumulator(table.kind, self.batch_size) if table.bulk else None

        try:
            for raw in parser.records():
                counts["read"] += 1
                try:
                    mapped = table.map(normalize_record(raw))
                except (NormalizationError, DateParseError) as exc:
                    counts["failed"] += 1
                    if self.strict:
                        raise
                    report.warnings.append(f"{name} row error: {exc}")
                    continue

                if accumulator is None:
                    await self._save(table, mapped, counts)
                    continue

                accumulator.add(mapped)
                batch = accumulator.take()
                if batch is not None:
                    await self._write_batch(batch, counts)

            report.states[name] = FileState.DRAINING.value
            if accumulator is not None:
                batch = accumulator.drain()
                if batch is not None:
                    await self._write_batch(batch, counts)
        except (GraphStoreError, FeedReadError, NormalizationError, DateParseError) as exc:
            self._abort(name, exc, report)
            return False
        finally:
            counts["skipped"] = parser.skipped

        return True

    async def _save(self, table: FeedTable, mapped: MappedRecord, counts: dict[str, int]) -> None:
        await self._store.save(table.collection, mapped.entity.to_document())
        counts["inserted"] += 1
        for relationship in mapped.relationships:
            await self._store.save(relationship.kind.value, relationship.to_document())
            counts["relationships"] += 1

    async def _write_batch(self, batch: Batch, counts: dict[str, int]) -> None:
        logger.debug("Flushing batch", batch=str(batch))
        counts["inserted"] += await self._store.import_documents(
            batch.table.value,
            [entity.to_document() for entity in batch.entities],
        )
        for kind, relationships in batch.relationships_by_kind().items():
            counts["relationships"] += await self._store.import_documents(
                kind.value,
                [relationship.to_document() for relationship in relationships],
            )

    async def _run_job(self, job: EnrichmentJob, report: ImportReport) -> None:
        result = await run_enrichment(self._store, job, self.intermediate_commit_count)
        report.enrichment[job.name] = result.to_dict()
        if result.error:
            report.warnings.append(f"{job.name} enrichment failed: {result.error}")

    @staticmethod
    def _abort(table: str, exc: Exception, report: ImportReport) -> None:
        msg = f"{table} import aborted: {exc}"
        logger.error(msg, exc_info=exc)
        report.errors.append(msg)

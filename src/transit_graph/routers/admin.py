"""Admin routes for GTFS graph import and enrichment runs."""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from transit_graph.config import get_settings
from transit_graph.database import open_graph_store
from transit_graph.logging import get_logger
from transit_graph.services.gtfs_static.enrichment import ENRICHMENT_JOBS, run_enrichment_jobs
from transit_graph.services.gtfs_static.fetcher import FetchError, InvalidZipError
from transit_graph.services.gtfs_static.importer import GtfsGraphImporter
from transit_graph.services.gtfs_static.store import GraphStoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class StaticGtfsImportRequest(BaseModel):
    """Request body for static GTFS import."""

    source_type: Literal["remote", "local", "directory"] = Field(
        default="remote",
        description=(
            "'remote' for URL download, 'local' for a zip on disk, "
            "'directory' for an already extracted feed"
        ),
    )
    source: str = Field(
        default="",
        description="URL or filesystem path. Empty uses configured default.",
    )
    strict: Optional[bool] = Field(
        default=None,
        description="If true, a bad row aborts its whole file. Defaults to env GTFS_IMPORT_STRICT.",
    )
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Records per bulk import. Defaults to env IMPORT_BATCH_SIZE.",
    )
    cleanup: Optional[bool] = Field(
        default=None,
        description="Delete extracted files after a successful run. Defaults to env.",
    )


class StaticGtfsImportResponse(BaseModel):
    """Response body for static GTFS import."""

    status: Literal["success", "failed"]
    import_id: str
    started_at: str
    ended_at: Optional[str] = None
    duration_ms: Optional[int] = None
    source: str
    feed_hash: str
    counts: Dict[str, Dict[str, int]]
    states: Dict[str, str]
    enrichment: Dict[str, Dict[str, Any]]
    warnings: List[str]
    errors: List[str]


@router.post(
    "/import/static-gtfs",
    response_model=StaticGtfsImportResponse,
    summary="Import static GTFS feed into the graph",
    description=(
        "Reset the graph collections and load a static GTFS feed, then derive "
        "precedes, serves and has_routes edges. Unprotected: run behind a trusted network."
    ),
)
async def import_static_gtfs(body: StaticGtfsImportRequest) -> Dict[str, Any]:
    """Import a static GTFS feed into the graph database."""
    settings = get_settings()
    source = body.source
    if not source:
        if body.source_type == "remote":
            source = settings.gtfs_static_url
        else:
            raise HTTPException(
                status_code=400,
                detail=f"source is required when source_type is '{body.source_type}'",
            )

    try:
        async with open_graph_store() as store:
            importer = GtfsGraphImporter(store, batch_size=body.batch_size, strict=body.strict)
            report = await importer.run(
                source_type=body.source_type,
                source=source,
                cleanup=body.cleanup,
            )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (FetchError, InvalidZipError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GraphStoreError as exc:
        logger.error("Graph database unavailable", exc_info=exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Unexpected import error", exc_info=exc)
        raise HTTPException(
            status_code=500,
            detail=f"Import failed unexpectedly: {type(exc).__name__}: {exc}",
        ) from exc

    if report.errors:
        raise HTTPException(status_code=400, detail=report.to_dict())

    return report.to_dict()


class EnrichmentRunRequest(BaseModel):
    """Request body for a standalone enrichment run."""

    jobs: Optional[List[str]] = Field(
        default=None,
        description="Jobs to run in order (precedes, serves, has_routes). Defaults to all.",
    )


class EnrichmentRunResponse(BaseModel):
    """Response body for a standalone enrichment run."""

    status: Literal["success", "failed"]
    results: List[Dict[str, Any]]


@router.post(
    "/enrichment/run",
    response_model=EnrichmentRunResponse,
    summary="Run graph enrichment jobs",
    description=(
        "Re-derive edges over the data already in the graph. "
        "Idempotent: existing edges are left untouched."
    ),
)
async def run_enrichment(body: EnrichmentRunRequest) -> Dict[str, Any]:
    """Run enrichment jobs against the current graph."""
    unknown = sorted(set(body.jobs or []) - set(ENRICHMENT_JOBS))
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown enrichment jobs: {unknown}. Known: {sorted(ENRICHMENT_JOBS)}",
        )

    try:
        async with open_graph_store() as store:
            results = await run_enrichment_jobs(store, body.jobs)
    except GraphStoreError as exc:
        logger.error("Graph database unavailable", exc_info=exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    failed = any(result.status != "success" for result in results)
    return {
        "status": "failed" if failed else "success",
        "results": [result.to_dict() for result in results],
    }

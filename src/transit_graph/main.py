"""FastAPI application entry point for the admin surface."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transit_graph.config import get_settings
from transit_graph.database import check_database_connection
from transit_graph.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from transit_graph.routers.admin import router as admin_router
from transit_graph.services.gtfs_static.store import GraphStoreError

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    settings = get_settings()
    logger.info(
        "Starting Transit Graph Loader",
        arango_url=settings.arango_url,
        database=settings.arango_database,
        environment=settings.environment,
    )
    if not await check_database_connection():
        # Imports will fail until the database is up; the API still starts
        logger.warning("Graph database not reachable at startup", arango_url=settings.arango_url)
    yield
    logger.info("Shutting down Transit Graph Loader")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    show_docs = settings.environment != "production"

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Admin API that loads static GTFS feeds into an ArangoDB transit graph",
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id, path=request.url.path)
        started = time.monotonic()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request handled",
                method=request.method,
                status_code=response.status_code,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return response
        finally:
            clear_request_context()

    app.include_router(admin_router)

    @app.get("/health", tags=["meta"])
    async def health_check() -> dict[str, Any]:
        """Report configuration problems and graph database reachability."""
        settings = get_settings()
        missing_env = settings.missing_required_env()
        db_healthy = await check_database_connection()

        issues: list[str] = []
        if missing_env:
            issues.append("Missing required environment variables: " + ", ".join(missing_env))
        if not db_healthy:
            issues.append(f"Graph database unreachable at {settings.arango_url}")

        if missing_env:
            status = "unhealthy"
        elif db_healthy:
            status = "healthy"
        else:
            status = "degraded"

        return {
            "service": settings.app_name,
            "status": status,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "database": db_healthy,
                "databaseName": settings.arango_database,
            },
            "issues": issues,
        }

    @app.exception_handler(GraphStoreError)
    async def graph_store_error_handler(request: Request, exc: GraphStoreError) -> JSONResponse:
        logger.error("Graph database error", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=503,
            content={"error": "graph_store_unavailable", "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    return app


app = create_app()

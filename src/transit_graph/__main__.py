"""One-shot import: ``python -m transit_graph``.

Downloads the configured feed, rebuilds the graph and exits non-zero if any
table file failed.
"""

from __future__ import annotations

import asyncio
import sys

from transit_graph.config import get_settings
from transit_graph.database import open_graph_store
from transit_graph.logging import get_logger, setup_logging
from transit_graph.services.gtfs_static.importer import GtfsGraphImporter, ImportReport

logger = get_logger(__name__)


async def run_import() -> ImportReport:
    settings = get_settings()
    async with open_graph_store(settings) as store:
        importer = GtfsGraphImporter(store)
        return await importer.run("remote", settings.gtfs_static_url)


def main() -> int:
    setup_logging()
    report = asyncio.run(run_import())
    if report.errors:
        logger.error("Import finished with errors", errors=report.errors)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Static GTFS to graph loading pipeline."""

from transit_graph.services.gtfs_static.batcher import BatchAccumulator
from transit_graph.services.gtfs_static.enrichment import (
    ENRICHMENT_JOBS,
    EnrichmentTriggers,
    run_enrichment,
    run_enrichment_jobs,
)
from transit_graph.services.gtfs_static.fetcher import GtfsStaticFetcher
from transit_graph.services.gtfs_static.importer import GtfsGraphImporter, ImportReport
from transit_graph.services.gtfs_static.mapper import FEED_TABLES, map_record
from transit_graph.services.gtfs_static.parser import GtfsParser
from transit_graph.services.gtfs_static.reader import GtfsFeedDirectory
from transit_graph.services.gtfs_static.store import GraphStore, GraphStoreError

__all__ = [
    "ENRICHMENT_JOBS",
    "FEED_TABLES",
    "BatchAccumulator",
    "EnrichmentTriggers",
    "GraphStore",
    "GraphStoreError",
    "GtfsFeedDirectory",
    "GtfsGraphImporter",
    "GtfsParser",
    "GtfsStaticFetcher",
    "ImportReport",
    "map_record",
    "run_enrichment",
    "run_enrichment_jobs",
]

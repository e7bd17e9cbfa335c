"""Application services - catalog, reconciliation, crawling and sync."""

from medialibrary.application.services.catalog import EntityCollection, MediaCatalog
from medialibrary.application.services.crawl_coordinator import (
    CrawlCoordinator,
    CrawlState,
    CrawlStats,
)
from medialibrary.application.services.reconciler import LibraryReconciler, ReconcileOutcome
from medialibrary.application.services.sync_manager import CatalogSyncManager

__all__ = [
    "EntityCollection",
    "MediaCatalog",
    "LibraryReconciler",
    "ReconcileOutcome",
    "CrawlCoordinator",
    "CrawlState",
    "CrawlStats",
    "CatalogSyncManager",
]

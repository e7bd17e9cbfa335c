"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import Depends, HTTPException, Request

from medialibrary.application.services import (
    CatalogSyncManager,
    CrawlCoordinator,
    MediaCatalog,
)
from medialibrary.infrastructure.lifecycle import LibraryServices

logger = logging.getLogger(__name__)


# Hey future me, the library services are built in lifespan() and attached to app.state.library.
# If they're missing, startup failed or hasn't finished - answer 503 instead of crashing with an
# AttributeError. Tests can set app.state.library directly without running the lifespan.
def get_library(request: Request) -> LibraryServices:
    """Get the library services from app state.

    Raises:
        HTTPException: 503 if the library is not initialized
    """
    library = getattr(request.app.state, "library", None)
    if library is None:
        raise HTTPException(status_code=503, detail="Library not initialized")
    return cast(LibraryServices, library)


def get_catalog(library: LibraryServices = Depends(get_library)) -> MediaCatalog:
    return library.catalog


def get_crawl_coordinator(
    library: LibraryServices = Depends(get_library),
) -> CrawlCoordinator:
    return library.coordinator


def get_sync_manager(
    library: LibraryServices = Depends(get_library),
) -> CatalogSyncManager:
    return library.sync_manager

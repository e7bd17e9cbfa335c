"""Library control API endpoints."""

import logging
from dataclasses import asdict
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from medialibrary import __version__
from medialibrary.api.dependencies import (
    get_catalog,
    get_crawl_coordinator,
    get_library,
    get_sync_manager,
)
from medialibrary.application.services import (
    CatalogSyncManager,
    CrawlCoordinator,
    MediaCatalog,
)
from medialibrary.domain.exceptions import InvalidStateException
from medialibrary.infrastructure.lifecycle import LibraryServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/library", tags=["library"])


class CollectionName(str, Enum):
    """Catalog collections exposed by the API."""

    SONGS = "songs"
    ALBUMS = "albums"
    ARTISTS = "artists"
    GENRES = "genres"
    VIDEOS = "videos"


# Hey future me, these DTOs are the whole public contract of the control surface. The status
# flags are read straight from the coordinator/sync manager properties - never cache them.
class LibraryStatus(BaseModel):
    """Indexing gate, busy flags and catalog sizes."""

    state: str = Field(description="Coordinator state: not_ready, idle, indexing, reindex_queued")
    can_index: bool
    is_indexing: bool
    reindex_queued: bool
    is_loading: bool
    crawl_count: int
    counts: dict[str, int]
    pending_upserts: dict[str, int] = Field(
        description="Queued upserts per collection, not yet flushed to the store"
    )
    last_crawl: dict[str, Any] | None = None


class CrawlAccepted(BaseModel):
    """Response for a scheduled crawl."""

    status: str = "accepted"
    coalesced: bool = Field(
        description="True if a crawl was already running and this request queued a re-crawl"
    )


class SyncResult(BaseModel):
    """Collection sizes after a sync."""

    counts: dict[str, int]


class CollectionPage(BaseModel):
    """One page of a catalog collection."""

    collection: str
    total: int
    offset: int
    limit: int
    items: list[dict[str, Any]]


class HealthStatus(BaseModel):
    """Liveness probe response."""

    status: str = "alive"
    timestamp: str
    version: str = __version__


@router.get("/health", response_model=HealthStatus)
async def liveness_probe() -> HealthStatus:
    """Liveness probe - no dependency checks."""
    return HealthStatus(timestamp=datetime.now(UTC).isoformat())


@router.get("/status", response_model=LibraryStatus)
async def get_library_status(
    coordinator: CrawlCoordinator = Depends(get_crawl_coordinator),
    sync_manager: CatalogSyncManager = Depends(get_sync_manager),
    catalog: MediaCatalog = Depends(get_catalog),
    library: LibraryServices = Depends(get_library),
) -> LibraryStatus:
    """Current indexing state, catalog sizes and pending writes."""
    last = coordinator.last_crawl
    return LibraryStatus(
        state=coordinator.state.value,
        can_index=coordinator.can_index,
        is_indexing=coordinator.is_indexing,
        reindex_queued=coordinator.reindex_queued,
        is_loading=sync_manager.is_loading,
        crawl_count=coordinator.crawl_count,
        counts=catalog.counts(),
        pending_upserts=await library.store.get_buffer_stats(),
        last_crawl=last.to_dict() if last else None,
    )


# Listen up, this returns 202 right away - the crawl runs as a background task. Hammering this
# endpoint is safe: the coordinator coalesces every request that arrives mid-crawl into one
# re-crawl. Before the lifespan opened the gate this is a 409, not a silent no-op.
@router.post("/crawl", response_model=CrawlAccepted, status_code=status.HTTP_202_ACCEPTED)
async def start_crawl(library: LibraryServices = Depends(get_library)) -> CrawlAccepted:
    """Schedule a full crawl (change detection, both libraries, flush)."""
    coordinator = library.coordinator
    if not coordinator.can_index:
        raise InvalidStateException("Library indexing is not enabled yet")

    coalesced = coordinator.is_indexing
    library.start_full_crawl()
    logger.info("Full crawl requested via API (coalesced=%s)", coalesced)
    return CrawlAccepted(coalesced=coalesced)


@router.post("/sync", response_model=SyncResult)
async def sync_catalog(
    sync_manager: CatalogSyncManager = Depends(get_sync_manager),
) -> SyncResult:
    """Write the in-memory catalog to the store and reload it."""
    counts = await sync_manager.sync()
    return SyncResult(counts=counts)


@router.get("/{collection}", response_model=CollectionPage)
async def list_collection(
    collection: CollectionName,
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    catalog: MediaCatalog = Depends(get_catalog),
) -> CollectionPage:
    """List one catalog collection in insertion order."""
    entities = catalog.get(collection.value).snapshot()
    page = entities[offset : offset + limit]
    return CollectionPage(
        collection=collection.value,
        total=len(entities),
        offset=offset,
        limit=limit,
        items=[_serialize(entity) for entity in page],
    )


def _serialize(entity: Any) -> dict[str, Any]:
    data = asdict(entity)
    data["state"] = entity.state.value
    return data

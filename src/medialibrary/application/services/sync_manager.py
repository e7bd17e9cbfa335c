"""Catalog sync manager - moves the in-memory catalog to the store and back."""

from __future__ import annotations

import logging
from typing import Any

from medialibrary.application.services.catalog import EntityCollection, MediaCatalog
from medialibrary.domain.ports import ICatalogRepository, ICatalogStore

logger = logging.getLogger(__name__)


class CatalogSyncManager:
    """Flushes the in-memory catalog to the store and reloads it.

    Hey future me - the collection order is FIXED: songs, albums, artists, genres, videos.
    Deletes, queued upserts and reloads all walk it in that order. The caller must not edit
    the catalog while sync() runs; is_loading tells the API when that window is open.
    """

    def __init__(self, catalog: MediaCatalog, store: ICatalogStore) -> None:
        self._catalog = catalog
        self._store = store
        self._loading = False

    @property
    def is_loading(self) -> bool:
        return self._loading

    def _pairs(self) -> list[tuple[EntityCollection[Any], ICatalogRepository[Any]]]:
        catalog, store = self._catalog, self._store
        return [
            (catalog.songs, store.songs),
            (catalog.albums, store.albums),
            (catalog.artists, store.artists),
            (catalog.genres, store.genres),
            (catalog.videos, store.videos),
        ]

    async def sync(self) -> dict[str, int]:
        """Delete removed entities, upsert everything else, then reload the catalog.

        Returns:
            Collection sizes after the reload

        Raises:
            CatalogStoreError: If any store operation fails (the catalog is left as it was
                before the reload)
        """
        self._loading = True
        try:
            deleted = 0
            for collection, repository in self._pairs():
                for entity in collection.snapshot():
                    if entity.removed:
                        await repository.delete(entity)
                        deleted += 1
                    else:
                        await repository.queue_upsert(entity)

            written = await self.upsert_all()
            await self._load()
        finally:
            self._loading = False

        counts = self._catalog.counts()
        logger.info(
            "Catalog synced: %d deleted, %d upserted, now %s",
            deleted,
            sum(written.values()),
            counts,
        )
        return counts

    async def load_all(self) -> dict[str, int]:
        """Replace the in-memory catalog with the store's content.

        Returns:
            Collection sizes after loading
        """
        self._loading = True
        try:
            await self._load()
        finally:
            self._loading = False
        return self._catalog.counts()

    async def upsert_all(self) -> dict[str, int]:
        """Flush queued upserts for every entity type, in collection order.

        Returns:
            Rows written per collection
        """
        written: dict[str, int] = {}
        for collection, repository in self._pairs():
            written[collection.name] = await repository.upsert_queued()
        return written

    # Listen up, two asymmetries here that look like bugs but are load-bearing:
    # 1. No songs in the store → only the song collection is emptied, the rest is left alone
    #    (albums/artists/genres/videos are not even fetched). An empty song table means "fresh
    #    library", and there is nothing else worth loading.
    # 2. Only PENDING_DELETE songs are filtered on load. Albums, artists, genres and videos come
    #    back as stored, removed or not. Tests pin this behaviour down.
    async def _load(self) -> None:
        store, catalog = self._store, self._catalog

        songs = await store.songs.get_all()
        if not songs:
            # Songs ARE cleared here rather than left untouched, so a reload after deleting
            # every song never shows stale in-memory songs.
            catalog.songs.clear()
            logger.info("Store has no songs, skipped loading the rest of the catalog")
            return

        albums = await store.albums.get_all()
        artists = await store.artists.get_all()
        genres = await store.genres.get_all()
        videos = await store.videos.get_all()

        catalog.songs.replace(song for song in songs if not song.removed)
        catalog.albums.replace(albums)
        catalog.artists.replace(artists)
        catalog.genres.replace(genres)
        catalog.videos.replace(videos)

        logger.info("Catalog loaded: %s", catalog.counts())

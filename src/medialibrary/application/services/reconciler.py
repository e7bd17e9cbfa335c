"""Library reconciler - absorbs one discovered media file into the catalog."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from medialibrary.application.services.catalog import EntityCollection, MediaCatalog
from medialibrary.domain.entities import (
    DEFAULT_ALBUM_THUMBNAIL,
    DEFAULT_VIDEO_THUMBNAIL,
    THUMBNAIL_SAVE_FAILED,
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    Album,
    Artist,
    Genre,
    Song,
)
from medialibrary.domain.exceptions import ThumbnailUnavailableError, UnreadableMediaError
from medialibrary.domain.ports import (
    E,
    ICatalogRepository,
    ICatalogStore,
    IMetadataExtractor,
    IThumbnailCache,
)
from medialibrary.domain.value_objects import as_valid_filename

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, Enum):
    """What happened to one file."""

    ADDED = "added"
    EXISTING = "existing"
    SKIPPED = "skipped"


class LibraryReconciler:
    """Absorbs freshly discovered files into the catalog exactly once.

    Hey future me - ALL existence checks run against the in-memory catalog, never the store!
    That's why the catalog must be loaded before the first crawl. And "persist" here means TWO
    things: add to the in-memory collection (so the next file sees it) AND queue an upsert
    (so the store catches up at the next flush). Skip the first and a second pass over the same
    folder creates duplicates. Skip the second and nothing survives a restart.

    Order per song: album → track artist → album-artist → genre → song. The song goes last so
    its album, artists and genre always exist before it is written.
    """

    def __init__(
        self,
        catalog: MediaCatalog,
        store: ICatalogStore,
        extractor: IMetadataExtractor,
        thumbnails: IThumbnailCache,
        album_thumbnail_size: int = 200,
        video_thumbnail_size: int = 238,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._extractor = extractor
        self._thumbnails = thumbnails
        self._album_thumbnail_size = album_thumbnail_size
        self._video_thumbnail_size = video_thumbnail_size

    async def reconcile_song(self, file: Path) -> ReconcileOutcome:
        """Reconcile one audio file.

        Returns:
            ADDED if a new Song was persisted, EXISTING if the song was already known,
            SKIPPED if the file couldn't be read.

        Raises:
            CatalogStoreError: If queueing an upsert fails
        """
        try:
            song = await self._extractor.extract_song(file)
        except UnreadableMediaError as e:
            logger.warning("Skipping unreadable audio file %s: %s", file, e.reason)
            return ReconcileOutcome.SKIPPED

        catalog = self._catalog

        album = catalog.albums.find((song.album, song.genre))
        if album is None:
            await self._add_album(file, song)
        else:
            if not album.is_unknown:
                await self._backfill_album(file, song, album)
            song.thumbnail = album.thumbnail

        # Two independent checks - both fire for a compilation track whose artist is new AND
        # whose album-artist is new. The second lookup sees the artist the first one just added.
        if not catalog.artists.contains(song.artist):
            await self._persist(catalog.artists, self._store.artists, Artist(name=song.artist))
        if not catalog.artists.contains(song.album_artist):
            await self._persist(
                catalog.artists, self._store.artists, Artist(name=song.album_artist)
            )

        if not catalog.genres.contains(song.genre):
            await self._persist(catalog.genres, self._store.genres, Genre(name=song.genre))

        existing = catalog.songs.find(song.location)
        if existing is not None:
            await self._restore_if_removed(existing, self._store.songs)
            return ReconcileOutcome.EXISTING

        await self._persist(catalog.songs, self._store.songs, song)
        logger.debug("Added song %s", song.location)
        return ReconcileOutcome.ADDED

    async def reconcile_video(self, file: Path) -> ReconcileOutcome:
        """Reconcile one video file. Existing videos are skipped before any parsing."""
        existing = self._catalog.videos.find(str(file))
        if existing is not None:
            await self._restore_if_removed(existing, self._store.videos)
            return ReconcileOutcome.EXISTING

        try:
            video = await self._extractor.extract_video(file)
        except UnreadableMediaError as e:
            logger.warning("Skipping unreadable video file %s: %s", file, e.reason)
            return ReconcileOutcome.SKIPPED

        video.thumbnail = await self._fetch_thumbnail(
            file,
            self._video_thumbnail_size,
            as_valid_filename(video.title),
            DEFAULT_VIDEO_THUMBNAIL,
        )

        await self._persist(self._catalog.videos, self._store.videos, video)
        logger.debug("Added video %s", video.location)
        return ReconcileOutcome.ADDED

    # ==================== Album handling ====================

    async def _add_album(self, file: Path, song: Song) -> None:
        """Create the album fully (thumbnail included) before its first upsert."""
        thumbnail = DEFAULT_ALBUM_THUMBNAIL
        if song.album != UNKNOWN_ALBUM:
            thumbnail = await self._fetch_album_thumbnail(file, song.album)

        album = Album(
            title=song.album,
            artist=song.album_artist,
            genre=song.genre,
            thumbnail=thumbnail,
        )
        song.thumbnail = thumbnail
        await self._persist(self._catalog.albums, self._store.albums, album)

    # Listen up, backfill is MONOTONIC: only sentinel values get replaced, never real ones.
    # Both fields are updated before the single upsert, so the store never sees a half-updated
    # album. An unknown album-artist on the song can't improve an unknown album artist.
    async def _backfill_album(self, file: Path, song: Song, album: Album) -> None:
        changed = False

        if album.artist == UNKNOWN_ARTIST and song.album_artist != UNKNOWN_ARTIST:
            album.artist = song.album_artist
            changed = True

        if album.has_placeholder_thumbnail:
            thumbnail = await self._fetch_album_thumbnail(file, album.title)
            if thumbnail != DEFAULT_ALBUM_THUMBNAIL:
                album.thumbnail = thumbnail
                changed = True

        if changed:
            logger.debug("Backfilled album %r", album.title)
            await self._store.albums.queue_upsert(album)

    async def _fetch_album_thumbnail(self, file: Path, album_title: str) -> str:
        return await self._fetch_thumbnail(
            file,
            self._album_thumbnail_size,
            as_valid_filename(album_title),
            DEFAULT_ALBUM_THUMBNAIL,
        )

    # ==================== Helpers ====================

    async def _fetch_thumbnail(
        self, file: Path, size: int, basename: str, fallback: str
    ) -> str:
        """Fetch + save a thumbnail, returning ``fallback`` on any thumbnail failure."""
        try:
            image_data = await self._thumbnails.get_thumbnail(file, size)
        except ThumbnailUnavailableError as e:
            logger.debug("No thumbnail for %s: %s", file.name, e.reason)
            return fallback

        uri = await self._thumbnails.save_thumbnail(image_data, f"{basename}.png")
        if uri == THUMBNAIL_SAVE_FAILED:
            return fallback
        return uri

    # Yo, a file that vanished (PENDING_DELETE) and came back before the next sync is still on
    # disk, so the crawl sees it. Only the state flips back; the fields stay as they were.
    async def _restore_if_removed(self, entity: E, repository: ICatalogRepository[E]) -> None:
        if entity.removed:
            entity.restore()
            logger.info("Restored %s %s", entity.entity_type, entity.natural_key)
            await repository.queue_upsert(entity)

    async def _persist(
        self,
        collection: EntityCollection[E],
        repository: ICatalogRepository[E],
        entity: E,
    ) -> None:
        collection.add(entity)
        await repository.queue_upsert(entity)

"""Crawl coordinator - serializes library crawls and coalesces re-crawl requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from medialibrary.application.services.catalog import MediaCatalog
from medialibrary.application.services.reconciler import LibraryReconciler, ReconcileOutcome
from medialibrary.application.services.sync_manager import CatalogSyncManager
from medialibrary.domain.ports import IChangeTracker, IStorageScanner
from medialibrary.domain.value_objects import SONG_QUERY, VIDEO_QUERY, CancellationToken
from medialibrary.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    """Coordinator state.

    NOT_READY → IDLE once the host calls enable(). IDLE ⇄ INDEXING while a crawl runs.
    INDEXING → REINDEX_QUEUED when someone asks for a crawl mid-run (at most ONE re-run is
    ever pending, no matter how many callers arrive).
    """

    NOT_READY = "not_ready"
    IDLE = "idle"
    INDEXING = "indexing"
    REINDEX_QUEUED = "reindex_queued"


@dataclass
class CrawlStats:
    """Counters for one crawl pass."""

    correlation_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    songs_seen: int = 0
    videos_seen: int = 0
    added: int = 0
    existing: int = 0
    skipped: int = 0
    cancelled: bool = False

    @property
    def files_seen(self) -> int:
        return self.songs_seen + self.videos_seen

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def record(self, outcome: ReconcileOutcome) -> None:
        if outcome is ReconcileOutcome.ADDED:
            self.added += 1
        elif outcome is ReconcileOutcome.EXISTING:
            self.existing += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "songs_seen": self.songs_seen,
            "videos_seen": self.videos_seen,
            "added": self.added,
            "existing": self.existing,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
        }


class CrawlCoordinator:
    """Runs library crawls one at a time.

    Hey future me - there is NO lock here and none is needed. Everything runs on one event loop
    and every state check + transition below happens before the first await, so two callers
    can never both see IDLE. A caller arriving mid-crawl just flips the state to REINDEX_QUEUED
    and returns; the running crawl picks that up in its loop when it's done. That's the whole
    debounce: 1 running + at most 1 queued.
    """

    def __init__(
        self,
        catalog: MediaCatalog,
        reconciler: LibraryReconciler,
        scanner: IStorageScanner,
        change_tracker: IChangeTracker,
        sync_manager: CatalogSyncManager,
        music_path: Path,
        video_path: Path,
    ) -> None:
        self._catalog = catalog
        self._reconciler = reconciler
        self._scanner = scanner
        self._change_tracker = change_tracker
        self._sync_manager = sync_manager
        self._music_path = music_path
        self._video_path = video_path

        self._state = CrawlState.NOT_READY
        self._running = False
        self._token = CancellationToken()
        self._last_crawl: CrawlStats | None = None
        self._crawl_count = 0

    # ==================== Read-only state ====================

    @property
    def state(self) -> CrawlState:
        return self._state

    @property
    def can_index(self) -> bool:
        return self._state is not CrawlState.NOT_READY

    @property
    def is_indexing(self) -> bool:
        return self._state in (CrawlState.INDEXING, CrawlState.REINDEX_QUEUED)

    @property
    def reindex_queued(self) -> bool:
        return self._state is CrawlState.REINDEX_QUEUED

    @property
    def last_crawl(self) -> CrawlStats | None:
        return self._last_crawl

    @property
    def crawl_count(self) -> int:
        return self._crawl_count

    # ==================== Readiness gate ====================

    def enable(self) -> None:
        """Open the readiness gate. Call once the catalog is loaded."""
        if self._state is CrawlState.NOT_READY:
            # A crawl cancelled by disable() may still be winding down
            self._state = CrawlState.INDEXING if self._running else CrawlState.IDLE
            logger.info("Library indexing enabled")

    def disable(self) -> None:
        """Close the gate and cancel the running crawl (it stops after the current file)."""
        self._token.cancel()
        self._state = CrawlState.NOT_READY
        logger.info("Library indexing disabled")

    # ==================== Crawling ====================

    async def index_libraries(self) -> CrawlStats | None:
        """Crawl the music library, then the video library.

        Returns:
            Stats of the last crawl pass run by this call, or None if the call was a no-op
            (gate closed) or got coalesced into the crawl already running.
        """
        if self._state is CrawlState.NOT_READY:
            logger.debug("Indexing requested before the library is ready, ignoring")
            return None

        if self._state in (CrawlState.INDEXING, CrawlState.REINDEX_QUEUED):
            self._state = CrawlState.REINDEX_QUEUED
            logger.debug("Crawl already running, re-crawl queued")
            return None

        self._state = CrawlState.INDEXING
        self._running = True
        try:
            stats = await self._crawl()
            # Loop, not recursion - requests that arrived during the crawl collapse into one re-run
            while self._state is CrawlState.REINDEX_QUEUED:
                self._state = CrawlState.INDEXING
                logger.info("Running queued re-crawl")
                stats = await self._crawl()
            return stats
        finally:
            self._running = False
            if self._state is not CrawlState.NOT_READY:
                self._state = CrawlState.IDLE

    async def start_full_crawl(self) -> CrawlStats | None:
        """Flag vanished files, crawl both libraries, then flush every queued upsert.

        Raises:
            CatalogStoreError: If flushing to the store fails
        """
        # Hey future me - removals stay IN MEMORY until sync() deletes them. Never queue them
        # as upserts: load_all() drops PENDING_DELETE songs, so a removal that reached the store
        # before a restart could never be deleted, and a returning file would get a second row.
        # Losing the flag on restart is fine, the next full crawl flags the file again.
        await self._change_tracker.handle_folder_changes(
            self._catalog.songs.snapshot(), self._catalog.videos.snapshot()
        )

        stats = await self.index_libraries()
        await self._sync_manager.upsert_all()
        return stats

    async def _crawl(self) -> CrawlStats:
        self._token.cancel()
        token = CancellationToken()
        self._token = token

        previous_id = get_correlation_id()
        stats = CrawlStats(correlation_id=set_correlation_id())
        self._crawl_count += 1
        logger.info("Crawl #%d started", self._crawl_count)

        async def on_song(path: Path) -> None:
            stats.record(await self._reconciler.reconcile_song(path))

        async def on_video(path: Path) -> None:
            stats.record(await self._reconciler.reconcile_video(path))

        try:
            # Audio strictly before video
            stats.songs_seen = await self._scanner.scan(
                self._music_path, SONG_QUERY, token, on_song
            )
            if not token.is_cancelled:
                stats.videos_seen = await self._scanner.scan(
                    self._video_path, VIDEO_QUERY, token, on_video
                )
            stats.cancelled = token.is_cancelled
            logger.info(
                "Crawl #%d finished: %d added, %d existing, %d skipped%s",
                self._crawl_count,
                stats.added,
                stats.existing,
                stats.skipped,
                " (cancelled)" if stats.cancelled else "",
            )
        except Exception:
            logger.exception("Crawl #%d failed", self._crawl_count)
            raise
        finally:
            stats.finished_at = datetime.now(UTC)
            self._last_crawl = stats
            set_correlation_id(previous_id)

        return stats

"""Unit tests for CrawlCoordinator."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from medialibrary.application.services.catalog import MediaCatalog
from medialibrary.application.services.crawl_coordinator import (
    CrawlCoordinator,
    CrawlState,
    CrawlStats,
)
from medialibrary.application.services.reconciler import LibraryReconciler, ReconcileOutcome
from medialibrary.application.services.sync_manager import CatalogSyncManager
from medialibrary.domain.entities import Song, Video
from medialibrary.domain.ports import IChangeTracker, IStorageScanner
from medialibrary.domain.value_objects import CancellationToken, QueryOptions
from medialibrary.infrastructure.observability.logging import get_correlation_id

MUSIC = Path("/library/music")
VIDEOS = Path("/library/videos")


class FakeScanner(IStorageScanner):
    """Hands out a fixed file list per location and records every scan."""

    def __init__(self, files: dict[Path, list[Path]] | None = None) -> None:
        self.files = files or {}
        self.calls: list[tuple[Path, str]] = []
        self.tokens: list[CancellationToken] = []
        self.correlation_ids: list[str] = []
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()
        self.error: Exception | None = None

    async def scan(self, location, query: QueryOptions, token, callback) -> int:
        self.calls.append((location, query.name))
        self.tokens.append(token)
        self.correlation_ids.append(get_correlation_id())
        self.entered.set()
        if self.error is not None:
            raise self.error
        if self.gate is not None and location == MUSIC:
            await self.gate.wait()
        count = 0
        for file in self.files.get(location, []):
            if token.is_cancelled:
                break
            await callback(file)
            count += 1
        return count


@pytest.fixture
def scanner() -> FakeScanner:
    return FakeScanner()


@pytest.fixture
def reconciler() -> AsyncMock:
    mock = AsyncMock(spec=LibraryReconciler)
    mock.reconcile_song.return_value = ReconcileOutcome.ADDED
    mock.reconcile_video.return_value = ReconcileOutcome.EXISTING
    return mock


@pytest.fixture
def change_tracker() -> AsyncMock:
    mock = AsyncMock(spec=IChangeTracker)
    mock.handle_folder_changes.return_value = []
    return mock


@pytest.fixture
def sync_manager() -> AsyncMock:
    mock = AsyncMock(spec=CatalogSyncManager)
    mock.upsert_all.return_value = {}
    return mock


@pytest.fixture
def catalog() -> MediaCatalog:
    return MediaCatalog()


@pytest.fixture
def coordinator(
    catalog: MediaCatalog,
    reconciler: AsyncMock,
    scanner: FakeScanner,
    change_tracker: AsyncMock,
    sync_manager: AsyncMock,
) -> CrawlCoordinator:
    return CrawlCoordinator(
        catalog,
        reconciler,
        scanner,
        change_tracker,
        sync_manager,
        MUSIC,
        VIDEOS,
    )


class TestReadinessGate:
    """Tests for enable()/disable()."""

    def test_starts_not_ready(self, coordinator: CrawlCoordinator) -> None:
        assert coordinator.state is CrawlState.NOT_READY
        assert coordinator.can_index is False

    @pytest.mark.asyncio
    async def test_index_before_enable_is_noop(
        self, coordinator: CrawlCoordinator, scanner: FakeScanner
    ) -> None:
        result = await coordinator.index_libraries()

        assert result is None
        assert scanner.calls == []
        assert coordinator.crawl_count == 0

    def test_enable_opens_gate(self, coordinator: CrawlCoordinator) -> None:
        coordinator.enable()
        assert coordinator.state is CrawlState.IDLE
        assert coordinator.can_index is True

    def test_disable_closes_gate(self, coordinator: CrawlCoordinator) -> None:
        coordinator.enable()
        coordinator.disable()
        assert coordinator.state is CrawlState.NOT_READY


class TestIndexLibraries:
    """Tests for index_libraries()."""

    @pytest.mark.asyncio
    async def test_audio_scanned_before_video(
        self,
        coordinator: CrawlCoordinator,
        scanner: FakeScanner,
        reconciler: AsyncMock,
    ) -> None:
        scanner.files = {
            MUSIC: [MUSIC / "a.mp3", MUSIC / "b.flac"],
            VIDEOS: [VIDEOS / "c.mp4"],
        }
        coordinator.enable()

        stats = await coordinator.index_libraries()

        assert scanner.calls == [(MUSIC, "songs"), (VIDEOS, "videos")]
        assert reconciler.reconcile_song.await_count == 2
        reconciler.reconcile_video.assert_awaited_once_with(VIDEOS / "c.mp4")
        assert isinstance(stats, CrawlStats)
        assert stats.songs_seen == 2
        assert stats.videos_seen == 1
        assert stats.added == 2
        assert stats.existing == 1
        assert stats.finished_at is not None
        assert coordinator.state is CrawlState.IDLE
        assert coordinator.last_crawl is stats

    @pytest.mark.asyncio
    async def test_requests_during_crawl_coalesce_into_one_rerun(
        self, coordinator: CrawlCoordinator, scanner: FakeScanner
    ) -> None:
        scanner.gate = asyncio.Event()
        coordinator.enable()

        first = asyncio.create_task(coordinator.index_libraries())
        await scanner.entered.wait()
        assert coordinator.state is CrawlState.INDEXING

        for _ in range(5):
            assert await coordinator.index_libraries() is None
        assert coordinator.state is CrawlState.REINDEX_QUEUED
        assert coordinator.reindex_queued is True

        scanner.gate.set()
        await asyncio.wait_for(first, timeout=5)

        assert coordinator.crawl_count == 2
        assert scanner.calls.count((MUSIC, "songs")) == 2
        assert coordinator.state is CrawlState.IDLE

    @pytest.mark.asyncio
    async def test_each_crawl_gets_fresh_token_and_correlation_id(
        self, coordinator: CrawlCoordinator, scanner: FakeScanner
    ) -> None:
        coordinator.enable()

        await coordinator.index_libraries()
        await coordinator.index_libraries()

        music_tokens = [t for (loc, _), t in zip(scanner.calls, scanner.tokens) if loc == MUSIC]
        assert len(music_tokens) == 2
        assert music_tokens[0] is not music_tokens[1]
        assert music_tokens[0].is_cancelled is True
        ids = scanner.correlation_ids
        assert ids[0] and ids[0] == ids[1]
        assert ids[2] != ids[0]

    @pytest.mark.asyncio
    async def test_disable_cancels_running_crawl(
        self,
        coordinator: CrawlCoordinator,
        scanner: FakeScanner,
        reconciler: AsyncMock,
    ) -> None:
        scanner.files = {MUSIC: [MUSIC / f"{i}.mp3" for i in range(10)], VIDEOS: [VIDEOS / "v.mp4"]}
        coordinator.enable()

        async def reconcile_then_disable(path: Path) -> ReconcileOutcome:
            if path == MUSIC / "2.mp3":
                coordinator.disable()
            return ReconcileOutcome.ADDED

        reconciler.reconcile_song.side_effect = reconcile_then_disable

        stats = await coordinator.index_libraries()

        assert stats.cancelled is True
        assert stats.songs_seen == 3
        assert (VIDEOS, "videos") not in scanner.calls
        assert coordinator.state is CrawlState.NOT_READY

    @pytest.mark.asyncio
    async def test_failure_resets_state(
        self, coordinator: CrawlCoordinator, scanner: FakeScanner
    ) -> None:
        scanner.error = RuntimeError("disk gone")
        coordinator.enable()

        with pytest.raises(RuntimeError):
            await coordinator.index_libraries()

        assert coordinator.state is CrawlState.IDLE
        assert coordinator.last_crawl is not None

        scanner.error = None
        assert await coordinator.index_libraries() is not None


class TestStartFullCrawl:
    """Tests for start_full_crawl()."""

    @pytest.mark.asyncio
    async def test_flags_removals_then_crawls_then_flushes(
        self,
        coordinator: CrawlCoordinator,
        catalog: MediaCatalog,
        change_tracker: AsyncMock,
        sync_manager: AsyncMock,
        scanner: FakeScanner,
    ) -> None:
        song = Song(location="/library/music/gone.mp3", title="gone")
        video = Video(location="/library/videos/gone.mp4", title="gone")
        catalog.songs.add(song)
        catalog.videos.add(video)
        change_tracker.handle_folder_changes.return_value = [song, video]

        scans_before_flush: list[int] = []

        async def flush() -> dict[str, int]:
            scans_before_flush.append(len(scanner.calls))
            return {}

        sync_manager.upsert_all.side_effect = flush
        coordinator.enable()

        stats = await coordinator.start_full_crawl()

        change_tracker.handle_folder_changes.assert_awaited_once_with([song], [video])
        # Flagged entities stay in the catalog until sync() deletes them
        assert catalog.songs.find(song.location) is song
        assert catalog.videos.find(video.location) is video
        assert scans_before_flush == [2]
        assert stats is not None

    @pytest.mark.asyncio
    async def test_flushes_even_when_gate_closed(
        self,
        coordinator: CrawlCoordinator,
        sync_manager: AsyncMock,
        scanner: FakeScanner,
    ) -> None:
        stats = await coordinator.start_full_crawl()

        assert stats is None
        assert scanner.calls == []
        sync_manager.upsert_all.assert_awaited_once()


class TestCrawlStats:
    """Tests for CrawlStats."""

    def test_record_and_serialize(self) -> None:
        stats = CrawlStats(correlation_id="abc")
        stats.record(ReconcileOutcome.ADDED)
        stats.record(ReconcileOutcome.SKIPPED)
        stats.songs_seen = 2

        data = stats.to_dict()

        assert data["added"] == 1
        assert data["skipped"] == 1
        assert data["finished_at"] is None
        assert data["duration_seconds"] is None
        assert stats.files_seen == 2

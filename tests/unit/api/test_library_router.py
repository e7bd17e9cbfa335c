"""Tests for the library control endpoints (no lifespan, library services faked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from medialibrary.application.services import MediaCatalog
from medialibrary.application.services.crawl_coordinator import CrawlState, CrawlStats
from medialibrary.config import Settings
from medialibrary.domain.entities import Album, Artist, Song
from medialibrary.domain.exceptions import CatalogStoreError, DomainException
from medialibrary.infrastructure.lifecycle import LibraryServices
from medialibrary.main import create_app


@pytest.fixture
def catalog() -> MediaCatalog:
    catalog = MediaCatalog()
    catalog.artists.add(Artist(name="A"))
    catalog.artists.add(Artist(name="B"))
    catalog.albums.add(Album(title="X", artist="B", genre="Rock"))
    for i in range(5):
        catalog.songs.add(Song(location=f"/music/{i}.mp3", title=f"Song {i}"))
    return catalog


@pytest.fixture
def library(catalog: MediaCatalog) -> MagicMock:
    library = MagicMock(spec=LibraryServices)
    library.catalog = catalog

    coordinator = MagicMock()
    coordinator.state = CrawlState.IDLE
    coordinator.can_index = True
    coordinator.is_indexing = False
    coordinator.reindex_queued = False
    coordinator.crawl_count = 0
    coordinator.last_crawl = None
    library.coordinator = coordinator

    sync_manager = MagicMock()
    sync_manager.is_loading = False
    sync_manager.sync = AsyncMock(return_value=catalog.counts())
    library.sync_manager = sync_manager

    store = MagicMock()
    store.get_buffer_stats = AsyncMock(
        return_value={"songs": 2, "albums": 0, "artists": 0, "genres": 0, "videos": 0}
    )
    library.store = store
    return library


@pytest.fixture
def client(settings: Settings, library: MagicMock) -> TestClient:
    # No context manager: the lifespan stays off, the fake library is used instead
    app = create_app(settings)
    app.state.library = library
    return TestClient(app)


class TestStatus:
    """GET /api/library/status."""

    def test_status_reports_state_and_counts(self, client: TestClient) -> None:
        response = client.get("/api/library/status")

        assert response.status_code == 200
        payload = response.json()
        assert payload["state"] == "idle"
        assert payload["can_index"] is True
        assert payload["is_indexing"] is False
        assert payload["is_loading"] is False
        assert payload["counts"] == {
            "songs": 5,
            "albums": 1,
            "artists": 2,
            "genres": 0,
            "videos": 0,
        }
        assert payload["pending_upserts"]["songs"] == 2
        assert payload["last_crawl"] is None

    def test_status_includes_last_crawl(self, client: TestClient, library: MagicMock) -> None:
        stats = CrawlStats(correlation_id="abc")
        stats.added = 3
        library.coordinator.last_crawl = stats
        library.coordinator.crawl_count = 1

        payload = client.get("/api/library/status").json()

        assert payload["crawl_count"] == 1
        assert payload["last_crawl"]["correlation_id"] == "abc"
        assert payload["last_crawl"]["added"] == 3

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/library/health")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestCrawl:
    """POST /api/library/crawl."""

    def test_crawl_accepted(self, client: TestClient, library: MagicMock) -> None:
        response = client.post("/api/library/crawl")

        assert response.status_code == 202
        assert response.json() == {"status": "accepted", "coalesced": False}
        library.start_full_crawl.assert_called_once()

    def test_crawl_while_indexing_is_coalesced(
        self, client: TestClient, library: MagicMock
    ) -> None:
        library.coordinator.is_indexing = True

        response = client.post("/api/library/crawl")

        assert response.status_code == 202
        assert response.json()["coalesced"] is True

    def test_crawl_before_gate_open_is_conflict(
        self, client: TestClient, library: MagicMock
    ) -> None:
        library.coordinator.can_index = False

        response = client.post("/api/library/crawl")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidStateException"
        library.start_full_crawl.assert_not_called()


class TestSync:
    """POST /api/library/sync."""

    def test_sync_returns_counts(self, client: TestClient, library: MagicMock) -> None:
        response = client.post("/api/library/sync")

        assert response.status_code == 200
        assert response.json()["counts"]["songs"] == 5
        library.sync_manager.sync.assert_awaited_once()

    def test_store_failure_is_503(self, client: TestClient, library: MagicMock) -> None:
        library.sync_manager.sync.side_effect = CatalogStoreError("upsert", "song")

        response = client.post("/api/library/sync")

        assert response.status_code == 503
        payload = response.json()
        assert payload["error"] == "CatalogStoreError"
        assert "upsert" in payload["message"]

    def test_other_domain_errors_are_500(self, client: TestClient, library: MagicMock) -> None:
        library.sync_manager.sync.side_effect = DomainException("boom")

        response = client.post("/api/library/sync")

        assert response.status_code == 500
        assert response.json() == {"error": "DomainException", "message": "boom"}


class TestListCollection:
    """GET /api/library/{collection}."""

    def test_list_albums(self, client: TestClient) -> None:
        response = client.get("/api/library/albums")

        assert response.status_code == 200
        payload = response.json()
        assert payload["collection"] == "albums"
        assert payload["total"] == 1
        album = payload["items"][0]
        assert album["title"] == "X"
        assert album["artist"] == "B"
        assert album["state"] == "active"

    def test_pagination(self, client: TestClient) -> None:
        response = client.get("/api/library/songs", params={"offset": 3, "limit": 10})

        payload = response.json()
        assert payload["total"] == 5
        assert [s["location"] for s in payload["items"]] == ["/music/3.mp3", "/music/4.mp3"]

    def test_unknown_collection_rejected(self, client: TestClient) -> None:
        assert client.get("/api/library/playlists").status_code == 422

    def test_invalid_limit_rejected(self, client: TestClient) -> None:
        assert client.get("/api/library/songs", params={"limit": 0}).status_code == 422


def test_missing_library_is_503(settings: Settings) -> None:
    client = TestClient(create_app(settings))

    response = client.get("/api/library/status")

    assert response.status_code == 503

"""Application lifecycle management for startup and shutdown tasks.

This module wires the library services together and owns the FastAPI lifespan:
startup opens the database, loads the catalog and opens the indexing gate; shutdown
closes the gate, winds down the crawl task and disposes the engine.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field

from fastapi import FastAPI

from medialibrary.application.services import (
    CatalogSyncManager,
    CrawlCoordinator,
    LibraryReconciler,
    MediaCatalog,
)
from medialibrary.config import Settings, get_settings
from medialibrary.domain.exceptions import ConfigurationError
from medialibrary.infrastructure.media import (
    FileSystemScanner,
    FileThumbnailCache,
    FolderChangeTracker,
    MutagenMetadataExtractor,
)
from medialibrary.infrastructure.observability import configure_logging
from medialibrary.infrastructure.persistence import Database, SqlCatalogStore

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10.0


@dataclass
class LibraryServices:
    """Everything the API needs, created once per process."""

    database: Database
    store: SqlCatalogStore
    catalog: MediaCatalog
    reconciler: LibraryReconciler
    sync_manager: CatalogSyncManager
    coordinator: CrawlCoordinator
    crawl_tasks: set[asyncio.Task] = field(default_factory=set)

    # Hey future me - the task set keeps a strong reference to every running crawl task.
    # asyncio only holds weak refs, so an unreferenced task can be garbage collected mid-crawl.
    def start_full_crawl(self) -> asyncio.Task:
        """Run CrawlCoordinator.start_full_crawl() as a background task."""
        task = asyncio.create_task(self.coordinator.start_full_crawl(), name="library-crawl")
        self.crawl_tasks.add(task)
        task.add_done_callback(self._on_crawl_done)
        return task

    def _on_crawl_done(self, task: asyncio.Task) -> None:
        self.crawl_tasks.discard(task)
        if task.cancelled():
            logger.info("Library crawl task cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Library crawl task failed: %s", exc, exc_info=exc)

    async def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Close the gate and wait for running crawls (they stop after their current file)."""
        self.coordinator.disable()
        for task in list(self.crawl_tasks):
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
            except TimeoutError:
                logger.warning("Crawl did not stop within %.0fs, cancelling", timeout)
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            except Exception as e:
                # Already logged by the done callback
                logger.debug("Crawl task ended with error during shutdown: %s", e)


def build_library(settings: Settings, database: Database) -> LibraryServices:
    """Create the library services for the given settings and database."""
    store = SqlCatalogStore(database)
    catalog = MediaCatalog()

    reconciler = LibraryReconciler(
        catalog=catalog,
        store=store,
        extractor=MutagenMetadataExtractor(),
        thumbnails=FileThumbnailCache(
            settings.storage.thumbnail_path,
            settings.indexing.thumbnail_uri_prefix,
        ),
        album_thumbnail_size=settings.indexing.album_thumbnail_size,
        video_thumbnail_size=settings.indexing.video_thumbnail_size,
    )
    sync_manager = CatalogSyncManager(catalog, store)
    coordinator = CrawlCoordinator(
        catalog=catalog,
        reconciler=reconciler,
        scanner=FileSystemScanner(),
        change_tracker=FolderChangeTracker(),
        sync_manager=sync_manager,
        music_path=settings.storage.music_path,
        video_path=settings.storage.video_path,
    )

    return LibraryServices(
        database=database,
        store=store,
        catalog=catalog,
        reconciler=reconciler,
        sync_manager=sync_manager,
        coordinator=coordinator,
    )


# Hey future me, this validates SQLite paths BEFORE we create the engine! SQLite needs to create
# -journal/-wal/-shm files next to the .db file, so the DIRECTORY has to be writable, not just the
# file. We don't pre-create the .db file, SQLite does that on first connect. Returns early for
# in-memory and non-SQLite URLs. A failure here stops startup with a readable ConfigurationError
# instead of a cryptic "unable to open database file" later.
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update MEDIALIBRARY_DATABASE__URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# The catalog MUST be loaded before enable() - the reconciler checks existence against memory
# only, so crawling an unloaded catalog would re-add every file. The startup crawl runs as a
# background task so the API is reachable while it works.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    try:
        _validate_sqlite_path(settings)
        settings.storage.thumbnail_path.mkdir(parents=True, exist_ok=True)

        database = Database(settings)
        app.state.db = database
        await database.create_tables()
        logger.info("Database initialized: %s", settings.database.url)

        library = build_library(settings, database)
        app.state.library = library

        counts = await library.sync_manager.load_all()
        logger.info("Catalog ready: %s", counts)
        library.coordinator.enable()

        if settings.indexing.crawl_on_startup:
            library.start_full_crawl()
            logger.info("Startup crawl scheduled")

        yield

    except Exception as e:
        logger.exception("Error during application lifetime: %s", e)
        raise
    finally:
        logger.info("Shutting down application")

        library = getattr(app.state, "library", None)
        if library is not None:
            await library.shutdown()

        db = getattr(app.state, "db", None)
        if db is not None:
            try:
                await db.close()
                logger.info("Database connection closed")
            except Exception as e:
                logger.exception("Error closing database: %s", e)

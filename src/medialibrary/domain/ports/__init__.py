"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Generic, TypeVar

from medialibrary.domain.entities import (
    Album,
    Artist,
    CatalogEntity,
    Genre,
    Song,
    Video,
)
from medialibrary.domain.value_objects import CancellationToken, QueryOptions

E = TypeVar("E", bound=CatalogEntity)

FileCallback = Callable[[Path], Awaitable[object]]


# Hey future me, this is a PORT (Hexagonal Architecture)! The reconciler and sync manager only
# ever see this interface - the SQLAlchemy implementation lives in infrastructure/persistence.
# Tests mock it with AsyncMock(spec=ICatalogRepository). queue_upsert() does NOT touch the DB,
# upsert_queued() does. delete() is immediate.
class ICatalogRepository(ABC, Generic[E]):
    """Repository interface for one catalog entity type."""

    @abstractmethod
    async def get_all(self) -> list[E]:
        """Get every stored entity of this type."""
        pass

    @abstractmethod
    async def queue_upsert(self, entity: E) -> None:
        """Buffer an insert-or-update; nothing is written until upsert_queued()."""
        pass

    @abstractmethod
    async def upsert_queued(self) -> int:
        """Flush all buffered upserts. Returns the number of rows written."""
        pass

    @abstractmethod
    async def delete(self, entity: E) -> None:
        """Delete the entity from the store."""
        pass


class ICatalogStore(ABC):
    """The five per-type repositories, in flush order."""

    @property
    @abstractmethod
    def songs(self) -> ICatalogRepository[Song]:
        pass

    @property
    @abstractmethod
    def albums(self) -> ICatalogRepository[Album]:
        pass

    @property
    @abstractmethod
    def artists(self) -> ICatalogRepository[Artist]:
        pass

    @property
    @abstractmethod
    def genres(self) -> ICatalogRepository[Genre]:
        pass

    @property
    @abstractmethod
    def videos(self) -> ICatalogRepository[Video]:
        pass


class IMetadataExtractor(ABC):
    """Turns a media file into a Song or Video record."""

    @abstractmethod
    async def extract_song(self, path: Path) -> Song:
        """Extract song metadata.

        Raises:
            UnreadableMediaError: If the file can't be parsed
        """
        pass

    @abstractmethod
    async def extract_video(self, path: Path) -> Video:
        """Extract video metadata.

        Raises:
            UnreadableMediaError: If the file can't be parsed
        """
        pass


class IThumbnailCache(ABC):
    """Produces thumbnail images and persists them under stable names."""

    @abstractmethod
    async def get_thumbnail(self, path: Path, size: int) -> bytes:
        """Get a square thumbnail of ``size`` pixels for a media file.

        Raises:
            ThumbnailUnavailableError: If no image can be produced
        """
        pass

    @abstractmethod
    async def save_thumbnail(self, image_data: bytes, filename: str) -> str:
        """Persist image bytes. Returns the stored URI, or "/" if saving failed."""
        pass


class IStorageScanner(ABC):
    """Enumerates candidate files in a storage location."""

    @abstractmethod
    async def scan(
        self,
        location: Path,
        query: QueryOptions,
        token: CancellationToken,
        callback: FileCallback,
    ) -> int:
        """Await ``callback(file)`` once per matching file until ``token`` is cancelled.

        Returns:
            Number of files handed to the callback
        """
        pass


class IChangeTracker(ABC):
    """Detects files that vanished from known storage locations."""

    @abstractmethod
    async def handle_folder_changes(
        self, songs: Iterable[Song], videos: Iterable[Video]
    ) -> list[Song | Video]:
        """Mark entities whose file is gone as removed.

        Returns:
            The entities that were newly marked removed
        """
        pass


__all__ = [
    "ICatalogRepository",
    "ICatalogStore",
    "IMetadataExtractor",
    "IThumbnailCache",
    "IStorageScanner",
    "IChangeTracker",
    "FileCallback",
]

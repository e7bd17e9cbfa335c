"""Repository implementations for catalog entities."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, ClassVar, Generic

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from medialibrary.domain.entities import (
    Album,
    Artist,
    EntityState,
    Genre,
    Song,
    Video,
)
from medialibrary.domain.exceptions import CatalogStoreError
from medialibrary.domain.ports import E, ICatalogRepository, ICatalogStore

from .database import Database
from .models import AlbumModel, ArtistModel, Base, GenreModel, SongModel, VideoModel, utc_now
from .retry import with_db_retry
from .write_buffer import SessionFactory, UpsertBuffer

logger = logging.getLogger(__name__)


# Hey future me - every catalog table works the same way, only the column mapping differs. So
# the base class owns the buffer, the retry and the error wrapping, and subclasses just say how
# an entity becomes a row and back. ANY SQLAlchemy failure leaves here as CatalogStoreError -
# callers never see driver exceptions.
class SqlCatalogRepository(ICatalogRepository[E], Generic[E]):
    """SQLAlchemy-backed repository for one catalog entity type."""

    model: ClassVar[type[Base]]
    entity_type: ClassVar[str]

    def __init__(self, session_factory: SessionFactory, batch_size: int = 200) -> None:
        self._session_factory = session_factory
        self._buffer = UpsertBuffer(self.model.__table__, batch_size=batch_size)  # type: ignore[arg-type]

    @abstractmethod
    def _to_row(self, entity: E) -> dict[str, Any]:
        """Convert entity to column values (id excluded)."""

    @abstractmethod
    def _to_entity(self, model: Any) -> E:
        """Convert ORM row to entity."""

    async def get_all(self) -> list[E]:
        try:
            return await self._select_all()
        except SQLAlchemyError as e:
            raise CatalogStoreError("load", self.entity_type, e) from e

    async def queue_upsert(self, entity: E) -> None:
        row = self._to_row(entity)
        row["state"] = entity.state.value
        row["updated_at"] = utc_now()
        await self._buffer.buffer_upsert(entity.id, row)

    async def upsert_queued(self) -> int:
        try:
            written = await self._flush()
        except SQLAlchemyError as e:
            raise CatalogStoreError("upsert", self.entity_type, e) from e
        if written:
            logger.debug("Upserted %d %s rows", written, self.entity_type)
        return written

    # Listen up, delete is IMMEDIATE and also drops a buffered upsert for the same id. Otherwise
    # the next upsert_queued() would resurrect the row we just deleted. Missing row = no-op.
    async def delete(self, entity: E) -> None:
        await self._buffer.discard(entity.id)
        try:
            await self._delete_by_id(entity.id)
        except SQLAlchemyError as e:
            raise CatalogStoreError("delete", self.entity_type, e) from e

    async def pending_count(self) -> int:
        return await self._buffer.get_pending_count()

    @with_db_retry()
    async def _select_all(self) -> list[E]:
        async with self._session_factory() as session:
            result = await session.execute(select(self.model))
            return [self._to_entity(model) for model in result.scalars().all()]

    @with_db_retry()
    async def _flush(self) -> int:
        return await self._buffer.flush(self._session_factory)

    @with_db_retry()
    async def _delete_by_id(self, entity_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(self.model).where(self.model.id == entity_id))  # type: ignore[attr-defined]


class SongRepository(SqlCatalogRepository[Song]):
    """Repository for Song rows."""

    model = SongModel
    entity_type = Song.entity_type

    def _to_row(self, entity: Song) -> dict[str, Any]:
        return {
            "location": entity.location,
            "title": entity.title,
            "artist": entity.artist,
            "album_artist": entity.album_artist,
            "album": entity.album,
            "genre": entity.genre,
            "disc_number": entity.disc_number,
            "track_number": entity.track_number,
            "year": entity.year,
            "length_ms": entity.length_ms,
            "thumbnail": entity.thumbnail,
        }

    def _to_entity(self, model: SongModel) -> Song:
        return Song(
            id=model.id,
            location=model.location,
            title=model.title,
            artist=model.artist,
            album_artist=model.album_artist,
            album=model.album,
            genre=model.genre,
            disc_number=model.disc_number,
            track_number=model.track_number,
            year=model.year,
            length_ms=model.length_ms,
            thumbnail=model.thumbnail,
            state=EntityState(model.state),
        )


class AlbumRepository(SqlCatalogRepository[Album]):
    """Repository for Album rows."""

    model = AlbumModel
    entity_type = Album.entity_type

    def _to_row(self, entity: Album) -> dict[str, Any]:
        return {
            "title": entity.title,
            "artist": entity.artist,
            "genre": entity.genre,
            "thumbnail": entity.thumbnail,
        }

    def _to_entity(self, model: AlbumModel) -> Album:
        return Album(
            id=model.id,
            title=model.title,
            artist=model.artist,
            genre=model.genre,
            thumbnail=model.thumbnail,
            state=EntityState(model.state),
        )


class ArtistRepository(SqlCatalogRepository[Artist]):
    """Repository for Artist rows."""

    model = ArtistModel
    entity_type = Artist.entity_type

    def _to_row(self, entity: Artist) -> dict[str, Any]:
        return {"name": entity.name, "picture": entity.picture}

    def _to_entity(self, model: ArtistModel) -> Artist:
        return Artist(
            id=model.id,
            name=model.name,
            picture=model.picture,
            state=EntityState(model.state),
        )


class GenreRepository(SqlCatalogRepository[Genre]):
    """Repository for Genre rows."""

    model = GenreModel
    entity_type = Genre.entity_type

    def _to_row(self, entity: Genre) -> dict[str, Any]:
        return {"name": entity.name}

    def _to_entity(self, model: GenreModel) -> Genre:
        return Genre(id=model.id, name=model.name, state=EntityState(model.state))


class VideoRepository(SqlCatalogRepository[Video]):
    """Repository for Video rows."""

    model = VideoModel
    entity_type = Video.entity_type

    def _to_row(self, entity: Video) -> dict[str, Any]:
        return {
            "location": entity.location,
            "title": entity.title,
            "year": entity.year,
            "length_ms": entity.length_ms,
            "thumbnail": entity.thumbnail,
        }

    def _to_entity(self, model: VideoModel) -> Video:
        return Video(
            id=model.id,
            location=model.location,
            title=model.title,
            year=model.year,
            length_ms=model.length_ms,
            thumbnail=model.thumbnail,
            state=EntityState(model.state),
        )


class SqlCatalogStore(ICatalogStore):
    """The five catalog repositories sharing one Database."""

    def __init__(self, database: Database, batch_size: int = 200) -> None:
        factory = database.session_scope
        self._songs = SongRepository(factory, batch_size)
        self._albums = AlbumRepository(factory, batch_size)
        self._artists = ArtistRepository(factory, batch_size)
        self._genres = GenreRepository(factory, batch_size)
        self._videos = VideoRepository(factory, batch_size)

    @property
    def songs(self) -> SongRepository:
        return self._songs

    @property
    def albums(self) -> AlbumRepository:
        return self._albums

    @property
    def artists(self) -> ArtistRepository:
        return self._artists

    @property
    def genres(self) -> GenreRepository:
        return self._genres

    @property
    def videos(self) -> VideoRepository:
        return self._videos

    async def get_buffer_stats(self) -> dict[str, int]:
        """Pending upserts per table."""
        return {
            "songs": await self._songs.pending_count(),
            "albums": await self._albums.pending_count(),
            "artists": await self._artists.pending_count(),
            "genres": await self._genres.pending_count(),
            "videos": await self._videos.pending_count(),
        }

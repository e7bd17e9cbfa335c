"""Persistence layer - SQLAlchemy models, database and repositories."""

from .database import Database
from .models import AlbumModel, ArtistModel, Base, GenreModel, SongModel, VideoModel
from .repositories import (
    AlbumRepository,
    ArtistRepository,
    GenreRepository,
    SongRepository,
    SqlCatalogRepository,
    SqlCatalogStore,
    VideoRepository,
)
from .retry import is_lock_error, with_db_retry
from .write_buffer import PendingWrite, UpsertBuffer

__all__ = [
    "Database",
    "Base",
    "SongModel",
    "AlbumModel",
    "ArtistModel",
    "GenreModel",
    "VideoModel",
    "SqlCatalogRepository",
    "SqlCatalogStore",
    "SongRepository",
    "AlbumRepository",
    "ArtistRepository",
    "GenreRepository",
    "VideoRepository",
    "PendingWrite",
    "UpsertBuffer",
    "is_lock_error",
    "with_db_retry",
]

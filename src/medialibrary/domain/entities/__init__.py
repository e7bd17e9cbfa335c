"""Domain entities."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

# Hey future me - these are the "no real metadata" sentinels! The extractor writes them into
# untagged media. Anything carrying one of these never triggers a thumbnail fetch and never
# overwrites a real value during reconciliation. Compare with ==, they are plain strings so
# they round-trip through the DB unchanged.
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_GENRE = "Unknown Genre"

DEFAULT_ALBUM_THUMBNAIL = "/static/images/placeholder-album.svg"
DEFAULT_ARTIST_PICTURE = "/static/images/placeholder-artist.svg"
DEFAULT_VIDEO_THUMBNAIL = "/static/images/placeholder-video.svg"

# Returned by the thumbnail cache when the image could not be written.
THUMBNAIL_SAVE_FAILED = "/"


def new_entity_id() -> str:
    """Generate a new entity ID."""
    return str(uuid.uuid4())


# Yo, this replaces the old bare "removed" bool! An entity is either ACTIVE or PENDING_DELETE.
# PENDING_DELETE means "the store still has it, the next sync deletes it". Stored as string in DB.
class EntityState(str, Enum):
    """Lifecycle state of a catalog entity."""

    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"


class CatalogEntity:
    """Shared behaviour for catalog entities.

    Identity is the NATURAL KEY (file path, name, title+genre), never the generated id.
    Two Song objects for the same file are equal even if their ids differ.
    """

    entity_type: ClassVar[str] = "entity"

    id: str
    state: EntityState

    @property
    def natural_key(self) -> Any:
        raise NotImplementedError

    @property
    def removed(self) -> bool:
        """True while the entity waits for deletion on the next sync."""
        return self.state is EntityState.PENDING_DELETE

    def mark_removed(self) -> None:
        """Flag the entity for deletion on the next sync."""
        self.state = EntityState.PENDING_DELETE

    def restore(self) -> None:
        """Undo a pending delete."""
        self.state = EntityState.ACTIVE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return bool(self.natural_key == other.natural_key)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.natural_key))


# Listen up, Song identity is the file location! Title/artist can be edited by the user, the
# location can't. The album/artist/genre fields hold NAMES, not ids - referential completeness is
# kept by the reconciler, which creates the Album/Artist/Genre rows before the Song is persisted.
@dataclass(eq=False)
class Song(CatalogEntity):
    """Song entity representing one audio file in the library."""

    entity_type: ClassVar[str] = "song"

    location: str
    title: str
    artist: str = UNKNOWN_ARTIST
    album_artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    genre: str = UNKNOWN_GENRE
    disc_number: int = 0
    track_number: int = 0
    year: int | None = None
    length_ms: int = 0
    thumbnail: str = DEFAULT_ALBUM_THUMBNAIL
    id: str = field(default_factory=new_entity_id)
    state: EntityState = EntityState.ACTIVE

    def __post_init__(self) -> None:
        """Validate song data."""
        if not self.location or not self.location.strip():
            raise ValueError("Song location cannot be empty")

    @property
    def natural_key(self) -> str:
        return self.location


# Hey future me - Album identity is (title, genre), NOT (title, artist)! Two albums called
# "Greatest Hits" with different genres are different rows. Looks odd but it's how the
# catalog has always grouped them - don't "fix" it without migrating existing stores.
@dataclass(eq=False)
class Album(CatalogEntity):
    """Album entity representing a music album."""

    entity_type: ClassVar[str] = "album"

    title: str
    artist: str = UNKNOWN_ARTIST
    genre: str = UNKNOWN_GENRE
    thumbnail: str = DEFAULT_ALBUM_THUMBNAIL
    id: str = field(default_factory=new_entity_id)
    state: EntityState = EntityState.ACTIVE

    def __post_init__(self) -> None:
        """Validate album data."""
        if not self.title or not self.title.strip():
            raise ValueError("Album title cannot be empty")

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.title, self.genre)

    @property
    def is_unknown(self) -> bool:
        return self.title == UNKNOWN_ALBUM

    @property
    def has_placeholder_thumbnail(self) -> bool:
        return self.thumbnail == DEFAULT_ALBUM_THUMBNAIL


@dataclass(eq=False)
class Artist(CatalogEntity):
    """Artist entity representing a music artist."""

    entity_type: ClassVar[str] = "artist"

    name: str
    picture: str = DEFAULT_ARTIST_PICTURE
    id: str = field(default_factory=new_entity_id)
    state: EntityState = EntityState.ACTIVE

    def __post_init__(self) -> None:
        """Validate artist data."""
        if not self.name or not self.name.strip():
            raise ValueError("Artist name cannot be empty")

    @property
    def natural_key(self) -> str:
        return self.name


@dataclass(eq=False)
class Genre(CatalogEntity):
    """Genre entity."""

    entity_type: ClassVar[str] = "genre"

    name: str
    id: str = field(default_factory=new_entity_id)
    state: EntityState = EntityState.ACTIVE

    def __post_init__(self) -> None:
        """Validate genre data."""
        if not self.name or not self.name.strip():
            raise ValueError("Genre name cannot be empty")

    @property
    def natural_key(self) -> str:
        return self.name


@dataclass(eq=False)
class Video(CatalogEntity):
    """Video entity representing one video file in the library."""

    entity_type: ClassVar[str] = "video"

    location: str
    title: str
    year: int | None = None
    length_ms: int = 0
    thumbnail: str = DEFAULT_VIDEO_THUMBNAIL
    id: str = field(default_factory=new_entity_id)
    state: EntityState = EntityState.ACTIVE

    def __post_init__(self) -> None:
        """Validate video data."""
        if not self.location or not self.location.strip():
            raise ValueError("Video location cannot be empty")

    @property
    def natural_key(self) -> str:
        return self.location


__all__ = [
    "UNKNOWN_ALBUM",
    "UNKNOWN_ARTIST",
    "UNKNOWN_GENRE",
    "DEFAULT_ALBUM_THUMBNAIL",
    "DEFAULT_ARTIST_PICTURE",
    "DEFAULT_VIDEO_THUMBNAIL",
    "THUMBNAIL_SAVE_FAILED",
    "EntityState",
    "CatalogEntity",
    "Song",
    "Album",
    "Artist",
    "Genre",
    "Video",
    "new_entity_id",
]

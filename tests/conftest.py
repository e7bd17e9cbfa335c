"""Shared fixtures for medialibrary tests."""

import struct
import wave
import zlib
from collections.abc import AsyncGenerator, Callable
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from mutagen.id3 import APIC, TALB, TCON, TDRC, TIT2, TPE1, TPE2, TPOS, TRCK
from mutagen.wave import WAVE
from PIL import Image

from medialibrary.config import (
    DatabaseSettings,
    IndexingSettings,
    Settings,
    StorageSettings,
)
from medialibrary.domain.ports import ICatalogRepository, ICatalogStore
from medialibrary.infrastructure.persistence import Database, SqlCatalogStore


def make_cover_png(width: int = 64, height: int = 32, color: str = "red") -> bytes:
    """Small PNG used as embedded cover art."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


# Only a PNG header declaring a huge canvas. Pillow refuses it in Image.open(), before any
# pixel data is read, so no IDAT payload is needed.
def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = struct.pack(">I", zlib.crc32(kind + data))
        return struct.pack(">I", len(data)) + kind + data + crc

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )


# Hey future me - real audio files without shipping binaries! stdlib wave writes a tiny silent
# PCM file, mutagen adds an ID3 chunk to it. MutagenFile() then sees a WAVE with ID3 tags,
# which exercises exactly the same tag/APIC code path as an MP3.
def write_tagged_wav(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album_artist: str | None = None,
    album: str | None = None,
    genre: str | None = None,
    track: str | None = None,
    disc: str | None = None,
    year: str | None = None,
    cover: bytes | None = None,
    seconds: float = 0.5,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    rate = 8000
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(b"\x00\x00" * int(rate * seconds))

    audio = WAVE(str(path))
    audio.add_tags()
    frames = [
        (TIT2, title),
        (TPE1, artist),
        (TPE2, album_artist),
        (TALB, album),
        (TCON, genre),
        (TRCK, track),
        (TPOS, disc),
        (TDRC, year),
    ]
    for frame_cls, value in frames:
        if value is not None:
            audio.tags.add(frame_cls(encoding=3, text=[value]))
    if cover is not None:
        audio.tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=cover))
    audio.save()
    return path


@pytest.fixture
def media_factory() -> Callable[..., Path]:
    """Expose write_tagged_wav to tests as a fixture."""
    return write_tagged_wav


@pytest.fixture
def cover_png() -> bytes:
    return make_cover_png()


@pytest.fixture
def oversized_cover_png() -> bytes:
    return make_oversized_png()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every path into tmp_path."""
    return Settings(
        storage=StorageSettings(
            music_path=tmp_path / "music",
            video_path=tmp_path / "videos",
            thumbnail_path=tmp_path / "thumbnails",
        ),
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"),
        indexing=IndexingSettings(crawl_on_startup=False),
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with all tables created."""
    db = Database(settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def sql_store(database: Database) -> SqlCatalogStore:
    return SqlCatalogStore(database)


@pytest.fixture
def mock_store() -> MagicMock:
    """Catalog store whose five repositories are AsyncMocks."""
    store = MagicMock(spec=ICatalogStore)
    for name in ("songs", "albums", "artists", "genres", "videos"):
        repository = AsyncMock(spec=ICatalogRepository)
        repository.get_all = AsyncMock(return_value=[])
        repository.upsert_queued = AsyncMock(return_value=0)
        setattr(store, name, repository)
    return store

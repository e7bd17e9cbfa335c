"""Mutagen-based metadata extraction for songs and videos."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from mutagen import File as MutagenFile  # type: ignore[attr-defined]
from mutagen import MutagenError

from medialibrary.domain.entities import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_GENRE,
    Song,
    Video,
)
from medialibrary.domain.exceptions import UnreadableMediaError
from medialibrary.domain.ports import IMetadataExtractor

logger = logging.getLogger(__name__)

# Hey future me - one table for ALL tag flavours! mutagen hands us ID3 frames (MP3/WAV/AIFF),
# Vorbis comments (FLAC/OGG/Opus), MP4 atoms (M4A) or APEv2 items (APE/WavPack). Keys from a
# foreign flavour simply never match, so order only matters within one flavour: TDRC wins over
# TYER because it comes later and overwrites.
TAG_MAPPINGS: dict[str, str] = {
    # ID3
    "TIT2": "title",
    "TPE1": "artist",
    "TPE2": "album_artist",
    "TALB": "album",
    "TRCK": "track_number",
    "TPOS": "disc_number",
    "TYER": "year",
    "TDRC": "year",
    "TCON": "genre",
    # Vorbis / APEv2 (both case-insensitive)
    "title": "title",
    "artist": "artist",
    "albumartist": "album_artist",
    "album artist": "album_artist",
    "album": "album",
    "tracknumber": "track_number",
    "track": "track_number",
    "discnumber": "disc_number",
    "disc": "disc_number",
    "date": "year",
    "year": "year",
    "genre": "genre",
    # MP4
    "©nam": "title",
    "©ART": "artist",
    "aART": "album_artist",
    "©alb": "album",
    "©day": "year",
    "©gen": "genre",
    "trkn": "track_number",
    "disk": "disc_number",
}


def _first_value(value: Any) -> Any:
    """Unwrap list/frame containers down to one scalar."""
    if isinstance(value, list):
        if not value:
            return None
        value = value[0]
    if hasattr(value, "text"):
        text = value.text
        value = text[0] if isinstance(text, list) and text else text
    return value


def _parse_number(value: Any) -> int | None:
    # "3/12" (ID3/Vorbis) or (3, 12) (MP4) both mean 3
    if isinstance(value, tuple):
        value = value[0] if value else None
    elif value is not None and not isinstance(value, int):
        value = str(value).split("/")[0].strip()
    try:
        return int(value) if value is not None else None
    except (ValueError, TypeError):
        return None


def _parse_year(value: Any) -> int | None:
    try:
        year = int(str(value).strip()[:4])
    except (ValueError, TypeError):
        return None
    return year if year > 0 else None


def extract_tags(audio_tags: Any) -> dict[str, Any]:
    """Map a mutagen tag container to song field values.

    Only fields that carry a usable value end up in the result; empty strings are dropped
    so callers can apply their own defaults.
    """
    tags: dict[str, Any] = {}
    if not audio_tags:
        return tags

    for tag_key, field_name in TAG_MAPPINGS.items():
        try:
            if tag_key not in audio_tags:
                continue
            value = _first_value(audio_tags[tag_key])
        except (KeyError, ValueError):
            continue

        if field_name in ("track_number", "disc_number"):
            value = _parse_number(value)
        elif field_name == "year":
            value = _parse_year(value)
        elif value is not None:
            value = str(value).strip() or None

        if value is not None:
            tags[field_name] = value

    return tags


class MutagenMetadataExtractor(IMetadataExtractor):
    """Reads song and video metadata with mutagen.

    All parsing runs in a worker thread (asyncio.to_thread) so the event loop keeps serving
    API requests during a crawl.
    """

    async def extract_song(self, path: Path) -> Song:
        return await asyncio.to_thread(self._read_song, path)

    async def extract_video(self, path: Path) -> Video:
        return await asyncio.to_thread(self._read_video, path)

    # Listen up, the fallback chain matters for the catalog shape: no album-artist tag means
    # album-artist = track artist, otherwise every untagged-compilation track would create an
    # extra "Unknown Artist" album owner. No title tag means the file name without extension.
    def _read_song(self, path: Path) -> Song:
        audio = self._open(path)
        if audio is None:
            raise UnreadableMediaError(path, "unsupported or corrupt audio file")

        tags = extract_tags(getattr(audio, "tags", None))
        artist = tags.get("artist", UNKNOWN_ARTIST)

        return Song(
            location=str(path),
            title=tags.get("title", path.stem),
            artist=artist,
            album_artist=tags.get("album_artist", artist),
            album=tags.get("album", UNKNOWN_ALBUM),
            genre=tags.get("genre", UNKNOWN_GENRE),
            disc_number=tags.get("disc_number", 0),
            track_number=tags.get("track_number", 0),
            year=tags.get("year"),
            length_ms=self._length_ms(audio),
        )

    # Yo, mutagen only understands MP4-family video containers. MKV/AVI/WebM come back as None,
    # which is NOT an error for video - we still catalog the file by name. A container mutagen
    # claims but can't parse is a real error.
    def _read_video(self, path: Path) -> Video:
        audio = self._open(path)
        if audio is None:
            logger.debug("No container metadata for %s, using file name", path.name)
            return Video(location=str(path), title=path.stem)

        tags = extract_tags(getattr(audio, "tags", None))
        return Video(
            location=str(path),
            title=tags.get("title", path.stem),
            year=tags.get("year"),
            length_ms=self._length_ms(audio),
        )

    def _open(self, path: Path) -> Any:
        try:
            return MutagenFile(path)
        except (MutagenError, OSError) as e:
            raise UnreadableMediaError(path, str(e) or type(e).__name__) from e

    def _length_ms(self, audio: Any) -> int:
        info = getattr(audio, "info", None)
        length = getattr(info, "length", None)
        return int(length * 1000) if length else 0

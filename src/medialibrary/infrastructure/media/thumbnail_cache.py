"""Thumbnail extraction from embedded artwork and on-disk thumbnail storage."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Any

from mutagen import File as MutagenFile  # type: ignore[attr-defined]
from mutagen import MutagenError
from mutagen.flac import Picture
from PIL import Image, ImageOps, UnidentifiedImageError

from medialibrary.domain.entities import THUMBNAIL_SAVE_FAILED
from medialibrary.domain.exceptions import ThumbnailUnavailableError
from medialibrary.domain.ports import IThumbnailCache

logger = logging.getLogger(__name__)


def find_embedded_artwork(audio: Any) -> bytes | None:
    """Return the first embedded cover image of a mutagen file, or None.

    Looks at ID3 APIC frames, FLAC picture blocks, Ogg METADATA_BLOCK_PICTURE comments
    and MP4 covr atoms, in that order.
    """
    tags = getattr(audio, "tags", None)

    # ID3 (MP3, WAV, AIFF)
    if tags is not None and hasattr(tags, "getall"):
        for frame in tags.getall("APIC"):
            if frame.data:
                return bytes(frame.data)

    # FLAC picture blocks live on the file, not in the tags
    for picture in getattr(audio, "pictures", None) or []:
        if picture.data:
            return bytes(picture.data)

    if tags is None:
        return None

    # Ogg Vorbis / Opus: base64-encoded FLAC picture block
    try:
        encoded = tags.get("metadata_block_picture") if hasattr(tags, "get") else None
    except (KeyError, ValueError):
        encoded = None
    for item in encoded or []:
        try:
            return bytes(Picture(base64.b64decode(item)).data)
        except (binascii.Error, MutagenError, ValueError):
            continue

    # MP4
    try:
        covers = tags.get("covr") if hasattr(tags, "get") else None
    except (KeyError, ValueError):
        covers = None
    for cover in covers or []:
        if cover:
            return bytes(cover)

    return None


def render_square_png(image_data: bytes, size: int) -> bytes:
    """Center-crop and resize image bytes to a ``size`` x ``size`` PNG."""
    with Image.open(BytesIO(image_data)) as img:
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGB")
        square = ImageOps.fit(img, (size, size), Image.Resampling.LANCZOS)
        output = BytesIO()
        square.save(output, format="PNG", optimize=True)
        return output.getvalue()


class FileThumbnailCache(IThumbnailCache):
    """Thumbnails from embedded artwork, stored as PNG files on disk.

    Hey future me - save_thumbnail() NEVER raises! A failed write returns "/" and the
    reconciler swaps in the placeholder. get_thumbnail() DOES raise (ThumbnailUnavailableError)
    because "no artwork" is a normal outcome the caller has to decide about.
    """

    def __init__(self, thumbnail_dir: Path, uri_prefix: str = "/api/thumbnails") -> None:
        self._thumbnail_dir = thumbnail_dir
        self._uri_prefix = uri_prefix.rstrip("/")

    @property
    def thumbnail_dir(self) -> Path:
        return self._thumbnail_dir

    async def get_thumbnail(self, path: Path, size: int) -> bytes:
        return await asyncio.to_thread(self._render, path, size)

    async def save_thumbnail(self, image_data: bytes, filename: str) -> str:
        target = self._thumbnail_dir / filename

        def _write_sync() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image_data)

        try:
            await asyncio.to_thread(_write_sync)
        except OSError as e:
            logger.warning("Failed to save thumbnail %s: %s", target, e)
            return THUMBNAIL_SAVE_FAILED

        logger.debug("Saved thumbnail %s (%d bytes)", target, len(image_data))
        return f"{self._uri_prefix}/{filename}"

    def _render(self, path: Path, size: int) -> bytes:
        try:
            audio = MutagenFile(path)
        except (MutagenError, OSError) as e:
            raise ThumbnailUnavailableError(path, f"cannot open file: {e}") from e
        if audio is None:
            raise ThumbnailUnavailableError(path, "unsupported container")

        artwork = find_embedded_artwork(audio)
        if not artwork:
            raise ThumbnailUnavailableError(path)

        # DecompressionBombError is NOT an OSError, an oversized cover would escape otherwise
        try:
            return render_square_png(artwork, size)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ThumbnailUnavailableError(path, f"undecodable artwork: {e}") from e

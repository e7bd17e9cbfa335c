"""Tests for MutagenMetadataExtractor.

Hey future me - these use REAL tagged files written by the media_factory fixture, so the
whole mutagen path is exercised, not a mock of it.
"""

from pathlib import Path

import pytest

from medialibrary.domain.entities import UNKNOWN_ALBUM, UNKNOWN_ARTIST, UNKNOWN_GENRE
from medialibrary.domain.exceptions import UnreadableMediaError
from medialibrary.infrastructure.media import MutagenMetadataExtractor
from medialibrary.infrastructure.media.metadata_extractor import extract_tags


@pytest.fixture
def extractor() -> MutagenMetadataExtractor:
    return MutagenMetadataExtractor()


class TestExtractSong:
    """Tests for extract_song()."""

    @pytest.mark.asyncio
    async def test_all_tags_read(
        self, extractor: MutagenMetadataExtractor, media_factory, tmp_path: Path
    ) -> None:
        path = media_factory(
            tmp_path / "track.wav",
            title="Hells Bells",
            artist="AC/DC",
            album_artist="AC/DC",
            album="Back in Black",
            genre="Rock",
            track="1/10",
            disc="1/1",
            year="1980",
            seconds=1.0,
        )

        song = await extractor.extract_song(path)

        assert song.location == str(path)
        assert song.title == "Hells Bells"
        assert song.artist == "AC/DC"
        assert song.album_artist == "AC/DC"
        assert song.album == "Back in Black"
        assert song.genre == "Rock"
        assert song.track_number == 1
        assert song.disc_number == 1
        assert song.year == 1980
        assert 900 <= song.length_ms <= 1100

    @pytest.mark.asyncio
    async def test_untagged_file_gets_defaults(
        self, extractor: MutagenMetadataExtractor, media_factory, tmp_path: Path
    ) -> None:
        path = media_factory(tmp_path / "My Demo.wav")

        song = await extractor.extract_song(path)

        assert song.title == "My Demo"
        assert song.artist == UNKNOWN_ARTIST
        assert song.album_artist == UNKNOWN_ARTIST
        assert song.album == UNKNOWN_ALBUM
        assert song.genre == UNKNOWN_GENRE
        assert song.year is None
        assert song.track_number == 0

    @pytest.mark.asyncio
    async def test_album_artist_falls_back_to_artist(
        self, extractor: MutagenMetadataExtractor, media_factory, tmp_path: Path
    ) -> None:
        path = media_factory(tmp_path / "a.wav", artist="Solo", album="X")

        song = await extractor.extract_song(path)

        assert song.album_artist == "Solo"

    @pytest.mark.asyncio
    async def test_garbage_file_raises_unreadable(
        self, extractor: MutagenMetadataExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "broken.mp3"
        path.write_bytes(b"not audio at all " * 64)

        with pytest.raises(UnreadableMediaError) as exc_info:
            await extractor.extract_song(path)

        assert exc_info.value.path == str(path)

    @pytest.mark.asyncio
    async def test_unknown_format_raises_unreadable(
        self, extractor: MutagenMetadataExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "notes.xyz"
        path.write_text("hello")

        with pytest.raises(UnreadableMediaError):
            await extractor.extract_song(path)


class TestExtractVideo:
    """Tests for extract_video()."""

    @pytest.mark.asyncio
    async def test_unsupported_container_uses_file_name(
        self, extractor: MutagenMetadataExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "Holiday 2019.mkv"
        path.write_bytes(b"\x1a\x45\xdf\xa3" + b"\x00" * 64)

        video = await extractor.extract_video(path)

        assert video.title == "Holiday 2019"
        assert video.location == str(path)
        assert video.length_ms == 0

    @pytest.mark.asyncio
    async def test_tagged_container_reads_title(
        self, extractor: MutagenMetadataExtractor, media_factory, tmp_path: Path
    ) -> None:
        path = media_factory(tmp_path / "clip.wav", title="Live Clip", year="2021")

        video = await extractor.extract_video(path)

        assert video.title == "Live Clip"
        assert video.year == 2021


class TestExtractTags:
    """Tests for the tag mapping helper."""

    def test_empty_tags(self) -> None:
        assert extract_tags(None) == {}
        assert extract_tags({}) == {}

    def test_vorbis_style_tags(self) -> None:
        tags = {
            "title": ["Song"],
            "albumartist": ["Band"],
            "tracknumber": ["03/12"],
            "date": ["2004-05-01"],
            "genre": ["  "],
        }

        result = extract_tags(tags)

        assert result == {
            "title": "Song",
            "album_artist": "Band",
            "track_number": 3,
            "year": 2004,
        }

    def test_mp4_style_tags(self) -> None:
        tags = {"©nam": ["Song"], "trkn": [(5, 9)], "disk": [(2, 2)], "©day": ["1999"]}

        result = extract_tags(tags)

        assert result == {"title": "Song", "track_number": 5, "disc_number": 2, "year": 1999}

    def test_bad_numbers_dropped(self) -> None:
        assert extract_tags({"tracknumber": ["A1"], "date": ["unknown"]}) == {}

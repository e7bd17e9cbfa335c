"""Query presets describing which files a library scan should pick up."""

from dataclasses import dataclass

AUDIO_EXTENSIONS = frozenset(
    {
        # Lossy
        ".mp3",
        ".m4a",
        ".aac",
        ".ogg",
        ".opus",
        ".wma",
        # Lossless
        ".flac",
        ".wav",
        ".aiff",
        ".aif",
        ".ape",
        ".wv",
    }
)

VIDEO_EXTENSIONS = frozenset(
    {
        ".mp4",
        ".m4v",
        ".mkv",
        ".mov",
        ".avi",
        ".wmv",
        ".webm",
    }
)


@dataclass(frozen=True)
class QueryOptions:
    """Which files a scan yields.

    Attributes:
        name: Label used in log lines ("songs", "videos")
        extensions: Lowercase suffixes (with dot) to accept
        follow_symlinks: Walk into symlinked directories
    """

    name: str
    extensions: frozenset[str]
    follow_symlinks: bool = True

    def matches(self, filename: str) -> bool:
        """Check if a filename has one of the accepted suffixes (case-insensitive)."""
        dot = filename.rfind(".")
        if dot < 0:
            return False
        return filename[dot:].lower() in self.extensions


SONG_QUERY = QueryOptions(name="songs", extensions=AUDIO_EXTENSIONS)
VIDEO_QUERY = QueryOptions(name="videos", extensions=VIDEO_EXTENSIONS)

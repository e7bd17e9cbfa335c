"""Domain value objects."""

from medialibrary.domain.value_objects.cancellation import CancellationToken
from medialibrary.domain.value_objects.media_query import (
    AUDIO_EXTENSIONS,
    SONG_QUERY,
    VIDEO_EXTENSIONS,
    VIDEO_QUERY,
    QueryOptions,
)
from medialibrary.domain.value_objects.naming import as_valid_filename

__all__ = [
    "AUDIO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "SONG_QUERY",
    "VIDEO_QUERY",
    "QueryOptions",
    "CancellationToken",
    "as_valid_filename",
]

"""Filesystem-safe names for files derived from catalog metadata.

Hey future me - thumbnails are stored under a filename derived from the ALBUM TITLE (or video
title), so two songs of the same album share one image. Titles contain all kinds of junk
("AC/DC: Live", "What?", trailing dots) that Windows or POSIX refuse, so everything that
touches the disk goes through as_valid_filename() first.
"""

import re

# Windows is the most restrictive, so we sanitize for that
ILLEGAL_CHARS_PATTERN = re.compile(r'[<>"/\\|?*\x00-\x1f]')

COLON_REPLACEMENT = " -"

# Hey - NTFS also chokes on very long names, 200 leaves room for the ".png" suffix
MAX_FILENAME_LENGTH = 200


def as_valid_filename(name: str) -> str:
    """Remove or replace illegal characters in a filename.

    Args:
        name: Raw name, e.g. an album title.

    Returns:
        Sanitized filename safe for all operating systems.

    Example:
        >>> as_valid_filename("AC/DC: Live?")
        'ACDC - Live'
    """
    # Replace colons first (most common issue)
    result = name.replace(":", COLON_REPLACEMENT)

    # Remove other illegal characters
    result = ILLEGAL_CHARS_PATTERN.sub("", result)

    # Trim whitespace and dots from ends (Windows requirement)
    result = result.strip(" .")

    if len(result) > MAX_FILENAME_LENGTH:
        result = result[:MAX_FILENAME_LENGTH].rstrip(" .")

    # Handle empty result
    if not result:
        result = "Unknown"

    return result

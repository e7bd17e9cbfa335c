"""Domain exceptions."""

from pathlib import Path
from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # Don't raise this directly - always use a specific subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class UnreadableMediaError(DomainException):
    """Raised when a media file cannot be parsed into a Song or Video.

    This is a PER-FILE error: the crawl logs it, skips the file and moves on.
    It must never abort a crawl.
    """

    def __init__(self, path: Path | str, reason: str = "unreadable media") -> None:
        super().__init__(f"Cannot read media file {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class ThumbnailUnavailableError(DomainException):
    """Raised when no thumbnail can be produced for a file.

    Callers fall back to the placeholder thumbnail, never fail on this.
    """

    def __init__(self, path: Path | str, reason: str = "no embedded artwork") -> None:
        super().__init__(f"No thumbnail for {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class CatalogStoreError(DomainException):
    """Persistent store I/O failed.

    Fatal to the current operation (crawl or sync) - catalog consistency can't be
    guaranteed past this point, so it propagates to whoever started the operation.

    HTTP Status: 503
    """

    def __init__(self, operation: str, entity_type: str, cause: Exception | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Catalog store {operation} failed for {entity_type}{detail}")
        self.operation = operation
        self.entity_type = entity_type


class InvalidStateException(DomainException):
    """Raised when a component is in an invalid state for the requested operation.

    Example: asking for a crawl before the host opened the indexing gate.

    HTTP Status: 409
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid (e.g. an unwritable
    SQLite directory).

    HTTP Status: 503 (Service Unavailable)
    """

    pass


__all__ = [
    "DomainException",
    "UnreadableMediaError",
    "ThumbnailUnavailableError",
    "CatalogStoreError",
    "InvalidStateException",
    "ConfigurationError",
]

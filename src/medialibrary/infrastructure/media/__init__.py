"""Media adapters: tag reading, thumbnails, file-system scanning and change tracking."""

from .change_tracker import FolderChangeTracker
from .metadata_extractor import MutagenMetadataExtractor
from .storage_scanner import FileSystemScanner
from .thumbnail_cache import FileThumbnailCache

__all__ = [
    "FileSystemScanner",
    "FileThumbnailCache",
    "FolderChangeTracker",
    "MutagenMetadataExtractor",
]

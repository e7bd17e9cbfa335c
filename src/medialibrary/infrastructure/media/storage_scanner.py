"""File-system scanner that feeds matching media files to a callback."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from medialibrary.domain.ports import FileCallback, IStorageScanner
from medialibrary.domain.value_objects import CancellationToken, QueryOptions

logger = logging.getLogger(__name__)


class FileSystemScanner(IStorageScanner):
    """Walks a storage location and hands matching files to a callback, one at a time."""

    async def scan(
        self,
        location: Path,
        query: QueryOptions,
        token: CancellationToken,
        callback: FileCallback,
    ) -> int:
        files = await asyncio.to_thread(self.discover, location, query)
        logger.info("Found %d %s in %s", len(files), query.name, location)

        processed = 0
        # Hey future me - the token is checked BETWEEN files only. A file that already entered
        # the callback always finishes, so no half-reconciled album can be left behind.
        for file_path in files:
            if token.is_cancelled:
                logger.info(
                    "Scan of %s cancelled after %d/%d files", location, processed, len(files)
                )
                break
            await callback(file_path)
            processed += 1

        return processed

    def discover(self, location: Path, query: QueryOptions) -> list[Path]:
        """Collect matching files under ``location``, sorted by path.

        A missing location is not an error: it yields an empty list and a warning.
        Unreadable sub-directories are skipped with a warning.
        """
        if not location.is_dir():
            logger.warning("Storage location %s does not exist or is not a directory", location)
            return []

        def _on_error(error: OSError) -> None:
            logger.warning("Skipping unreadable directory %s: %s", error.filename, error.strerror)

        found: list[Path] = []
        visited: set[str] = set()

        for root, dirs, filenames in os.walk(
            location, onerror=_on_error, followlinks=query.follow_symlinks
        ):
            # Symlinked folders can point back up the tree. Prune anything already walked.
            real_root = os.path.realpath(root)
            if real_root in visited:
                dirs[:] = []
                continue
            visited.add(real_root)

            for filename in filenames:
                if query.matches(filename):
                    found.append(Path(root) / filename)

        found.sort()
        return found

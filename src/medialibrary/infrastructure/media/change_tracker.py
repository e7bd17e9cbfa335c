"""Detects catalog entries whose media file has disappeared."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from medialibrary.domain.entities import Song, Video
from medialibrary.domain.ports import IChangeTracker

logger = logging.getLogger(__name__)


# Yo, this only handles REMOVALS. New files are picked up by the crawl itself, since the
# reconciler is idempotent. Removals can't be found by a crawl (a missing file never reaches the
# callback), so this runs right before the crawl and flags them PENDING_DELETE. The actual
# delete happens on the next sync.
class FolderChangeTracker(IChangeTracker):
    """Marks Songs and Videos whose file no longer exists as removed."""

    async def handle_folder_changes(
        self, songs: Iterable[Song], videos: Iterable[Video]
    ) -> list[Song | Video]:
        candidates: list[Song | Video] = [s for s in songs if not s.removed]
        candidates.extend(v for v in videos if not v.removed)
        if not candidates:
            return []

        missing = await asyncio.to_thread(self._find_missing, candidates)
        for entity in missing:
            entity.mark_removed()

        if missing:
            logger.info("Marked %d vanished media files for removal", len(missing))
        return missing

    def _find_missing(self, entities: list[Song | Video]) -> list[Song | Video]:
        return [e for e in entities if not Path(e.location).is_file()]

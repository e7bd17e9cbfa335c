# Hey future me - this is where "queue an upsert" actually lives!
#
# The reconciler may touch thousands of rows during one crawl. Writing each one immediately
# means thousands of tiny SQLite transactions. Instead every repository owns an UpsertBuffer:
# - queue_upsert() → instant (RAM), newest data for the same id wins
# - upsert_queued() → ONE transaction, batched INSERT ... ON CONFLICT DO UPDATE
#
# There is NO background flush loop. Flushing is explicit (end of crawl, sync) so the
# caller decides when the store catches up with the in-memory catalog.
"""Write-behind buffer for catalog upserts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class PendingWrite:
    """A buffered upsert waiting to be flushed.

    Attributes:
        key_value: Primary key value
        data: Full column values for the row (key column included)
        timestamp: When this write was buffered
    """

    key_value: Any
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class UpsertBuffer:
    """Buffers upserts for ONE table and flushes them in batches.

    Thread Safety:
    - All methods are async-safe via asyncio.Lock
    - A flush holds the lock, so nothing can be buffered half-way through it

    Error Handling:
    - Failed flush: buffer is preserved, the exception propagates to the caller
    """

    def __init__(self, table: Table, key_column: str = "id", batch_size: int = 200) -> None:
        self._table = table
        self._key_column = key_column
        self._batch_size = batch_size
        self._buffer: dict[Any, PendingWrite] = {}
        self._lock = asyncio.Lock()

    # ==================== Public Write Methods ====================

    async def buffer_upsert(self, key_value: Any, data: dict[str, Any]) -> None:
        """Buffer an UPSERT. A write already buffered for the same key is replaced."""
        async with self._lock:
            row = dict(data)
            row[self._key_column] = key_value
            self._buffer[key_value] = PendingWrite(key_value=key_value, data=row)

    async def discard(self, key_value: Any) -> bool:
        """Drop a buffered write (used when the row gets deleted before flushing).

        Returns:
            True if something was buffered for that key
        """
        async with self._lock:
            return self._buffer.pop(key_value, None) is not None

    async def get_pending_count(self) -> int:
        async with self._lock:
            return len(self._buffer)

    # ==================== Flush Logic ====================

    async def flush(self, session_factory: SessionFactory) -> int:
        """Write every buffered row in one transaction.

        Args:
            session_factory: Async context manager yielding a session that commits on exit

        Returns:
            Number of rows written
        """
        async with self._lock:
            if not self._buffer:
                return 0

            writes = list(self._buffer.values())

            async with session_factory() as session:
                await self._bulk_upsert(session, writes)

            # Success: the session committed, clear buffer
            self._buffer.clear()

            logger.debug("Flushed %d upserts to %s", len(writes), self._table.name)
            return len(writes)

    async def _bulk_upsert(self, session: AsyncSession, writes: list[PendingWrite]) -> None:
        """Execute batched INSERT ... ON CONFLICT DO UPDATE."""
        dialect = session.bind.dialect.name if session.bind is not None else "sqlite"
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert(self._table)
        stmt = stmt.on_conflict_do_update(
            index_elements=[self._key_column],
            set_={
                column.name: stmt.excluded[column.name]
                for column in self._table.columns
                if column.name != self._key_column
            },
        )

        for i in range(0, len(writes), self._batch_size):
            batch = writes[i : i + self._batch_size]
            await session.execute(stmt, [w.data for w in batch])


"""
SQLite reference store mapping access codes to uploaded files.

Only the location pointer and display name are persisted; the file bytes
live in external object storage. Each operation opens its own connection,
so the store holds no shared mutable state beyond the database itself.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from .errors import BrokerError, DuplicateKey, StoreUnavailable
from .models import FileReference

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS file_refs (
    code        TEXT    PRIMARY KEY,
    url         TEXT    NOT NULL,
    name        TEXT    NOT NULL,
    created_at  INTEGER NOT NULL,
    expires_at  INTEGER NOT NULL DEFAULT 0
);
"""

# A row is live when it never expires (expires_at = 0) or expires later.
_LIVE = "(expires_at = 0 OR expires_at > ?)"


def _to_ts(value: datetime | None) -> int:
    return int(value.timestamp()) if value else 0


def _from_ts(value: int) -> datetime | None:
    return datetime.fromtimestamp(value, timezone.utc) if value else None


def _row_to_reference(row) -> FileReference:
    return FileReference(
        code=row["code"],
        url=row["url"],
        name=row["name"],
        created_at=_from_ts(row["created_at"]),
        expires_at=_from_ts(row["expires_at"]),
    )


def _is_expired(row, now: int) -> bool:
    return 0 < row["expires_at"] <= now


class ReferenceStore:
    """Durable code -> file reference mapping backed by SQLite."""

    def __init__(self, database_path: Path, timeout: float = 5.0):
        self.database_path = Path(database_path)
        self.timeout = timeout

    def _connect(self):
        return aiosqlite.connect(self.database_path, timeout=self.timeout)

    async def _run(self, operation: str, coro):
        """Await a store coroutine under the store timeout.

        Infrastructure failures become ``StoreUnavailable`` so a broken or
        slow database is never mistaken for a missing code.
        """
        try:
            return await asyncio.wait_for(coro, self.timeout)
        except BrokerError:
            raise
        except asyncio.TimeoutError:
            logger.error("[Store] %s timed out after %ss", operation, self.timeout)
            raise StoreUnavailable() from None
        except (aiosqlite.Error, OSError) as e:
            logger.exception("[Store] %s failed: %s", operation, e)
            raise StoreUnavailable() from e

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Create the database directory and tables if they don't exist."""
        await self._run("init", self._init())

    async def _init(self) -> None:
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.executescript(SCHEMA)
            await db.commit()

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------

    async def put(
        self,
        code: str,
        url: str,
        name: str,
        created_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> FileReference:
        """
        Insert a new reference under ``code``.

        An expired row holding the same code is replaced. Raises
        ``DuplicateKey`` if the code is held by a live reference.
        """
        if created_at is None:
            created_at = datetime.now(timezone.utc)
        reference = FileReference(code=code, url=url, name=name, created_at=created_at, expires_at=expires_at)
        await self._run("put", self._put(reference))
        return reference

    async def _put(self, reference: FileReference) -> None:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            await db.execute(
                "DELETE FROM file_refs WHERE code = ? AND expires_at > 0 AND expires_at <= ?",
                (reference.code, int(time.time())),
            )
            try:
                await db.execute(
                    "INSERT INTO file_refs (code, url, name, created_at, expires_at) VALUES (?, ?, ?, ?, ?)",
                    (
                        reference.code,
                        reference.url,
                        reference.name,
                        _to_ts(reference.created_at),
                        _to_ts(reference.expires_at),
                    ),
                )
            except aiosqlite.IntegrityError:
                await db.rollback()
                raise DuplicateKey()
            await db.commit()

    async def get(self, code: str) -> FileReference | None:
        """
        Fetch a reference by code. Returns ``None`` if it doesn't exist
        or has expired.
        """
        return await self._run("get", self._get(code))

    async def _get(self, code: str) -> FileReference | None:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM file_refs WHERE code = ?", (code,))
            row = await cursor.fetchone()
            if row is None:
                return None

            if _is_expired(row, int(time.time())):
                # Expired, drop it now instead of waiting for the cleanup task
                await db.execute("DELETE FROM file_refs WHERE code = ? AND expires_at = ?", (code, row["expires_at"]))
                await db.commit()
                return None

        return _row_to_reference(row)

    async def take(self, code: str) -> FileReference | None:
        """Atomically fetch and delete a reference (one-time use).

        When several callers race for the same code exactly one of them
        receives the reference; the others get ``None``.
        """
        return await self._run("take", self._take(code))

    async def _take(self, code: str) -> FileReference | None:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            cursor = await db.execute("SELECT * FROM file_refs WHERE code = ?", (code,))
            row = await cursor.fetchone()
            if row is None:
                await db.rollback()
                return None
            await db.execute("DELETE FROM file_refs WHERE code = ?", (code,))
            await db.commit()

        if _is_expired(row, int(time.time())):
            return None
        return _row_to_reference(row)

    async def delete(self, code: str) -> bool:
        """Delete a single reference. Returns True if a live row was deleted."""
        return await self._run("delete", self._delete(code))

    async def _delete(self, code: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                f"DELETE FROM file_refs WHERE code = ? AND {_LIVE}",
                (code, int(time.time())),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def purge_expired(self) -> int:
        """Delete all expired references. Returns the number of deleted rows."""
        return await self._run("purge_expired", self._purge_expired())

    async def _purge_expired(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM file_refs WHERE expires_at > 0 AND expires_at <= ?",
                (int(time.time()),),
            )
            await db.commit()
            return cursor.rowcount

    async def count(self) -> int:
        """Number of live references."""
        return await self._run("count", self._count())

    async def _count(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM file_refs WHERE {_LIVE}", (int(time.time()),))
            row = await cursor.fetchone()
            return row[0]

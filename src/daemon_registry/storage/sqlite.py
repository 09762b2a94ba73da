"""SQLite-backed KVStore (persistent, file-based).

A single ``kv`` table holds opaque blobs keyed by string with an optional
absolute expiry. Expired rows read as absent and are removed lazily.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from daemon_registry.clock import Clock, utc_now

DEFAULT_DB_PATH = "daemon_registry.db"
KV_TABLE = "kv"


class SQLiteKVStore:
    """KVStore over aiosqlite; one connection per call, no cross-call transactions."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH, clock: Clock = utc_now) -> None:
        self._db_path = Path(db_path)
        self._clock = clock

    async def _ensure_table(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {KV_TABLE} (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                expires_at REAL
            )
            """
        )
        await conn.commit()

    async def get(self, key: str) -> bytes | None:
        now = self._clock().timestamp()
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            async with conn.execute(
                f"SELECT value, expires_at FROM {KV_TABLE} WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            value, expires_at = row
            if expires_at is not None and now >= expires_at:
                await conn.execute(f"DELETE FROM {KV_TABLE} WHERE key = ?", (key,))
                await conn.commit()
                return None
            return bytes(value)

    async def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        expires_at = self._clock().timestamp() + ttl if ttl is not None else None
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            await conn.execute(
                f"""
                INSERT OR REPLACE INTO {KV_TABLE} (key, value, expires_at)
                VALUES (?, ?, ?)
                """,
                (key, value, expires_at),
            )
            await conn.commit()

    async def delete(self, key: str) -> None:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            await conn.execute(f"DELETE FROM {KV_TABLE} WHERE key = ?", (key,))
            await conn.commit()

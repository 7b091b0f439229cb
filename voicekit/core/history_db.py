"""SQLite persistence of the command log.

Persistence is a best-effort cache: the ``persist_*`` helpers log and swallow
storage errors so the in-memory log keeps working without a database.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite
from pydantic import ValidationError

from .config import Settings
from .history import HistoryEntry
from .logger import get_logger

__all__ = [
    "init_db",
    "ping_db",
    "save_entry",
    "load_entries",
    "delete_entry",
    "clear_entries",
    "persist_entry",
    "persist_removal",
    "persist_clear",
    "load_entries_safe",
]

logger = get_logger("persistence")


def _get_db_path() -> Path:
    """Path of the history database (parent directory created on demand)."""
    settings = Settings()
    db_path = Path(settings.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


@asynccontextmanager
async def _open_db() -> AsyncIterator[aiosqlite.Connection]:
    """Open the database in WAL mode and make sure the table exists."""
    db = await aiosqlite.connect(_get_db_path())
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS commands (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            payload TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """,
    )
    try:
        yield db
    finally:
        await db.close()


async def init_db() -> None:
    """Create the database file and the commands table."""
    async with _open_db() as db:
        await db.commit()


async def ping_db() -> bool:
    """Check that the database can be opened."""
    try:
        async with _open_db() as db:
            await db.execute("SELECT 1")
        return True
    except (OSError, sqlite3.Error):
        return False


async def save_entry(entry: HistoryEntry, max_items: int | None = None) -> None:
    """Store ``entry`` as the newest command, then trim to ``max_items``."""
    payload = entry.model_dump_json(by_alias=True, exclude_none=True)
    async with _open_db() as db:
        await db.execute("INSERT OR REPLACE INTO commands(id, payload) VALUES (?, ?)", (entry.id, payload))
        if max_items:
            await db.execute(
                "DELETE FROM commands WHERE seq NOT IN (SELECT seq FROM commands ORDER BY seq DESC LIMIT ?)",
                (max_items,),
            )
        await db.commit()


async def load_entries(limit: int | None = None) -> list[HistoryEntry]:
    """Return stored commands, newest first. Unreadable rows are skipped."""
    query = "SELECT payload FROM commands ORDER BY seq DESC"
    params: tuple[int, ...] = ()
    if limit:
        query += " LIMIT ?"
        params = (limit,)
    async with _open_db() as db:
        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
    entries: list[HistoryEntry] = []
    for (payload,) in rows:
        try:
            entries.append(HistoryEntry.model_validate(json.loads(payload)))
        except (ValueError, ValidationError) as exc:
            logger.warning("Skipping unreadable history row: %s", exc)
    return entries


async def delete_entry(entry_id: str) -> bool:
    async with _open_db() as db:
        cursor = await db.execute("DELETE FROM commands WHERE id = ?", (entry_id,))
        await db.commit()
        return cursor.rowcount > 0


async def clear_entries() -> None:
    """Delete every stored command, retrying briefly while the database is locked."""
    for attempt in range(3):
        try:
            async with _open_db() as db:
                await db.execute("DELETE FROM commands")
                await db.commit()
            return
        except sqlite3.OperationalError as exc:
            if "locked" not in str(exc).lower() or attempt == 2:
                raise
            await asyncio.sleep(0.2 * (attempt + 1))


async def persist_entry(entry: HistoryEntry, max_items: int | None = None) -> bool:
    try:
        await save_entry(entry, max_items)
        return True
    except (OSError, sqlite3.Error) as exc:
        logger.warning("Could not persist history entry %s: %s", entry.id, exc)
        return False


async def persist_removal(entry_id: str) -> bool:
    try:
        await delete_entry(entry_id)
        return True
    except (OSError, sqlite3.Error) as exc:
        logger.warning("Could not delete persisted history entry %s: %s", entry_id, exc)
        return False


async def persist_clear() -> bool:
    try:
        await clear_entries()
        return True
    except (OSError, sqlite3.Error) as exc:
        logger.warning("Could not clear persisted history: %s", exc)
        return False


async def load_entries_safe(limit: int | None = None) -> list[HistoryEntry]:
    try:
        return await load_entries(limit)
    except (OSError, sqlite3.Error) as exc:
        logger.warning("Could not load persisted history: %s", exc)
        return []

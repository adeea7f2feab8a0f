"""SQLite subject metadata store with JSON-encoded values."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

import aiosqlite

logger = logging.getLogger(__name__)


class SQLiteMetaStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    async def read(self, subject_id: int, key: str) -> object | None:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT meta_value FROM subject_meta WHERE subject_id = ? AND meta_key = ?",
                (subject_id, key),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Meta value %s for subject %s is not JSON", key, subject_id)
            return row[0]

    async def write(self, subject_id: int, key: str, value: object) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT OR REPLACE INTO subject_meta (
                    subject_id, meta_key, meta_value, updated_at
                ) VALUES (?, ?, ?, ?)""",
                (subject_id, key, json.dumps(value), datetime.now(UTC).isoformat()),
            )
            await db.commit()

    async def delete(self, subject_id: int, key: str) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM subject_meta WHERE subject_id = ? AND meta_key = ?",
                (subject_id, key),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def subjects_with(self, key: str) -> list[int]:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT subject_id FROM subject_meta WHERE meta_key = ? ORDER BY subject_id",
                (key,),
            )
            rows = await cursor.fetchall()
        return [int(row[0]) for row in rows]


__all__ = ["SQLiteMetaStore"]

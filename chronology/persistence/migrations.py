"""Ordered ``*.sql`` migrations, each recorded once with its SHA-256 checksum."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import sqlite3
from contextlib import closing
from datetime import UTC, datetime
from pathlib import Path
from typing import NamedTuple

from chronology.errors import MigrationError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_LEDGER_DDL = (
    "CREATE TABLE IF NOT EXISTS _migrations ("
    " name TEXT PRIMARY KEY, checksum TEXT NOT NULL, applied_at TEXT NOT NULL)"
)


class Migration(NamedTuple):
    name: str
    script: str
    checksum: str


def discover_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Scripts in ``migrations_dir``, ordered by file name."""
    migrations = []
    for path in sorted(migrations_dir.glob("*.sql")):
        raw = path.read_bytes()
        migrations.append(
            Migration(path.name, raw.decode("utf-8"), hashlib.sha256(raw).hexdigest())
        )
    return migrations


def _pending(conn: sqlite3.Connection, migrations: list[Migration]) -> list[Migration]:
    recorded = dict(conn.execute("SELECT name, checksum FROM _migrations").fetchall())
    pending = []
    for migration in migrations:
        checksum = recorded.get(migration.name)
        if checksum is None:
            pending.append(migration)
        elif checksum != migration.checksum:
            raise MigrationError(
                f"Migration {migration.name} checksum mismatch: recorded {checksum}, "
                f"file has {migration.checksum}"
            )
    return pending


def _apply(db_path: str, migrations: list[Migration]) -> list[str]:
    # executescript() runs outside the connection's implicit transactions,
    # which keeps BEGIN/END inside trigger bodies intact.
    with closing(sqlite3.connect(db_path)) as conn:
        conn.execute(_LEDGER_DDL)
        conn.commit()
        applied = []
        for migration in _pending(conn, migrations):
            conn.executescript(migration.script)
            conn.execute(
                "INSERT INTO _migrations (name, checksum, applied_at) VALUES (?, ?, ?)",
                (migration.name, migration.checksum, datetime.now(UTC).isoformat()),
            )
            conn.commit()
            logger.info("Applied migration %s", migration.name)
            applied.append(migration.name)
    return applied


async def run_migrations(db_path: str, migrations_dir: Path | None = None) -> list[str]:
    """Apply pending migrations in order and return their names.

    Raises:
        MigrationError: If an applied migration's file has changed.
    """
    if migrations_dir is None:
        migrations_dir = MIGRATIONS_DIR
    migrations = discover_migrations(migrations_dir)
    return await asyncio.to_thread(_apply, db_path, migrations)


__all__ = ["MIGRATIONS_DIR", "Migration", "discover_migrations", "run_migrations"]

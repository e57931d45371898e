"""Linear schema migration runner.

Each app supplies an ordered list of single-statement migrations. A
migration is applied at most once per database: its name is recorded in
the ``migrations`` bookkeeping table right after it executes, and later
runs skip every name already recorded.

Plain string entries are named from their 1-indexed position
(``migration_001``), so the order of an app's list must never change once
deployed; reordering or inserting earlier entries ties recorded names to
different statements. Entries that need a position-independent identity
can be given as ``Migration(name, sql)``.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, Sequence, Union

import aiosqlite

from aapps.errors import MigrationError

logger = logging.getLogger("aapps.db")

MIGRATIONS_TABLE = "migrations"

_CREATE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL UNIQUE,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

# sqlite3 raised Warning rather than ProgrammingError for multi-statement
# strings before Python 3.12.
_STORE_ERRORS = (sqlite3.Error, sqlite3.Warning)


@dataclass(frozen=True)
class Migration:
    name: str
    sql: str


@dataclass(frozen=True)
class MigrationRecord:
    name: str
    applied_at: str


MigrationSpec = Union[str, Migration]


def ordinal_name(index: int) -> str:
    """Name for the migration at zero-based ``index``. Must stay stable."""
    return f"migration_{index + 1:03d}"


def resolve(
    statements: Sequence[MigrationSpec],
    naming: Callable[[int], str] = ordinal_name,
) -> list[Migration]:
    """Pair every statement with its bookkeeping name."""
    resolved: list[Migration] = []
    seen: set[str] = set()
    for index, stmt in enumerate(statements):
        migration = stmt if isinstance(stmt, Migration) else Migration(naming(index), stmt)
        if migration.name in seen:
            raise MigrationError(f"duplicate migration name {migration.name}", migration.name)
        seen.add(migration.name)
        resolved.append(migration)
    return resolved


async def _is_applied(db: aiosqlite.Connection, name: str) -> bool:
    async with db.execute(
        f"SELECT COUNT(*) FROM {MIGRATIONS_TABLE} WHERE name = ?", (name,)
    ) as cur:
        row = await cur.fetchone()
    return bool(row and row[0])


async def run_migrations(
    db: aiosqlite.Connection,
    statements: Sequence[MigrationSpec],
    naming: Callable[[int], str] = ordinal_name,
) -> list[str]:
    """Apply every not-yet-recorded migration in order.

    Stops at the first failure with ``MigrationError``; migrations before it
    stay applied and recorded. Returns the names applied by this call.
    """
    migrations = resolve(statements, naming)

    try:
        await db.execute(_CREATE_TABLE)
        await db.commit()
    except _STORE_ERRORS as e:
        raise MigrationError("failed to create migrations table") from e

    applied: list[str] = []
    for migration in migrations:
        name = migration.name
        try:
            if await _is_applied(db, name):
                continue
        except _STORE_ERRORS as e:
            raise MigrationError(f"failed to check migration status for {name}", name) from e

        logger.info(f"Applying migration {name}")
        try:
            await db.execute(migration.sql)
        except _STORE_ERRORS as e:
            await db.rollback()
            raise MigrationError(f"failed to apply migration {name}: {e}", name) from e

        try:
            await db.execute(
                f"INSERT INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,)
            )
            await db.commit()
        except _STORE_ERRORS as e:
            await db.rollback()
            raise MigrationError(f"failed to record migration {name}: {e}", name) from e
        applied.append(name)

    if applied:
        logger.info(f"Migrations complete: {len(applied)} applied, {len(migrations)} total")
    else:
        logger.info(f"Schema is up to date ({len(migrations)} migrations)")
    return applied


async def applied_migrations(db: aiosqlite.Connection) -> list[MigrationRecord]:
    """Bookkeeping rows in application order."""
    async with db.execute(
        f"SELECT name, applied_at FROM {MIGRATIONS_TABLE} ORDER BY id"
    ) as cur:
        rows = await cur.fetchall()
    return [MigrationRecord(name=row[0], applied_at=str(row[1])) for row in rows]

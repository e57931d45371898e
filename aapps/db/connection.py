"""SQLite connection factory.

Each app owns one file-backed database under ``config.DATA_DIR``; the
connection is opened in the app lifespan and kept on ``app.state.db``.
"""
from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from aapps import config

logger = logging.getLogger("aapps.db")


def database_path(app_name: str, database_url: str = "") -> Path:
    """Resolve the database file for an app (``data/<app>.db`` by default)."""
    if database_url:
        return Path(database_url.removeprefix("sqlite:///"))
    return config.DATA_DIR / f"{app_name}.db"


async def open_connection(path: str | Path) -> aiosqlite.Connection:
    """Open the database at ``path``, creating its directory if needed."""
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(path))
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys=ON")
    await conn.execute("PRAGMA busy_timeout=5000")
    logger.info(f"Database connection established: {path}")
    return conn


async def ping(conn: aiosqlite.Connection | None) -> bool:
    if conn is None:
        return False
    try:
        async with conn.execute("SELECT 1") as cur:
            await cur.fetchone()
    except (aiosqlite.Error, ValueError):
        return False
    return True

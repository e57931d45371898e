"""SQLite storage for the projects app (projects and their log entries)."""
from __future__ import annotations

from typing import Optional, Sequence

import aiosqlite

from aapps.access import owner_filter
from aapps.models import LogEntry, Project, ProjectFields

_PROJECT_COLUMNS = """id, username, short_name, short_description, full_description,
    website_url, source_url, is_commercial, is_open_source, is_public,
    stage, rating, created_at, updated_at"""

_TYPE_FILTERS = {
    "commercial": "is_commercial = 1",
    "open-source": "is_open_source = 1",
    "public": "is_public = 1",
}


def build_log_tree(entries: Sequence[LogEntry]) -> list[LogEntry]:
    """Nest entries under their parents; keeps the input order at each level.

    Entries whose parent is not among ``entries`` are dropped.
    """
    children: dict[int, list[LogEntry]] = {}
    roots: list[LogEntry] = []
    for entry in entries:
        if entry.parent_id is None:
            roots.append(entry)
        else:
            children.setdefault(entry.parent_id, []).append(entry)

    def attach(entry: LogEntry) -> LogEntry:
        entry.children = [attach(child) for child in children.get(entry.id, [])]
        return entry

    return [attach(root) for root in roots]


class SqliteProjectRepository:
    """SQLite-backed projects with a threaded log per project."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def list_projects(
        self,
        usernames: Sequence[str],
        stage: str = "",
        type_filter: str = "",
        rating: int = 0,
    ) -> list[Project]:
        predicate, params = owner_filter("username", usernames)
        query = f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE {predicate}"
        args: list = list(params)

        if stage:
            query += " AND stage = ?"
            args.append(stage)
        if type_filter in _TYPE_FILTERS:
            query += f" AND {_TYPE_FILTERS[type_filter]}"
        if rating > 0:
            query += " AND rating = ?"
            args.append(rating)
        query += " ORDER BY updated_at DESC, id DESC"

        async with self.db.execute(query, args) as cur:
            return [Project(**dict(r)) for r in await cur.fetchall()]

    async def get_project(self, project_id: int, usernames: Sequence[str]) -> Project | None:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ? AND {predicate}",
            [project_id, *params],
        ) as cur:
            row = await cur.fetchone()
            return Project(**dict(row)) if row else None

    async def create_project(self, username: str, fields: ProjectFields) -> int:
        cur = await self.db.execute(
            """INSERT INTO projects (
                username, short_name, short_description, full_description,
                website_url, source_url, is_commercial, is_open_source, is_public,
                stage, rating
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                username,
                fields.short_name,
                fields.short_description,
                fields.full_description,
                fields.website_url,
                fields.source_url,
                fields.is_commercial,
                fields.is_open_source,
                fields.is_public,
                fields.stage,
                fields.rating,
            ),
        )
        await self.db.commit()
        return cur.lastrowid

    async def update_project(self, project_id: int, usernames: Sequence[str], fields: ProjectFields) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"""UPDATE projects SET
                short_name = ?, short_description = ?, full_description = ?,
                website_url = ?, source_url = ?,
                is_commercial = ?, is_open_source = ?, is_public = ?,
                stage = ?, rating = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND {predicate}""",
            [
                fields.short_name,
                fields.short_description,
                fields.full_description,
                fields.website_url,
                fields.source_url,
                fields.is_commercial,
                fields.is_open_source,
                fields.is_public,
                fields.stage,
                fields.rating,
                project_id,
                *params,
            ],
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def update_stage(self, project_id: int, usernames: Sequence[str], stage: str) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"""UPDATE projects SET stage = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND {predicate}""",
            [stage, project_id, *params],
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def delete_project(self, project_id: int, usernames: Sequence[str]) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"DELETE FROM projects WHERE id = ? AND {predicate}",
            [project_id, *params],
        )
        await self.db.commit()
        return cur.rowcount > 0

    # ── Log entries ─────────────────────────────────────────────────

    async def list_log_entries(self, project_id: int, usernames: Sequence[str]) -> list[LogEntry]:
        """Visible log entries of a project as a tree, newest roots first."""
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"""SELECT id, project_id, parent_id, username, note, url, created_at
                FROM log_entries
                WHERE project_id = ? AND {predicate}
                ORDER BY created_at DESC, id DESC""",
            [project_id, *params],
        ) as cur:
            entries = [LogEntry(**dict(r)) for r in await cur.fetchall()]
        return build_log_tree(entries)

    async def get_log_entry(self, log_id: int, usernames: Sequence[str]) -> LogEntry | None:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"""SELECT id, project_id, parent_id, username, note, url, created_at
                FROM log_entries WHERE id = ? AND {predicate}""",
            [log_id, *params],
        ) as cur:
            row = await cur.fetchone()
            return LogEntry(**dict(row)) if row else None

    async def create_log_entry(
        self,
        project_id: int,
        username: str,
        note: str,
        url: str = "",
        parent_id: Optional[int] = None,
    ) -> int:
        cur = await self.db.execute(
            """INSERT INTO log_entries (project_id, parent_id, username, note, url)
               VALUES (?, ?, ?, ?, ?)""",
            (project_id, parent_id, username, note, url),
        )
        log_id = cur.lastrowid
        await self.db.execute(
            "UPDATE projects SET updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (project_id,),
        )
        await self.db.commit()
        return log_id

    async def delete_log_entry(self, log_id: int, project_id: int, usernames: Sequence[str]) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"DELETE FROM log_entries WHERE id = ? AND project_id = ? AND {predicate}",
            [log_id, project_id, *params],
        )
        await self.db.commit()
        return cur.rowcount > 0

"""SQLite storage for the lists app (stores and their items).

Items are scoped through their store: an item is visible when its store's
owner is in the caller's visibility set.
"""
from __future__ import annotations

from typing import Sequence

import aiosqlite

from aapps.access import owner_filter
from aapps.models import Item, Store

DEFAULT_STORE_COLOR = "#3B82F6"


class SqliteListRepository:
    """SQLite-backed stores and items."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def list_stores(self, usernames: Sequence[str]) -> list[Store]:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"SELECT id, name, color, username FROM stores WHERE {predicate} ORDER BY name",
            params,
        ) as cur:
            stores = [Store(**dict(r)) for r in await cur.fetchall()]

        by_id = {store.id: store for store in stores}
        for item in await self.list_items(usernames):
            store = by_id.get(item.store_id)
            if store is not None:
                store.items.append(item)
        return stores

    async def list_items(self, usernames: Sequence[str]) -> list[Item]:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"""SELECT id, store_id, name, quantity, checked, username FROM items
                WHERE store_id IN (SELECT id FROM stores WHERE {predicate})
                ORDER BY checked ASC, created_at DESC, id DESC""",
            params,
        ) as cur:
            return [Item(**dict(r)) for r in await cur.fetchall()]

    async def create_store(self, name: str, username: str, color: str = "") -> int:
        cur = await self.db.execute(
            "INSERT INTO stores (name, username, color) VALUES (?, ?, ?)",
            (name, username, color or DEFAULT_STORE_COLOR),
        )
        await self.db.commit()
        return cur.lastrowid

    async def store_accessible(self, store_id: int, usernames: Sequence[str]) -> bool:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"SELECT COUNT(*) FROM stores WHERE id = ? AND {predicate}",
            [store_id, *params],
        ) as cur:
            row = await cur.fetchone()
            return bool(row and row[0])

    async def delete_store(self, store_id: int, usernames: Sequence[str]) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"DELETE FROM stores WHERE id = ? AND {predicate}",
            [store_id, *params],
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def create_item(self, store_id: int, name: str, quantity: str, username: str) -> Item:
        cur = await self.db.execute(
            "INSERT INTO items (store_id, name, quantity, username) VALUES (?, ?, ?, ?)",
            (store_id, name, quantity, username),
        )
        await self.db.commit()
        return Item(
            id=cur.lastrowid,
            store_id=store_id,
            name=name,
            quantity=quantity,
            checked=False,
            username=username,
        )

    async def get_item(self, item_id: int, usernames: Sequence[str]) -> Item | None:
        predicate, params = owner_filter("username", usernames)
        async with self.db.execute(
            f"""SELECT id, store_id, name, quantity, checked, username FROM items
                WHERE id = ? AND store_id IN (SELECT id FROM stores WHERE {predicate})""",
            [item_id, *params],
        ) as cur:
            row = await cur.fetchone()
            return Item(**dict(row)) if row else None

    async def toggle_item(self, item_id: int, usernames: Sequence[str]) -> Item | None:
        predicate, params = owner_filter("username", usernames)
        await self.db.execute(
            f"""UPDATE items SET checked = NOT checked
                WHERE id = ? AND store_id IN (SELECT id FROM stores WHERE {predicate})""",
            [item_id, *params],
        )
        await self.db.commit()
        return await self.get_item(item_id, usernames)

    async def delete_item(self, item_id: int, usernames: Sequence[str]) -> bool:
        predicate, params = owner_filter("username", usernames)
        cur = await self.db.execute(
            f"""DELETE FROM items
                WHERE id = ? AND store_id IN (SELECT id FROM stores WHERE {predicate})""",
            [item_id, *params],
        )
        await self.db.commit()
        return cur.rowcount > 0

"""Routes for the lists apps (todo-list, shopping-list).

Every query goes through the caller's visibility set, so members of a
share group see and edit each other's lists.
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import Response

from aapps.apps.factory import base_path, get_db, page_context, visible_usernames
from aapps.auth import current_username
from aapps.db.repositories import SqliteListRepository
from aapps.templating import html

logger = logging.getLogger("aapps.lists")

lists_router = APIRouter(tags=["lists"])


def _repo(request: Request) -> SqliteListRepository:
    return SqliteListRepository(get_db(request))


def _store_error(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Failed to {action}: {exc}")
    return HTTPException(status_code=500, detail=f"Failed to {action}")


@lists_router.get("/")
async def home(
    request: Request,
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    try:
        stores = await _repo(request).list_stores(shared)
    except aiosqlite.Error as e:
        raise _store_error("load lists", e) from e
    context = page_context(request, username, title=request.app.state.title, stores=stores)
    return html("lists/home.html", **context)


@lists_router.get("/stores/new")
def new_store_form(request: Request, username: str = Depends(current_username)):
    return html("lists/store_form.html", base=base_path(request))


@lists_router.post("/stores")
async def create_store(
    request: Request,
    name: str = Form(""),
    color: str = Form(""),
    username: str = Depends(current_username),
):
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Store name required")
    try:
        await _repo(request).create_store(name, username, color.strip())
    except aiosqlite.IntegrityError as e:
        raise HTTPException(status_code=400, detail="A list with that name already exists") from e
    except aiosqlite.Error as e:
        raise _store_error("create store", e) from e
    return Response(status_code=200, headers={"HX-Redirect": base_path(request) + "/"})


@lists_router.delete("/stores/{store_id}")
async def delete_store(
    request: Request,
    store_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    repo = _repo(request)
    try:
        await repo.delete_store(store_id, shared)
        stores = await repo.list_stores(shared)
    except aiosqlite.Error as e:
        raise _store_error("delete store", e) from e
    return html("lists/grid.html", base=base_path(request), stores=stores)


@lists_router.post("/stores/{store_id}/items")
async def create_item(
    request: Request,
    store_id: int,
    name: str = Form(""),
    quantity: str = Form(""),
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Item name required")

    repo = _repo(request)
    try:
        allowed = await repo.store_accessible(store_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("check store access", e) from e
    if not allowed:
        raise HTTPException(status_code=404, detail="Store not found")

    try:
        item = await repo.create_item(store_id, name, quantity.strip(), username)
    except aiosqlite.Error as e:
        raise _store_error("create item", e) from e
    return html("lists/item.html", base=base_path(request), item=item)


@lists_router.post("/items/{item_id}/toggle")
async def toggle_item(
    request: Request,
    item_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    try:
        item = await _repo(request).toggle_item(item_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("toggle item", e) from e
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return html("lists/item.html", base=base_path(request), item=item)


@lists_router.delete("/items/{item_id}")
async def delete_item(
    request: Request,
    item_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    try:
        await _repo(request).delete_item(item_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("delete item", e) from e
    return Response(status_code=200)

"""Routes for the projects app: project cards, detail page and the log timeline."""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import Response

from aapps.apps.factory import base_path, get_db, page_context, visible_usernames
from aapps.auth import current_username
from aapps.db.repositories import SqliteProjectRepository
from aapps.models import STAGES, ProjectFields
from aapps.templating import html

logger = logging.getLogger("aapps.projects")

projects_router = APIRouter(tags=["projects"])


def _repo(request: Request) -> SqliteProjectRepository:
    return SqliteProjectRepository(get_db(request))


def _store_error(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Failed to {action}: {exc}")
    return HTTPException(status_code=500, detail=f"Failed to {action}")


def _redirect(request: Request, path: str) -> Response:
    return Response(status_code=200, headers={"HX-Redirect": base_path(request) + path})


def _checkbox(value: str) -> bool:
    return value == "on"


def _rating_filter(value: str) -> int:
    try:
        return max(0, min(5, int(value or 0)))
    except ValueError:
        return 0


def _project_fields(
    short_name: str,
    short_description: str,
    full_description: str,
    website_url: str,
    source_url: str,
    is_commercial: str,
    is_open_source: str,
    is_public: str,
    stage: str,
    rating: str,
) -> ProjectFields:
    short_name = short_name.strip()
    if not short_name:
        raise HTTPException(status_code=400, detail="Project name is required")
    return ProjectFields(
        short_name=short_name,
        short_description=short_description.strip(),
        full_description=full_description.strip(),
        website_url=website_url.strip(),
        source_url=source_url.strip(),
        is_commercial=_checkbox(is_commercial),
        is_open_source=_checkbox(is_open_source),
        is_public=_checkbox(is_public),
        stage=stage,
        rating=rating,
    )


async def _timeline(request: Request, project_id: int, shared: tuple[str, ...]):
    try:
        entries = await _repo(request).list_log_entries(project_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("load log entries", e) from e
    return html("projects/timeline.html", base=base_path(request), entries=entries, project_id=project_id)


async def _require_project(request: Request, project_id: int, shared: tuple[str, ...]):
    try:
        project = await _repo(request).get_project(project_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("load project", e) from e
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


# ── Projects ────────────────────────────────────────────────────────

@projects_router.get("/")
async def home(
    request: Request,
    stage: str = "",
    type_filter: str = Query("", alias="type"),
    rating: str = "",
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    rating_filter = _rating_filter(rating)
    try:
        projects = await _repo(request).list_projects(shared, stage, type_filter, rating_filter)
    except aiosqlite.Error as e:
        raise _store_error("load projects", e) from e
    context = page_context(
        request,
        username,
        title="Projects",
        projects=projects,
        stage_filter=stage,
        type_filter=type_filter,
        rating_filter=rating_filter,
    )
    return html("projects/home.html", **context)


@projects_router.get("/projects/new")
def new_project_form(request: Request, username: str = Depends(current_username)):
    return html("projects/form.html", base=base_path(request), project=None)


@projects_router.post("/projects")
async def create_project(
    request: Request,
    short_name: str = Form(""),
    short_description: str = Form(""),
    full_description: str = Form(""),
    website_url: str = Form(""),
    source_url: str = Form(""),
    is_commercial: str = Form(""),
    is_open_source: str = Form(""),
    is_public: str = Form(""),
    stage: str = Form("idea"),
    rating: str = Form("0"),
    username: str = Depends(current_username),
):
    fields = _project_fields(
        short_name, short_description, full_description, website_url, source_url,
        is_commercial, is_open_source, is_public, stage, rating,
    )
    try:
        await _repo(request).create_project(username, fields)
    except aiosqlite.Error as e:
        raise _store_error("create project", e) from e
    return _redirect(request, "/")


@projects_router.get("/projects/{project_id}")
async def project_detail(
    request: Request,
    project_id: int,
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    project = await _require_project(request, project_id, shared)
    try:
        entries = await _repo(request).list_log_entries(project_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("load log entries", e) from e
    context = page_context(
        request,
        username,
        title=project.short_name,
        project=project,
        entries=entries,
        project_id=project_id,
    )
    return html("projects/detail.html", **context)


@projects_router.get("/projects/{project_id}/edit")
async def edit_project_form(
    request: Request,
    project_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    project = await _require_project(request, project_id, shared)
    return html("projects/form.html", base=base_path(request), project=project)


@projects_router.post("/projects/{project_id}")
async def update_project(
    request: Request,
    project_id: int,
    short_name: str = Form(""),
    short_description: str = Form(""),
    full_description: str = Form(""),
    website_url: str = Form(""),
    source_url: str = Form(""),
    is_commercial: str = Form(""),
    is_open_source: str = Form(""),
    is_public: str = Form(""),
    stage: str = Form("idea"),
    rating: str = Form("0"),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    fields = _project_fields(
        short_name, short_description, full_description, website_url, source_url,
        is_commercial, is_open_source, is_public, stage, rating,
    )
    try:
        updated = await _repo(request).update_project(project_id, shared, fields)
    except aiosqlite.Error as e:
        raise _store_error("update project", e) from e
    if not updated:
        raise HTTPException(status_code=404, detail="Project not found")
    return _redirect(request, f"/projects/{project_id}")


@projects_router.post("/projects/{project_id}/stage")
async def update_project_stage(
    request: Request,
    project_id: int,
    stage: str = Form(""),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    if stage not in STAGES:
        raise HTTPException(status_code=400, detail="Unknown stage")
    try:
        updated = await _repo(request).update_stage(project_id, shared, stage)
    except aiosqlite.Error as e:
        raise _store_error("update stage", e) from e
    if not updated:
        raise HTTPException(status_code=404, detail="Project not found")
    return Response(status_code=200)


@projects_router.delete("/projects/{project_id}")
async def delete_project(
    request: Request,
    project_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    try:
        await _repo(request).delete_project(project_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("delete project", e) from e
    return _redirect(request, "/")


# ── Log entries ─────────────────────────────────────────────────────

@projects_router.post("/projects/{project_id}/log")
async def create_log_entry(
    request: Request,
    project_id: int,
    note: str = Form(""),
    url: str = Form(""),
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    note = note.strip()
    if not note:
        raise HTTPException(status_code=400, detail="Note is required")
    await _require_project(request, project_id, shared)
    try:
        await _repo(request).create_log_entry(project_id, username, note, url.strip())
    except aiosqlite.Error as e:
        raise _store_error("create log entry", e) from e
    return await _timeline(request, project_id, shared)


@projects_router.get("/projects/{project_id}/log/{log_id}/reply")
def reply_form(request: Request, project_id: int, log_id: int, username: str = Depends(current_username)):
    return html("projects/reply_form.html", base=base_path(request), project_id=project_id, log_id=log_id)


@projects_router.post("/projects/{project_id}/log/{log_id}/reply")
async def create_log_reply(
    request: Request,
    project_id: int,
    log_id: int,
    note: str = Form(""),
    url: str = Form(""),
    username: str = Depends(current_username),
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    note = note.strip()
    if not note:
        raise HTTPException(status_code=400, detail="Note is required")
    await _require_project(request, project_id, shared)

    repo = _repo(request)
    try:
        parent = await repo.get_log_entry(log_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("load log entry", e) from e
    # The parent must belong to this project and be visible to the caller.
    if parent is None or parent.project_id != project_id:
        raise HTTPException(status_code=404, detail="Log entry not found")
    if parent.parent_id is not None:
        raise HTTPException(status_code=400, detail="Replies cannot be nested")

    try:
        await repo.create_log_entry(project_id, username, note, url.strip(), parent_id=log_id)
    except aiosqlite.Error as e:
        raise _store_error("create reply", e) from e
    return await _timeline(request, project_id, shared)


@projects_router.delete("/projects/{project_id}/log/{log_id}")
async def delete_log_entry(
    request: Request,
    project_id: int,
    log_id: int,
    shared: tuple[str, ...] = Depends(visible_usernames),
):
    try:
        await _repo(request).delete_log_entry(log_id, project_id, shared)
    except aiosqlite.Error as e:
        raise _store_error("delete log entry", e) from e
    return await _timeline(request, project_id, shared)

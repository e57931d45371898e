"""FastAPI application assembly shared by every app.

``create_app`` loads the app's YAML config and roster, and wires a
lifespan that opens the SQLite store and applies the app's migrations
before any request is served. The login/logout/health/changelog routes
are common to all apps; each app contributes one protected router.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence
from urllib.parse import quote

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import RedirectResponse

from aapps import config
from aapps.access import visibility_set
from aapps.auth import (
    COOKIE_NAME,
    LoginRequired,
    clear_auth_cookie,
    current_username,
    generate_token,
    login_required_response,
    normalize_base_path,
    prefix_path,
    set_auth_cookie,
    validate_credentials,
    validate_token,
)
from aapps.db import connection
from aapps.db.migrations import MigrationSpec, run_migrations
from aapps.errors import AuthError, ConfigError
from aapps.templating import html

logger = logging.getLogger("aapps")


@dataclass
class AppDefinition:
    name: str
    title: str
    migrations: Sequence[MigrationSpec]
    router: APIRouter
    default_port: int = 3000


async def visible_usernames(
    request: Request, username: str = Depends(current_username)
) -> tuple[str, ...]:
    """Dependency: the caller's visibility set."""
    return visibility_set(username, request.app.state.roster)


def get_db(request: Request):
    return request.app.state.db


def base_path(request: Request) -> str:
    return normalize_base_path(request.app.state.base_path)


def page_context(request: Request, username: str = "", **extra) -> dict:
    state = request.app.state
    app_config = state.app_config
    context = {
        "app_name": state.title,
        "username": username,
        "app_version": app_config.app_version,
        "app_release_date": app_config.app_release_date,
        "base": base_path(request),
    }
    context.update(extra)
    return context


def _optional_username(request: Request) -> str:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return ""
    try:
        return validate_token(token, request.app.state.jwt_secret)
    except AuthError:
        return ""


# ── Public routes ───────────────────────────────────────────────────

public_router = APIRouter(tags=["auth"])


@public_router.get("/login")
def login_page(request: Request):
    error = request.query_params.get("error", "")
    return html("login.html", **page_context(request, error=error))


@public_router.post("/login")
def login(request: Request, username: str = Form(""), password: str = Form("")):
    state = request.app.state
    username = username.strip()
    try:
        validate_credentials(username, password, state.roster)
    except AuthError as e:
        logger.info(f"Login failed for {username!r}: {e}")
        url = prefix_path(state.base_path, "/login") + "?error=" + quote("Invalid credentials")
        return RedirectResponse(url=url, status_code=303)

    token = generate_token(username, state.jwt_secret, config.TOKEN_TTL_HOURS)
    response = RedirectResponse(url=prefix_path(state.base_path, "/"), status_code=303)
    set_auth_cookie(response, token, secure=config.COOKIE_SECURE)
    logger.info(f"User {username!r} logged in")
    return response


@public_router.post("/logout")
def logout(request: Request):
    response = RedirectResponse(url=prefix_path(request.app.state.base_path, "/login"), status_code=303)
    clear_auth_cookie(response)
    return response


@public_router.get("/health")
async def health(request: Request):
    db = getattr(request.app.state, "db", None)
    return {
        "status": "ok",
        "app": request.app.state.app_name,
        "db": "connected" if await connection.ping(db) else "disconnected",
    }


@public_router.get("/changelog")
def changelog_page(request: Request):
    username = _optional_username(request)
    path = request.app.state.app_config.changelog_path or config.DEFAULT_CHANGELOG_PATH
    try:
        entries = config.load_changelog(path)
        unavailable = False
    except ConfigError as e:
        logger.warning(f"Changelog unavailable: {e}")
        entries, unavailable = [], True
    return html(
        "changelog.html",
        **page_context(request, username, title="Changelog", entries=entries, unavailable=unavailable),
    )


# ── Assembly ────────────────────────────────────────────────────────

def create_app(
    definition: AppDefinition,
    config_path: str | Path | None = None,
    database_path: str | Path | None = None,
) -> FastAPI:
    app_config = config.load_app_config_or_default(config_path or config.CONFIG_PATH)
    roster = config.load_roster(app_config)
    db_path = database_path or connection.database_path(definition.name, app_config.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{definition.name} starting up")
        app.state.db = await connection.open_connection(db_path)
        try:
            # A MigrationError here aborts startup.
            await run_migrations(app.state.db, definition.migrations)
            yield
        finally:
            logger.info(f"{definition.name} shutting down")
            await app.state.db.close()
            app.state.db = None

    app = FastAPI(title=definition.title, lifespan=lifespan)
    app.state.app_name = definition.name
    app.state.title = definition.title
    app.state.app_config = app_config
    app.state.roster = roster
    app.state.jwt_secret = config.resolve_jwt_secret(app_config)
    app.state.base_path = normalize_base_path(config.BASE_PATH)
    app.state.strict_roster = config.STRICT_ROSTER
    app.state.db = None
    app.state.port = config.resolve_port(app_config, definition.default_port)

    app.add_exception_handler(LoginRequired, login_required_response)
    app.include_router(public_router)
    app.include_router(definition.router)
    return app

"""Cookie authentication for protected routes.

``current_username`` is a FastAPI dependency. Requests without a valid
``auth_token`` cookie raise ``LoginRequired``, which the app turns into a
redirect to the login page (``HX-Redirect`` for HTMX requests).
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from aapps.auth.credentials import validate_token
from aapps.errors import AuthError

logger = logging.getLogger("aapps.auth")

COOKIE_NAME = "auth_token"
COOKIE_MAX_AGE = 86400


class LoginRequired(Exception):
    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def normalize_base_path(base_path: str) -> str:
    """Leading slash, no trailing slash; "" when mounted at the root."""
    base_path = (base_path or "").strip().rstrip("/")
    if not base_path:
        return ""
    if not base_path.startswith("/"):
        base_path = "/" + base_path
    return base_path


def prefix_path(base_path: str, path: str) -> str:
    base_path = normalize_base_path(base_path)
    if not path.startswith("/"):
        path = "/" + path
    return base_path + path


async def current_username(request: Request) -> str:
    state = request.app.state
    login_url = prefix_path(getattr(state, "base_path", ""), "/login")

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise LoginRequired(login_url)

    try:
        username = validate_token(token, state.jwt_secret)
    except AuthError as e:
        logger.info(f"Rejected auth token: {e}")
        raise LoginRequired(login_url) from e

    if getattr(state, "strict_roster", False):
        if not any(entry.username == username for entry in state.roster):
            logger.warning(f"Token for {username!r} not in roster")
            raise LoginRequired(login_url)
    return username


def login_required_response(request: Request, exc: LoginRequired) -> Response:
    if request.headers.get("HX-Request") == "true":
        return Response(status_code=200, headers={"HX-Redirect": exc.location})
    return RedirectResponse(url=exc.location, status_code=303)


def set_auth_cookie(response: Response, token: str, secure: bool = False) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="strict",
        secure=secure,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, path="/")

"""Roster credential checks and JWT session tokens."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from aapps.access import Roster
from aapps.errors import AuthError

logger = logging.getLogger("aapps.auth")

JWT_ALGORITHM = "HS256"


def validate_credentials(username: str, password: str, roster: Roster) -> bool:
    """Check ``password`` against the roster digest for ``username``.

    Returns True or raises ``AuthError``.
    """
    for entry in roster:
        if entry.username != username:
            continue
        try:
            ok = bcrypt.checkpw(password.encode("utf-8"), entry.password_hash.encode("utf-8"))
        except ValueError as e:
            raise AuthError("invalid password") from e
        if ok:
            return True
        raise AuthError("invalid password")
    raise AuthError("user not found")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def generate_token(username: str, secret: str, ttl_hours: int = 24) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "username": username,
        "exp": now + timedelta(hours=ttl_hours),
        "iat": now,
    }
    return jwt.encode(claims, secret, algorithm=JWT_ALGORITHM)


def validate_token(token: str, secret: str) -> str:
    """Return the username carried by ``token``; raise ``AuthError`` if invalid."""
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise AuthError("token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"invalid token: {e}") from e

    username = claims.get("username")
    if not isinstance(username, str):
        raise AuthError("invalid token claims")
    return username

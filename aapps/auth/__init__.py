"""Authentication helpers."""

from aapps.auth.credentials import (
    generate_token,
    hash_password,
    validate_credentials,
    validate_token,
)
from aapps.auth.middleware import (
    COOKIE_NAME,
    LoginRequired,
    clear_auth_cookie,
    current_username,
    login_required_response,
    normalize_base_path,
    prefix_path,
    set_auth_cookie,
)

__all__ = [
    "generate_token",
    "hash_password",
    "validate_credentials",
    "validate_token",
    "COOKIE_NAME",
    "LoginRequired",
    "clear_auth_cookie",
    "current_username",
    "login_required_response",
    "normalize_base_path",
    "prefix_path",
    "set_auth_cookie",
]

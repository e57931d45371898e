"""aapps process configuration.

Environment variables are read once at import time. Per-app settings
(roster, version, changelog location) live in a YAML file loaded by
``load_app_config``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from aapps.errors import ConfigError
from aapps.models import AppConfig, ChangelogEntry, RosterEntry

logger = logging.getLogger("aapps.config")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Project root (one level up from aapps/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_PATH = os.getenv("AAPPS_CONFIG_PATH", "config.yaml")
DATA_DIR = Path(os.getenv("AAPPS_DATA_DIR", "data"))
DEFAULT_CHANGELOG_PATH = "changelog.yaml"

# Auth
DEV_JWT_SECRET = "dev-secret-change-in-production"
JWT_SECRET = os.getenv("JWT_SECRET", "")
TOKEN_TTL_HOURS = _env_int("AAPPS_TOKEN_TTL_HOURS", 24)
COOKIE_SECURE = _env_bool("AAPPS_COOKIE_SECURE", False)
STRICT_ROSTER = _env_bool("AAPPS_STRICT_ROSTER", False)

# Server settings
HOST = os.getenv("AAPPS_HOST", "0.0.0.0")
PORT = _env_int("PORT", 0)
BASE_PATH = os.getenv("AAPPS_BASE_PATH", "")


def _read_yaml(path: Path, what: str):
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read {what}: {e}") from e
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse {what}: {e}") from e


def load_app_config(path: str | Path) -> AppConfig:
    """Load an ``AppConfig`` from YAML. Raises ``ConfigError``."""
    data = _read_yaml(Path(path), "config")
    if data is None:
        return AppConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"failed to parse config: expected a mapping, got {type(data).__name__}")
    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"failed to parse config: {e}") from e


def load_app_config_or_default(path: str | Path) -> AppConfig:
    """Lenient startup variant: warn and fall back to an empty config."""
    try:
        app_config = load_app_config(path)
    except ConfigError as e:
        logger.warning(f"Failed to load config: {e}")
        app_config = AppConfig()
    if not app_config.changelog_path:
        app_config.changelog_path = DEFAULT_CHANGELOG_PATH
    return app_config


def load_roster(app_config: AppConfig) -> tuple[RosterEntry, ...]:
    """Freeze the configured users into an immutable roster."""
    roster = tuple(app_config.users)
    if not roster:
        logger.warning("No users configured in config.yaml")
        return roster

    seen: set[str] = set()
    for entry in roster:
        if entry.username in seen:
            logger.warning(f"Duplicate roster username {entry.username!r}; first entry wins")
        seen.add(entry.username)
    return roster


def load_changelog(path: str | Path) -> list[ChangelogEntry]:
    data = _read_yaml(Path(path), "changelog")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError("failed to parse changelog: expected a list of entries")
    try:
        return [ChangelogEntry(**item) for item in data]
    except (TypeError, ValidationError) as e:
        raise ConfigError(f"failed to parse changelog: {e}") from e


def resolve_jwt_secret(app_config: AppConfig) -> str:
    if JWT_SECRET:
        return JWT_SECRET
    if app_config.jwt_secret:
        return app_config.jwt_secret
    logger.warning("JWT secret not configured; using development default")
    return DEV_JWT_SECRET


def resolve_port(app_config: AppConfig, default: int) -> int:
    if PORT:
        return PORT
    if app_config.port:
        return app_config.port
    return default

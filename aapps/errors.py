"""Exception types shared by the aapps libraries."""
from __future__ import annotations


class AappsError(Exception):
    """Base class for library errors."""


class ConfigError(AappsError):
    """Configuration or changelog file could not be read or parsed."""


class MigrationError(AappsError):
    """A schema migration could not be applied or recorded.

    The underlying ``sqlite3`` error is available as ``__cause__``.
    """

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.name = name


class AuthError(AappsError):
    """Credentials or token rejected."""

"""Repository package for database access."""

from .lists import SqliteListRepository
from .projects import SqliteProjectRepository

__all__ = [
    "SqliteListRepository",
    "SqliteProjectRepository",
]

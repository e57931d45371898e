"""Pydantic models shared by the apps."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Configuration ───────────────────────────────────────────────────

class RosterEntry(BaseModel):
    """One configured principal. Immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    username: str
    password_hash: str = Field(default="", repr=False)
    share_group: str = ""

    @field_validator("username", "password_hash", "share_group", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class AppConfig(BaseModel):
    app_name: str = ""
    app_version: str = ""
    app_release_date: str = ""
    changelog_path: str = ""
    port: int = 0
    database_url: str = ""
    jwt_secret: str = Field(default="", repr=False)
    users: list[RosterEntry] = Field(default_factory=list)

    @field_validator("users", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value


class ChangelogEntry(BaseModel):
    version: str = ""
    date: str = ""
    changes: list[str] = Field(default_factory=list)


# ── Lists app ───────────────────────────────────────────────────────

class Item(BaseModel):
    id: int
    store_id: int
    name: str
    quantity: str = ""
    checked: bool = False
    username: str = ""


class Store(BaseModel):
    id: int
    name: str
    color: str = "#3B82F6"
    username: str = ""
    items: list[Item] = Field(default_factory=list)

    @property
    def unchecked_count(self) -> int:
        return sum(1 for item in self.items if not item.checked)


# ── Projects app ────────────────────────────────────────────────────

STAGES = ("idea", "planning", "development", "released", "archived")


class Project(BaseModel):
    id: int
    username: str
    short_name: str
    short_description: str = ""
    full_description: str = ""
    website_url: str = ""
    source_url: str = ""
    is_commercial: bool = False
    is_open_source: bool = False
    is_public: bool = False
    stage: str = "idea"
    rating: int = 0
    created_at: str = ""
    updated_at: str = ""


class ProjectFields(BaseModel):
    """Editable project columns, as submitted by the project form."""

    short_name: str
    short_description: str = ""
    full_description: str = ""
    website_url: str = ""
    source_url: str = ""
    is_commercial: bool = False
    is_open_source: bool = False
    is_public: bool = False
    stage: str = "idea"
    rating: int = 0

    @field_validator("stage", mode="before")
    @classmethod
    def _known_stage(cls, value):
        return value if value in STAGES else "idea"

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value):
        try:
            rating = int(value or 0)
        except (TypeError, ValueError):
            return 0
        return max(0, min(5, rating))


class LogEntry(BaseModel):
    id: int
    project_id: int
    parent_id: Optional[int] = None
    username: str
    note: str
    url: str = ""
    created_at: str = ""
    children: list[LogEntry] = Field(default_factory=list)

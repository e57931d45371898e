"""Jinja2 templates shared by all apps.

Handlers render to strings and wrap them in ``HTMLResponse`` so partial
HTMX fragments and full pages go through the same path.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from aapps.models import STAGES

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["stages"] = STAGES


def render(name: str, **context: Any) -> str:
    context.setdefault("base", "")
    return templates.env.get_template(name).render(**context)


def html(name: str, status_code: int = 200, headers: dict[str, str] | None = None, **context: Any) -> HTMLResponse:
    return HTMLResponse(render(name, **context), status_code=status_code, headers=headers)

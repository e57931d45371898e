"""Entry points for the aapps web apps.

Usage:
  aapps-serve todo-list
  aapps-serve projects --config apps/projects/config.yaml --port 3003
  uvicorn --factory aapps.main:create_todo_list_app
"""
from __future__ import annotations

import argparse
import logging

import uvicorn
from fastapi import FastAPI

from aapps import config
from aapps.apps.factory import AppDefinition, create_app
from aapps.apps.lists.migrations import MIGRATIONS as LIST_MIGRATIONS
from aapps.apps.lists.routes import lists_router
from aapps.apps.projects.migrations import MIGRATIONS as PROJECT_MIGRATIONS
from aapps.apps.projects.routes import projects_router

logger = logging.getLogger("aapps")

TODO_LIST = AppDefinition(
    name="todo-list",
    title="Todo List",
    migrations=LIST_MIGRATIONS,
    router=lists_router,
    default_port=3001,
)

SHOPPING_LIST = AppDefinition(
    name="shopping-list",
    title="Shopping List",
    migrations=LIST_MIGRATIONS,
    router=lists_router,
    default_port=3002,
)

PROJECTS = AppDefinition(
    name="projects",
    title="Projects",
    migrations=PROJECT_MIGRATIONS,
    router=projects_router,
    default_port=3003,
)

APPS: dict[str, AppDefinition] = {
    d.name: d for d in (TODO_LIST, SHOPPING_LIST, PROJECTS)
}


def create_todo_list_app() -> FastAPI:
    return create_app(TODO_LIST)


def create_shopping_list_app() -> FastAPI:
    return create_app(SHOPPING_LIST)


def create_projects_app() -> FastAPI:
    return create_app(PROJECTS)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run one of the aapps web apps.")
    parser.add_argument("app", choices=sorted(APPS))
    parser.add_argument("--config", default=config.CONFIG_PATH, help="Path to the app's config.yaml")
    parser.add_argument("--db", default=None, help="SQLite database file (default: data/<app>.db)")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=0)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    app = create_app(APPS[args.app], config_path=args.config, database_path=args.db)
    port = args.port or app.state.port
    logger.info(f"{args.app} starting on {args.host}:{port}")
    uvicorn.run(app, host=args.host, port=port)


if __name__ == "__main__":
    main()

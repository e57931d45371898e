"""aapps: personal CRUD web apps on shared SQLite, auth and templating libraries."""

__version__ = "0.1.0"

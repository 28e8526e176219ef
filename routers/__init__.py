"""API routers."""

from . import auth, clients, files, health, projects, spa, storage, tasks

__all__ = [
    "health",
    "auth",
    "projects",
    "tasks",
    "clients",
    "files",
    "storage",
    "spa",
]

"""Persistence layer for specsync sessions and requirements."""

from __future__ import annotations

from typing import Optional

from ..config import SpecSyncConfig, load_config
from .inmemory import InMemoryRequirementStore, InMemorySessionRepository
from .repository import RequirementStore, SessionRepository
from .sqlite import SQLiteSessionRepository

_repository_instance: SessionRepository | None = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[SpecSyncConfig] = None
) -> SessionRepository:
    """Factory function to obtain a session repository.

    The backend is selected from ``database_url``, which can be provided
    explicitly or come from loaded configuration (where the
    ``SPECSYNC_DATABASE_URL`` / ``DATABASE_URL`` environment variables take
    precedence). When no database is configured, an in-memory repository is
    returned and reused across calls.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = database_url or config.database_url

    if not database_url:
        _repository_instance = InMemorySessionRepository()
        return _repository_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _repository_instance = SQLiteSessionRepository(path)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _repository_instance


__all__ = [
    "InMemoryRequirementStore",
    "InMemorySessionRepository",
    "RequirementStore",
    "SQLiteSessionRepository",
    "SessionRepository",
    "get_repository",
]

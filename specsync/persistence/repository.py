"""Repository abstractions for sessions and requirements."""

from __future__ import annotations

from typing import Any, Protocol

from ..components.models import Requirement
from ..sessions.models import Interaction, Result, Session, SessionStatus


class SessionRepository(Protocol):
    """Protocol for session persistence backends.

    Mutating methods return the updated session and raise
    :class:`~specsync.errors.SessionNotFound` for unknown ids.
    """

    async def create_session(self, session: Session) -> Session:
        """Persist a new session."""

    async def get_session(self, session_id: str) -> Session | None:
        """Retrieve a session by id."""

    async def list_sessions(self) -> list[Session]:
        """Return all persisted sessions, oldest first."""

    async def append_interaction(self, session_id: str, interaction: Interaction) -> Session:
        """Record a newly started interaction."""

    async def complete_interaction(
        self, session_id: str, interaction_id: str, result: Result
    ) -> Session:
        """Attach the executor's result to a pending interaction."""

    async def merge_state(self, session_id: str, state: dict[str, Any]) -> Session:
        """Shallow-merge ``state`` into the session state."""

    async def update_status(self, session_id: str, status: SessionStatus) -> Session:
        """Change the session status."""

    async def add_child_session(self, parent_id: str, child_id: str) -> Session:
        """Link ``child_id`` to its parent session."""


class RequirementStore(Protocol):
    """Synchronous store receiving requirement records from the analyzer.

    ``create_requirement`` raises
    :class:`~specsync.errors.RequirementPersistenceError` when a record
    cannot be written.
    """

    def clear_requirements(self, component_id: str) -> None:
        """Drop every stored requirement of a component."""

    def create_requirement(self, requirement: Requirement) -> Requirement:
        """Store one requirement record."""

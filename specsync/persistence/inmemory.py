"""In-memory implementations of the repositories."""

from __future__ import annotations

from typing import Any, Dict, List

from ..components.models import Requirement
from ..errors import RequirementPersistenceError, SessionNotFound
from ..sessions.models import Interaction, Result, Session, SessionStatus
from .repository import RequirementStore, SessionRepository


class InMemorySessionRepository(SessionRepository):
    """Store sessions in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Callers always receive copies, so
    mutating a returned session never changes stored state.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def _get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    def _store(self, session: Session) -> Session:
        self._sessions[session.id] = session
        return session.model_copy(deep=True)

    # ------------------------------------------------------------------
    async def create_session(self, session: Session) -> Session:
        if session.id in self._sessions:
            raise ValueError(f"Session {session.id} already exists")
        return self._store(session.model_copy(deep=True))

    async def get_session(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def list_sessions(self) -> list[Session]:
        return [s.model_copy(deep=True) for s in self._sessions.values()]

    async def append_interaction(self, session_id: str, interaction: Interaction) -> Session:
        session = self._get(session_id)
        interactions = session.interactions + [interaction.model_copy(deep=True)]
        return self._store(session.model_copy(update={"interactions": interactions}))

    async def complete_interaction(
        self, session_id: str, interaction_id: str, result: Result
    ) -> Session:
        session = self._get(session_id)
        interactions: List[Interaction] = []
        found = False
        for interaction in session.interactions:
            if interaction.id == interaction_id:
                interaction = interaction.complete(result)
                found = True
            interactions.append(interaction)
        if not found:
            raise KeyError(f"Interaction {interaction_id} not found in session {session_id}")
        return self._store(session.model_copy(update={"interactions": interactions}))

    async def merge_state(self, session_id: str, state: dict[str, Any]) -> Session:
        session = self._get(session_id)
        return self._store(session.model_copy(update={"state": {**session.state, **state}}))

    async def update_status(self, session_id: str, status: SessionStatus) -> Session:
        session = self._get(session_id)
        return self._store(session.model_copy(update={"status": SessionStatus(status)}))

    async def add_child_session(self, parent_id: str, child_id: str) -> Session:
        session = self._get(parent_id)
        if child_id in session.child_session_ids:
            return session.model_copy(deep=True)
        children = session.child_session_ids + [child_id]
        return self._store(session.model_copy(update={"child_session_ids": children}))


class InMemoryRequirementStore(RequirementStore):
    """Keep requirement records per component id."""

    def __init__(self) -> None:
        self._requirements: Dict[str, List[Requirement]] = {}

    def clear_requirements(self, component_id: str) -> None:
        self._requirements.pop(component_id, None)

    def create_requirement(self, requirement: Requirement) -> Requirement:
        if requirement.component_id is None:
            raise RequirementPersistenceError(
                f"Requirement {requirement.name} has no component id"
            )
        stored = [r for r in self._requirements.get(requirement.component_id, []) if r.name != requirement.name]
        stored.append(requirement)
        self._requirements[requirement.component_id] = stored
        return requirement

    def requirements_for(self, component_id: str) -> List[Requirement]:
        return list(self._requirements.get(component_id, []))

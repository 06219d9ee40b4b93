"""Drive sessions: ask for the next step, record commands and results."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ..errors import RetryLimitExceeded, SessionClosed, SessionComplete, SessionNotFound
from ..persistence.repository import SessionRepository
from .history import last_completed_interaction, pending_interactions
from .models import Command, Interaction, Result, Session, SessionStatus
from .registry import WorkflowRegistry
from .steps import SPAWN_COMMAND, StepContext

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Executes commands produced by steps; transport is up to the implementation."""

    async def execute(self, command: Command) -> Result:
        """Run ``command`` and report its outcome."""


class SessionRunner:
    """Advances sessions one interaction at a time.

    Within a session steps run strictly in sequence: while an interaction is
    pending, :meth:`next_command` hands back that same interaction instead of
    starting another one.
    """

    def __init__(
        self,
        repository: SessionRepository,
        registry: WorkflowRegistry,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.options: Dict[str, Any] = dict(options or {})

    # ------------------------------------------------------------------
    async def start_session(
        self,
        workflow_type: str,
        component_id: Optional[str] = None,
        state: Optional[Dict[str, Any]] = None,
        parent_session_id: Optional[str] = None,
    ) -> Session:
        self.registry.get(workflow_type)
        session = await self.repository.create_session(
            Session(
                type=workflow_type,
                component_id=component_id,
                state=dict(state or {}),
                parent_session_id=parent_session_id,
            )
        )
        logger.info(f"Started {workflow_type} session {session.id}")
        return session

    async def spawn_child(
        self,
        parent_session_id: str,
        workflow_type: str,
        component_id: Optional[str] = None,
        state: Optional[Dict[str, Any]] = None,
    ) -> Session:
        """Start a session linked to ``parent_session_id``."""
        await self._get(parent_session_id)
        child = await self.start_session(
            workflow_type,
            component_id=component_id,
            state=state,
            parent_session_id=parent_session_id,
        )
        await self.repository.add_child_session(parent_session_id, child.id)
        return child

    async def next_command(self, session_id: str, context: StepContext) -> Interaction:
        """Return the interaction whose command should run next.

        Raises:
            SessionNotFound: Unknown session id.
            SessionComplete: The session has finished successfully.
            SessionClosed: The session has failed.
            RetryLimitExceeded: A step hit its attempt cap; the session is
                marked failed.
            OrchestrationError: The interaction history is corrupt.
        """
        session = await self._get(session_id)
        self._ensure_running(session)

        pending = pending_interactions(session)
        if pending:
            return pending[-1]

        workflow = self.registry.get(session.type)
        try:
            step_id = workflow.orchestrator.next_step(session)
        except SessionComplete:
            await self.repository.update_status(session.id, SessionStatus.COMPLETE)
            raise
        except RetryLimitExceeded as exc:
            logger.warning(f"Session {session.id} failed: {exc}")
            await self.repository.update_status(session.id, SessionStatus.FAILED)
            raise

        command = workflow.step(step_id).get_command(context, session, self.options)
        if command.command == SPAWN_COMMAND:
            command = await self._spawn_children(session, command)
        interaction = Interaction(step=step_id, command=command)
        await self.repository.append_interaction(session.id, interaction)
        logger.debug(f"Session {session.id}: issued {step_id} ({interaction.id})")
        return interaction

    async def handle_result(
        self,
        session_id: str,
        interaction_id: str,
        result: Result,
        context: StepContext,
    ) -> Session:
        """Let the interaction's step interpret ``result`` and record the outcome."""
        session = await self._get(session_id)
        self._ensure_running(session)
        interaction = session.get_interaction(interaction_id)
        if interaction is None:
            raise KeyError(f"Interaction {interaction_id} not found in session {session_id}")

        workflow = self.registry.get(session.type)
        step = workflow.step(interaction.step)
        if interaction.command.command == SPAWN_COMMAND:
            result = await self._with_child_sessions(interaction.command, result)
        state_update, result = step.handle_result(context, session, result, self.options)

        session = await self.repository.complete_interaction(session.id, interaction_id, result)
        if state_update:
            session = await self.repository.merge_state(session.id, state_update)

        if workflow.orchestrator.is_complete(session):
            logger.info(f"Session {session.id} complete")
            session = await self.repository.update_status(session.id, SessionStatus.COMPLETE)
        return session

    async def run(self, session_id: str, executor: Executor, context: StepContext) -> Session:
        """Drive a session until it completes.

        Executor exceptions are recorded as an error result, the session is
        marked failed and the exception propagates.
        """
        while True:
            try:
                interaction = await self.next_command(session_id, context)
            except SessionComplete:
                break
            try:
                result = await executor.execute(interaction.command)
            except Exception as exc:
                await self.repository.complete_interaction(
                    session_id, interaction.id, Result.error(f"Executor failed: {exc}")
                )
                await self.repository.update_status(session_id, SessionStatus.FAILED)
                raise
            await self.handle_result(session_id, interaction.id, result, context)
        return await self._get(session_id)

    # ------------------------------------------------------------------
    async def _spawn_children(self, parent: Session, command: Command) -> Command:
        """Start the children a spawn command asks for, reusing ones already linked."""
        existing: Dict[Tuple[str, Optional[str]], str] = {}
        for child_id in parent.child_session_ids:
            child = await self.repository.get_session(child_id)
            if child is not None:
                existing[(child.type, child.component_id)] = child.id

        child_ids: List[str] = []
        for spec in command.payload.get("children", []):
            key = (spec["workflow_type"], spec.get("component_id"))
            if key not in existing:
                child = await self.spawn_child(
                    parent.id,
                    spec["workflow_type"],
                    component_id=spec.get("component_id"),
                    state=spec.get("state"),
                )
                existing[key] = child.id
            child_ids.append(existing[key])

        logger.info(f"Session {parent.id}: {len(child_ids)} child sessions")
        return command.model_copy(update={"metadata": {**command.metadata, "child_session_ids": child_ids}})

    async def _with_child_sessions(self, command: Command, result: Result) -> Result:
        """Attach the current status of each spawned child to ``result.data``."""
        children = []
        for child_id in command.metadata.get("child_session_ids", []):
            child = await self._get(child_id)
            last = last_completed_interaction(child)
            error = last.result.error_message if last and not last.result.is_ok else None
            children.append(
                {
                    "id": child.id,
                    "component_id": child.component_id,
                    "status": child.status.value,
                    "error_message": error,
                }
            )
        return result.model_copy(update={"data": {**result.data, "child_sessions": children}})

    async def _get(self, session_id: str) -> Session:
        session = await self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    @staticmethod
    def _ensure_running(session: Session) -> None:
        if session.status is SessionStatus.COMPLETE:
            raise SessionComplete(session.id)
        if session.status is not SessionStatus.RUNNING:
            raise SessionClosed(session.id, session.status.value)

"""Design every component of a context through one child spec session each."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..components.models import NotLoaded
from ..components.paths import expected_files
from ..constants import DEFAULT_MAX_STEP_ATTEMPTS
from ..errors import StepError
from ..sessions.models import Command, Result, ResultStatus, Session
from ..sessions.orchestrator import Orchestrator
from ..sessions.registry import WorkflowDefinition
from ..sessions.steps import StateUpdate, Step, StepContext, shell_command, spawn_command
from . import component_spec
from .common import Initialize

logger = logging.getLogger(__name__)

WORKFLOW_TYPE = "context_components_design"


class SpawnComponentSpecSessions(Step):
    """Start a ``component_spec`` session per child component and wait for all of them.

    Re-issuing the step reuses the children spawned earlier. The step only
    succeeds once every child session is complete.
    """

    name = "spawn_component_spec_sessions"

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        component = context.require_component(self.name)
        if isinstance(component.child_components, NotLoaded) or not component.child_components:
            raise StepError(f"No child components found for context {component.name}")

        design_file = context.component_files(self.name)["design_file"]
        children = [
            {
                "workflow_type": component_spec.WORKFLOW_TYPE,
                "component_id": child.id,
                "state": {
                    "parent_context_name": component.name,
                    "context_design_path": design_file,
                },
            }
            for child in component.child_components
        ]
        return spawn_command(self.name, children, context_id=component.id)

    def handle_result(
        self,
        context: StepContext,
        session: Session,
        result: Result,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StateUpdate, Result]:
        children: List[Dict[str, Any]] = result.data.get("child_sessions", [])
        if not children:
            return {}, result.as_error("No child sessions were spawned")

        running = [c for c in children if c["status"] == "running"]
        failed = [c for c in children if c["status"] == "failed"]
        if running:
            names = ", ".join(str(c["component_id"]) for c in running)
            return {}, result.as_error(f"Child sessions still running: {names}")
        if failed:
            details = ", ".join(
                f"{c['component_id']} (reason: {c.get('error_message') or 'unknown'})" for c in failed
            )
            logger.warning(f"Session {session.id}: child sessions failed: {details}")
            return {}, result.as_error(f"Child sessions failed: {details}")

        state = {"child_sessions": [c["id"] for c in children]}
        return state, result.model_copy(update={"status": ResultStatus.OK, "error_message": None})


class FinalizeContextDesign(Step):
    """Stage the design documents written by the child sessions."""

    name = "finalize"

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        component = context.require_component(self.name)
        children = [] if isinstance(component.child_components, NotLoaded) else component.child_components
        paths = [
            expected_files(child, context.project_module_name, context.layout)["design_file"]
            for child in children
        ]
        return shell_command(self.name, ["git", "add", "--", *paths], paths=paths)

    def handle_result(
        self,
        context: StepContext,
        session: Session,
        result: Result,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StateUpdate, Result]:
        if not result.is_ok:
            return {}, result
        return {"finalized": True}, result


def build_workflow(max_attempts: Optional[int] = DEFAULT_MAX_STEP_ATTEMPTS) -> WorkflowDefinition:
    steps = [Initialize(), SpawnComponentSpecSessions(), FinalizeContextDesign()]
    orchestrator = Orchestrator.linear([step.name for step in steps], max_attempts=max_attempts)
    return WorkflowDefinition(
        type=WORKFLOW_TYPE,
        orchestrator=orchestrator,
        steps={step.name: step for step in steps},
        description="Design every child component of a context in child spec sessions",
    )

"""Step contract shared by every workflow.

A step turns session state into a :class:`Command` and interprets the
:class:`Result` the executor reports back. Both halves are pure: a step
never executes anything and never writes to storage. Any state it wants to
keep is returned as a partial update that the runner merges into the
session.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..components.models import Component
from ..components.paths import expected_files
from ..config import ProjectLayout
from ..errors import StepError
from .models import Command, Result, Session

StateUpdate = Dict[str, Any]


class StepContext(BaseModel):
    """Read-only project and component metadata handed to steps."""

    project_module_name: str = ""
    layout: ProjectLayout = Field(default_factory=ProjectLayout)
    component: Optional[Component] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def require_component(self, step: str) -> Component:
        if self.component is None:
            raise StepError(f"Step {step} requires a component in its context")
        return self.component

    def component_files(self, step: str) -> Dict[str, str]:
        component = self.require_component(step)
        return expected_files(component, self.project_module_name, self.layout)


class Step(abc.ABC):
    """Base class for workflow steps."""

    name: str

    @abc.abstractmethod
    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        """Build the command for this step from session state and context."""
        raise NotImplementedError

    def handle_result(
        self,
        context: StepContext,
        session: Session,
        result: Result,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StateUpdate, Result]:
        """Interpret ``result``; the default accepts it unchanged."""
        return {}, result


def shell_command(step: str, args: List[str], **metadata: Any) -> Command:
    """Command asking the executor to run ``args`` as a process."""
    return Command.new(step, "shell", payload={"args": list(args)}, **metadata)


def agent_command(step: str, agent: str, prompt: str, **metadata: Any) -> Command:
    """Command asking the executor to hand ``prompt`` to an AI agent."""
    return Command.new(step, "agent", payload={"agent": agent, "prompt": prompt}, **metadata)


SPAWN_COMMAND = "spawn_sessions"


def spawn_command(step: str, children: List[Dict[str, Any]], **metadata: Any) -> Command:
    """Command asking the runner to start one child session per entry of ``children``.

    Each entry names a ``workflow_type`` and optionally a ``component_id`` and
    initial ``state``. The runner records the child ids under the
    ``child_session_ids`` metadata key before handing the command to the
    executor, which is expected to drive those sessions.
    """
    return Command.new(step, SPAWN_COMMAND, payload={"children": list(children)}, **metadata)

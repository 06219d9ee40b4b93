"""Registry mapping workflow types to their orchestrator and steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from ..errors import UnknownWorkflow
from .orchestrator import Orchestrator
from .steps import Step


@dataclass(frozen=True)
class WorkflowDefinition:
    """A workflow type: its state machine plus one step object per step id."""

    type: str
    orchestrator: Orchestrator
    steps: Mapping[str, Step] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        missing = [s for s in self.orchestrator.steps() if s not in self.steps]
        if missing:
            raise ValueError(f"Workflow {self.type} has no step implementation for {missing}")

    def step(self, step_id: str) -> Step:
        return self.steps[step_id]


class WorkflowRegistry:
    """Holds workflow definitions keyed by session type."""

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowDefinition] = {}

    def register(self, definition: WorkflowDefinition) -> None:
        if definition.type in self._workflows:
            raise ValueError(f"Workflow {definition.type} is already registered")
        self._workflows[definition.type] = definition

    def get(self, workflow_type: str) -> WorkflowDefinition:
        try:
            return self._workflows[workflow_type]
        except KeyError:
            raise UnknownWorkflow(f"Unknown workflow type: {workflow_type}") from None

    def list(self) -> List[WorkflowDefinition]:
        return list(self._workflows.values())

    def __contains__(self, workflow_type: object) -> bool:
        return workflow_type in self._workflows

"""Session records, the step contract and the orchestration state machine."""

from .models import Command, Interaction, Result, ResultStatus, Session, SessionStatus
from .orchestrator import Orchestrator
from .registry import WorkflowDefinition, WorkflowRegistry
from .steps import Step, StepContext

__all__ = [
    "Command",
    "Interaction",
    "Orchestrator",
    "Result",
    "ResultStatus",
    "Session",
    "SessionStatus",
    "Step",
    "StepContext",
    "WorkflowDefinition",
    "WorkflowRegistry",
]

"""Implement a component against its existing tests."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..constants import DEFAULT_MAX_STEP_ATTEMPTS
from ..sessions.models import Session
from ..sessions.orchestrator import Orchestrator
from ..sessions.registry import WorkflowDefinition
from ..sessions.steps import StepContext
from ..testrun import TestRun
from .common import AgentStep, Finalize, Initialize, RunTests, format_test_failures, last_error_message

WORKFLOW_TYPE = "component_coding"


class GenerateImplementation(AgentStep):
    name = "generate_implementation"

    def prompt(self, context: StepContext, session: Session, options: Mapping[str, Any]) -> str:
        component = context.require_component(self.name)
        files = context.component_files(self.name)
        return (
            f"Implement {component.name} in {files['code_file']} following the design in "
            f"{files['design_file']}. Make the tests in {files['test_file']} pass."
        )


class RunPassingTests(RunTests):
    """Succeeds only when no test fails."""

    def evaluate(self, test_run: TestRun) -> Optional[str]:
        if test_run.failures:
            return format_test_failures(test_run)
        return None


class FixImplementation(AgentStep):
    name = "fix_implementation"

    def prompt(self, context: StepContext, session: Session, options: Mapping[str, Any]) -> str:
        code_file = context.component_files(self.name)["code_file"]
        problems = last_error_message(session) or "Tests are failing."
        return f"Fix {code_file} so the failing tests pass:\n{problems}"


class FinalizeImplementation(Finalize):
    artifact_keys = ("code_file", "test_file")


def build_workflow(max_attempts: Optional[int] = DEFAULT_MAX_STEP_ATTEMPTS) -> WorkflowDefinition:
    steps = [
        Initialize(),
        GenerateImplementation(),
        RunPassingTests(),
        FixImplementation(),
        FinalizeImplementation(),
    ]
    orchestrator = Orchestrator.linear(
        [step.name for step in steps],
        remediations={RunPassingTests.name: FixImplementation.name},
        max_attempts=max_attempts,
    )
    return WorkflowDefinition(
        type=WORKFLOW_TYPE,
        orchestrator=orchestrator,
        steps={step.name: step for step in steps},
        description="Implement a component until its tests pass",
    )

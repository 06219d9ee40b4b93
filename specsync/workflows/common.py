"""Steps and helpers shared by the component workflows."""

from __future__ import annotations

import abc
import logging
from typing import Any, Mapping, Optional, Tuple

from ..sessions.history import last_completed_interaction
from ..sessions.models import Command, Result, ResultStatus, Session
from ..sessions.steps import StateUpdate, Step, StepContext, agent_command, shell_command
from ..testrun import TestRun, parse_test_run

logger = logging.getLogger(__name__)


def last_error_message(session: Session) -> Optional[str]:
    """Error message of the most recent completed interaction, if it failed."""
    interaction = last_completed_interaction(session)
    if interaction is None or interaction.result is None or interaction.result.is_ok:
        return None
    return interaction.result.error_message


def format_test_failures(test_run: TestRun) -> str:
    lines = [f"{len(test_run.failures)} test(s) failing:"]
    for failure in test_run.failures:
        line = f"- {failure.title}"
        if failure.message:
            line += f": {failure.message.strip()}"
        lines.append(line)
    return "\n".join(lines)


class Initialize(Step):
    """Prepare the working tree and record the component's expected files."""

    name = "initialize"

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        files = context.component_files(self.name)
        return shell_command(self.name, ["git", "status", "--porcelain"], files=files)

    def handle_result(
        self,
        context: StepContext,
        session: Session,
        result: Result,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StateUpdate, Result]:
        if not result.is_ok:
            return {}, result
        component = context.require_component(self.name)
        return {"component_id": component.id, "files": context.component_files(self.name)}, result


class Finalize(Step):
    """Stage the artifacts produced by the session."""

    name = "finalize"
    artifact_keys: tuple = ()

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        files = context.component_files(self.name)
        paths = [files[key] for key in self.artifact_keys if key in files]
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


class AgentStep(Step):
    """Step that hands a prompt to an AI agent."""

    agent = "coder"

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        return agent_command(self.name, self.agent, self.prompt(context, session, options or {}))

    @abc.abstractmethod
    def prompt(self, context: StepContext, session: Session, options: Mapping[str, Any]) -> str:
        """Instructions for the agent."""


class RunTests(Step):
    """Run the component's test file and classify the report.

    Subclasses decide which reports count as success through
    :meth:`evaluate`.
    """

    name = "run_tests"

    def get_command(
        self,
        context: StepContext,
        session: Session,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Command:
        options = options or {}
        test_file = context.component_files(self.name)["test_file"]
        args = ["pytest", test_file, "--json-report", "--json-report-file=-", "-q"]
        if options.get("seed") is not None:
            args += ["-p", "randomly", f"--randomly-seed={options['seed']}"]
        return shell_command(self.name, args, test_file=test_file)

    def handle_result(
        self,
        context: StepContext,
        session: Session,
        result: Result,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StateUpdate, Result]:
        test_run = parse_test_run(result)
        if test_run is None:
            logger.warning(f"Session {session.id}: could not parse test results")
            return {}, result.as_error(
                f"Failed to parse test results: {result.error_message or 'no test report'}"
            )

        state = {"test_run": test_run.model_dump()}
        data = {**result.data, "test_run": test_run.model_dump()}
        result = result.model_copy(update={"data": data})
        error = self.evaluate(test_run)
        if error:
            return state, result.as_error(error)
        return state, result.model_copy(update={"status": ResultStatus.OK, "error_message": None})

    @abc.abstractmethod
    def evaluate(self, test_run: TestRun) -> Optional[str]:
        """Return an error message when ``test_run`` is not acceptable."""


__all__ = [
    "AgentStep",
    "Finalize",
    "Initialize",
    "RunTests",
    "format_test_failures",
    "last_error_message",
]

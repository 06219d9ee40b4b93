"""Table-driven state machine that picks the next step of a session."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..constants import DEFAULT_MAX_STEP_ATTEMPTS
from ..errors import InvalidInteraction, InvalidState, RetryLimitExceeded, SessionComplete
from .history import last_completed_interaction, last_interaction, step_attempts
from .models import ResultStatus, Session

logger = logging.getLogger(__name__)

TransitionKey = Tuple[str, ResultStatus]


class Orchestrator:
    """Decides which step runs next from the last completed interaction.

    The orchestrator is stateless: everything it needs lives on the session.
    Transitions are keyed by ``(step, result status)``. Reaching the terminal
    step with an ``ok`` result completes the session; any further call to
    :meth:`next_step` raises :class:`SessionComplete`.
    """

    def __init__(
        self,
        steps: Sequence[str],
        transitions: Mapping[TransitionKey, str],
        terminal_step: Optional[str] = None,
        max_attempts: Optional[int] = DEFAULT_MAX_STEP_ATTEMPTS,
    ) -> None:
        if not steps:
            raise ValueError("An orchestrator needs at least one step")
        if len(set(steps)) != len(steps):
            raise ValueError("Step identifiers must be unique")
        self._steps: List[str] = list(steps)
        self._terminal_step = terminal_step or self._steps[-1]
        if self._terminal_step not in self._steps:
            raise ValueError(f"Terminal step {self._terminal_step} is not registered")

        self._transitions: Dict[TransitionKey, str] = {}
        for (step, status), target in transitions.items():
            if step not in self._steps or target not in self._steps:
                raise ValueError(f"Transition {step} -> {target} references an unknown step")
            self._transitions[(step, ResultStatus(status))] = target
        self.max_attempts = max_attempts

    @classmethod
    def linear(
        cls,
        steps: Sequence[str],
        remediations: Optional[Mapping[str, str]] = None,
        max_attempts: Optional[int] = DEFAULT_MAX_STEP_ATTEMPTS,
    ) -> "Orchestrator":
        """Build the common transition shape for an ordered list of steps.

        Success advances to the next step; failure retries the same step.
        ``remediations`` maps a checking step to the step that repairs its
        failures: the checking step's error routes to the remediation step,
        and the remediation step's success routes back to the checking step.
        Remediation steps are skipped by the linear success chain.
        """
        remediations = dict(remediations or {})
        remediation_steps = set(remediations.values())
        chain = [step for step in steps if step not in remediation_steps]
        terminal = chain[-1]

        transitions: Dict[TransitionKey, str] = {}
        for index, step in enumerate(chain):
            if step != terminal:
                transitions[(step, ResultStatus.OK)] = chain[index + 1]
            transitions[(step, ResultStatus.ERROR)] = remediations.get(step, step)
        for checking_step, remediation_step in remediations.items():
            transitions[(remediation_step, ResultStatus.OK)] = checking_step
            transitions[(remediation_step, ResultStatus.ERROR)] = remediation_step

        return cls(steps, transitions, terminal_step=terminal, max_attempts=max_attempts)

    @property
    def terminal_step(self) -> str:
        return self._terminal_step

    @property
    def transitions(self) -> Dict[TransitionKey, str]:
        return dict(self._transitions)

    def steps(self) -> List[str]:
        """Registered step identifiers in order."""
        return list(self._steps)

    def is_complete(self, session: Session) -> bool:
        interaction = last_interaction(session)
        if interaction is None or interaction.result is None:
            return False
        return interaction.step == self._terminal_step and interaction.result.is_ok

    def next_step(self, session: Session) -> str:
        """Return the identifier of the step to execute next.

        Raises:
            SessionComplete: The terminal step already succeeded.
            InvalidInteraction: The last completed step is not registered.
            InvalidState: No transition exists for the last step and status.
            RetryLimitExceeded: The next step already ran ``max_attempts`` times.
        """
        interaction = last_completed_interaction(session)
        if interaction is None:
            return self._steps[0]

        if interaction.step not in self._steps:
            raise InvalidInteraction(
                f"Step {interaction.step} is not part of this workflow",
                session_id=session.id,
                step=interaction.step,
            )

        status = interaction.result.status
        if interaction.step == self._terminal_step and status is ResultStatus.OK:
            raise SessionComplete(session.id)

        target = self._transitions.get((interaction.step, status))
        if target is None:
            raise InvalidState(
                f"No transition from {interaction.step} on {status.value}",
                session_id=session.id,
                step=interaction.step,
            )

        self._check_attempts(session, target)
        logger.debug(
            f"Session {session.id}: {interaction.step} ({status.value}) -> {target}"
        )
        return target

    def _check_attempts(self, session: Session, step: str) -> None:
        if self.max_attempts is None:
            return
        attempts = step_attempts(session, step)
        if attempts >= self.max_attempts:
            raise RetryLimitExceeded(
                f"Step {step} already ran {attempts} times (limit {self.max_attempts})",
                attempts=attempts,
                session_id=session.id,
                step=step,
            )

"""Exception hierarchy used across specsync."""

from __future__ import annotations

from typing import Optional


class SpecSyncError(Exception):
    """Base class for all specsync errors."""

    code = "specsync_error"


class OrchestrationError(SpecSyncError):
    """The session state machine reached a state it cannot interpret."""

    code = "orchestration_error"

    def __init__(
        self,
        message: str,
        *,
        session_id: Optional[str] = None,
        step: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.step = step


class InvalidInteraction(OrchestrationError):
    """The last completed interaction names a step the workflow does not know."""

    code = "invalid_interaction"


class InvalidState(OrchestrationError):
    """No transition is defined for the last step and its result status."""

    code = "invalid_state"


class RetryLimitExceeded(OrchestrationError):
    """A step was requested more often than the workflow allows."""

    code = "retry_limit_exceeded"

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        session_id: Optional[str] = None,
        step: Optional[str] = None,
    ) -> None:
        super().__init__(message, session_id=session_id, step=step)
        self.attempts = attempts


class SessionComplete(SpecSyncError):
    """Raised when asking for the next step of a session that has finished.

    Not an ``OrchestrationError``: drivers catch it to stop polling.
    """

    code = "session_complete"

    def __init__(self, session_id: Optional[str] = None) -> None:
        super().__init__(f"Session {session_id} is complete" if session_id else "Session is complete")
        self.session_id = session_id


class SessionNotFound(SpecSyncError):
    code = "session_not_found"


class SessionClosed(SpecSyncError):
    """The session is no longer running and cannot be advanced."""

    code = "session_closed"

    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(f"Session {session_id} is {status}")
        self.session_id = session_id
        self.status = status


class StepError(SpecSyncError):
    """A step could not build its command from the supplied context."""

    code = "step_error"


class UnknownWorkflow(SpecSyncError):
    code = "unknown_workflow"


class UnknownChecker(SpecSyncError):
    code = "unknown_checker"


class RequirementPersistenceError(SpecSyncError):
    """A requirement record could not be written to its store."""

    code = "requirement_persistence_error"

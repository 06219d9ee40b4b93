"""Session, interaction, command and result records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class ResultStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class Command(BaseModel):
    """Instruction produced by a step for an external executor."""

    step: str
    command: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def new(cls, step: str, command: str, **metadata: Any) -> "Command":
        """Build a command tagged with ``step``; keyword arguments become metadata."""
        payload = metadata.pop("payload", None) or {}
        return cls(step=step, command=command, payload=payload, metadata=metadata)


class Result(BaseModel):
    """Outcome reported by the executor for one command."""

    status: ResultStatus
    data: Dict[str, Any] = Field(default_factory=dict)
    stdout: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None, stdout: Optional[str] = None) -> "Result":
        return cls(status=ResultStatus.OK, data=data or {}, stdout=stdout)

    @classmethod
    def error(
        cls,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        stdout: Optional[str] = None,
    ) -> "Result":
        return cls(status=ResultStatus.ERROR, data=data or {}, stdout=stdout, error_message=message)

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    def as_error(self, message: str) -> "Result":
        """Return a copy of this result reclassified as an error."""
        return self.model_copy(update={"status": ResultStatus.ERROR, "error_message": message})


class Interaction(BaseModel):
    """One step execution: the command issued and, once known, its result."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    step: str
    command: Command
    result: Optional[Result] = None
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    @property
    def is_pending(self) -> bool:
        return self.result is None

    def complete(self, result: Result) -> "Interaction":
        """Return a completed copy of this interaction.

        Raises:
            ValueError: If the interaction already holds a result.
        """
        if self.is_complete:
            raise ValueError(f"Interaction {self.id} is already complete")
        return self.model_copy(update={"result": result, "completed_at": _utcnow()})


class Session(BaseModel):
    """One workflow instance and its append-only interaction history."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    status: SessionStatus = SessionStatus.RUNNING
    interactions: List[Interaction] = Field(default_factory=list)
    state: Dict[str, Any] = Field(default_factory=dict)
    component_id: Optional[str] = None
    parent_session_id: Optional[str] = None
    child_session_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_running(self) -> bool:
        return self.status is SessionStatus.RUNNING

    def get_interaction(self, interaction_id: str) -> Optional[Interaction]:
        return next((i for i in self.interactions if i.id == interaction_id), None)

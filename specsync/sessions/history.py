"""Queries over a session's interaction history.

Interactions are stored oldest first; "last" always means most recently
started.
"""

from __future__ import annotations

from typing import List, Optional

from .models import Interaction, Session


def last_interaction(session: Session) -> Optional[Interaction]:
    return session.interactions[-1] if session.interactions else None


def last_completed_interaction(session: Session) -> Optional[Interaction]:
    """Most recent interaction that has a result, skipping any in-flight one."""
    for interaction in reversed(session.interactions):
        if interaction.is_complete:
            return interaction
    return None


def pending_interactions(session: Session) -> List[Interaction]:
    return [i for i in session.interactions if i.is_pending]


def completed_interactions(session: Session) -> List[Interaction]:
    return [i for i in session.interactions if i.is_complete]


def step_attempts(session: Session, step: str) -> int:
    """Number of completed executions of ``step`` in this session."""
    return sum(1 for i in completed_interactions(session) if i.step == step)

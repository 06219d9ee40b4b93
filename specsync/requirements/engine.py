"""Evaluate requirement definitions against components."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..components.models import Component, Requirement
from .checkers import CheckContext, get_checker
from .definitions import RequirementDefinition


def check_requirements(
    component: Component,
    definitions: Sequence[RequirementDefinition],
    context: Optional[CheckContext] = None,
    phase: Optional[str] = None,
) -> List[Requirement]:
    """Run every definition whose checker belongs to ``phase`` (all when None).

    Results keep the order of ``definitions``.
    """
    context = context or CheckContext()
    checked_at = datetime.now(timezone.utc)
    requirements: List[Requirement] = []
    for definition in definitions:
        checker = get_checker(definition.checker)
        if phase is not None and checker.phase != phase:
            continue
        satisfied, details = checker.check(definition, component, context)
        requirements.append(
            Requirement(
                name=definition.name,
                artifact_type=definition.artifact_type,
                description=definition.description,
                checker=definition.checker.value,
                satisfied_by=definition.satisfied_by,
                satisfied=satisfied,
                score=1.0 if satisfied else 0.0,
                checked_at=checked_at,
                details=details,
                component_id=component.id,
            )
        )
    return requirements


def sort_requirements(
    requirements: Sequence[Requirement],
    definitions: Sequence[RequirementDefinition],
) -> List[Requirement]:
    """Order requirements as their definitions are declared; unknown names go last."""
    order = {definition.name: index for index, definition in enumerate(definitions)}
    return sorted(requirements, key=lambda r: order.get(r.name, len(order)))

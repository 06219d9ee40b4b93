"""Concrete component workflows."""

from __future__ import annotations

from typing import Optional

from ..constants import DEFAULT_MAX_STEP_ATTEMPTS
from ..sessions.registry import WorkflowRegistry
from . import component_coding, component_spec, component_test, context_components_design


def default_workflows(max_attempts: Optional[int] = DEFAULT_MAX_STEP_ATTEMPTS) -> WorkflowRegistry:
    """Registry holding every built-in workflow."""
    registry = WorkflowRegistry()
    for module in (component_spec, component_test, component_coding, context_components_design):
        registry.register(module.build_workflow(max_attempts))
    return registry


__all__ = [
    "component_coding",
    "component_spec",
    "component_test",
    "context_components_design",
    "default_workflows",
]

"""Requirement definitions, checkers and evaluation."""

from .checkers import CHECKERS, GRAPH, LOCAL, CheckContext, Checker, get_checker
from .definitions import (
    REGISTRY,
    CheckerKind,
    ComponentTypeDefinition,
    RequirementDefinition,
    RequirementRegistry,
    default_registry,
)
from .engine import check_requirements, sort_requirements

__all__ = [
    "CHECKERS",
    "GRAPH",
    "LOCAL",
    "REGISTRY",
    "CheckContext",
    "Checker",
    "CheckerKind",
    "ComponentTypeDefinition",
    "RequirementDefinition",
    "RequirementRegistry",
    "check_requirements",
    "default_registry",
    "get_checker",
    "sort_requirements",
]

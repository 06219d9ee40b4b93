"""Requirement definitions and the per-component-type registry.

A definition says *what* to check for a component; the checker it names
decides whether the component satisfies it. The order of a type's
definitions is the canonical order of its evaluated requirements.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..components.models import ArtifactType


class CheckerKind(str, Enum):
    FILE_EXISTENCE = "file_existence"
    TEST_STATUS = "test_status"
    DEPENDENCY = "dependency"
    HIERARCHY = "hierarchy"
    DOCUMENT_VALIDITY = "document_validity"


class RequirementDefinition(BaseModel):
    """Immutable template for one requirement."""

    name: str
    checker: CheckerKind
    artifact_type: ArtifactType
    description: str
    satisfied_by: Optional[str] = Field(
        default=None, description="Workflow type that can satisfy this requirement"
    )
    options: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


DESIGN_FILE = RequirementDefinition(
    name="design_file",
    checker=CheckerKind.FILE_EXISTENCE,
    artifact_type=ArtifactType.SPECIFICATION,
    description="Component design file exists",
    satisfied_by="component_spec",
)
DESIGN_VALID = RequirementDefinition(
    name="design_valid",
    checker=CheckerKind.DOCUMENT_VALIDITY,
    artifact_type=ArtifactType.SPECIFICATION,
    description="Component design document is structurally valid",
    satisfied_by="component_spec",
    options={"document_type": "spec"},
)
CONTEXT_DESIGN_VALID = DESIGN_VALID.model_copy(
    update={
        "description": "Context design document is structurally valid",
        "options": {"document_type": "context_spec"},
    }
)
SCHEMA_DESIGN_VALID = DESIGN_VALID.model_copy(
    update={
        "description": "Schema design document is structurally valid",
        "options": {"document_type": "schema"},
    }
)
IMPLEMENTATION_FILE = RequirementDefinition(
    name="implementation_file",
    checker=CheckerKind.FILE_EXISTENCE,
    artifact_type=ArtifactType.CODE,
    description="Component implementation file exists",
    satisfied_by="component_coding",
)
TEST_FILE = RequirementDefinition(
    name="test_file",
    checker=CheckerKind.FILE_EXISTENCE,
    artifact_type=ArtifactType.TESTS,
    description="Component test file exists",
    satisfied_by="component_test",
)
TESTS_PASSING = RequirementDefinition(
    name="tests_passing",
    checker=CheckerKind.TEST_STATUS,
    artifact_type=ArtifactType.TESTS,
    description="Component tests are passing",
    satisfied_by="component_coding",
)
REVIEW_FILE = RequirementDefinition(
    name="review_file",
    checker=CheckerKind.FILE_EXISTENCE,
    artifact_type=ArtifactType.REVIEW,
    description="Context design review file exists",
)
DEPENDENCIES_SATISFIED = RequirementDefinition(
    name="dependencies_satisfied",
    checker=CheckerKind.DEPENDENCY,
    artifact_type=ArtifactType.DEPENDENCIES,
    description="Component dependencies are satisfied",
)
CHILDREN_DESIGNS = RequirementDefinition(
    name="children_designs",
    checker=CheckerKind.HIERARCHY,
    artifact_type=ArtifactType.HIERARCHY,
    description="Child component designs are complete",
    satisfied_by="component_spec",
)
CHILDREN_IMPLEMENTATIONS = RequirementDefinition(
    name="children_implementations",
    checker=CheckerKind.HIERARCHY,
    artifact_type=ArtifactType.HIERARCHY,
    description="Child component implementations are complete",
    satisfied_by="component_coding",
)
CHILDREN_TESTS = RequirementDefinition(
    name="children_tests",
    checker=CheckerKind.HIERARCHY,
    artifact_type=ArtifactType.HIERARCHY,
    description="Child component tests are complete",
    satisfied_by="component_test",
)
CHILDREN_COMPLETE = RequirementDefinition(
    name="children_complete",
    checker=CheckerKind.HIERARCHY,
    artifact_type=ArtifactType.HIERARCHY,
    description="Every child component satisfies all of its requirements",
)

DEFAULT_REQUIREMENTS: List[RequirementDefinition] = [
    DESIGN_FILE,
    DESIGN_VALID,
    IMPLEMENTATION_FILE,
    TEST_FILE,
    TESTS_PASSING,
    DEPENDENCIES_SATISFIED,
]

CONTEXT_REQUIREMENTS: List[RequirementDefinition] = [
    DESIGN_FILE,
    CONTEXT_DESIGN_VALID,
    CHILDREN_DESIGNS,
    REVIEW_FILE,
    CHILDREN_IMPLEMENTATIONS,
    CHILDREN_TESTS,
    DEPENDENCIES_SATISFIED,
    IMPLEMENTATION_FILE,
    TEST_FILE,
    TESTS_PASSING,
    CHILDREN_COMPLETE,
]


class ComponentTypeDefinition(BaseModel):
    """Requirements and display metadata for one component type."""

    name: str
    display_name: str
    description: str = ""
    requirements: List[RequirementDefinition] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


_UNKNOWN_TYPE = ComponentTypeDefinition(
    name="unknown",
    display_name="Unknown",
    description="Component type not yet defined",
    requirements=DEFAULT_REQUIREMENTS,
)


class RequirementRegistry:
    """Maps component types to their requirement definitions.

    Unknown types fall back to the default requirement list.
    """

    def __init__(self, types: Optional[List[ComponentTypeDefinition]] = None) -> None:
        self._types: Dict[str, ComponentTypeDefinition] = {}
        for type_definition in types or []:
            self.register(type_definition)

    def register(self, type_definition: ComponentTypeDefinition) -> None:
        names = [r.name for r in type_definition.requirements]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate requirement names for type {type_definition.name}")
        self._types[type_definition.name] = type_definition

    def get_type(self, component_type: str) -> ComponentTypeDefinition:
        return self._types.get(component_type, _UNKNOWN_TYPE)

    def requirements_for(self, component_type: str) -> List[RequirementDefinition]:
        return list(self.get_type(component_type).requirements)

    def types(self) -> List[str]:
        return list(self._types)


def default_registry() -> RequirementRegistry:
    return RequirementRegistry(
        [
            ComponentTypeDefinition(
                name="context",
                display_name="Context",
                description="Application domain boundary providing a public API",
                requirements=CONTEXT_REQUIREMENTS,
            ),
            ComponentTypeDefinition(
                name="coordination_context",
                display_name="Coordination Context",
                description="Context that coordinates between multiple domains",
                requirements=CONTEXT_REQUIREMENTS,
            ),
            ComponentTypeDefinition(
                name="schema",
                display_name="Schema",
                description="Data structure definition with validation rules",
                requirements=[DESIGN_FILE, SCHEMA_DESIGN_VALID, IMPLEMENTATION_FILE],
            ),
            ComponentTypeDefinition(
                name="repository",
                display_name="Repository",
                description="Data access layer abstracting storage operations",
                requirements=DEFAULT_REQUIREMENTS,
            ),
            ComponentTypeDefinition(
                name="service",
                display_name="Service",
                description="Long-running process that handles requests and keeps state",
                requirements=DEFAULT_REQUIREMENTS,
            ),
            ComponentTypeDefinition(
                name="task",
                display_name="Task",
                description="Background job or one-time operation",
                requirements=DEFAULT_REQUIREMENTS,
            ),
            ComponentTypeDefinition(
                name="interface",
                display_name="Interface",
                description="Contract that other components implement",
                requirements=[DESIGN_FILE, DESIGN_VALID, IMPLEMENTATION_FILE],
            ),
            ComponentTypeDefinition(
                name="other",
                display_name="Other",
                description="Custom component type",
                requirements=DEFAULT_REQUIREMENTS,
            ),
        ]
    )


REGISTRY = default_registry()

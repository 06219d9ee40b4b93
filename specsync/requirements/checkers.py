"""Requirement checkers.

Every checker is a total function of a definition and a component: missing
or unresolved data yields an unsatisfied verdict with an explanatory
``details`` payload, never an exception. Local checkers read only the
component's own status; graph checkers read requirements already attached
to neighbouring components and therefore run in the second pass.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..components.models import Component, NotLoaded, TestStatus
from ..documents.schemas import get_schema, schema_for_component_type
from ..documents.sources import DocumentSource
from ..errors import UnknownChecker
from .definitions import CheckerKind, RequirementDefinition

logger = logging.getLogger(__name__)

Verdict = Tuple[bool, Dict[str, Any]]

LOCAL = "local"
GRAPH = "graph"


@dataclass(frozen=True)
class CheckContext:
    """Read-only collaborators shared by checkers during one analysis pass."""

    documents: Optional[DocumentSource] = None
    log: logging.Logger = field(default=logger)


class Checker(abc.ABC):
    """Common contract for requirement checkers."""

    kind: CheckerKind
    phase: str = LOCAL

    @abc.abstractmethod
    def check(
        self,
        definition: RequirementDefinition,
        component: Component,
        context: CheckContext,
    ) -> Verdict:
        """Return ``(satisfied, details)`` for ``component``."""
        raise NotImplementedError


class FileExistenceChecker(Checker):
    kind = CheckerKind.FILE_EXISTENCE

    STATUS_FIELDS = {
        "design_file": "design_exists",
        "spec_file": "spec_exists",
        "implementation_file": "code_exists",
        "code_file": "code_exists",
        "test_file": "test_exists",
        "review_file": "review_exists",
    }

    def check(
        self, definition: RequirementDefinition, component: Component, context: CheckContext
    ) -> Verdict:
        status = component.component_status
        if status is None:
            return False, {"reason": "Component status has not been computed"}

        attribute = self.STATUS_FIELDS.get(definition.options.get("file", definition.name))
        if attribute is None:
            context.log.error(f"No file mapping for requirement {definition.name}")
            return False, {"reason": f"Unknown file requirement {definition.name}"}

        expected = status.expected_files.get(_expected_key(attribute))
        if getattr(status, attribute):
            return True, {"status": "File exists", "file": expected}
        return False, {"reason": "File does not exist", "file": expected}


class TestStatusChecker(Checker):
    __test__ = False

    kind = CheckerKind.TEST_STATUS

    def check(
        self, definition: RequirementDefinition, component: Component, context: CheckContext
    ) -> Verdict:
        status = component.component_status
        if status is None:
            return False, {"reason": "Component status has not been computed"}
        if not status.test_exists:
            return False, {"reason": "No test file exists."}
        if status.test_status is TestStatus.PASSING:
            return True, {"status": "Tests passing"}
        if status.test_status is TestStatus.FAILING:
            return False, {"reason": "Tests failing", "failing_tests": list(status.failing_tests)}
        return False, {"reason": "Tests have not been run"}


class DependencyChecker(Checker):
    kind = CheckerKind.DEPENDENCY
    phase = GRAPH

    def check(
        self, definition: RequirementDefinition, component: Component, context: CheckContext
    ) -> Verdict:
        if isinstance(component.dependencies, NotLoaded):
            return False, {"reason": "Dependencies not loaded"}
        if not component.dependencies:
            return True, {"status": "No dependencies", "count": 0}

        unsatisfied = sorted(
            {name for dep in component.dependencies for name in _unsatisfied_dependencies(dep)}
        )
        if unsatisfied:
            return False, {
                "reason": "Some dependencies have unsatisfied requirements",
                "unsatisfied_dependencies": unsatisfied,
            }
        return True, {
            "status": "All dependencies satisfied",
            "count": len(component.dependencies),
        }


class HierarchicalChecker(Checker):
    kind = CheckerKind.HIERARCHY
    phase = GRAPH

    CHILD_REQUIREMENTS = {
        "children_designs": "design_file",
        "children_implementations": "implementation_file",
        "children_tests": "test_file",
    }

    def check(
        self, definition: RequirementDefinition, component: Component, context: CheckContext
    ) -> Verdict:
        name = definition.options.get("variant", definition.name)
        if name != "children_complete" and name not in self.CHILD_REQUIREMENTS:
            context.log.error(f"Invalid hierarchical requirement {name}")
            return False, {"reason": "Invalid hierarchical requirement type"}

        if isinstance(component.child_components, NotLoaded):
            context.log.error(f"Child components of {component.id} are not loaded")
            return False, {"reason": "Child components not loaded"}
        if not component.child_components:
            return True, {"status": "No child components to check", "count": 0}

        if name == "children_complete":
            incomplete = _collect(component.child_components, lambda c: c.all_requirements_satisfied())
            if incomplete:
                return False, {
                    "reason": "Some child components not fully complete",
                    "components": incomplete,
                }
            return True, {"status": "All child components fully complete"}

        required = self.CHILD_REQUIREMENTS[name]
        missing = _collect(component.child_components, lambda c: _has_satisfied(c, required))
        if missing:
            return False, {
                "reason": f"Some child components missing {required}",
                "components": missing,
            }
        return True, {"status": f"All child components have required {required}"}


class DocumentValidityChecker(Checker):
    kind = CheckerKind.DOCUMENT_VALIDITY

    def check(
        self, definition: RequirementDefinition, component: Component, context: CheckContext
    ) -> Verdict:
        document_type = definition.options.get("document_type")
        schema = get_schema(document_type) if document_type else schema_for_component_type(component.type)
        file_key = definition.options.get("file", "design_file")

        status = component.component_status
        path = status.expected_files.get(file_key) if status else None
        if path is None:
            return False, {"reason": "missing_file", "document_type": schema.document_type}
        if context.documents is None:
            return False, {
                "reason": "missing_file",
                "file": path,
                "error": "No document source configured",
                "document_type": schema.document_type,
            }

        try:
            content = context.documents.read(path)
        except OSError as exc:
            return False, {
                "reason": "missing_file",
                "file": path,
                "error": str(exc),
                "document_type": schema.document_type,
            }
        except UnicodeDecodeError as exc:
            context.log.warning(f"Design document {path} of {component.id} is not valid text: {exc}")
            return False, {
                "reason": "unreadable_file",
                "file": path,
                "error": str(exc),
                "document_type": schema.document_type,
            }

        validation = schema.validate_content(content)
        if validation.valid:
            return True, {
                "status": "Document is valid",
                "file": path,
                "document_type": schema.document_type,
            }
        return False, {
            "reason": "invalid_document",
            "file": path,
            "document_type": schema.document_type,
            "missing_sections": validation.missing_sections,
            "disallowed_sections": validation.disallowed_sections,
        }


CHECKERS: Dict[CheckerKind, Checker] = {
    checker.kind: checker
    for checker in (
        FileExistenceChecker(),
        TestStatusChecker(),
        DependencyChecker(),
        HierarchicalChecker(),
        DocumentValidityChecker(),
    )
}


def get_checker(kind: CheckerKind | str) -> Checker:
    try:
        return CHECKERS[CheckerKind(kind)]
    except (KeyError, ValueError):
        raise UnknownChecker(f"Unknown checker: {kind}") from None


def _expected_key(attribute: str) -> str:
    return {
        "design_exists": "design_file",
        "spec_exists": "spec_file",
        "code_exists": "code_file",
        "test_exists": "test_file",
        "review_exists": "review_file",
    }[attribute]


def _has_satisfied(component: Component, requirement_name: str) -> bool:
    requirement = component.requirement(requirement_name)
    return requirement is not None and requirement.satisfied


def _collect(children: List[Component], predicate: Callable[[Component], bool]) -> List[str]:
    """Names of every descendant, at any depth, failing ``predicate``, in pre-order."""
    failing: List[str] = []
    stack = list(reversed(children))
    while stack:
        child = stack.pop()
        if not predicate(child):
            failing.append(child.name)
        if isinstance(child.child_components, list):
            stack.extend(reversed(child.child_components))
    return failing


def _unsatisfied_dependencies(dependency: Component) -> List[str]:
    """Names of ``dependency`` and its transitive dependencies with unmet requirements."""
    found: List[str] = []
    stack = [dependency]
    while stack:
        current = stack.pop()
        if not current.all_requirements_satisfied():
            found.append(current.name)
        if isinstance(current.dependencies, list):
            stack.extend(reversed(current.dependencies))
    return found

"""Component, dependency, status and requirement records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DEFAULT_COMPONENT_TYPE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotLoaded(BaseModel):
    """Marks an association that was never fetched.

    Associations typed ``List[...] | NotLoaded`` distinguish "known to be
    empty" from "unknown", and consumers check ``isinstance(value, NotLoaded)``.
    """

    kind: Literal["not_loaded"] = "not_loaded"

    model_config = ConfigDict(frozen=True)


NOT_LOADED = NotLoaded()


def loaded(value: Any) -> list:
    """Return the association as a list, treating ``NotLoaded`` as empty."""
    if isinstance(value, NotLoaded) or value is None:
        return []
    return list(value)


class TestStatus(str, Enum):
    __test__ = False

    PASSING = "passing"
    FAILING = "failing"
    NOT_RUN = "not_run"


class NextAction(str, Enum):
    CREATE_DESIGN = "create_design"
    CREATE_SPEC = "create_spec"
    IMPLEMENT_CODE = "implement_code"
    WRITE_TESTS = "write_tests"
    FIX_TESTS = "fix_tests"
    COMPLETE = "complete"


class ArtifactType(str, Enum):
    SPECIFICATION = "specification"
    REVIEW = "review"
    CODE = "code"
    TESTS = "tests"
    DEPENDENCIES = "dependencies"
    HIERARCHY = "hierarchy"


class ComponentStatus(BaseModel):
    """File and test facts computed for a component on each analysis pass."""

    design_exists: bool = False
    code_exists: bool = False
    test_exists: bool = False
    spec_exists: bool = False
    review_exists: bool = False
    test_status: TestStatus = TestStatus.NOT_RUN
    expected_files: Dict[str, str] = Field(default_factory=dict)
    actual_files: List[str] = Field(default_factory=list)
    failing_tests: List[str] = Field(default_factory=list)
    computed_at: Optional[datetime] = None

    @classmethod
    def from_analysis(
        cls,
        expected_files: Dict[str, str],
        actual_files: List[str],
        failing_tests: List[str],
    ) -> "ComponentStatus":
        present = set(actual_files)

        def exists(key: str) -> bool:
            path = expected_files.get(key)
            return path is not None and path in present

        return cls(
            design_exists=exists("design_file"),
            code_exists=exists("code_file"),
            test_exists=exists("test_file"),
            spec_exists=exists("spec_file"),
            review_exists=exists("review_file"),
            test_status=determine_test_status(failing_tests, exists("test_file")),
            expected_files=dict(expected_files),
            actual_files=list(actual_files),
            failing_tests=list(failing_tests),
            computed_at=_utcnow(),
        )

    def fully_satisfied(self) -> bool:
        return (
            self.design_exists
            and self.code_exists
            and self.test_exists
            and self.test_status is TestStatus.PASSING
        )

    def ready_for_work(self) -> bool:
        return self.next_action() is not NextAction.COMPLETE

    def next_action(self) -> NextAction:
        if not self.design_exists:
            return NextAction.CREATE_DESIGN
        if "spec_file" in self.expected_files and not self.spec_exists:
            return NextAction.CREATE_SPEC
        if not self.code_exists:
            return NextAction.IMPLEMENT_CODE
        if not self.test_exists:
            return NextAction.WRITE_TESTS
        if self.test_status is TestStatus.FAILING:
            return NextAction.FIX_TESTS
        return NextAction.COMPLETE


def determine_test_status(failing_tests: List[str], has_test_file: bool) -> TestStatus:
    if not has_test_file:
        return TestStatus.NOT_RUN
    if failing_tests:
        return TestStatus.FAILING
    return TestStatus.PASSING


class Requirement(BaseModel):
    """Verdict of one requirement definition against one component."""

    name: str
    artifact_type: ArtifactType
    description: str = ""
    checker: str
    satisfied_by: Optional[str] = None
    satisfied: bool = False
    score: float = 0.0
    checked_at: datetime = Field(default_factory=_utcnow)
    details: Dict[str, Any] = Field(default_factory=dict)
    component_id: Optional[str] = None


class Dependency(BaseModel):
    """Directed "source depends on target" edge."""

    source_component_id: str
    target_component_id: str

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_component_id, self.target_component_id)


class Component(BaseModel):
    """A declared unit of the target application."""

    id: str
    name: str
    module_name: str
    type: str = DEFAULT_COMPONENT_TYPE
    description: Optional[str] = None
    priority: Optional[int] = None
    parent_component_id: Optional[str] = None
    dependencies: Union[List["Component"], NotLoaded] = NOT_LOADED
    child_components: Union[List["Component"], NotLoaded] = NOT_LOADED
    component_status: Optional[ComponentStatus] = None
    requirements: Union[List[Requirement], NotLoaded] = NOT_LOADED

    def requirement(self, name: str) -> Optional[Requirement]:
        return next((r for r in loaded(self.requirements) if r.name == name), None)

    def all_requirements_satisfied(self) -> bool:
        """True when every attached requirement is satisfied.

        Unknown requirements count as unsatisfied; an empty list is satisfied.
        """
        if isinstance(self.requirements, NotLoaded):
            return False
        return all(r.satisfied for r in self.requirements)


Component.model_rebuild()

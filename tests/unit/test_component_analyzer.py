"""Tests for the component analyzer."""

import logging

from specsync.analyzer import ComponentAnalyzer, sort_components
from specsync.components.models import Component, Dependency, TestStatus
from specsync.components.paths import expected_files
from specsync.documents import FileSystemDocumentSource, InMemoryDocumentSource
from specsync.errors import RequirementPersistenceError
from specsync.persistence import InMemoryRequirementStore
from specsync.requirements.definitions import DEFAULT_REQUIREMENTS
from specsync.testrun import TestFailure

PROJECT = "MyApp"
VALID_SPEC = "## Functions\n- run/0\n\n## Dependencies\n- none\n"
VALID_CONTEXT_SPEC = VALID_SPEC + "\n## Components\n- Users\n"


def _users(**kwargs) -> Component:
    return Component(id="users", name="Users", module_name="Accounts.Users", type="repository", **kwargs)


def _repo(**kwargs) -> Component:
    return Component(id="repo", name="Repo", module_name="Repo", type="repository", **kwargs)


def _files(component: Component, *keys: str):
    files = expected_files(component, PROJECT)
    return [files[key] for key in keys]


def _requirements(component: Component):
    return {r.name: r for r in component.requirements}


def test_all_files_present_and_no_failures():
    users = _users()
    analyzer = ComponentAnalyzer(PROJECT)

    [result] = analyzer.analyze(
        [users], _files(users, "design_file", "code_file", "test_file"), edges=[]
    )

    status = result.component_status
    assert status.design_exists and status.code_exists and status.test_exists
    assert status.test_status is TestStatus.PASSING
    assert _requirements(result)["tests_passing"].satisfied
    assert _requirements(result)["dependencies_satisfied"].satisfied


def test_only_code_file_present():
    users = _users()
    analyzer = ComponentAnalyzer(PROJECT)

    [result] = analyzer.analyze([users], _files(users, "code_file"), edges=[])

    assert result.component_status.test_status is TestStatus.NOT_RUN
    requirements = _requirements(result)
    assert not requirements["design_file"].satisfied
    assert not requirements["test_file"].satisfied
    assert not requirements["tests_passing"].satisfied
    assert requirements["tests_passing"].details["reason"] == "No test file exists."
    assert requirements["implementation_file"].satisfied


def test_failures_are_filtered_to_the_component_test_file():
    users = _users()
    test_file = _files(users, "test_file")[0]
    files = _files(users, "design_file", "code_file", "test_file")
    analyzer = ComponentAnalyzer(PROJECT)

    [unrelated] = analyzer.analyze(
        [users], files, [TestFailure(file="tests/other/test_x.py", title="test_x")], edges=[]
    )
    assert unrelated.component_status.test_status is TestStatus.PASSING

    [failing] = analyzer.analyze(
        [users], files, [TestFailure(file=test_file, title="test_create")], edges=[]
    )
    assert failing.component_status.test_status is TestStatus.FAILING
    assert failing.component_status.failing_tests == ["test_create"]
    assert _requirements(failing)["tests_passing"].details["failing_tests"] == ["test_create"]


def test_requirements_follow_registry_order():
    users = _users()

    [result] = ComponentAnalyzer(PROJECT).analyze([users], [], edges=[])

    assert [r.name for r in result.requirements] == [d.name for d in DEFAULT_REQUIREMENTS]


def test_dependency_satisfaction_reads_neighbour_requirements():
    users, repo = _users(), _repo()
    edges = [Dependency(source_component_id="users", target_component_id="repo")]
    repo_files = _files(repo, "design_file", "code_file", "test_file")
    documents = InMemoryDocumentSource({repo_files[0]: VALID_SPEC})
    analyzer = ComponentAnalyzer(PROJECT, documents=documents)

    results = {c.id: c for c in analyzer.analyze([users, repo], repo_files, edges=edges)}
    assert _requirements(results["repo"])["design_valid"].satisfied
    assert _requirements(results["users"])["dependencies_satisfied"].satisfied

    results = {c.id: c for c in analyzer.analyze([users, repo], repo_files[:2], edges=edges)}
    dependency = _requirements(results["users"])["dependencies_satisfied"]
    assert not dependency.satisfied
    assert dependency.details["unsatisfied_dependencies"] == ["Repo"]


def test_dependencies_not_supplied_are_unsatisfied():
    [result] = ComponentAnalyzer(PROJECT).analyze([_users()], [])

    assert _requirements(result)["dependencies_satisfied"].details["reason"] == "Dependencies not loaded"


def test_context_children_requirements():
    accounts = Component(id="accounts", name="Accounts", module_name="Accounts", type="context")
    users = _users(parent_component_id="accounts")
    analyzer = ComponentAnalyzer(PROJECT)

    results = {c.id: c for c in analyzer.analyze([accounts, users], [], edges=[])}
    requirements = _requirements(results["accounts"])
    assert not requirements["children_designs"].satisfied
    assert requirements["children_designs"].details["components"] == ["Users"]
    assert "review_file" in requirements

    results = {
        c.id: c
        for c in analyzer.analyze([accounts, users], _files(users, "design_file"), edges=[])
    }
    assert _requirements(results["accounts"])["children_designs"].satisfied
    assert _requirements(results["users"])["design_file"].satisfied


def test_components_sorted_by_priority_then_name():
    components = [
        Component(id="c", name="Charlie", module_name="C", priority=2),
        Component(id="a", name="Alpha", module_name="A"),
        Component(id="b", name="Bravo", module_name="B", priority=1),
        Component(id="d", name="Delta", module_name="D", priority=1),
    ]

    assert [c.name for c in sort_components(components)] == ["Bravo", "Delta", "Charlie", "Alpha"]
    analyzed = ComponentAnalyzer(PROJECT).analyze(components, [], edges=[])
    assert [c.name for c in analyzed] == ["Bravo", "Delta", "Charlie", "Alpha"]


class FlakyStore(InMemoryRequirementStore):
    def create_requirement(self, requirement):
        if requirement.name == "test_file":
            raise RequirementPersistenceError("disk full")
        return super().create_requirement(requirement)


def test_persistence_failure_degrades_gracefully(caplog):
    store = FlakyStore()
    users, repo = _users(), _repo()

    with caplog.at_level(logging.ERROR):
        results = ComponentAnalyzer(PROJECT, store=store).analyze([users, repo], [], edges=[])

    assert len(results) == 2
    for result in results:
        names = [r.name for r in result.requirements]
        assert "test_file" not in names
        assert "design_file" in names
        assert "dependencies_satisfied" in names
    assert "disk full" in caplog.text
    assert "test_file" not in [r.name for r in store.requirements_for("users")]


def test_store_receives_every_requirement():
    store = InMemoryRequirementStore()
    users = _users()

    ComponentAnalyzer(PROJECT, store=store).analyze([users], [], edges=[])

    assert [r.name for r in store.requirements_for("users")] == [
        "design_file",
        "design_valid",
        "implementation_file",
        "test_file",
        "tests_passing",
        "dependencies_satisfied",
    ]


def test_dependency_cycle_still_analyzes_every_component():
    users, repo = _users(), _repo()
    edges = [
        Dependency(source_component_id="users", target_component_id="repo"),
        Dependency(source_component_id="repo", target_component_id="users"),
    ]

    results = ComponentAnalyzer(PROJECT).analyze([users, repo], [], edges=edges)

    assert sorted(c.id for c in results) == ["repo", "users"]


class RecordingStore(InMemoryRequirementStore):
    def __init__(self):
        super().__init__()
        self.cleared = []

    def clear_requirements(self, component_id):
        self.cleared.append(component_id)
        return super().clear_requirements(component_id)


def test_incremental_sync_only_regenerates_affected_components():
    other = Component(id="other", name="Other", module_name="Other")
    users, repo = _users(), _repo()
    edges = [Dependency(source_component_id="users", target_component_id="repo")]
    store = RecordingStore()
    analyzer = ComponentAnalyzer(PROJECT, store=store)
    files = _files(other, "design_file") + _files(users, "design_file")

    first = analyzer.analyze([other, users, repo], files, edges=edges)
    store.cleared.clear()

    second = {c.id: c for c in analyzer.sync(first, files, changed_ids=["repo"], edges=edges)}

    # "users" depends on "repo"; "other" is untouched.
    assert sorted(store.cleared) == ["repo", "users"]
    kept = next(c for c in first if c.id == "other")
    assert second["other"].requirements == kept.requirements
    assert second["other"].component_status.design_exists
    assert _requirements(second["other"])["design_file"].satisfied


def test_sync_treats_status_changes_as_changed():
    other = Component(id="other", name="Other", module_name="Other")
    analyzer = ComponentAnalyzer(PROJECT)

    first = analyzer.analyze([other], _files(other, "design_file"), edges=[])
    assert _requirements(first[0])["design_file"].satisfied

    [second] = analyzer.sync(first, [], changed_ids=[], edges=[])

    assert not second.component_status.design_exists
    assert not _requirements(second)["design_file"].satisfied


def test_sync_refreshes_parent_of_new_child():
    accounts = Component(id="accounts", name="Accounts", module_name="Accounts", type="context")
    analyzer = ComponentAnalyzer(PROJECT)

    [analyzed] = analyzer.analyze([accounts], [], edges=[])
    assert _requirements(analyzed)["children_designs"].details["status"] == "No child components to check"

    results = {
        c.id: c
        for c in analyzer.sync(
            [analyzed, _users(parent_component_id="accounts")], [], changed_ids=[], edges=[]
        )
    }

    children_designs = _requirements(results["accounts"])["children_designs"]
    assert not children_designs.satisfied
    assert children_designs.details["components"] == ["Users"]


def test_undecodable_design_document_is_an_unsatisfied_verdict(tmp_path):
    users = _users()
    design_file = _files(users, "design_file")[0]
    path = tmp_path / design_file
    path.parent.mkdir(parents=True)
    path.write_bytes(b"## Functions\n\xff\xfe bad\n")
    analyzer = ComponentAnalyzer(PROJECT, documents=FileSystemDocumentSource(tmp_path))

    [result] = analyzer.analyze([users], [design_file], edges=[])

    design_valid = _requirements(result)["design_valid"]
    assert not design_valid.satisfied
    assert design_valid.details["reason"] == "unreadable_file"
    assert design_valid.details["file"] == design_file
    assert _requirements(result)["design_file"].satisfied


def test_sync_regenerates_components_without_requirements():
    users = _users()

    [result] = ComponentAnalyzer(PROJECT).sync([users], [], changed_ids=[], edges=[])

    assert [r.name for r in result.requirements] == [d.name for d in DEFAULT_REQUIREMENTS]

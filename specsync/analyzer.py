"""Batch analysis of components against a file and test-failure snapshot.

The analyzer performs no I/O of its own: it is handed the component list,
the list of files that exist and the failing tests, and returns components
annotated with a fresh :class:`ComponentStatus` and an ordered requirement
list. Requirements are evaluated in two passes. Local requirements (files,
tests, documents) are attached to every component first; dependency and
hierarchy requirements are evaluated afterwards against trees built from
the locally annotated components.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from .components import dependency_tree, hierarchy_tree
from .components.dependencies import attach_dependencies, dependents_of
from .components.models import (
    Component,
    ComponentStatus,
    Dependency,
    NotLoaded,
    Requirement,
    loaded,
)
from .components.paths import expected_files
from .config import ProjectLayout
from .documents.sources import DocumentSource
from .errors import RequirementPersistenceError
from .persistence.inmemory import InMemoryRequirementStore
from .persistence.repository import RequirementStore
from .requirements.checkers import GRAPH, LOCAL, CheckContext, get_checker
from .requirements.definitions import REGISTRY, RequirementDefinition, RequirementRegistry
from .requirements.engine import check_requirements, sort_requirements
from .testrun import TestFailure

logger = logging.getLogger(__name__)


def sort_components(components: Iterable[Component]) -> List[Component]:
    """Order by priority (unset last), ties broken by name."""
    return sorted(
        components,
        key=lambda c: (c.priority is None, c.priority or 0, c.name),
    )


class ComponentAnalyzer:
    """Compute statuses and requirements for a batch of components."""

    def __init__(
        self,
        project_module_name: str = "",
        layout: Optional[ProjectLayout] = None,
        registry: Optional[RequirementRegistry] = None,
        store: Optional[RequirementStore] = None,
        documents: Optional[DocumentSource] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.project_module_name = project_module_name
        self.layout = layout or ProjectLayout()
        self.registry = registry or REGISTRY
        self.store = store if store is not None else InMemoryRequirementStore()
        self.log = log or logger
        self._context = CheckContext(documents=documents, log=self.log)

    # ------------------------------------------------------------------
    # Public API
    def analyze(
        self,
        components: Sequence[Component],
        file_list: Iterable[str],
        failures: Iterable[TestFailure] = (),
        edges: Optional[Iterable[Dependency]] = None,
    ) -> List[Component]:
        """Run a full analysis pass over ``components``.

        ``edges`` optionally supplies :class:`Dependency` records; when given
        they replace whatever dependency lists the components carry.
        """
        return self.sync(components, file_list, failures, edges=edges, force=True)

    def sync(
        self,
        components: Sequence[Component],
        file_list: Iterable[str],
        failures: Iterable[TestFailure] = (),
        changed_ids: Optional[Iterable[str]] = None,
        force: bool = False,
        edges: Optional[Iterable[Dependency]] = None,
    ) -> List[Component]:
        """Recompute statuses for every component and requirements for the affected ones.

        A component is changed when it is listed in ``changed_ids``, when its
        requirements were never loaded, or when its recomputed status differs
        from the one it came in with. Affected components are the changed
        ones, every component that transitively depends on them, and every
        ancestor of either. Other components keep their current status and
        requirements. ``force`` or ``changed_ids=None`` regenerates everything.
        """
        components = list(components)
        if edges is not None:
            components = attach_dependencies(components, edges, self.log)

        files = list(file_list)
        failures = list(failures)
        with_status = [self._with_status(c, files, failures) for c in components]

        affected = self._affected_ids(components, with_status, changed_ids, force)
        self.log.info(
            f"Analyzing {len(with_status)} components ({len(affected)} requiring requirement updates)"
        )

        local = [
            self._local_pass(c) if c.id in affected else self._keep_local(c)
            for c in with_status
        ]
        dependency_trees = {c.id: c for c in dependency_tree.build(local, self.log)}
        hierarchy_trees = {c.id: c for c in hierarchy_tree.build(local, self.log)}

        analyzed: List[Component] = []
        for component, original in zip(local, with_status):
            if component.id not in affected:
                analyzed.append(original)
                continue
            view = component.model_copy(
                update={
                    "dependencies": dependency_trees[component.id].dependencies,
                    "child_components": hierarchy_trees[component.id].child_components,
                }
            )
            definitions = self._definitions(component)
            graph = self._persist(check_requirements(view, definitions, self._context, GRAPH))
            requirements = sort_requirements(loaded(component.requirements) + graph, definitions)
            analyzed.append(original.model_copy(update={"requirements": requirements}))

        return sort_components(analyzed)

    def component_status(
        self,
        component: Component,
        file_list: Iterable[str],
        failures: Iterable[TestFailure] = (),
    ) -> ComponentStatus:
        """Status of a single component without evaluating requirements."""
        files = expected_files(component, self.project_module_name, self.layout)
        present = set(file_list)
        test_file = files["test_file"]
        failing = [f.title for f in failures if f.matches(test_file)]
        actual = [path for path in files.values() if path in present]
        return ComponentStatus.from_analysis(files, actual, failing)

    # ------------------------------------------------------------------
    # Internals
    def _definitions(self, component: Component) -> List[RequirementDefinition]:
        return self.registry.requirements_for(component.type)

    def _with_status(
        self, component: Component, files: List[str], failures: List[TestFailure]
    ) -> Component:
        status = self.component_status(component, files, failures)
        return component.model_copy(update={"component_status": status})

    def _affected_ids(
        self,
        incoming: List[Component],
        components: List[Component],
        changed_ids: Optional[Iterable[str]],
        force: bool,
    ) -> Set[str]:
        all_ids = {c.id for c in components}
        if force or changed_ids is None:
            return all_ids

        seeds = set(changed_ids) & all_ids
        for before, after in zip(incoming, components):
            if isinstance(after.requirements, NotLoaded) or _status_changed(before, after):
                seeds.add(after.id)

        affected = seeds | dependents_of(components, seeds)
        for component in components:
            if component.id in affected:
                affected.update(hierarchy_tree.ancestor_ids(component, components))
        return affected

    def _local_pass(self, component: Component) -> Component:
        self.store.clear_requirements(component.id)
        local = check_requirements(component, self._definitions(component), self._context, LOCAL)
        return component.model_copy(update={"requirements": self._persist(local)})

    def _keep_local(self, component: Component) -> Component:
        """Strip graph requirements so neighbours are judged on local facts only."""
        kept = [r for r in loaded(component.requirements) if _phase(r) == LOCAL]
        return component.model_copy(update={"requirements": kept})

    def _persist(self, requirements: List[Requirement]) -> List[Requirement]:
        stored: List[Requirement] = []
        for requirement in requirements:
            try:
                stored.append(self.store.create_requirement(requirement))
            except RequirementPersistenceError as exc:
                self.log.error(
                    f"Failed to store requirement {requirement.name} for component "
                    f"{requirement.component_id}: {exc}"
                )
        return stored


def _phase(requirement: Requirement) -> str:
    return get_checker(requirement.checker).phase


def _status_changed(before: Component, after: Component) -> bool:
    """True when the recomputed status differs from the one the component came in with."""
    if before.component_status is None or after.component_status is None:
        return True
    ignore = {"computed_at"}
    return before.component_status.model_dump(exclude=ignore) != after.component_status.model_dump(
        exclude=ignore
    )

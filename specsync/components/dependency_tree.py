"""Build nested dependency trees for components.

Components are indexed by id; each input component is expanded into a tree
of value copies whose ``dependencies`` hold fully expanded copies of the
components they depend on. Shared dependencies (diamonds) are rebuilt under
every root that reaches them. Cycles are logged and broken, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .models import Component, NotLoaded

logger = logging.getLogger(__name__)


def build(components: List[Component], log: Optional[logging.Logger] = None) -> List[Component]:
    """Return one nested dependency tree per input component.

    The result is in dependency order (dependencies before dependents) and
    always has exactly one entry per input component, cyclic or not.
    """
    if not components:
        return []
    log = log or logger
    component_map = _component_map(components)
    return [
        _build_nested_tree(component, component_map, frozenset(), log)
        for component in topological_sort(components, log)
    ]


def build_for(
    component: Component,
    all_components: List[Component],
    log: Optional[logging.Logger] = None,
) -> Component:
    """Expand the dependency tree of a single component."""
    return _build_nested_tree(component, _component_map(all_components), frozenset(), log or logger)


def topological_sort(
    components: List[Component], log: Optional[logging.Logger] = None
) -> List[Component]:
    """Order components so every dependency precedes its dependents.

    Depth-first with an explicit stack, so chain length is not bounded by the
    interpreter's recursion limit. An edge back to a component still being
    visited closes a cycle and is ignored for the rest of this sort.
    """
    log = log or logger
    component_map = _component_map(components)
    visited: Set[str] = set()
    visiting: Set[str] = set()
    ordered: List[Component] = []

    for start in components:
        if start.id in visited:
            continue
        visited.add(start.id)
        visiting.add(start.id)
        stack: List[Tuple[Component, Iterator[str]]] = [(start, iter(_dependency_ids(start)))]
        while stack:
            component, pending = stack[-1]
            dep_id = next(pending, None)
            if dep_id is None:
                stack.pop()
                visiting.discard(component.id)
                ordered.append(component)
                continue
            if dep_id in visiting:
                log.warning(f"Dependency cycle detected: {component.id} -> {dep_id}, ignoring edge")
                continue
            if dep_id in visited or dep_id not in component_map:
                continue
            dependency = component_map[dep_id]
            visited.add(dep_id)
            visiting.add(dep_id)
            stack.append((dependency, iter(_dependency_ids(dependency))))
    return ordered


def _component_map(components: List[Component]) -> Dict[str, Component]:
    return {component.id: component for component in components}


def _dependency_ids(component: Component) -> List[str]:
    if isinstance(component.dependencies, NotLoaded):
        return []
    return [dep.id for dep in component.dependencies]


@dataclass
class _Frame:
    component: Component
    path: FrozenSet[str]
    pending: Iterator[Component]
    nested: List[Component] = field(default_factory=list)


def _open(
    component: Component, path: FrozenSet[str], log: logging.Logger
) -> Tuple[Optional[_Frame], Optional[Component]]:
    """Start expanding ``component``, or return it finished when there is nothing to expand."""
    if component.id in path:
        log.warning(f"Cycle detected for component {component.id}, breaking cycle")
        return None, component.model_copy(update={"dependencies": []})
    if isinstance(component.dependencies, NotLoaded):
        return None, component.model_copy()
    return _Frame(component, path | {component.id}, iter(component.dependencies)), None


def _build_nested_tree(
    component: Component,
    component_map: Dict[str, Component],
    path: FrozenSet[str],
    log: logging.Logger,
) -> Component:
    frame, finished = _open(component, path, log)
    if finished is not None:
        return finished

    stack = [frame]
    while True:
        top = stack[-1]
        dependency = next(top.pending, None)
        if dependency is None:
            stack.pop()
            built = top.component.model_copy(update={"dependencies": top.nested})
            if not stack:
                return built
            stack[-1].nested.append(built)
            continue

        found = component_map.get(dependency.id)
        if found is None:
            # Not part of this snapshot: keep what the edge carried as a leaf.
            top.nested.append(dependency.model_copy(update={"dependencies": []}))
            continue
        child, finished = _open(found, top.path, log)
        if finished is not None:
            top.nested.append(finished)
        else:
            stack.append(child)

"""Build nested parent/child trees for components.

Children are always found through ``parent_component_id``; the
``child_components`` association on the input is ignored. Hierarchies are
acyclic by construction, but expansion still guards against cycles.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from .models import Component

logger = logging.getLogger(__name__)


def build(components: List[Component], log: Optional[logging.Logger] = None) -> List[Component]:
    """Return every input component with its ``child_components`` nested."""
    if not components:
        return []
    log = log or logger
    children = _children_index(components)
    return [_build_nested_tree(c, children, frozenset(), log) for c in components]


def build_roots(components: List[Component], log: Optional[logging.Logger] = None) -> List[Component]:
    """Return only root components (no parent) with nested children."""
    log = log or logger
    children = _children_index(components)
    return [
        _build_nested_tree(c, children, frozenset(), log)
        for c in components
        if c.parent_component_id is None
    ]


def build_for(
    component: Component,
    all_components: List[Component],
    log: Optional[logging.Logger] = None,
) -> Component:
    return _build_nested_tree(component, _children_index(all_components), frozenset(), log or logger)


def descendants(component: Component, all_components: List[Component]) -> List[Component]:
    """All children, grandchildren and so on, breadth first."""
    children = _children_index(all_components)
    result: List[Component] = []
    seen = {component.id}
    queue = list(children.get(component.id, []))
    while queue:
        current = queue.pop(0)
        if current.id in seen:
            continue
        seen.add(current.id)
        result.append(current)
        queue.extend(children.get(current.id, []))
    return result


def path_to_root(component: Component, all_components: List[Component]) -> List[Component]:
    """Components from the root down to ``component`` (inclusive)."""
    by_id: Dict[str, Component] = {c.id: c for c in all_components}
    path = [component]
    seen = {component.id}
    parent_id = component.parent_component_id
    while parent_id is not None and parent_id in by_id and parent_id not in seen:
        parent = by_id[parent_id]
        path.insert(0, parent)
        seen.add(parent_id)
        parent_id = parent.parent_component_id
    return path


def ancestor_ids(component: Component, all_components: List[Component]) -> List[str]:
    return [c.id for c in path_to_root(component, all_components)[:-1]]


def is_ancestor(
    potential_ancestor: Component, component: Component, all_components: List[Component]
) -> bool:
    if potential_ancestor.id == component.id:
        return False
    return potential_ancestor.id in ancestor_ids(component, all_components)


def _children_index(components: List[Component]) -> Dict[str, List[Component]]:
    index: Dict[str, List[Component]] = {}
    for component in components:
        if component.parent_component_id is not None:
            index.setdefault(component.parent_component_id, []).append(component)
    return index


def _build_nested_tree(
    component: Component,
    children: Dict[str, List[Component]],
    path: FrozenSet[str],
    log: logging.Logger,
) -> Component:
    if component.id in path:
        log.warning(f"Cycle detected in hierarchy for component {component.id}, breaking cycle")
        return component.model_copy(update={"child_components": []})

    # (component, path including it, remaining children, built children)
    stack: List[Tuple[Component, FrozenSet[str], Iterator[Component], List[Component]]] = [
        (component, path | {component.id}, iter(children.get(component.id, [])), [])
    ]
    while True:
        current, current_path, pending, nested = stack[-1]
        child = next(pending, None)
        if child is None:
            stack.pop()
            built = current.model_copy(update={"child_components": nested})
            if not stack:
                return built
            stack[-1][3].append(built)
            continue
        if child.id in current_path:
            log.warning(f"Cycle detected in hierarchy for component {child.id}, breaking cycle")
            nested.append(child.model_copy(update={"child_components": []}))
            continue
        stack.append((child, current_path | {child.id}, iter(children.get(child.id, [])), []))

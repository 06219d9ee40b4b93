"""Dependency edge bookkeeping over a flat component list."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .models import Component, Dependency

logger = logging.getLogger(__name__)


def unique_edges(edges: Iterable[Dependency]) -> List[Dependency]:
    """Drop repeated ``(source, target)`` pairs, keeping first occurrence order."""
    seen: Set[Tuple[str, str]] = set()
    result: List[Dependency] = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        result.append(edge)
    return result


def attach_dependencies(
    components: List[Component],
    edges: Iterable[Dependency],
    log: Optional[logging.Logger] = None,
) -> List[Component]:
    """Return copies of ``components`` with ``dependencies`` resolved from ``edges``.

    Edges whose source or target is not among ``components`` are dropped, as
    are self-edges. Every returned component has a loaded dependency list.
    """
    log = log or logger
    by_id: Dict[str, Component] = {c.id: c for c in components}
    targets: Dict[str, List[Component]] = {c.id: [] for c in components}

    for edge in unique_edges(edges):
        source, target = edge.source_component_id, edge.target_component_id
        if source == target:
            log.warning(f"Ignoring self dependency on component {source}")
            continue
        if source not in by_id or target not in by_id:
            log.warning(f"Ignoring dependency {source} -> {target}: endpoint not found")
            continue
        targets[source].append(by_id[target])

    return [c.model_copy(update={"dependencies": targets[c.id]}) for c in components]


def remove_component(
    components: List[Component],
    edges: Iterable[Dependency],
    component_id: str,
) -> Tuple[List[Component], List[Dependency]]:
    """Remove a component together with every edge touching it.

    Children of the removed component become roots. Requirements live on the
    component itself and disappear with it.
    """
    remaining = []
    for component in components:
        if component.id == component_id:
            continue
        if component.parent_component_id == component_id:
            component = component.model_copy(update={"parent_component_id": None})
        remaining.append(component)
    kept_edges = [
        edge
        for edge in unique_edges(edges)
        if component_id not in (edge.source_component_id, edge.target_component_id)
    ]
    return remaining, kept_edges


def dependents_of(components: List[Component], component_ids: Iterable[str]) -> Set[str]:
    """Ids of every component that transitively depends on ``component_ids``."""
    reverse: Dict[str, Set[str]] = {}
    for component in components:
        for dep in _dependency_ids(component):
            reverse.setdefault(dep, set()).add(component.id)

    found: Set[str] = set()
    stack = list(component_ids)
    while stack:
        current = stack.pop()
        for dependent in reverse.get(current, ()):
            if dependent not in found:
                found.add(dependent)
                stack.append(dependent)
    return found


def _dependency_ids(component: Component) -> List[str]:
    if isinstance(component.dependencies, list):
        return [dep.id for dep in component.dependencies]
    return []

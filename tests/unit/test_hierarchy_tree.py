"""Tests for parent/child hierarchy trees."""

import logging

from specsync.components import hierarchy_tree
from specsync.components.models import Component


def _component(component_id: str, parent=None) -> Component:
    return Component(
        id=component_id,
        name=component_id.title(),
        module_name=component_id.title(),
        parent_component_id=parent,
    )


def _family():
    return [
        _component("parent"),
        _component("child1", parent="parent"),
        _component("child2", parent="parent"),
        _component("grandchild", parent="child1"),
    ]


def test_build_nests_children_for_every_component():
    trees = {c.id: c for c in hierarchy_tree.build(_family())}

    assert len(trees) == 4
    assert [c.id for c in trees["parent"].child_components] == ["child1", "child2"]
    child1 = trees["parent"].child_components[0]
    assert [c.id for c in child1.child_components] == ["grandchild"]
    assert trees["grandchild"].child_components == []


def test_build_roots_returns_only_roots():
    roots = hierarchy_tree.build_roots(_family())

    assert [r.id for r in roots] == ["parent"]


def test_build_ignores_existing_child_associations():
    components = _family()
    components[0] = components[0].model_copy(update={"child_components": [_component("stale")]})

    tree = hierarchy_tree.build_for(components[0], components)

    assert [c.id for c in tree.child_components] == ["child1", "child2"]


def test_descendants_and_paths():
    family = _family()
    parent, _, _, grandchild = family

    assert [c.id for c in hierarchy_tree.descendants(parent, family)] == [
        "child1",
        "child2",
        "grandchild",
    ]
    assert [c.id for c in hierarchy_tree.path_to_root(grandchild, family)] == [
        "parent",
        "child1",
        "grandchild",
    ]
    assert hierarchy_tree.ancestor_ids(grandchild, family) == ["parent", "child1"]
    assert hierarchy_tree.is_ancestor(parent, grandchild, family)
    assert not hierarchy_tree.is_ancestor(grandchild, parent, family)
    assert not hierarchy_tree.is_ancestor(parent, parent, family)


def test_empty_input():
    assert hierarchy_tree.build([]) == []


def test_hierarchy_cycle_is_broken(caplog):
    components = [_component("a", parent="b"), _component("b", parent="a")]

    with caplog.at_level(logging.WARNING):
        trees = {c.id: c for c in hierarchy_tree.build(components)}

    assert set(trees) == {"a", "b"}
    assert "cycle" in caplog.text.lower()
    assert trees["a"].child_components[0].id == "b"
    assert trees["a"].child_components[0].child_components[0].child_components == []


def test_deep_hierarchy_does_not_hit_recursion_limit():
    size = 1200
    components = [_component("n0")] + [_component(f"n{i}", parent=f"n{i - 1}") for i in range(1, size)]

    [root] = hierarchy_tree.build_roots(components)

    depth, node = 0, root
    while node.child_components:
        [node] = node.child_components
        depth += 1
    assert depth == size - 1
    assert len(hierarchy_tree.descendants(components[0], components)) == size - 1

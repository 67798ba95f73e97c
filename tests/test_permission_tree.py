import pytest

from domain_admin.core.errors import CycleDetected, ValidationFailed
from domain_admin.features.permissions.tree import (
    STATUS_DISABLED,
    PermissionNode,
    PermissionRecord,
    PermissionTree,
)


def perm(id, parent_id=0, sort=0, status=1, name=None, display_name=None, resource=None):
    return PermissionRecord(
        id=id,
        parent_id=parent_id,
        name=name or f"perm.{id}",
        display_name=display_name or f"Permission {id}",
        resource=resource or f"/api/p{id}",
        sort=sort,
        status=status,
    )


@pytest.fixture
def flat():
    # 1 system
    # +- 2 users (sort 2)
    # |  +- 4 user.list
    # |  +- 5 user.create
    # +- 3 roles (sort 1)
    # 6 auth (sort 0)
    return [
        perm(5, parent_id=2, sort=1, name="user.create"),
        perm(1, sort=1, name="system"),
        perm(4, parent_id=2, sort=0, name="user.list", display_name="List users"),
        perm(2, parent_id=1, sort=2, name="system.users", resource="/system/users"),
        perm(3, parent_id=1, sort=1, name="system.roles"),
        perm(6, sort=0, name="auth"),
    ]


def _count(nodes):
    return sum(1 + _count(node.children) for node in nodes)


def _edges(nodes, parent=0):
    edges = set()
    for node in nodes:
        edges.add((parent, node.id))
        edges |= _edges(node.children, node.id)
    return edges


def test_materialize_preserves_nodes_and_edges(flat):
    tree = PermissionTree.materialize(flat)

    assert len(tree) == len(flat)
    assert _count(tree.roots) == len(flat)
    assert _edges(tree.roots) == {(p.parent_id, p.id) for p in flat}


def test_siblings_ordered_by_sort_then_id(flat):
    tree = PermissionTree.materialize(flat + [perm(7, parent_id=1, sort=1)])

    assert [n.id for n in tree.roots] == [6, 1]
    system = tree.roots[1]
    assert [n.id for n in system.children] == [3, 7, 2]
    assert [r.id for r in tree.children_of(2)] == [4, 5]


def test_has_children_matches_child_count(flat):
    tree = PermissionTree.materialize(flat)

    def check(nodes):
        for node in nodes:
            assert node.has_children == (len(node.children) > 0)
            assert tree.has_children(node.id) == node.has_children
            check(node.children)

    check(tree.roots)
    assert PermissionNode(perm(9)).has_children is False


def test_orphan_becomes_root():
    tree = PermissionTree.materialize([perm(1), perm(2, parent_id=99)])

    assert [n.id for n in tree.roots] == [1, 2]


def test_empty_input():
    tree = PermissionTree.materialize([])

    assert len(tree) == 0
    assert tree.roots == ()
    assert list(tree.walk()) == []


@pytest.mark.parametrize("records", [
    [perm(1, parent_id=1)],
    [perm(1, parent_id=2), perm(2, parent_id=1)],
    [perm(1), perm(2, parent_id=4), perm(3, parent_id=2), perm(4, parent_id=3)],
])
def test_cycle_detected(records):
    with pytest.raises(CycleDetected):
        PermissionTree.materialize(records)


def test_duplicate_ids_rejected():
    with pytest.raises(ValidationFailed):
        PermissionTree.materialize([perm(1), perm(1)])


def test_walk_is_depth_first_pre_order(flat):
    tree = PermissionTree.materialize(flat)

    assert [r.id for r in tree.walk()] == [6, 1, 3, 2, 4, 5]
    assert [r.id for r in tree.walk(2)] == [2, 4, 5]


def test_query_and_search(flat):
    tree = PermissionTree.materialize(flat)

    assert [r.id for r in tree.query(lambda r: r.parent_id == 2)] == [4, 5]
    assert [r.id for r in tree.search("USER")] == [2, 4, 5]
    assert [r.id for r in tree.search("list users")] == [4]
    assert [r.id for r in tree.search("/system/users")] == [2]
    assert len(tree.search("  ")) == len(flat)


def test_descendants(flat):
    tree = PermissionTree.materialize(flat)

    assert [r.id for r in tree.descendants(1)] == [1, 3, 2, 4, 5]
    assert [r.id for r in tree.descendants(1, include_self=False)] == [3, 2, 4, 5]
    assert tree.descendants(42) == []
    assert tree.is_descendant(4, 1)
    assert not tree.is_descendant(1, 4)


def test_effective_excludes_disabled_and_unknown(flat):
    records = flat + [perm(7, parent_id=1, status=STATUS_DISABLED)]
    tree = PermissionTree.materialize(records)

    effective = tree.effective_of({4, 7, 100})

    assert {r.id for r in effective} == {4}
    assert all(r.enabled for r in effective)


def test_disabled_permissions_stay_in_the_tree(flat):
    tree = PermissionTree.materialize(flat + [perm(7, parent_id=1, status=STATUS_DISABLED)])

    assert 7 in tree
    assert tree.get(7).enabled is False


def test_can_delete_only_leaves(flat):
    tree = PermissionTree.materialize(flat)

    for record in tree.walk():
        assert tree.can_delete(record.id) == (not tree.children_of(record.id))
    assert not tree.can_delete(1)
    assert tree.can_delete(4)


def test_would_cycle(flat):
    tree = PermissionTree.materialize(flat)

    assert tree.would_cycle(1, 1)
    assert tree.would_cycle(1, 4)
    assert not tree.would_cycle(4, 3)
    assert not tree.would_cycle(2, 0)


def test_find_by_name(flat):
    tree = PermissionTree.materialize(flat)

    assert tree.find_by_name("user.list").id == 4
    assert tree.find_by_name("missing") is None

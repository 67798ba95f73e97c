import asyncio

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from domain_admin.core.errors import (
    CycleDetected,
    DuplicateName,
    PermissionHasChildren,
    ProtectedEntity,
    RoleInUse,
    UnknownPermission,
    UnknownRole,
)
from domain_admin.core.pagination import PageParams
from domain_admin.features.permissions.schemas import PermissionCreate, PermissionUpdate
from domain_admin.features.roles.schemas import RoleCreate, RoleUpdate
from domain_admin.features.users.schemas import UserCreate


async def make_permission(catalog, name, parent_id=0, sort=0):
    permission = await catalog.create(PermissionCreate(
        parent_id=parent_id,
        name=name,
        display_name=name.title(),
        resource=f"/api/{name.replace('.', '/')}",
        type="api",
        action="get",
        sort=sort,
    ))
    return permission.id


@pytest.fixture
async def perms(catalog):
    root = await make_permission(catalog, "report")
    return {
        "report": root,
        "report.list": await make_permission(catalog, "report.list", root, 0),
        "report.export": await make_permission(catalog, "report.export", root, 1),
        "audit": await make_permission(catalog, "audit"),
    }


async def test_create_and_duplicate_name(roles):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))

    assert role.id is not None
    assert await roles.permissions_of(role.id) == set()
    with pytest.raises(DuplicateName):
        await roles.create(RoleCreate(name="auditor", display_name="Other"))


async def test_rename_to_existing_name(roles):
    await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    other = await roles.create(RoleCreate(name="viewer", display_name="Viewer"))

    with pytest.raises(DuplicateName):
        await roles.update(other.id, RoleUpdate(name="auditor"))

    updated = await roles.update(other.id, RoleUpdate(display_name="Read only"))
    assert updated.display_name == "Read only"
    assert updated.name == "viewer"


async def test_assign_replaces_whole_set(roles, perms):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))

    await roles.assign_permissions(role.id, {perms["report.list"], perms["report.export"]})
    assert await roles.permissions_of(role.id) == {perms["report.list"], perms["report.export"]}

    await roles.assign_permissions(role.id, {perms["audit"]})
    assert await roles.permissions_of(role.id) == {perms["audit"]}

    await roles.assign_permissions(role.id, set())
    assert await roles.permissions_of(role.id) == set()


async def test_assign_unknown_id_keeps_previous_set(roles, perms):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    await roles.assign_permissions(role.id, {perms["report.list"]})

    with pytest.raises(UnknownPermission) as excinfo:
        await roles.assign_permissions(role.id, {perms["audit"], 9001, 9000})

    assert excinfo.value.permission_id == 9000
    assert await roles.permissions_of(role.id) == {perms["report.list"]}


async def test_assign_to_unknown_role(roles, perms):
    with pytest.raises(UnknownRole):
        await roles.assign_permissions(404, {perms["audit"]})


async def test_effective_permissions_skip_disabled(roles, catalog, perms):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    await roles.assign_permissions(role.id, {perms["report.list"], perms["report.export"]})

    await catalog.set_status(perms["report.export"], 0)

    effective = await roles.effective_permissions(role.id)
    assert {p.id for p in effective} == {perms["report.list"]}
    # still assigned, only not effective
    assert await roles.permissions_of(role.id) == {perms["report.list"], perms["report.export"]}


async def test_disabled_role_grants_nothing(roles, perms):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    await roles.assign_permissions(role.id, {perms["audit"]})

    await roles.set_status(role.id, 0)
    assert await roles.effective_permissions(role.id) == set()

    await roles.set_status(role.id, 1)
    assert {p.id for p in await roles.effective_permissions(role.id)} == {perms["audit"]}


async def test_delete_role_in_use(roles, users):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    await users.create(UserCreate(
        username="alice", email="alice@example.com", password="secret1", role_id=role.id,
    ))

    with pytest.raises(RoleInUse):
        await roles.delete(role.id)


async def test_delete_role(roles):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))

    await roles.delete(role.id)

    with pytest.raises(UnknownRole):
        await roles.get(role.id)


async def test_builtin_roles_protected(seeded, roles):
    admin = await roles.get_by_name("admin")

    with pytest.raises(ProtectedEntity):
        await roles.delete(admin.id)
    with pytest.raises(ProtectedEntity):
        await roles.update(admin.id, RoleUpdate(name="root"))


async def test_list_with_keyword(seeded, roles):
    items, total = await roles.list(PageParams(keyword="gue"))

    assert total == 1
    assert [r.name for r in items] == ["guest"]

    items, total = await roles.list(PageParams(page=1, limit=2))
    assert total == 3
    assert len(items) == 2


async def test_concurrent_assignments_serialize(roles, perms):
    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    sets = [{perms["report.list"]}, {perms["report.export"]}, {perms["audit"]}]

    await asyncio.gather(*(roles.assign_permissions(role.id, s) for s in sets))

    assert await roles.permissions_of(role.id) in sets


async def test_permission_delete_guards(catalog, roles, perms):
    with pytest.raises(PermissionHasChildren):
        await catalog.delete(perms["report"])

    role = await roles.create(RoleCreate(name="auditor", display_name="Auditor"))
    await roles.assign_permissions(role.id, {perms["report.list"], perms["audit"]})

    await catalog.delete(perms["report.list"])

    tree = await catalog.tree()
    assert perms["report.list"] not in tree
    assert [r.id for r in tree.children_of(perms["report"])] == [perms["report.export"]]


async def test_superuser_permission_protected(seeded, catalog):
    tree = await catalog.tree()
    system_all = tree.find_by_name("system.all")

    with pytest.raises(ProtectedEntity):
        await catalog.delete(system_all.id)


async def test_reparent_into_own_subtree_rejected(catalog, perms):
    with pytest.raises(CycleDetected):
        await catalog.update(perms["report"], PermissionUpdate(parent_id=perms["report.list"]))

    moved = await catalog.update(perms["audit"], PermissionUpdate(parent_id=perms["report"]))
    assert moved.parent_id == perms["report"]
    assert (await catalog.tree()).has_children(perms["report"])


async def test_create_with_unknown_parent(catalog):
    with pytest.raises(UnknownPermission):
        await make_permission(catalog, "orphan", parent_id=77)


async def test_snapshot_rebuilt_after_mutation(catalog, perms):
    first = await catalog.tree()
    assert await catalog.tree() is first

    await make_permission(catalog, "report.print", perms["report"], 2)

    second = await catalog.tree()
    assert second is not first
    assert len(second) == len(first) + 1
    assert len(first) == 4


@pytest.mark.parametrize("schema, field", [
    (PermissionUpdate, "display_name"),
    (PermissionUpdate, "parent_id"),
    (RoleUpdate, "name"),
    (RoleUpdate, "status"),
])
def test_update_schemas_reject_null(schema, field):
    with pytest.raises(ValidationError):
        schema(**{field: None})


async def test_not_null_failure_is_not_reported_as_duplicate(catalog, perms):
    # bypasses validation to reach the column constraint
    data = PermissionUpdate.model_construct(_fields_set={"display_name"}, display_name=None)

    with pytest.raises(IntegrityError):
        await catalog.update(perms["audit"], data)

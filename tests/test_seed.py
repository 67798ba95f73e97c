from sqlalchemy import func, select

from domain_admin.features.permissions.models import Permission
from domain_admin.features.roles.models import Role
from domain_admin.features.users.models import User
from domain_admin.seed import DEFAULT_PERMISSIONS, seed_all


async def count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar()


async def test_seed_is_idempotent(seeded):
    await seed_all(seeded, admin_password="admin-pass")

    assert await count(seeded, Permission) == len(DEFAULT_PERMISSIONS)
    assert await count(seeded, Role) == 3
    assert await count(seeded, User) == 1


async def test_seeded_tree_shape(seeded, catalog):
    tree = await catalog.tree()

    users_menu = tree.find_by_name("system.users")
    assert [r.name for r in tree.children_of(users_menu.id)] == [
        "user.list", "user.create", "user.update", "user.delete", "user.detail",
    ]
    assert tree.find_by_name("system.all").is_root
    assert not tree.can_delete(tree.find_by_name("system").id)


async def test_seeded_role_grants(seeded, roles):
    guest = await roles.get_by_name("guest")

    names = sorted(p.name for p in await roles.effective_permissions(guest.id))
    assert names == ["auth.login", "auth.logout", "auth.profile", "dashboard.stats"]


async def test_admin_skipped_without_password(db):
    await seed_all(db, admin_password=None)

    assert await count(db, User) == 0
    assert await count(db, Role) == 3

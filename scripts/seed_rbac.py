"""
Seed script to populate the default RBAC data.

Run this script after configuring the database to create:
- The builtin roles (admin, user, guest)
- The default permission tree
- The admin account, when ADMIN_PASSWORD is set

Usage:
    ADMIN_PASSWORD=... python -m scripts.seed_rbac
"""
import asyncio

from domain_admin.core.database.engine import get_db, init_db
from domain_admin.seed import DEFAULT_ROLES, seed_all
from domain_admin.utils import get_logger


log = get_logger(__name__)


async def main():
    """Main function to seed roles, permissions and the admin account."""
    log.info("Starting RBAC seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            await seed_all(db)

            log.info("RBAC seeding completed successfully!")
            log.info("Default roles:")
            for name, _display_name, description in DEFAULT_ROLES:
                log.info(f"  - {name}: {description}")

        except Exception as e:
            log.error(f"Error seeding RBAC data: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())

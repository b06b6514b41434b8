"""Initialize database schema and seed catalogs.

Creates every table that does not exist yet, then inserts the system roles,
permissions and default device profiles. Safe to run repeatedly.
"""

import asyncio
import sys

from baseplate.config import settings
from baseplate.db import AsyncSessionMaker, engine
from baseplate.models import Base
from baseplate.seed import seed_catalogs


async def init_database():
    """Create missing tables and seed catalogs."""
    print(f"Initializing database: {settings.db.url.split('@')[-1]}")
    print("Creating tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        print("✓ Created missing tables")

    async with AsyncSessionMaker() as session:
        added = await seed_catalogs(session)
    print(f"✓ Seeded {added['roles']} roles, {added['permissions']} permissions, "
          f"{added['device_profiles']} device profiles")

    print("\n✅ Database initialization complete!")
    print(f"Tables: {', '.join(Base.metadata.tables.keys())}")


async def main():
    """Main entry point."""
    try:
        await init_database()
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""Seed default categories script.

Creates the default dairy categories in the configured SQL database.
Categories that already exist are left untouched.

Usage:
    python scripts/seed_categories.py
    python scripts/seed_categories.py --database-url postgresql+asyncpg://...
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from storefront.assets import build_asset_provider
from storefront.catalog.categories import CategoryTree
from storefront.infrastructure.config import settings
from storefront.infrastructure.database import Database
from storefront.infrastructure.logging import configure_logging
from storefront.infrastructure.sql_repository import SqlCategoryStore


async def seed(database_url: str, create_tables: bool = True) -> list[str]:
    """Seed default categories.

    Args:
        database_url: Async database URL.
        create_tables: Create missing tables first.

    Returns:
        Slugs of the default categories.
    """
    database = Database(database_url)
    await database.connect()
    try:
        if create_tables:
            await database.create_all()
        tree = CategoryTree(SqlCategoryStore(database), build_asset_provider(settings))
        categories = await tree.seed_defaults()
        return [category.slug for category in categories]
    finally:
        await database.disconnect()


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed default storefront categories",
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Async SQLAlchemy database URL (default: from settings)",
    )
    parser.add_argument(
        "--no-create-tables",
        action="store_true",
        help="Don't create missing tables before seeding",
    )

    args = parser.parse_args()
    configure_logging(settings.log_level)

    print("=" * 60)
    print("Storefront Category Seeder")
    print("=" * 60)

    try:
        slugs = await seed(args.database_url, create_tables=not args.no_create_tables)
    except Exception as e:
        print(f"  ✗ Error: {e}")
        sys.exit(1)

    for slug in slugs:
        print(f"  ✓ {slug}")
    print()
    print(f"{len(slugs)} default categories present.")


if __name__ == "__main__":
    asyncio.run(main())

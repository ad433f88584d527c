"""
Category Seeding

Loads the default category reference data into the configured storage.
Seeding is idempotent: existing slugs are left untouched.

Usage:
    python -m expense_tracker.seed
"""

import asyncio

import structlog

from expense_tracker.models.expense import Category
from expense_tracker.services.storage import (
    CategoryStorageInterface,
    GoogleSheetsCategoryStorage,
)


logger = structlog.get_logger(__name__)


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(slug="food", name="Food & Dining"),
    Category(slug="transport", name="Transportation"),
    Category(slug="shopping", name="Shopping"),
    Category(slug="entertainment", name="Entertainment"),
    Category(slug="utilities", name="Utilities"),
    Category(slug="healthcare", name="Healthcare"),
    Category(slug="education", name="Education"),
    Category(slug="travel", name="Travel"),
    Category(slug="housing", name="Housing"),
    Category(slug="insurance", name="Insurance"),
    Category(slug="personal", name="Personal Care"),
    Category(slug="gifts", name="Gifts & Donations"),
    Category(slug="investments", name="Investments"),
    Category(slug="other", name="Other"),
)


async def seed_categories(
    storage: CategoryStorageInterface,
    categories: tuple[Category, ...] = DEFAULT_CATEGORIES,
) -> int:
    """
    Insert every category whose slug is not stored yet.

    Returns:
        Number of categories inserted
    """
    inserted = 0
    for category in categories:
        if await storage.upsert_category(category):
            inserted += 1

    logger.info("categories_seeded", inserted=inserted, total=len(categories))
    return inserted


async def main() -> None:
    storage = GoogleSheetsCategoryStorage()
    inserted = await seed_categories(storage)
    print(f"Seeded {inserted} new categories ({len(DEFAULT_CATEGORIES)} defaults)")


if __name__ == "__main__":
    asyncio.run(main())

"""
Seed menu items from menu.json.

Seeding is idempotent:
- Items are matched on (name, category)
- Existing items are only touched when their price or text changed
- Running twice on the same file writes nothing the second time

Usage:
    python -m scripts.seed_menu [--menu-file path/to/menu.json] [--database-url URL]

Environment:
    APP_DATABASE_URL: Database connection (default: sqlite:///qrorder.db)
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

from qrorder.services import menu
from qrorder.storage import SQLAlchemyStorage, Storage

logger = logging.getLogger(__name__)

SYNCED_FIELDS = ("price", "description", "image_url", "allergens", "nutritional_info", "translations")


def load_menu_json(menu_file: str) -> Dict[str, Any]:
    """Load a category-keyed menu from a JSON file."""
    if not os.path.exists(menu_file):
        raise FileNotFoundError(f"Menu file not found: {menu_file}")

    with open(menu_file, "r", encoding="utf-8") as f:
        menu_dict = json.load(f)

    logger.info("Loaded menu from %s with %d categories", menu_file, len(menu_dict))
    return menu_dict


def seed_menu(storage: Storage, menu_dict: Dict[str, Any]) -> Dict[str, int]:
    """
    Insert or refresh menu items.

    Args:
        storage: Storage backend to write to
        menu_dict: {category: [item, ...]}; an item may carry its own "category"

    Returns:
        {'items_created': n, 'items_updated': n, 'items_unchanged': n}
    """
    stats = {"items_created": 0, "items_updated": 0, "items_unchanged": 0}

    existing = {
        (item["name"], item["category"]): item
        for item in menu.get_menu_items(storage)
    }

    with storage.transaction():
        for section, items in menu_dict.items():
            if not isinstance(items, list):
                logger.warning("Skipping section '%s' - not a list", section)
                continue

            for item in items:
                category = item.get("category") or section
                fields = {field: item.get(field) for field in SYNCED_FIELDS if field in item}
                current = existing.get((item["name"], category))

                if current is None:
                    created = menu.create_menu_item(storage, name=item["name"], category=category, **fields)
                    existing[(created["name"], created["category"])] = created
                    stats["items_created"] += 1
                    continue

                changed = {k: v for k, v in fields.items() if current.get(k) != v}
                if changed:
                    menu.update_menu_item(storage, current["id"], **changed)
                    stats["items_updated"] += 1
                else:
                    stats["items_unchanged"] += 1

    logger.info(
        "Seeded menu: %d created, %d updated, %d unchanged",
        stats["items_created"], stats["items_updated"], stats["items_unchanged"],
    )
    return stats


def get_menu_file_path() -> str:
    """Find data/menu.json relative to this script or the working directory."""
    bundled = Path(__file__).parent.parent / "data" / "menu.json"
    if bundled.exists():
        return str(bundled)
    for candidate in ("data/menu.json", "backend/data/menu.json"):
        if Path(candidate).exists():
            return candidate
    raise FileNotFoundError("Could not find data/menu.json")


def main(argv=None) -> int:
    """Command-line interface for menu seeding."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Seed menu items from menu.json")
    parser.add_argument("--menu-file", default=None, help="Path to menu.json (default: data/menu.json)")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: env var APP_DATABASE_URL or sqlite:///qrorder.db)",
    )
    args = parser.parse_args(argv)

    try:
        menu_file = args.menu_file or get_menu_file_path()
        menu_dict = load_menu_json(menu_file)
    except (OSError, ValueError) as e:
        logger.error("Failed to load menu: %s", e)
        return 1

    db_url = args.database_url or os.getenv("APP_DATABASE_URL", "sqlite:///qrorder.db")
    logger.info("Using database: %s", db_url)

    storage = SQLAlchemyStorage(db_url)
    try:
        stats = seed_menu(storage, menu_dict)
    except Exception:
        logger.exception("Seeding failed")
        return 1
    finally:
        storage.close()

    print(
        f"Items created: {stats['items_created']}, "
        f"updated: {stats['items_updated']}, "
        f"unchanged: {stats['items_unchanged']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

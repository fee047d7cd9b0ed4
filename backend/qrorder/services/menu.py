"""Menu items: read access for diners, CRUD for admins."""

import logging
from typing import Any, Dict, List, Optional

from qrorder.errors import NotFoundError, ValidationError
from qrorder.storage.base import Storage, eq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

TABLE = "menu_items"

EDITABLE_FIELDS = (
    "name",
    "description",
    "price",
    "category",
    "image_url",
    "allergens",
    "nutritional_info",
    "translations",
)
TRANSLATABLE_FIELDS = ("name", "description")


def get_menu_items(storage: Storage, category: Optional[str] = None) -> List[Dict[str, Any]]:
    """All items ordered by category, then name."""
    filters = [eq("category", category)] if category else []
    return storage.select(TABLE, filters, order_by=["category", "name"])


def get_menu_item(storage: Storage, item_id: str) -> Dict[str, Any]:
    row = storage.select_one(TABLE, [eq("id", item_id)])
    if row is None:
        raise NotFoundError(f"Menu item {item_id} not found")
    return row


def get_menu_categories(storage: Storage) -> List[str]:
    """Distinct categories in display order."""
    categories = []
    for item in storage.select(TABLE, order_by=["category"]):
        if item["category"] not in categories:
            categories.append(item["category"])
    return categories


def localize_menu_item(item: Dict[str, Any], language: Optional[str]) -> Dict[str, Any]:
    """
    Overlay the translated name/description for a language code.

    Missing languages or fields fall back to the base text.
    """
    translations = item.get("translations") or {}
    overlay = translations.get(language) if language else None
    if not overlay:
        return dict(item)
    localized = dict(item)
    for field in TRANSLATABLE_FIELDS:
        if overlay.get(field):
            localized[field] = overlay[field]
    return localized


def _validate(fields: Dict[str, Any]) -> None:
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValidationError("Menu item name is required")
    if "category" in fields and not (fields["category"] or "").strip():
        raise ValidationError("Menu item category is required")
    if "price" in fields:
        price = fields["price"]
        if price is None or price < 0:
            raise ValidationError("Menu item price must be zero or more")


def create_menu_item(storage: Storage, **fields: Any) -> Dict[str, Any]:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown menu item fields: {', '.join(sorted(unknown))}")
    for required in ("name", "price", "category"):
        if required not in fields:
            raise ValidationError(f"Menu item {required} is required")
    _validate(fields)

    row = storage.insert(TABLE, {
        **{field: fields.get(field) for field in EDITABLE_FIELDS},
        "created_at": now_utc_naive(),
    })
    logger.info("Menu item %s added (%s)", row["name"], row["category"])
    return row


def update_menu_item(storage: Storage, item_id: str, **fields: Any) -> Dict[str, Any]:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown menu item fields: {', '.join(sorted(unknown))}")
    _validate(fields)
    if not fields:
        return get_menu_item(storage, item_id)

    rows = storage.update(TABLE, fields, [eq("id", item_id)])
    if not rows:
        raise NotFoundError(f"Menu item {item_id} not found")
    return rows[0]


def delete_menu_item(storage: Storage, item_id: str) -> None:
    if not storage.delete(TABLE, [eq("id", item_id)]):
        raise NotFoundError(f"Menu item {item_id} not found")
    logger.info("Menu item %s deleted", item_id)

"""
Order submission, editing and status transitions.

Line items are handled as a list of OrderItem everywhere in the service
layer. The conversion to plain JSON-compatible dicts happens only in
serialize_items/deserialize_items, at the storage boundary; older rows
that stored the list as a JSON string are accepted there too.
"""

import json
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from qrorder.errors import ConflictError, NotFoundError, ValidationError
from qrorder.services import menu, sessions
from qrorder.storage.base import Storage, eq, in_, neq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

TABLE = "orders"

PENDING = "pending"
PREPARING = "preparing"
SERVED = "served"
COMPLETED = "completed"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, PREPARING, SERVED, COMPLETED, CANCELLED)
# Orders still on the kitchen board
ACTIVE_STATUSES = (PENDING, PREPARING)
# No more item edits once an order reaches one of these
FINAL_STATUSES = (COMPLETED, CANCELLED)


class OrderItem(BaseModel):
    """One line of an order."""

    menu_item_id: Optional[str] = None
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    instructions: Optional[str] = None


ItemLike = Union[OrderItem, Dict[str, Any]]


def deserialize_items(raw: Union[str, Iterable[ItemLike], None]) -> List[OrderItem]:
    """Parse stored or submitted line items into OrderItem objects."""
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else []
        except json.JSONDecodeError as e:
            raise ValidationError(f"Malformed order items: {e}")
        if not isinstance(raw, list):
            raise ValidationError("Order items must be a list")
    try:
        return [
            item if isinstance(item, OrderItem) else OrderItem.model_validate(item)
            for item in raw
        ]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid order item: {e.errors()[0]['msg']}")


def serialize_items(items: Iterable[OrderItem]) -> List[Dict[str, Any]]:
    return [item.model_dump() for item in items]


def compute_total(items: Iterable[OrderItem]) -> float:
    """Sum of price x quantity, rounded to cents."""
    return round(sum(item.price * item.quantity for item in items), 2)


def apply_menu_prices(storage: Storage, items: Iterable[ItemLike]) -> List[OrderItem]:
    """
    Take name and price from the menu for lines that reference a menu item.

    Lines without menu_item_id are kept as submitted.
    """
    priced = []
    for item in deserialize_items(list(items)):
        if item.menu_item_id:
            try:
                menu_item = menu.get_menu_item(storage, item.menu_item_id)
            except NotFoundError:
                raise ValidationError(f"Unknown menu item {item.menu_item_id}")
            item = item.model_copy(update={"name": menu_item["name"], "price": menu_item["price"]})
        priced.append(item)
    return priced


def _to_order(row: Dict[str, Any]) -> Dict[str, Any]:
    order = dict(row)
    order["order_items"] = serialize_items(deserialize_items(row.get("order_items")))
    return order


def _check_status(status: str) -> None:
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid order status '{status}'. Allowed: {', '.join(ORDER_STATUSES)}"
        )


def create_order(
    storage: Storage,
    session_id: str,
    table_number: int,
    items: Iterable[ItemLike],
    special_instructions: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Insert one pending order for the whole item list.

    The session must be active and belong to table_number.
    """
    parsed = deserialize_items(list(items))
    if not parsed:
        raise ValidationError("Your cart is empty")

    session = sessions.get_session(storage, session_id)
    if not session["is_active"]:
        raise ConflictError(f"Session {session_id} is closed")
    if session["table_number"] != table_number:
        raise ValidationError(
            f"Session {session_id} belongs to table {session['table_number']}, not {table_number}"
        )

    row = storage.insert(TABLE, {
        "session_id": session_id,
        "table_number": table_number,
        "order_items": serialize_items(parsed),
        "total_amount": compute_total(parsed),
        "special_instructions": special_instructions or None,
        "status": PENDING,
        "created_at": now_utc_naive(),
        "updated_at": None,
    })
    logger.info(
        "Order %s created for table %s (%d items, total %.2f)",
        row["id"], table_number, len(parsed), row["total_amount"],
    )
    return _to_order(row)


def get_order(storage: Storage, order_id: str) -> Dict[str, Any]:
    row = storage.select_one(TABLE, [eq("id", order_id)])
    if row is None:
        raise NotFoundError(f"Order {order_id} not found")
    return _to_order(row)


def get_orders_by_session(storage: Storage, session_id: str) -> List[Dict[str, Any]]:
    """Orders of a session, newest first."""
    rows = storage.select(TABLE, [eq("session_id", session_id)], order_by=["-created_at"])
    return [_to_order(r) for r in rows]


def get_orders_by_table_and_session(
    storage: Storage, table_number: int, session_id: str
) -> List[Dict[str, Any]]:
    rows = storage.select(
        TABLE,
        [eq("table_number", table_number), eq("session_id", session_id)],
        order_by=["-created_at"],
    )
    return [_to_order(r) for r in rows]


def list_orders(
    storage: Storage,
    status: Optional[str] = None,
    table_number: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Admin order list with optional status/table filters, newest first."""
    filters = []
    if status is not None:
        _check_status(status)
        filters.append(eq("status", status))
    if table_number is not None:
        filters.append(eq("table_number", table_number))
    rows = storage.select(TABLE, filters, order_by=["-created_at"], limit=limit)
    return [_to_order(r) for r in rows]


def get_active_orders(storage: Storage) -> List[Dict[str, Any]]:
    """Pending and preparing orders, oldest first."""
    rows = storage.select(TABLE, [in_("status", ACTIVE_STATUSES)], order_by=["created_at"])
    return [_to_order(r) for r in rows]


def group_orders_by_table(orders: Iterable[Dict[str, Any]]) -> Dict[int, List[Dict[str, Any]]]:
    grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    for order in orders:
        grouped[order["table_number"]].append(order)
    return dict(sorted(grouped.items()))


def get_session_total(storage: Storage, session_id: str) -> float:
    """Sum of total_amount over the session's non-cancelled orders."""
    rows = storage.select(TABLE, [eq("session_id", session_id), neq("status", CANCELLED)])
    return round(sum(r["total_amount"] for r in rows), 2)


def update_order_status(storage: Storage, order_id: str, status: str) -> Dict[str, Any]:
    """Move an order to a whitelisted status."""
    _check_status(status)
    rows = storage.update(
        TABLE, {"status": status, "updated_at": now_utc_naive()}, [eq("id", order_id)]
    )
    if not rows:
        raise NotFoundError(f"Order {order_id} not found")
    logger.info("Order %s -> %s", order_id, status)
    return _to_order(rows[0])


def update_order_items(
    storage: Storage, order_id: str, items: Iterable[ItemLike]
) -> Optional[Dict[str, Any]]:
    """
    Replace the item list and recompute the total.

    An empty list deletes the order and returns None.
    """
    parsed = deserialize_items(list(items))
    order = get_order(storage, order_id)
    if order["status"] in FINAL_STATUSES:
        raise ConflictError(f"Order {order_id} is {order['status']} and can no longer be edited")

    if not parsed:
        delete_order(storage, order_id)
        return None

    rows = storage.update(
        TABLE,
        {
            "order_items": serialize_items(parsed),
            "total_amount": compute_total(parsed),
            "updated_at": now_utc_naive(),
        },
        [eq("id", order_id)],
    )
    if not rows:
        raise NotFoundError(f"Order {order_id} not found")
    return _to_order(rows[0])


def delete_order_item(storage: Storage, order_id: str, item_index: int) -> Optional[Dict[str, Any]]:
    """
    Remove one line from an order.

    Removing the last line deletes the order row and returns None.
    """
    order = get_order(storage, order_id)
    items = deserialize_items(order["order_items"])
    if item_index < 0 or item_index >= len(items):
        raise NotFoundError(f"Order {order_id} has no item at position {item_index}")
    del items[item_index]
    return update_order_items(storage, order_id, items)


def delete_order(storage: Storage, order_id: str) -> None:
    removed = storage.delete(TABLE, [eq("id", order_id)])
    if not removed:
        raise NotFoundError(f"Order {order_id} not found")
    logger.info("Order %s deleted", order_id)

"""
Explicit state containers for the diner and admin flows.

TableContext identifies which table/session a diner is ordering for.
Cart holds the lines a diner is about to submit; CartStore keeps carts
per session in storage so they survive reloads. AuthContext owns the
admin-status cache for the lifetime of the application.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from qrorder.errors import NotFoundError, ValidationError
from qrorder.services import auth as auth_service
from qrorder.services import orders as order_service
from qrorder.services import sessions, tables
from qrorder.storage.base import Storage, eq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)


@dataclass
class TableContext:
    table_number: Optional[int] = None
    session_id: Optional[str] = None
    is_session_active: bool = False
    error: Optional[str] = None

    @classmethod
    def resolve(
        cls, storage: Storage, table: Any, session: Optional[str] = None
    ) -> "TableContext":
        """
        Work out the diner's session from the QR link parameters.

        A session id in the link is trusted as long as it exists and
        belongs to the table; otherwise the table's active session is used.
        """
        number = tables.validate_table_number(table)

        if session:
            try:
                row = sessions.get_session(storage, session)
            except NotFoundError:
                return cls(number, None, False, "Session not found")
            if row["table_number"] != number:
                return cls(number, None, False, "Session does not belong to this table")
            if not row["is_active"]:
                return cls(number, row["id"], False, "This session has ended")
            return cls(number, row["id"], True)

        active = sessions.get_active_session(storage, number)
        if active is None:
            return cls(number, None, False, "No active session for this table")
        return cls(number, active["id"], True)


class CartLine(BaseModel):
    """A menu item in the cart plus quantity and per-line instructions."""

    id: str  # menu item id
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    instructions: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None


class Cart(BaseModel):
    session_id: str
    table_number: Optional[int] = None
    items: List[CartLine] = Field(default_factory=list)
    special_instructions: str = ""

    def _find(self, item_id: str) -> Optional[CartLine]:
        for line in self.items:
            if line.id == item_id:
                return line
        return None

    def add_item(self, menu_item: Dict[str, Any], quantity: int = 1, instructions: str = "") -> CartLine:
        """Add a menu item; repeated adds of the same item merge quantities."""
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1")
        line = self._find(menu_item["id"])
        if line is not None:
            line.quantity += quantity
            line.instructions = instructions or line.instructions
            return line
        line = CartLine(
            id=menu_item["id"],
            name=menu_item["name"],
            price=menu_item["price"],
            quantity=quantity,
            instructions=instructions,
            description=menu_item.get("description"),
            category=menu_item.get("category"),
            image_url=menu_item.get("image_url"),
        )
        self.items.append(line)
        return line

    def remove_item(self, item_id: str) -> None:
        self.items = [line for line in self.items if line.id != item_id]

    def update_item_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        line = self._find(item_id)
        if line is None:
            raise NotFoundError(f"Item {item_id} is not in the cart")
        line.quantity = quantity

    def update_item_instructions(self, item_id: str, instructions: str) -> None:
        line = self._find(item_id)
        if line is None:
            raise NotFoundError(f"Item {item_id} is not in the cart")
        line.instructions = instructions

    def clear(self) -> None:
        self.items = []
        self.special_instructions = ""

    def total(self) -> float:
        return round(sum(line.price * line.quantity for line in self.items), 2)

    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    def to_order_items(self) -> List[order_service.OrderItem]:
        return [
            order_service.OrderItem(
                menu_item_id=line.id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                instructions=line.instructions or None,
            )
            for line in self.items
        ]


class CartStore:
    """Carts persisted in storage, one per session."""

    TABLE = "carts"

    def __init__(self, storage: Storage):
        self.storage = storage

    def load(self, session_id: str, table_number: Optional[int] = None) -> Cart:
        """Return the saved cart, or a new empty one."""
        row = self.storage.select_one(self.TABLE, [eq("session_id", session_id)])
        if row is None:
            return Cart(session_id=session_id, table_number=table_number)
        try:
            return Cart(
                session_id=session_id,
                table_number=row.get("table_number") or table_number,
                items=row.get("items") or [],
                special_instructions=row.get("special_instructions") or "",
            )
        except ValueError as e:
            # A corrupt saved cart is dropped, not fatal
            logger.error("Error parsing saved cart for session %s: %s", session_id, e)
            return Cart(session_id=session_id, table_number=table_number)

    def save(self, cart: Cart) -> Cart:
        values = {
            "table_number": cart.table_number,
            "items": [line.model_dump() for line in cart.items],
            "special_instructions": cart.special_instructions,
            "updated_at": now_utc_naive(),
        }
        with self.storage.transaction():
            updated = self.storage.update(self.TABLE, values, [eq("session_id", cart.session_id)])
            if not updated:
                self.storage.insert(self.TABLE, {"session_id": cart.session_id, **values})
        return cart

    def discard(self, session_id: str) -> None:
        self.storage.delete(self.TABLE, [eq("session_id", session_id)])

    def submit(self, cart: Cart) -> Dict[str, Any]:
        """
        Turn the cart into one order and empty it.

        The cart is only cleared once the order has been stored.
        """
        if not cart.items:
            raise ValidationError("Your cart is empty")
        if cart.table_number is None:
            raise ValidationError("Cart is not linked to a table")
        order = order_service.create_order(
            self.storage,
            session_id=cart.session_id,
            table_number=cart.table_number,
            items=cart.to_order_items(),
            special_instructions=cart.special_instructions or None,
        )
        cart.clear()
        self.save(cart)
        return order


class AuthContext:
    """Sign-in state shared by admin routes: the admin-status cache."""

    def __init__(self, storage: Storage):
        self.storage = storage
        self.admin_cache = auth_service.AdminStatusCache(storage)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        user = auth_service.sign_in(self.storage, email, password)
        return {"user": user, "is_admin": self.admin_cache.is_admin(user["id"])}

    def is_admin(self, user_id: Optional[str]) -> bool:
        return self.admin_cache.is_admin(user_id)

    def sign_out(self) -> None:
        """Forget every cached admin flag."""
        self.admin_cache.clear()

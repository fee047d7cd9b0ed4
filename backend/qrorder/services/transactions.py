"""
Payment records and checkout.

Checkout records one transaction holding a snapshot of the session's
orders, then closes the session. Both writes run inside a single storage
transaction: if closing the session fails, no transaction row is left
behind.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from qrorder.errors import ConflictError, NotFoundError, ValidationError
from qrorder.services import orders as order_service
from qrorder.services import sessions
from qrorder.storage.base import Storage, eq, gte, lte
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

TABLE = "transactions"

PAYMENT_METHODS = ("cash", "card")


class ShownOrder(BaseModel):
    """An order as it appeared on the operator's checkout screen."""

    id: str
    session_id: str
    total_amount: float
    status: Optional[str] = None


def parse_shown_orders(raw: Iterable[Dict[str, Any]]) -> List[ShownOrder]:
    try:
        return [ShownOrder.model_validate(order) for order in raw]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid order in checkout request: {e.errors()[0]['msg']}")


def create_transaction(
    storage: Storage,
    session_id: str,
    table_number: int,
    total_amount: float,
    payment_method: str,
    order_details: List[Dict[str, Any]],
) -> Dict[str, Any]:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}'. Allowed: {', '.join(PAYMENT_METHODS)}"
        )
    return storage.insert(TABLE, {
        "session_id": session_id,
        "table_number": table_number,
        "total_amount": round(total_amount, 2),
        "payment_method": payment_method,
        "order_details": order_details,
        "created_at": now_utc_naive(),
    })


def get_transaction(storage: Storage, transaction_id: str) -> Dict[str, Any]:
    row = storage.select_one(TABLE, [eq("id", transaction_id)])
    if row is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return row


def get_transactions_by_table(
    storage: Storage,
    table_number: int,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Transactions for a table, newest first, optionally within a time range."""
    filters = [eq("table_number", table_number)]
    if since is not None:
        filters.append(gte("created_at", since))
    if until is not None:
        filters.append(lte("created_at", until))
    return storage.select(TABLE, filters, order_by=["-created_at"])


def get_transactions_by_session(storage: Storage, session_id: str) -> List[Dict[str, Any]]:
    return storage.select(TABLE, [eq("session_id", session_id)], order_by=["-created_at"])


def build_order_snapshot(orders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Freeze the parts of each order a receipt needs."""
    snapshot = []
    for order in orders:
        created_at = order.get("created_at")
        snapshot.append({
            "id": order["id"],
            "order_items": order_service.serialize_items(
                order_service.deserialize_items(order.get("order_items"))
            ),
            "total_amount": order["total_amount"],
            "status": order.get("status"),
            "special_instructions": order.get("special_instructions"),
            "created_at": created_at.isoformat() if isinstance(created_at, datetime) else created_at,
        })
    return snapshot


def _check_shown_orders(
    shown: List[ShownOrder],
    session_id: str,
    stored: List[Dict[str, Any]],
    billable: List[Dict[str, Any]],
    total: float,
) -> None:
    """Reject an operator's order list that no longer matches storage."""
    stored_by_id = {o["id"]: o for o in stored}
    seen = set()
    for order in shown:
        if order.session_id != session_id:
            raise ValidationError(f"Order {order.id} does not belong to session {session_id}")
        if order.id not in stored_by_id:
            raise ValidationError(f"Unknown order {order.id} in session {session_id}")
        if order.id in seen:
            raise ValidationError(f"Order {order.id} is listed more than once")
        seen.add(order.id)

    shown_billable = [
        o for o in shown if stored_by_id[o.id]["status"] != order_service.CANCELLED
    ]
    shown_total = round(sum(o.total_amount for o in shown_billable), 2)
    if {o.id for o in shown_billable} != {o["id"] for o in billable} or shown_total != total:
        raise ValidationError(
            f"Order total {shown_total:.2f} does not match session total {total:.2f}; refresh and retry"
        )


def checkout(
    storage: Storage,
    session_id: str,
    table_number: int,
    orders: Optional[List[Dict[str, Any]]] = None,
    payment_method: str = "cash",
) -> Dict[str, Any]:
    """
    Record the session's payment and close the session.

    orders is the list the operator was looking at. It is only used to
    detect a stale screen: its ids and total must match the session's
    stored billable orders. The receipt snapshot always comes from
    storage. Cancelled orders are not billed.

    Returns {"transaction": row, "session": closed session row}.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}'. Allowed: {', '.join(PAYMENT_METHODS)}"
        )

    session = sessions.get_session(storage, session_id)
    if session["table_number"] != table_number:
        raise ValidationError(
            f"Session {session_id} belongs to table {session['table_number']}, not {table_number}"
        )
    if not session["is_active"]:
        raise ConflictError(f"Session {session_id} is already closed")

    stored = order_service.get_orders_by_session(storage, session_id)
    billable = [o for o in stored if o["status"] != order_service.CANCELLED]
    if not billable:
        raise ValidationError("Nothing to check out: the session has no orders")
    total = round(sum(o["total_amount"] for o in billable), 2)

    if orders is not None:
        _check_shown_orders(parse_shown_orders(orders), session_id, stored, billable, total)

    with storage.transaction():
        transaction = create_transaction(
            storage,
            session_id=session_id,
            table_number=table_number,
            total_amount=total,
            payment_method=payment_method,
            order_details=build_order_snapshot(billable),
        )
        closed = sessions.close_session(storage, table_number)
        if closed["already_closed"] or closed["session"]["id"] != session_id:
            raise ConflictError(f"Session {session_id} was closed during checkout")

    logger.info(
        "Checkout for table %s: transaction %s, total %.2f (%s)",
        table_number, transaction["id"], total, payment_method,
    )
    return {"transaction": transaction, "session": closed["session"]}

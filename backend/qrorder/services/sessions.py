"""
Table session lifecycle.

A session is the open/occupied period of one table. Opening is
idempotent: an already active session is returned as-is. Closing marks
the session inactive with an end timestamp and frees the table. A close
that loses a race against another close is reported as already closed
rather than as a failure.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from qrorder.errors import ConflictError, NotFoundError
from qrorder.services import tables
from qrorder.storage.base import Storage, eq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

TABLE = "table_sessions"


def get_table_sessions(storage: Storage, active_only: bool = False) -> List[Dict[str, Any]]:
    filters = [eq("is_active", True)] if active_only else []
    return storage.select(TABLE, filters, order_by=["table_number", "-started_at"])


def get_active_session(storage: Storage, table_number: int) -> Optional[Dict[str, Any]]:
    """Return the active session for a table, or None."""
    return storage.select_one(
        TABLE, [eq("table_number", table_number), eq("is_active", True)]
    )


def get_session(storage: Storage, session_id: str) -> Dict[str, Any]:
    row = storage.select_one(TABLE, [eq("id", session_id)])
    if row is None:
        raise NotFoundError(f"Session {session_id} not found")
    return row


def open_session(storage: Storage, table_number: Any) -> Dict[str, Any]:
    """
    Open a session for a table, or return the one already active.

    Creating a session marks the table Occupied. If another caller opens
    the same table concurrently, the store's one-active-session rule
    rejects our insert and the winner's session is returned instead.
    """
    number = tables.validate_table_number(table_number)

    existing = get_active_session(storage, number)
    if existing:
        return existing

    try:
        with storage.transaction():
            session = storage.insert(TABLE, {
                "table_number": number,
                "is_active": True,
                "started_at": now_utc_naive(),
                "ended_at": None,
            })
            tables.set_table_status_by_number(storage, number, tables.OCCUPIED)
    except ConflictError:
        winner = get_active_session(storage, number)
        if winner is None:
            raise
        logger.warning("Concurrent open on table %s; reusing session %s", number, winner["id"])
        return winner

    logger.info("Opened session %s for table %s", session["id"], number)
    return session


def close_session(storage: Storage, table_number: Any) -> Dict[str, Any]:
    """
    Close the active session of a table and mark the table Available.

    Returns {"session": row, "already_closed": bool}. Raises NotFoundError
    when the table has no active session.
    """
    number = tables.validate_table_number(table_number)

    session = get_active_session(storage, number)
    if session is None:
        raise NotFoundError(f"No active session found for table {number}")

    with storage.transaction():
        # The is_active filter makes a second concurrent close a no-op
        closed = storage.update(
            TABLE,
            {"is_active": False, "ended_at": now_utc_naive()},
            [eq("id", session["id"]), eq("is_active", True)],
        )
        # A close that lost the race must not free a table someone reopened
        if closed:
            tables.set_table_status_by_number(storage, number, tables.AVAILABLE)

    if not closed:
        logger.warning("Session %s on table %s was already closed", session["id"], number)
        return {"session": get_session(storage, session["id"]), "already_closed": True}

    logger.info("Closed session %s for table %s", session["id"], number)
    return {"session": closed[0], "already_closed": False}


def session_qr_url(base_url: str, table_number: int, session_id: str) -> str:
    """URL a diner opens to join a specific session."""
    query = urlencode({"table": table_number, "session": session_id})
    return f"{base_url.rstrip('/')}/menu?{query}"


def table_menu_url(base_url: str, table_number: int) -> str:
    """URL printed on the table's QR code; resolves to the active session."""
    return f"{base_url.rstrip('/')}/menu?{urlencode({'table': table_number})}"

"""Restaurant table management."""

import logging
from typing import Any, Dict, List, Optional

from qrorder.errors import ConflictError, NotFoundError, ValidationError
from qrorder.storage.base import Storage, eq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

TABLE = "restaurant_tables"

AVAILABLE = "Available"
OCCUPIED = "Occupied"
TABLE_STATUSES = (AVAILABLE, OCCUPIED)


def validate_table_number(value: Any) -> int:
    """Coerce a table number to a positive int or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError("Please enter a valid table number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid table number")
    if isinstance(value, float) and value != number:
        raise ValidationError("Please enter a valid table number")
    if number <= 0:
        raise ValidationError("Please enter a valid table number")
    return number


def get_tables(storage: Storage) -> List[Dict[str, Any]]:
    return storage.select(TABLE, order_by=["table_number"])


def get_table(storage: Storage, table_id: str) -> Dict[str, Any]:
    row = storage.select_one(TABLE, [eq("id", table_id)])
    if row is None:
        raise NotFoundError(f"Table {table_id} not found")
    return row


def get_table_by_number(storage: Storage, table_number: int) -> Optional[Dict[str, Any]]:
    return storage.select_one(TABLE, [eq("table_number", table_number)])


def add_table(
    storage: Storage,
    table_number: Any,
    section: Optional[str] = None,
    capacity: Optional[int] = None,
) -> Dict[str, Any]:
    """Create a table. New tables start Available."""
    number = validate_table_number(table_number)
    if capacity is not None and capacity <= 0:
        raise ValidationError("Capacity must be greater than zero")

    if get_table_by_number(storage, number) is not None:
        raise ConflictError(f"Table {number} already exists")

    row = storage.insert(TABLE, {
        "table_number": number,
        "section": section,
        "capacity": capacity,
        "status": AVAILABLE,
        "created_at": now_utc_naive(),
    })
    logger.info("Added table %s", number)
    return row


def delete_table(storage: Storage, table_id: str) -> None:
    """Delete a table. An occupied table must be closed out first."""
    table = get_table(storage, table_id)
    if table["status"] == OCCUPIED:
        raise ConflictError(
            f"Table {table['table_number']} is occupied; end its session first"
        )
    storage.delete(TABLE, [eq("id", table_id)])
    logger.info("Deleted table %s", table["table_number"])


def _check_status(status: str) -> None:
    if status not in TABLE_STATUSES:
        raise ValidationError(
            f"Invalid table status '{status}'. Allowed: {', '.join(TABLE_STATUSES)}"
        )


def update_table_status(storage: Storage, table_id: str, status: str) -> Dict[str, Any]:
    _check_status(status)
    rows = storage.update(TABLE, {"status": status}, [eq("id", table_id)])
    if not rows:
        raise NotFoundError(f"Table {table_id} not found")
    return rows[0]


def set_table_status_by_number(
    storage: Storage, table_number: int, status: str
) -> List[Dict[str, Any]]:
    """
    Set the status of the table with this number.

    Sessions may exist for table numbers that were never registered as
    tables; in that case nothing is updated and an empty list is returned.
    """
    _check_status(status)
    return storage.update(TABLE, {"status": status}, [eq("table_number", table_number)])

"""
Checkout and transaction history API router.

Checkout records the payment for a session and closes it in one step.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from qrorder.db.dependencies import get_storage, require_admin
from qrorder.services import transactions
from qrorder.storage import Storage
from qrorder.utils.time_utils import parse_iso, parse_iso_end


router = APIRouter(tags=["checkout"])


class CheckoutRequest(BaseModel):
    session_id: str
    table_number: int
    payment_method: str = "cash"
    # Orders as shown to the operator; omitted means "all of the session's orders"
    orders: Optional[list[dict[str, Any]]] = None


class TransactionResponse(BaseModel):
    id: str
    session_id: str
    table_number: int
    total_amount: float
    payment_method: str
    order_details: list[dict[str, Any]]
    created_at: Optional[datetime] = None


class CheckoutResponse(BaseModel):
    status: str
    transaction: TransactionResponse
    session_id: str
    ended_at: Optional[datetime] = None


@router.post("/api/checkout", response_model=CheckoutResponse, summary="Check out a table session (admin-only)")
async def checkout(
    request: CheckoutRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    """
    Record a transaction for the session and close it.

    - Snapshot of billable orders is stored with the transaction
    - The table becomes Available again
    - Nothing is written if any step fails
    """
    result = transactions.checkout(
        storage,
        session_id=request.session_id,
        table_number=request.table_number,
        orders=request.orders,
        payment_method=request.payment_method,
    )
    return CheckoutResponse(
        status="closed",
        transaction=result["transaction"],
        session_id=result["session"]["id"],
        ended_at=result["session"]["ended_at"],
    )


@router.get("/api/transactions", response_model=list[TransactionResponse], summary="Transaction history (admin-only)")
async def list_transactions(
    table_number: Optional[int] = Query(None, description="Filter by table"),
    session_id: Optional[str] = Query(None, description="Filter by session"),
    from_date: Optional[str] = Query(None, description="created_at >= from_date (ISO format)"),
    to_date: Optional[str] = Query(None, description="created_at <= to_date (ISO format; a bare date covers the whole day)"),
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    if session_id:
        return transactions.get_transactions_by_session(storage, session_id)
    if table_number is None:
        raise HTTPException(status_code=400, detail="table_number or session_id is required")
    try:
        since = parse_iso(from_date)
        until = parse_iso_end(to_date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")
    return transactions.get_transactions_by_table(storage, table_number, since=since, until=until)


@router.get("/api/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return transactions.get_transaction(storage, transaction_id)

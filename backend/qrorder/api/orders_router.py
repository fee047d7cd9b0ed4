"""Order API router: diner submission, admin edits and the kitchen board."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from qrorder.db.dependencies import get_storage, require_admin
from qrorder.services import orders as order_service
from qrorder.services.orders import OrderItem
from qrorder.storage import Storage


router = APIRouter(prefix="/api/orders", tags=["orders"])


class CreateOrderRequest(BaseModel):
    session_id: str
    table_number: int
    order_items: list[OrderItem]
    special_instructions: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    session_id: str
    table_number: int
    order_items: list[OrderItem]
    total_amount: float
    special_instructions: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionOrdersResponse(BaseModel):
    session_id: str
    orders: list[OrderResponse]
    total: float


class StatusUpdateRequest(BaseModel):
    status: str


class ReplaceItemsRequest(BaseModel):
    order_items: list[OrderItem]


class OrderEditResponse(BaseModel):
    """Result of an item edit; order is None when the edit deleted it."""
    deleted: bool
    order: Optional[OrderResponse] = None


class KitchenTable(BaseModel):
    table_number: int
    orders: list[OrderResponse]


@router.post("", response_model=OrderResponse, status_code=201, summary="Submit an order for a session")
async def create_order(request: CreateOrderRequest, storage: Storage = Depends(get_storage)):
    return order_service.create_order(
        storage,
        session_id=request.session_id,
        table_number=request.table_number,
        items=order_service.apply_menu_prices(storage, request.order_items),
        special_instructions=request.special_instructions,
    )


@router.get("", response_model=list[OrderResponse], summary="List orders (admin-only)")
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    table_number: Optional[int] = Query(None, description="Filter by table"),
    limit: int = Query(100, ge=1, le=500),
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return order_service.list_orders(storage, status=status, table_number=table_number, limit=limit)


@router.get("/kitchen", response_model=list[KitchenTable], summary="Active orders grouped by table (admin-only)")
async def kitchen_board(
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    grouped = order_service.group_orders_by_table(order_service.get_active_orders(storage))
    return [KitchenTable(table_number=number, orders=orders) for number, orders in grouped.items()]


@router.get("/session/{session_id}", response_model=SessionOrdersResponse, summary="Orders of a session")
async def session_orders(session_id: str, storage: Storage = Depends(get_storage)):
    return SessionOrdersResponse(
        session_id=session_id,
        orders=order_service.get_orders_by_session(storage, session_id),
        total=order_service.get_session_total(storage, session_id),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, storage: Storage = Depends(get_storage)):
    return order_service.get_order(storage, order_id)


@router.patch("/{order_id}/status", response_model=OrderResponse, summary="Change order status (admin-only)")
async def update_status(
    order_id: str,
    request: StatusUpdateRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return order_service.update_order_status(storage, order_id, request.status)


@router.put("/{order_id}/items", response_model=OrderEditResponse, summary="Replace order items (admin-only)")
async def replace_items(
    order_id: str,
    request: ReplaceItemsRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    order = order_service.update_order_items(storage, order_id, request.order_items)
    return OrderEditResponse(deleted=order is None, order=order)


@router.delete("/{order_id}/items/{item_index}", response_model=OrderEditResponse, summary="Remove one order line (admin-only)")
async def delete_item(
    order_id: str,
    item_index: int,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    order = order_service.delete_order_item(storage, order_id, item_index)
    return OrderEditResponse(deleted=order is None, order=order)


@router.delete("/{order_id}", summary="Delete an order (admin-only)")
async def delete_order(
    order_id: str,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    order_service.delete_order(storage, order_id)
    return {"status": "ok"}

"""Diner cart API router. Carts are kept per session."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from qrorder.context import Cart, CartLine, CartStore
from qrorder.db.dependencies import get_cart_store, get_storage
from qrorder.errors import ConflictError
from qrorder.services import menu, sessions
from qrorder.storage import Storage


router = APIRouter(prefix="/api/cart", tags=["cart"])


class CartResponse(BaseModel):
    session_id: str
    table_number: Optional[int]
    items: list[CartLine]
    special_instructions: str
    total: float
    item_count: int


class AddItemRequest(BaseModel):
    menu_item_id: str
    quantity: int = Field(1, ge=1)
    instructions: str = ""


class UpdateLineRequest(BaseModel):
    quantity: Optional[int] = None
    instructions: Optional[str] = None


class InstructionsRequest(BaseModel):
    special_instructions: str


def _response(cart: Cart) -> CartResponse:
    return CartResponse(
        session_id=cart.session_id,
        table_number=cart.table_number,
        items=cart.items,
        special_instructions=cart.special_instructions,
        total=cart.total(),
        item_count=cart.item_count(),
    )


def _load_for_session(storage: Storage, store: CartStore, session_id: str) -> Cart:
    """Load the cart of an active session."""
    session = sessions.get_session(storage, session_id)
    if not session["is_active"]:
        raise ConflictError("This session has ended")
    return store.load(session_id, table_number=session["table_number"])


@router.get("/{session_id}", response_model=CartResponse)
async def get_cart(
    session_id: str,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    return _response(_load_for_session(storage, store, session_id))


@router.post("/{session_id}/items", response_model=CartResponse, summary="Add a menu item to the cart")
async def add_item(
    session_id: str,
    request: AddItemRequest,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    cart.add_item(menu.get_menu_item(storage, request.menu_item_id), request.quantity, request.instructions)
    return _response(store.save(cart))


@router.patch("/{session_id}/items/{menu_item_id}", response_model=CartResponse, summary="Change quantity or instructions")
async def update_item(
    session_id: str,
    menu_item_id: str,
    request: UpdateLineRequest,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    if request.instructions is not None:
        cart.update_item_instructions(menu_item_id, request.instructions)
    if request.quantity is not None:
        cart.update_item_quantity(menu_item_id, request.quantity)
    return _response(store.save(cart))


@router.delete("/{session_id}/items/{menu_item_id}", response_model=CartResponse)
async def remove_item(
    session_id: str,
    menu_item_id: str,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    cart.remove_item(menu_item_id)
    return _response(store.save(cart))


@router.put("/{session_id}/instructions", response_model=CartResponse)
async def set_instructions(
    session_id: str,
    request: InstructionsRequest,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    cart.special_instructions = request.special_instructions
    return _response(store.save(cart))


@router.delete("/{session_id}", response_model=CartResponse, summary="Empty the cart")
async def clear_cart(
    session_id: str,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    cart.clear()
    return _response(store.save(cart))


@router.post("/{session_id}/submit", status_code=201, summary="Place the cart as one order")
async def submit_cart(
    session_id: str,
    storage: Storage = Depends(get_storage),
    store: CartStore = Depends(get_cart_store),
):
    cart = _load_for_session(storage, store, session_id)
    order = store.submit(cart)
    return {"status": "ok", "order_id": order["id"], "total_amount": order["total_amount"]}

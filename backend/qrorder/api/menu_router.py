"""Menu API router."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from qrorder.db.dependencies import get_storage, require_admin
from qrorder.services import menu
from qrorder.storage import Storage


class MenuItemResponse(BaseModel):
    """Menu item response model."""
    id: str
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    allergens: Optional[List[str]] = None
    nutritional_info: Optional[Dict[str, Any]] = None
    translations: Optional[Dict[str, Dict[str, str]]] = None
    created_at: Optional[datetime] = None


class CreateMenuItemRequest(BaseModel):
    name: str
    price: float
    category: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    allergens: Optional[List[str]] = None
    nutritional_info: Optional[Dict[str, Any]] = None
    translations: Optional[Dict[str, Dict[str, str]]] = None


class UpdateMenuItemRequest(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    allergens: Optional[List[str]] = None
    nutritional_info: Optional[Dict[str, Any]] = None
    translations: Optional[Dict[str, Dict[str, str]]] = None


router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("", response_model=List[MenuItemResponse])
async def list_menu_items(
    category: Optional[str] = Query(None, description="Only this category"),
    lang: Optional[str] = Query(None, description="Language code for translated names"),
    storage: Storage = Depends(get_storage),
):
    """Menu ordered by category then name, translated when lang is given."""
    return [menu.localize_menu_item(item, lang) for item in menu.get_menu_items(storage, category)]


@router.get("/categories", response_model=List[str])
async def list_categories(storage: Storage = Depends(get_storage)):
    return menu.get_menu_categories(storage)


@router.get("/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(
    item_id: str,
    lang: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
):
    return menu.localize_menu_item(menu.get_menu_item(storage, item_id), lang)


@router.post("", response_model=MenuItemResponse, status_code=201, summary="Add menu item (admin-only)")
async def create_menu_item(
    request: CreateMenuItemRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return menu.create_menu_item(storage, **request.model_dump())


@router.put("/{item_id}", response_model=MenuItemResponse, summary="Update menu item (admin-only)")
async def update_menu_item(
    item_id: str,
    request: UpdateMenuItemRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    """Only fields present in the request body are changed."""
    return menu.update_menu_item(storage, item_id, **request.model_dump(exclude_unset=True))


@router.delete("/{item_id}", summary="Delete menu item (admin-only)")
async def delete_menu_item(
    item_id: str,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    menu.delete_menu_item(storage, item_id)
    return {"status": "ok"}

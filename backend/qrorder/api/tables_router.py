"""Restaurant table management API router."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from qrorder import config
from qrorder.db.dependencies import get_storage, require_admin
from qrorder.services import sessions, tables
from qrorder.storage import Storage
from qrorder.utils.qr import render_qr_png


router = APIRouter(prefix="/api/tables", tags=["tables"])


class TableResponse(BaseModel):
    id: str
    table_number: int
    section: Optional[str] = None
    capacity: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None


class CreateTableRequest(BaseModel):
    table_number: int
    section: Optional[str] = None
    capacity: Optional[int] = None


class UpdateStatusRequest(BaseModel):
    status: str


@router.get("", response_model=list[TableResponse], summary="List tables by number")
async def list_tables(storage: Storage = Depends(get_storage)):
    return tables.get_tables(storage)


@router.post("", response_model=TableResponse, status_code=201, summary="Add a table (admin-only)")
async def create_table(
    request: CreateTableRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return tables.add_table(storage, request.table_number, request.section, request.capacity)


@router.delete("/{table_id}", summary="Delete a table (admin-only)")
async def delete_table(
    table_id: str,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    tables.delete_table(storage, table_id)
    return {"status": "ok"}


@router.patch("/{table_id}/status", response_model=TableResponse, summary="Set table status (admin-only)")
async def update_table_status(
    table_id: str,
    request: UpdateStatusRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return tables.update_table_status(storage, table_id, request.status)


@router.get("/{table_number}/qr", summary="QR code (PNG) linking to the table's menu")
async def table_qr(table_number: int, box_size: int = Query(10, ge=1, le=40, description="Pixels per QR module")):
    number = tables.validate_table_number(table_number)
    url = sessions.table_menu_url(config.get_public_base_url(), number)
    return Response(content=render_qr_png(url, box_size=box_size), media_type="image/png")

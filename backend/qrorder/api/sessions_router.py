"""Table session API router: open, close, and diner context resolution."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from qrorder import config
from qrorder.context import TableContext
from qrorder.db.dependencies import get_storage, require_admin
from qrorder.services import sessions
from qrorder.storage import Storage
from qrorder.utils.qr import render_qr_png


router = APIRouter(prefix="/api/sessions", tags=["sessions"])


class SessionResponse(BaseModel):
    id: str
    table_number: int
    is_active: bool
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


class TableNumberRequest(BaseModel):
    table_number: int


class CloseSessionResponse(BaseModel):
    session: SessionResponse
    already_closed: bool


class TableContextResponse(BaseModel):
    table_number: Optional[int]
    session_id: Optional[str]
    is_session_active: bool
    error: Optional[str] = None
    qr_url: Optional[str] = None


@router.get("", response_model=list[SessionResponse], summary="List sessions (admin-only)")
async def list_sessions(
    active_only: bool = Query(False, description="Only sessions that are still open"),
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return sessions.get_table_sessions(storage, active_only=active_only)


@router.get("/context", response_model=TableContextResponse, summary="Resolve the diner's table/session")
async def resolve_context(
    table: int = Query(..., description="Table number from the QR link"),
    session: Optional[str] = Query(None, description="Session id from the QR link"),
    storage: Storage = Depends(get_storage),
):
    ctx = TableContext.resolve(storage, table, session)
    qr_url = None
    if ctx.is_session_active:
        qr_url = sessions.session_qr_url(config.get_public_base_url(), ctx.table_number, ctx.session_id)
    return TableContextResponse(
        table_number=ctx.table_number,
        session_id=ctx.session_id,
        is_session_active=ctx.is_session_active,
        error=ctx.error,
        qr_url=qr_url,
    )


@router.get("/table/{table_number}", response_model=SessionResponse, summary="Active session of a table")
async def get_active_session(table_number: int, storage: Storage = Depends(get_storage)):
    session = sessions.get_active_session(storage, table_number)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No active session for table {table_number}")
    return session


@router.post("/open", response_model=SessionResponse, summary="Open (or reuse) a table session (admin-only)")
async def open_session(
    request: TableNumberRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return sessions.open_session(storage, request.table_number)


@router.post("/close", response_model=CloseSessionResponse, summary="End a session without checkout (admin-only)")
async def close_session(
    request: TableNumberRequest,
    storage: Storage = Depends(get_storage),
    admin: dict = Depends(require_admin),
):
    return sessions.close_session(storage, request.table_number)


@router.get("/{session_id}/qr", summary="QR code (PNG) for joining a session")
async def session_qr(session_id: str, storage: Storage = Depends(get_storage)):
    session = sessions.get_session(storage, session_id)
    url = sessions.session_qr_url(config.get_public_base_url(), session["table_number"], session["id"])
    return Response(content=render_qr_png(url), media_type="image/png")

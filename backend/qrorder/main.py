"""
FastAPI application for the QR table ordering backend.

Storage backend is selected by STORAGE_BACKEND (inmemory by default).
Domain errors raised by the services are turned into JSON responses by
the exception handlers registered here.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qrorder import __version__, config
from qrorder.api import (
    auth_router,
    cart_router,
    checkout_router,
    menu_router,
    orders_router,
    sessions_router,
    tables_router,
)
from qrorder.context import AuthContext
from qrorder.errors import AppError
from qrorder.storage import InMemoryStorage, SQLAlchemyStorage, Storage

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.get_log_level(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_storage() -> Storage:
    """Build the storage backend named by STORAGE_BACKEND."""
    backend = config.get_storage_backend()
    if backend in ("sqlalchemy", "sqlite"):
        return SQLAlchemyStorage(config.get_database_url(), use_alembic=config.use_alembic())
    if backend != "inmemory":
        logger.warning("Unknown STORAGE_BACKEND '%s', falling back to inmemory", backend)
    return InMemoryStorage()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(storage: Optional[Storage] = None) -> FastAPI:
    app = FastAPI(title="QR Table Ordering Backend", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if storage is None:
        storage = create_storage()
    app.state.storage = storage
    app.state.auth = AuthContext(storage)

    app.add_exception_handler(AppError, app_error_handler)

    for module in (
        auth_router,
        tables_router,
        sessions_router,
        orders_router,
        cart_router,
        checkout_router,
        menu_router,
    ):
        app.include_router(module.router)

    @app.get("/config", summary="Return public URL info for frontends")
    async def get_config():
        return {"public_base_url": config.get_public_base_url(), "version": __version__}

    return app


configure_logging()
app = create_app()

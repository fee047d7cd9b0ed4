import os
import sys

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from qrorder.context import AuthContext
from qrorder.db.dependencies import create_access_token
from qrorder.main import app
from qrorder.services import auth as auth_service
from qrorder.services import menu, sessions, tables
from qrorder.storage import InMemoryStorage, SQLAlchemyStorage


@pytest.fixture
def storage():
    """Fresh in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def sqlite_storage(tmp_path):
    """SQLAlchemy storage on a temporary SQLite file."""
    store = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'test.db'}")
    yield store
    store.close()


@pytest.fixture(params=["inmemory", "sqlite"])
def any_storage(request, tmp_path):
    """Runs a test once per storage backend."""
    if request.param == "inmemory":
        yield InMemoryStorage()
        return
    store = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'contract.db'}")
    yield store
    store.close()


@pytest.fixture
def reset_app_state():
    """Give the app a fresh in-memory storage and auth context for each test."""
    original_storage = app.state.storage
    original_auth = app.state.auth
    store = InMemoryStorage()
    app.state.storage = store
    app.state.auth = AuthContext(store)
    yield store
    app.state.storage = original_storage
    app.state.auth = original_auth


@pytest_asyncio.fixture
async def async_client(reset_app_state):
    """Create async HTTP client for testing."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_user(reset_app_state):
    return auth_service.sign_up(
        reset_app_state,
        email="owner@example.com",
        password="secret123",
        confirm_password="secret123",
        username="owner",
        company_name="Taverna",
    )


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({"sub": admin_user["id"], "email": admin_user["email"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def open_table(storage):
    """Table 5 registered with an active session."""
    tables.add_table(storage, 5, section="Terrace", capacity=4)
    return sessions.open_session(storage, 5)


@pytest.fixture
def sample_menu(storage):
    return {
        "salad": menu.create_menu_item(storage, name="Greek Salad", price=9.5, category="Starters"),
        "steak": menu.create_menu_item(storage, name="Pork Chop", price=15.0, category="Mains"),
        "beer": menu.create_menu_item(
            storage,
            name="Beer",
            price=4.0,
            category="Drinks",
            translations={"el": {"name": "Μπύρα"}},
        ),
    }

"""
SQLAlchemyStorage specifics: persistence, migrations and concurrent writers.
"""

import threading
from datetime import datetime

import pytest
from sqlalchemy import inspect

from qrorder.errors import StorageError
from qrorder.services import orders, sessions, tables
from qrorder.storage import SQLAlchemyStorage, eq


class TestPersistence:

    def test_data_survives_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'persist.db'}"
        store = SQLAlchemyStorage(url)
        tables.add_table(store, 7)
        session = sessions.open_session(store, 7)
        store.close()

        reopened = SQLAlchemyStorage(url)
        try:
            assert tables.get_table_by_number(reopened, 7)["status"] == tables.OCCUPIED
            assert sessions.get_active_session(reopened, 7)["id"] == session["id"]
        finally:
            reopened.close()

    def test_datetimes_come_back_as_datetimes(self, sqlite_storage):
        session = sessions.open_session(sqlite_storage, 2)
        fetched = sessions.get_session(sqlite_storage, session["id"])
        assert isinstance(fetched["started_at"], datetime)
        assert fetched["started_at"].tzinfo is None

    def test_unknown_column_rejected(self, sqlite_storage):
        with pytest.raises(StorageError):
            sqlite_storage.insert("menu_items", {"name": "x", "price": 1.0, "category": "c", "colour": "red"})

    def test_unknown_filter_column_rejected(self, sqlite_storage):
        with pytest.raises(StorageError):
            sqlite_storage.select("menu_items", [eq("colour", "red")])


class TestAlembicMigrations:

    def test_upgrade_creates_schema(self, tmp_path):
        store = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'migrated.db'}", use_alembic=True)
        try:
            inspector = inspect(store.engine)
            names = set(inspector.get_table_names())
            assert {
                "restaurant_tables", "table_sessions", "orders", "menu_items",
                "transactions", "users", "admin_users", "carts", "alembic_version",
            } <= names
            index_names = {ix["name"] for ix in inspector.get_indexes("table_sessions")}
            assert "uq_table_sessions_active_table" in index_names
        finally:
            store.close()

    def test_migrated_schema_is_usable(self, tmp_path):
        store = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'migrated.db'}", use_alembic=True)
        try:
            tables.add_table(store, 1)
            session = sessions.open_session(store, 1)
            order = orders.create_order(store, session["id"], 1, [{"name": "Soup", "price": 4.0, "quantity": 2}])
            assert orders.get_order(store, order["id"])["total_amount"] == 8.0
        finally:
            store.close()


class TestConcurrentWrites:

    def test_concurrent_orders_same_session(self, sqlite_storage):
        session = sessions.open_session(sqlite_storage, 1)
        num_threads = 4
        orders_per_thread = 10
        errors = []
        error_lock = threading.Lock()

        def add_orders(thread_id: int) -> None:
            try:
                for i in range(orders_per_thread):
                    orders.create_order(
                        sqlite_storage,
                        session["id"],
                        1,
                        [{"name": f"Item t{thread_id}-{i}", "price": 1.0, "quantity": 1}],
                    )
            except Exception as exc:
                with error_lock:
                    errors.append(exc)

        threads = [threading.Thread(target=add_orders, args=(t,)) for t in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(orders.get_orders_by_session(sqlite_storage, session["id"])) == num_threads * orders_per_thread
        assert orders.get_session_total(sqlite_storage, session["id"]) == float(num_threads * orders_per_thread)

    def test_concurrent_open_yields_one_session(self, sqlite_storage):
        tables.add_table(sqlite_storage, 9)
        results = []
        errors = []
        lock = threading.Lock()
        barrier = threading.Barrier(4)

        def open_table():
            barrier.wait()
            try:
                session = sessions.open_session(sqlite_storage, 9)
                with lock:
                    results.append(session["id"])
            except Exception as exc:
                with lock:
                    errors.append(exc)

        threads = [threading.Thread(target=open_table) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(results)) == 1
        active = sessions.get_table_sessions(sqlite_storage, active_only=True)
        assert len(active) == 1

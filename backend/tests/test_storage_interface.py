"""
Contract tests run against every Storage implementation.

Both backends must behave the same for inserts, filters, ordering,
updates, deletes, uniqueness and transactions.
"""

from datetime import datetime, timedelta

import pytest

from qrorder.errors import ConflictError, StorageError
from qrorder.storage import eq, gt, gte, in_, lt, lte, neq


def _menu_row(name, price, category="Mains"):
    return {
        "name": name,
        "price": price,
        "category": category,
        "created_at": datetime(2024, 1, 1, 12, 0),
    }


class TestInsertAndSelect:

    def test_insert_assigns_string_id(self, any_storage):
        row = any_storage.insert("menu_items", _menu_row("Soup", 5.0))
        assert isinstance(row["id"], str)
        assert len(row["id"]) == 36

    def test_insert_keeps_given_id(self, any_storage):
        row = any_storage.insert("menu_items", {**_menu_row("Soup", 5.0), "id": "fixed-id"})
        assert row["id"] == "fixed-id"
        assert any_storage.select_one("menu_items", [eq("id", "fixed-id")])["name"] == "Soup"

    def test_duplicate_id_conflicts(self, any_storage):
        any_storage.insert("menu_items", {**_menu_row("Soup", 5.0), "id": "dup"})
        with pytest.raises(ConflictError):
            any_storage.insert("menu_items", {**_menu_row("Bread", 1.0), "id": "dup"})

    def test_json_columns_round_trip(self, any_storage):
        row = any_storage.insert("menu_items", {
            **_menu_row("Salad", 7.0),
            "allergens": ["nuts", "milk"],
            "translations": {"el": {"name": "Σαλάτα"}},
        })
        stored = any_storage.select_one("menu_items", [eq("id", row["id"])])
        assert stored["allergens"] == ["nuts", "milk"]
        assert stored["translations"]["el"]["name"] == "Σαλάτα"

    def test_returned_rows_are_copies(self, any_storage):
        row = any_storage.insert("menu_items", {**_menu_row("Salad", 7.0), "allergens": ["nuts"]})
        row["allergens"].append("milk")
        fetched = any_storage.select_one("menu_items", [eq("id", row["id"])])
        fetched["name"] = "Changed"
        again = any_storage.select_one("menu_items", [eq("id", row["id"])])
        assert again["allergens"] == ["nuts"]
        assert again["name"] == "Salad"

    def test_select_one_returns_none_without_match(self, any_storage):
        assert any_storage.select_one("menu_items", [eq("name", "Nope")]) is None

    def test_unknown_table_rejected(self, any_storage):
        with pytest.raises(StorageError):
            any_storage.select("no_such_table")


class TestFilters:

    @pytest.fixture
    def priced(self, any_storage):
        for name, price in [("A", 1.0), ("B", 2.0), ("C", 3.0), ("D", 4.0)]:
            any_storage.insert("menu_items", _menu_row(name, price))
        return any_storage

    def _names(self, store, filters):
        return sorted(r["name"] for r in store.select("menu_items", filters))

    def test_eq_and_neq(self, priced):
        assert self._names(priced, [eq("price", 2.0)]) == ["B"]
        assert self._names(priced, [neq("price", 2.0)]) == ["A", "C", "D"]

    def test_range_operators(self, priced):
        assert self._names(priced, [gt("price", 2.0)]) == ["C", "D"]
        assert self._names(priced, [gte("price", 2.0)]) == ["B", "C", "D"]
        assert self._names(priced, [lt("price", 2.0)]) == ["A"]
        assert self._names(priced, [lte("price", 2.0)]) == ["A", "B"]

    def test_in_operator(self, priced):
        assert self._names(priced, [in_("name", ["A", "D", "Z"])]) == ["A", "D"]

    def test_filters_are_combined_with_and(self, priced):
        assert self._names(priced, [gte("price", 2.0), lt("price", 4.0)]) == ["B", "C"]

    def test_unknown_filter_column_rejected(self, priced):
        with pytest.raises(StorageError):
            priced.select("menu_items", [eq("colour", "red")])
        with pytest.raises(StorageError):
            priced.update("menu_items", {"price": 9.0}, [eq("colour", "red")])
        with pytest.raises(StorageError):
            priced.delete("menu_items", [eq("colour", "red")])
        assert len(priced.select("menu_items")) == 4

    def test_datetime_range(self, any_storage):
        base = datetime(2024, 5, 1, 10, 0)
        for i in range(3):
            any_storage.insert("menu_items", {**_menu_row(f"M{i}", 1.0), "created_at": base + timedelta(hours=i)})
        rows = any_storage.select("menu_items", [gte("created_at", base + timedelta(hours=1))])
        assert sorted(r["name"] for r in rows) == ["M1", "M2"]


class TestOrderingAndLimit:

    def test_order_by_ascending_and_descending(self, any_storage):
        for name, price in [("B", 2.0), ("A", 3.0), ("C", 1.0)]:
            any_storage.insert("menu_items", _menu_row(name, price))
        assert [r["name"] for r in any_storage.select("menu_items", order_by=["price"])] == ["C", "B", "A"]
        assert [r["name"] for r in any_storage.select("menu_items", order_by=["-price"])] == ["A", "B", "C"]

    def test_order_by_multiple_columns(self, any_storage):
        any_storage.insert("menu_items", _menu_row("Zucchini", 1.0, "Starters"))
        any_storage.insert("menu_items", _menu_row("Bread", 1.0, "Starters"))
        any_storage.insert("menu_items", _menu_row("Apple pie", 1.0, "Desserts"))
        rows = any_storage.select("menu_items", order_by=["category", "name"])
        assert [r["name"] for r in rows] == ["Apple pie", "Bread", "Zucchini"]

    def test_limit(self, any_storage):
        for i in range(5):
            any_storage.insert("menu_items", _menu_row(f"M{i}", float(i)))
        rows = any_storage.select("menu_items", order_by=["-price"], limit=2)
        assert [r["price"] for r in rows] == [4.0, 3.0]


class TestUpdateAndDelete:

    def test_update_returns_changed_rows(self, any_storage):
        a = any_storage.insert("menu_items", _menu_row("A", 1.0))
        any_storage.insert("menu_items", _menu_row("B", 2.0))
        rows = any_storage.update("menu_items", {"price": 1.5}, [eq("id", a["id"])])
        assert len(rows) == 1
        assert rows[0]["price"] == 1.5
        assert rows[0]["name"] == "A"

    def test_update_without_match_returns_empty(self, any_storage):
        assert any_storage.update("menu_items", {"price": 1.0}, [eq("id", "missing")]) == []

    def test_update_is_guarded_by_filters(self, any_storage):
        any_storage.insert("table_sessions", {
            "id": "s1", "table_number": 1, "is_active": True,
            "started_at": datetime(2024, 1, 1), "ended_at": None,
        })
        first = any_storage.update("table_sessions", {"is_active": False}, [eq("id", "s1"), eq("is_active", True)])
        second = any_storage.update("table_sessions", {"is_active": False}, [eq("id", "s1"), eq("is_active", True)])
        assert len(first) == 1
        assert second == []

    def test_delete_returns_count(self, any_storage):
        for i in range(3):
            any_storage.insert("menu_items", _menu_row(f"M{i}", 1.0, "Drinks"))
        any_storage.insert("menu_items", _menu_row("Keep", 1.0, "Mains"))
        assert any_storage.delete("menu_items", [eq("category", "Drinks")]) == 3
        assert any_storage.delete("menu_items", [eq("category", "Drinks")]) == 0
        assert [r["name"] for r in any_storage.select("menu_items")] == ["Keep"]

    def test_clear_empties_every_table(self, any_storage):
        any_storage.insert("menu_items", _menu_row("A", 1.0))
        any_storage.insert("users", {
            "email": "a@example.com", "password_hash": "x", "created_at": datetime(2024, 1, 1),
        })
        any_storage.clear()
        assert any_storage.select("menu_items") == []
        assert any_storage.select("users") == []


class TestUniqueness:

    def test_unique_column_conflict(self, any_storage):
        row = {"email": "a@example.com", "password_hash": "x", "created_at": datetime(2024, 1, 1)}
        any_storage.insert("users", row)
        with pytest.raises(ConflictError):
            any_storage.insert("users", dict(row))

    def test_one_active_session_per_table(self, any_storage):
        started = datetime(2024, 1, 1)
        any_storage.insert("table_sessions", {"table_number": 3, "is_active": True, "started_at": started})
        with pytest.raises(ConflictError):
            any_storage.insert("table_sessions", {"table_number": 3, "is_active": True, "started_at": started})

    def test_inactive_sessions_do_not_conflict(self, any_storage):
        started = datetime(2024, 1, 1)
        any_storage.insert("table_sessions", {"table_number": 3, "is_active": False, "started_at": started})
        any_storage.insert("table_sessions", {"table_number": 3, "is_active": False, "started_at": started})
        any_storage.insert("table_sessions", {"table_number": 3, "is_active": True, "started_at": started})
        assert len(any_storage.select("table_sessions", [eq("table_number", 3)])) == 3


class TestTransactions:

    def test_commit_on_success(self, any_storage):
        with any_storage.transaction():
            any_storage.insert("menu_items", _menu_row("A", 1.0))
            any_storage.insert("menu_items", _menu_row("B", 2.0))
        assert len(any_storage.select("menu_items")) == 2

    def test_rollback_on_error(self, any_storage):
        any_storage.insert("menu_items", _menu_row("Existing", 1.0))
        with pytest.raises(RuntimeError):
            with any_storage.transaction():
                any_storage.insert("menu_items", _menu_row("A", 1.0))
                any_storage.update("menu_items", {"price": 9.0}, [eq("name", "Existing")])
                raise RuntimeError("boom")
        rows = any_storage.select("menu_items")
        assert [r["name"] for r in rows] == ["Existing"]
        assert rows[0]["price"] == 1.0

    def test_nested_transaction_joins_outer(self, any_storage):
        with pytest.raises(RuntimeError):
            with any_storage.transaction():
                with any_storage.transaction():
                    any_storage.insert("menu_items", _menu_row("Inner", 1.0))
                raise RuntimeError("outer fails")
        assert any_storage.select("menu_items") == []

    def test_reads_inside_transaction_see_writes(self, any_storage):
        with any_storage.transaction():
            row = any_storage.insert("menu_items", _menu_row("A", 1.0))
            assert any_storage.select_one("menu_items", [eq("id", row["id"])]) is not None

    def test_conflict_inside_transaction_rolls_back(self, any_storage):
        row = {"email": "a@example.com", "password_hash": "x", "created_at": datetime(2024, 1, 1)}
        any_storage.insert("users", row)
        with pytest.raises(ConflictError):
            with any_storage.transaction():
                any_storage.insert("menu_items", _menu_row("A", 1.0))
                any_storage.insert("users", dict(row))
        assert any_storage.select("menu_items") == []

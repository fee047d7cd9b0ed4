"""Tests for restaurant tables and the session lifecycle."""

import pytest

from qrorder.errors import ConflictError, NotFoundError, ValidationError
from qrorder.services import sessions, tables


class TestTables:

    def test_add_table_starts_available(self, storage):
        table = tables.add_table(storage, 4, section="Garden", capacity=6)
        assert table["status"] == tables.AVAILABLE
        assert table["table_number"] == 4
        assert table["section"] == "Garden"

    def test_tables_listed_by_number(self, storage):
        for number in (12, 3, 7):
            tables.add_table(storage, number)
        assert [t["table_number"] for t in tables.get_tables(storage)] == [3, 7, 12]

    def test_duplicate_number_rejected(self, storage):
        tables.add_table(storage, 4)
        with pytest.raises(ConflictError):
            tables.add_table(storage, 4)

    @pytest.mark.parametrize("value", [0, -1, "abc", None, 2.5, True])
    def test_invalid_numbers_rejected(self, storage, value):
        with pytest.raises(ValidationError):
            tables.add_table(storage, value)
        assert tables.get_tables(storage) == []

    def test_numeric_string_accepted(self, storage):
        assert tables.add_table(storage, "8")["table_number"] == 8

    def test_invalid_capacity_rejected(self, storage):
        with pytest.raises(ValidationError):
            tables.add_table(storage, 1, capacity=0)

    def test_update_status(self, storage):
        table = tables.add_table(storage, 1)
        assert tables.update_table_status(storage, table["id"], tables.OCCUPIED)["status"] == tables.OCCUPIED

    def test_update_status_rejects_unknown_value(self, storage):
        table = tables.add_table(storage, 1)
        with pytest.raises(ValidationError):
            tables.update_table_status(storage, table["id"], "Reserved")

    def test_delete_available_table(self, storage):
        table = tables.add_table(storage, 1)
        tables.delete_table(storage, table["id"])
        assert tables.get_tables(storage) == []

    def test_delete_occupied_table_refused(self, storage):
        table = tables.add_table(storage, 1)
        sessions.open_session(storage, 1)
        with pytest.raises(ConflictError):
            tables.delete_table(storage, table["id"])

    def test_delete_missing_table(self, storage):
        with pytest.raises(NotFoundError):
            tables.delete_table(storage, "missing")


class TestSessionLifecycle:

    def test_open_marks_table_occupied(self, storage):
        tables.add_table(storage, 5)
        session = sessions.open_session(storage, 5)
        assert session["is_active"] is True
        assert session["ended_at"] is None
        assert tables.get_table_by_number(storage, 5)["status"] == tables.OCCUPIED

    def test_open_is_idempotent(self, storage):
        tables.add_table(storage, 5)
        first = sessions.open_session(storage, 5)
        second = sessions.open_session(storage, 5)
        assert first["id"] == second["id"]
        assert len(sessions.get_table_sessions(storage)) == 1

    def test_open_for_unregistered_table(self, storage):
        session = sessions.open_session(storage, 42)
        assert session["table_number"] == 42
        assert tables.get_table_by_number(storage, 42) is None

    def test_open_rejects_invalid_number(self, storage):
        with pytest.raises(ValidationError):
            sessions.open_session(storage, "x")
        assert sessions.get_table_sessions(storage) == []

    def test_close_frees_table(self, storage, open_table):
        result = sessions.close_session(storage, 5)
        assert result["already_closed"] is False
        assert result["session"]["id"] == open_table["id"]
        assert result["session"]["is_active"] is False
        assert result["session"]["ended_at"] is not None
        assert tables.get_table_by_number(storage, 5)["status"] == tables.AVAILABLE
        assert sessions.get_active_session(storage, 5) is None

    def test_close_without_active_session(self, storage):
        tables.add_table(storage, 5)
        with pytest.raises(NotFoundError):
            sessions.close_session(storage, 5)

    def test_close_race_reports_already_closed(self, storage, open_table, monkeypatch):
        stale = dict(open_table)
        # Another caller closes the session between our lookup and our update
        monkeypatch.setattr(sessions, "get_active_session", lambda s, n: stale)
        sessions.close_session(storage, 5)
        result = sessions.close_session(storage, 5)
        assert result["already_closed"] is True
        assert result["session"]["is_active"] is False

    def test_stale_close_leaves_reopened_table_occupied(self, storage, open_table, monkeypatch):
        sessions.close_session(storage, 5)
        reopened = sessions.open_session(storage, 5)
        # A late close still holding the first session
        monkeypatch.setattr(sessions, "get_active_session", lambda s, n: dict(open_table))
        result = sessions.close_session(storage, 5)
        monkeypatch.undo()

        assert result["already_closed"] is True
        assert sessions.get_active_session(storage, 5)["id"] == reopened["id"]
        assert tables.get_table_by_number(storage, 5)["status"] == tables.OCCUPIED

    def test_reopen_after_close_creates_new_session(self, storage, open_table):
        sessions.close_session(storage, 5)
        reopened = sessions.open_session(storage, 5)
        assert reopened["id"] != open_table["id"]
        assert len(sessions.get_table_sessions(storage)) == 2
        assert len(sessions.get_table_sessions(storage, active_only=True)) == 1

    def test_conflicting_insert_returns_winner(self, storage, monkeypatch):
        tables.add_table(storage, 5)
        winner = sessions.open_session(storage, 5)
        calls = {"n": 0}
        real_lookup = sessions.get_active_session

        def first_lookup_misses(store, number):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_lookup(store, number)

        monkeypatch.setattr(sessions, "get_active_session", first_lookup_misses)
        assert sessions.open_session(storage, 5)["id"] == winner["id"]
        assert len(sessions.get_table_sessions(storage)) == 1

    def test_get_session_missing(self, storage):
        with pytest.raises(NotFoundError):
            sessions.get_session(storage, "missing")


class TestQrUrls:

    def test_session_url_carries_table_and_session(self):
        url = sessions.session_qr_url("https://order.example.com/", 5, "abc")
        assert url == "https://order.example.com/menu?table=5&session=abc"

    def test_table_url(self):
        assert sessions.table_menu_url("http://localhost:3000", 3) == "http://localhost:3000/menu?table=3"

"""Tests for menu items, categories and translations."""

import pytest

from qrorder.errors import NotFoundError, ValidationError
from qrorder.services import menu


class TestMenuQueries:

    def test_items_ordered_by_category_then_name(self, storage):
        menu.create_menu_item(storage, name="Wine", price=5.0, category="Drinks")
        menu.create_menu_item(storage, name="Beer", price=4.0, category="Drinks")
        menu.create_menu_item(storage, name="Salad", price=8.0, category="Appetizers")
        names = [i["name"] for i in menu.get_menu_items(storage)]
        assert names == ["Salad", "Beer", "Wine"]

    def test_filter_by_category(self, storage, sample_menu):
        assert [i["name"] for i in menu.get_menu_items(storage, "Drinks")] == ["Beer"]

    def test_categories_distinct_and_sorted(self, storage, sample_menu):
        menu.create_menu_item(storage, name="Wine", price=5.0, category="Drinks")
        assert menu.get_menu_categories(storage) == ["Drinks", "Mains", "Starters"]

    def test_missing_item(self, storage):
        with pytest.raises(NotFoundError):
            menu.get_menu_item(storage, "missing")


class TestLocalization:

    def test_translated_name(self, sample_menu):
        localized = menu.localize_menu_item(sample_menu["beer"], "el")
        assert localized["name"] == "Μπύρα"
        assert sample_menu["beer"]["name"] == "Beer"

    def test_missing_language_falls_back(self, sample_menu):
        assert menu.localize_menu_item(sample_menu["beer"], "fr")["name"] == "Beer"
        assert menu.localize_menu_item(sample_menu["salad"], "el")["name"] == "Greek Salad"

    def test_no_language(self, sample_menu):
        assert menu.localize_menu_item(sample_menu["beer"], None)["name"] == "Beer"


class TestMenuAdmin:

    def test_create_requires_fields(self, storage):
        with pytest.raises(ValidationError):
            menu.create_menu_item(storage, name="Soup", price=4.0)

    @pytest.mark.parametrize("fields", [
        {"name": " ", "price": 4.0, "category": "Starters"},
        {"name": "Soup", "price": -1.0, "category": "Starters"},
        {"name": "Soup", "price": 4.0, "category": ""},
    ])
    def test_create_validates(self, storage, fields):
        with pytest.raises(ValidationError):
            menu.create_menu_item(storage, **fields)
        assert menu.get_menu_items(storage) == []

    def test_unknown_field_rejected(self, storage):
        with pytest.raises(ValidationError):
            menu.create_menu_item(storage, name="Soup", price=4.0, category="Starters", colour="red")

    def test_update_changes_only_given_fields(self, storage, sample_menu):
        updated = menu.update_menu_item(storage, sample_menu["salad"]["id"], price=10.0)
        assert updated["price"] == 10.0
        assert updated["name"] == "Greek Salad"

    def test_update_missing(self, storage):
        with pytest.raises(NotFoundError):
            menu.update_menu_item(storage, "missing", price=1.0)

    def test_delete(self, storage, sample_menu):
        menu.delete_menu_item(storage, sample_menu["salad"]["id"])
        with pytest.raises(NotFoundError):
            menu.delete_menu_item(storage, sample_menu["salad"]["id"])

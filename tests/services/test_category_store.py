"""Tests for CategoryStore."""

import pytest

from stock_kernel.exceptions import CategoryInUseError, MissingFieldError, NotFoundError


class TestCreate:
    def test_create_assigns_sequential_ids(self, categories, clock):
        first = categories.create({"name": "Electronics"})
        second = categories.create({"name": "Furniture"})

        assert (first.id, second.id) == ("CAT-001", "CAT-002")
        assert first.created_at == clock.now()
        assert first.active

    def test_defaults_for_icon_and_color(self, categories, settings):
        category = categories.create({"name": "Tools"})
        assert category.icon == settings.category.icon
        assert category.color == settings.category.color

    def test_explicit_icon_and_color(self, categories):
        category = categories.create({"name": "Tools", "icon": "T", "color": "#000000"})
        assert (category.icon, category.color) == ("T", "#000000")

    def test_name_is_trimmed(self, categories):
        assert categories.create({"name": "  Tools  "}).name == "Tools"

    @pytest.mark.parametrize("data", [{}, {"name": ""}, {"name": "   "}])
    def test_missing_name(self, categories, data):
        with pytest.raises(MissingFieldError) as exc_info:
            categories.create(data)
        assert exc_info.value.fields == ["name"]
        assert categories.list() == []

    def test_persisted(self, categories, documents):
        categories.create({"name": "Tools"})
        assert documents.version == 1
        assert documents.backend.get("data") is not None


class TestRead:
    def test_get_and_find(self, categories, category):
        assert categories.get(category.id) == category
        assert categories.find("CAT-999") is None
        with pytest.raises(NotFoundError):
            categories.get("CAT-999")

    def test_name_of(self, categories, category):
        assert categories.name_of(category.id) == "Electronics"
        assert categories.name_of("CAT-999") is None


class TestUpdate:
    def test_merges_fields(self, categories, category, clock):
        clock.advance(60)
        updated = categories.update(category.id, {"description": "Gadgets", "color": "#111111"})

        assert updated.name == "Electronics"
        assert updated.description == "Gadgets"
        assert updated.color == "#111111"
        assert updated.created_at == category.created_at
        assert updated.modified_at == clock.now()
        assert categories.get(category.id) == updated

    def test_id_cannot_change(self, categories, category):
        updated = categories.update(category.id, {"id": "CAT-777", "name": "Devices"})
        assert updated.id == category.id
        assert updated.name == "Devices"

    def test_deactivate(self, categories, category):
        assert not categories.update(category.id, {"active": False}).active

    def test_unknown(self, categories):
        with pytest.raises(NotFoundError):
            categories.update("CAT-999", {"name": "x"})


class TestDelete:
    def test_delete_unreferenced(self, categories, category):
        categories.delete(category.id)
        assert categories.find(category.id) is None

    def test_delete_referenced_blocked(self, categories, category, create_product, captured_logs):
        create_product()
        create_product()

        with pytest.raises(CategoryInUseError) as exc_info:
            categories.delete(category.id)

        assert exc_info.value.product_count == 2
        assert categories.find(category.id) is not None
        assert any(r["message"] == "category_delete_blocked" for r in captured_logs())

    def test_inactive_products_still_block(self, categories, category, create_product, products, ledger):
        created = create_product()
        ledger.register_entry(created.id, 1, "PURCHASE", "admin")
        products.delete(created.id)

        with pytest.raises(CategoryInUseError):
            categories.delete(category.id)

    def test_delete_unknown(self, categories):
        with pytest.raises(NotFoundError):
            categories.delete("CAT-999")

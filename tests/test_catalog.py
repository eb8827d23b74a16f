"""
Tests for catalog maintenance (unique names, delete vs hide, restore).
"""

import pytest
from decimal import Decimal

from bookkeeping.ledger import CatalogKind, DuplicateNameError, RemovalOutcome
from bookkeeping.ledger import LedgerEngine, catalog
from bookkeeping.models import AppState, CartItem, OpeningInventoryLine, PaymentMethod


class TestCreate:
    """Adding catalog entries."""

    def test_names_are_unique_case_insensitively(self, engine):
        """Test that a second 'HARINA' is rejected."""
        engine.add_inventory_item("Harina")
        with pytest.raises(DuplicateNameError):
            engine.add_inventory_item("HARINA")

    def test_same_name_allowed_across_catalogs(self, engine):
        """Test that uniqueness is per catalog."""
        engine.add_inventory_item("Pan")
        engine.add_product("Pan", price=500)
        assert len(engine.state.products) == 1

    def test_duplicate_leaves_state_untouched(self, engine):
        """Test that a failed add does not commit anything."""
        engine.add_provider("Molino")
        with pytest.raises(DuplicateNameError):
            engine.add_provider("molino ")
        assert len(engine.state.providers) == 1

    def test_quick_create_with_sale_price(self, engine):
        """Test that a sale price creates a linked product."""
        item, product = engine.quick_create_item("Queque", reference_cost=300, sale_price=900)

        assert item.cost == Decimal("300")
        assert product.inventory_item_id == item.id
        assert product.price == Decimal("900")

    def test_quick_create_without_price(self, engine):
        """Test that no sale price means no product."""
        item, product = engine.quick_create_item("Canela")
        assert product is None
        assert engine.state.products == []

    def test_reference_cost_replaced_by_first_batch(self, engine):
        """Test that the reference cost gives way to the first real purchase."""
        engine.add_inventory_item("Canela", cost=999)
        engine.purchase_inventory("Canela", quantity=2, amount=100, method=PaymentMethod.CASH)
        [canela] = engine.state.inventory
        assert canela.cost == Decimal("50")


class TestRemove:
    """Hard delete when unreferenced, hide otherwise."""

    def test_unreferenced_item_is_deleted(self, engine):
        """Test that an item nobody used disappears."""
        item = engine.add_inventory_item("Canela")
        assert engine.remove_catalog_entry(CatalogKind.INVENTORY, item.id) == RemovalOutcome.DELETED
        assert engine.state.inventory == []

    def test_item_with_batches_is_hidden(self, stocked):
        """Test that an item with stock is only hidden."""
        engine, harina_id, _ = stocked
        assert engine.remove_catalog_entry(CatalogKind.INVENTORY, harina_id) == RemovalOutcome.HIDDEN
        hidden = next(i for i in engine.state.inventory if i.id == harina_id)
        assert hidden.hidden
        assert hidden not in catalog.active(engine.state.inventory)

    def test_opening_stock_item_is_hidden(self, clock):
        """Test that an opening item with stock but no batches is only hidden."""
        engine = LedgerEngine(clock=clock)
        engine.initialize(
            cash=1000,
            inventory=[OpeningInventoryLine(name="Harina", cost=Decimal("50"), stock=Decimal("10"))],
        )
        [harina] = engine.state.inventory

        assert engine.remove_catalog_entry(CatalogKind.INVENTORY, harina.id) == RemovalOutcome.HIDDEN
        assert engine.state.inventory[0].hidden
        assert engine.identity_check().balanced

    def test_item_referenced_by_history_is_hidden(self, stocked):
        """Test that a fully consumed item still referenced by a purchase is hidden."""
        engine, harina_id, _ = stocked
        engine.count_inventory({harina_id: 0})

        assert engine.remove_catalog_entry(CatalogKind.INVENTORY, harina_id) == RemovalOutcome.HIDDEN

    def test_product_referenced_by_sale_is_hidden(self, engine):
        """Test that a sold product is kept for the history."""
        product = engine.add_product("Pan", price=500)
        engine.register_sale([CartItem(product_id=product.id, name="Pan", quantity=1, price=500)], PaymentMethod.CASH)

        assert engine.remove_catalog_entry(CatalogKind.PRODUCT, product.id) == RemovalOutcome.HIDDEN

    def test_provider_referenced_by_name(self, engine):
        """Test that provider references match by name, case-insensitively."""
        provider = engine.add_provider("Molino")
        engine.pay_expense(100, PaymentMethod.CASH, "Transporte", provider_name="MOLINO")

        assert engine.remove_catalog_entry(CatalogKind.PROVIDER, provider.id) == RemovalOutcome.HIDDEN

    def test_expense_type_unreferenced(self, engine):
        """Test that an unused expense type is deleted."""
        expense_type = engine.add_expense_type("Gas")
        assert engine.remove_catalog_entry(CatalogKind.EXPENSE_TYPE, expense_type.id) == RemovalOutcome.DELETED

    def test_missing_entry(self, engine):
        """Test that an unknown id reports not_found."""
        assert engine.remove_catalog_entry(CatalogKind.PROVIDER, "nope") == RemovalOutcome.NOT_FOUND


class TestRestore:
    """Un-hiding."""

    def test_restore_hidden_item(self, stocked):
        """Test that a hidden entry comes back to the pickers."""
        engine, harina_id, _ = stocked
        engine.remove_catalog_entry(CatalogKind.INVENTORY, harina_id)

        restored = engine.restore_catalog_entry(CatalogKind.INVENTORY, harina_id)

        assert restored.id == harina_id
        assert not restored.hidden
        names = [i.name for i in catalog.active(engine.state.inventory)]
        assert "Harina" in names

    def test_restore_missing(self, engine):
        """Test that restoring an unknown id returns None."""
        assert engine.restore_catalog_entry(CatalogKind.PRODUCT, "nope") is None


class TestLookups:
    """Pure helpers over a state."""

    def test_active_sorted_by_name(self):
        """Test that active entries are sorted and exclude hidden ones."""
        state = AppState()
        catalog.add_provider(state, "Zeta")
        catalog.add_provider(state, "alfa")
        hidden = catalog.add_provider(state, "Medio")
        hidden.hidden = True

        assert [p.name for p in catalog.active(state.providers)] == ["alfa", "Zeta"]

    def test_find_by_name_trims(self):
        """Test that lookups ignore case and surrounding whitespace."""
        state = AppState()
        catalog.add_expense_type(state, "Planilla")
        assert catalog.find_by_name(state.expense_types, "  planilla ") is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

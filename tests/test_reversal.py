"""
Tests for the reversal engine (void + contra-entry).
"""

import pytest
from decimal import Decimal

from bookkeeping.ledger import RevertStatus
from bookkeeping.ledger.reversal import split_cogs
from bookkeeping.models import (
    CartItem,
    IngredientRequest,
    PaymentMethod,
    ReversalDetails,
    TransactionStatus,
)


def _snapshot(engine):
    """Asset total plus aggregated income figures."""
    totals = engine.totals()
    return (
        engine.accounts.total_assets,
        totals.revenue,
        totals.cost_of_goods,
        totals.expenses,
    )


def _assert_voided_with_one_contra(engine, tx_id):
    state = engine.state
    original = state.find_transaction(tx_id)
    assert original.status == TransactionStatus.VOIDED
    assert original.voiding_tx_id is not None

    contras = [t for t in state.transactions if t.is_contra and t.voiding_tx_id == tx_id]
    assert len(contras) == 1
    assert contras[0].id == original.voiding_tx_id
    assert isinstance(contras[0].details, ReversalDetails)
    assert contras[0].amount == original.amount


class TestRoundTrip:
    """Operation then revert restores the books."""

    def test_revert_expense(self, engine):
        """Test that an expense reversal restores bank and expenses."""
        before = _snapshot(engine)
        tx = engine.pay_expense(5000, PaymentMethod.BANK, "Luz")

        result = engine.revert(tx.id)

        assert result.reverted
        assert result.status == RevertStatus.REVERTED
        assert _snapshot(engine) == before
        assert engine.accounts.bank == Decimal("100000")
        assert engine.accounts.expenses == Decimal("0")
        _assert_voided_with_one_contra(engine, tx.id)
        assert engine.identity_check().balanced

    def test_revert_inventory_purchase(self, engine):
        """Test that a purchase reversal removes the batch it created."""
        before = _snapshot(engine)
        tx = engine.purchase_inventory("Harina", quantity=10, amount=10000, method=PaymentMethod.BANK)

        engine.revert(tx.id)

        assert _snapshot(engine) == before
        item = next(i for i in engine.state.inventory if i.id == tx.details.item_id)
        assert item.stock == Decimal("0")
        assert item.batches == []
        assert engine.accounts.inventory == Decimal("0")
        _assert_voided_with_one_contra(engine, tx.id)

    def test_revert_asset_purchase(self, engine):
        """Test that an asset purchase reversal removes the asset."""
        before = _snapshot(engine)
        tx = engine.purchase_asset("Batidora", quantity=1, amount=20000, method=PaymentMethod.CASH)

        engine.revert(tx.id)

        assert _snapshot(engine) == before
        assert engine.accounts.cash == Decimal("50000")
        assert engine.state.assets == []

    def test_revert_asset_purchase_shrinks_existing_asset(self, engine):
        """Test that reverting a second purchase of an asset keeps the first."""
        engine.purchase_asset("Sillas", quantity=4, amount=4000, method=PaymentMethod.CASH)
        tx = engine.purchase_asset("Sillas", quantity=2, amount=2000, method=PaymentMethod.CASH)

        engine.revert(tx.id)

        [asset] = engine.state.assets
        assert asset.quantity == Decimal("4")
        assert asset.value == Decimal("4000")
        assert engine.identity_check().balanced

    def test_revert_periodic_sale(self, stocked):
        """Test that a periodic sale reversal restores cash and revenue only."""
        engine, harina_id, _ = stocked
        before = _snapshot(engine)
        tx = engine.register_sale([CartItem(name="Café", quantity=2, price=1500)], PaymentMethod.CASH)

        engine.revert(tx.id)

        assert _snapshot(engine) == before
        harina = next(i for i in engine.state.inventory if i.id == harina_id)
        assert harina.stock == Decimal("10")
        assert len(harina.batches) == 1

    def test_revert_perpetual_sale_refunds_inventory(self, perpetual_engine):
        """Test that a sale with cogs puts the units back at their cost."""
        engine = perpetual_engine
        purchase = engine.purchase_inventory("Pan", quantity=10, amount=2000, method=PaymentMethod.BANK)
        pan_id = purchase.details.item_id
        product = engine.add_product("Pan Casero", price=500, inventory_item_id=pan_id)
        before = _snapshot(engine)

        sale = engine.register_sale(
            [CartItem(product_id=product.id, name="Pan Casero", quantity=3, price=500)],
            PaymentMethod.CASH,
        )
        assert sale.cogs == Decimal("600.00")

        engine.revert(sale.id)

        assert _snapshot(engine) == before
        pan = next(i for i in engine.state.inventory if i.id == pan_id)
        assert pan.stock == Decimal("10")
        assert pan.value == Decimal("2000")
        assert engine.accounts.inventory == Decimal("2000")
        assert engine.identity_check().balanced

    def test_revert_production(self, stocked):
        """Test that a production reversal returns ingredients and removes output."""
        engine, harina_id, _ = stocked
        before = _snapshot(engine)
        tx = engine.produce("Pan", 10, [IngredientRequest(item_id=harina_id, quantity=2)])

        engine.revert(tx.id)

        assert _snapshot(engine) == before
        inventory = {i.name: i for i in engine.state.inventory}
        assert inventory["Harina"].stock == Decimal("10")
        assert inventory["Harina"].value == Decimal("10000")
        assert inventory["Pan"].stock == Decimal("0")

    def test_revert_cash_audit(self, engine):
        """Test that a cash shortage reversal restores the cash balance."""
        before = _snapshot(engine)
        tx = engine.audit_cash(PaymentMethod.CASH, 49500)

        engine.revert(tx.id)

        assert _snapshot(engine) == before
        assert engine.accounts.cash == Decimal("50000")

    def test_revert_bank_surplus(self, engine):
        """Test that a bank surplus reversal removes the extra revenue."""
        tx = engine.audit_cash(PaymentMethod.BANK, 100300)
        assert engine.totals().revenue == Decimal("300")

        engine.revert(tx.id)

        assert engine.accounts.bank == Decimal("100000")
        assert engine.totals().revenue == Decimal("0")


class TestRejections:
    """Reversals that are refused and change nothing."""

    def test_unknown_id(self, engine):
        """Test that a missing transaction reports not_found."""
        result = engine.revert("does-not-exist")
        assert result.status == RevertStatus.NOT_FOUND
        assert not result.reverted

    def test_initialization_not_revertible(self, engine):
        """Test that opening balances cannot be voided."""
        opening = engine.state.transactions[-1]
        result = engine.revert(opening.id)
        assert result.status == RevertStatus.NOT_REVERTIBLE
        assert engine.state.find_transaction(opening.id).status == TransactionStatus.ACTIVE

    def test_capital_contribution_not_revertible(self, engine):
        """Test that a contribution is treated like opening balances."""
        tx = engine.contribute_capital(cash=1000)
        assert engine.revert(tx.id).status == RevertStatus.NOT_REVERTIBLE

    def test_already_voided(self, engine):
        """Test that a second revert of the same transaction is refused."""
        tx = engine.pay_expense(100, PaymentMethod.CASH, "Gas")
        engine.revert(tx.id)
        count = len(engine.state.transactions)

        result = engine.revert(tx.id)

        assert result.status == RevertStatus.ALREADY_VOIDED
        assert len(engine.state.transactions) == count

    def test_contra_entry_not_revertible(self, engine):
        """Test that a contra-entry cannot itself be voided."""
        tx = engine.pay_expense(100, PaymentMethod.CASH, "Gas")
        contra_id = engine.revert(tx.id).contra_tx_id

        assert engine.revert(contra_id).status == RevertStatus.CONTRA_ENTRY

    def test_inventory_count_not_revertible(self, stocked):
        """Test that count adjustments report not_revertible explicitly."""
        engine, harina_id, _ = stocked
        tx = engine.count_inventory({harina_id: 9})
        accounts = engine.accounts

        result = engine.revert(tx.id)

        assert result.status == RevertStatus.NOT_REVERTIBLE
        assert "count" in result.message.lower()
        assert engine.accounts == accounts

    def test_asset_count_not_revertible(self, engine):
        """Test that asset count adjustments cannot be voided."""
        purchase = engine.purchase_asset("Sillas", quantity=4, amount=4000, method=PaymentMethod.CASH)
        tx = engine.count_assets({purchase.details.asset_id: 3})

        assert engine.revert(tx.id).status == RevertStatus.NOT_REVERTIBLE


class TestSplitCogs:
    """Proportional redistribution of a sale's cost."""

    def test_shares_sum_exactly(self):
        """Test that the last share absorbs the remainder."""
        shares = split_cogs(Decimal("100"), [Decimal("1"), Decimal("1"), Decimal("1")])
        assert sum(shares) == Decimal("100")
        assert shares[0] == shares[1]

    def test_proportional_to_quantity(self):
        """Test 3:1 quantities split 400 into 300 and 100."""
        assert split_cogs(Decimal("400"), [Decimal("3"), Decimal("1")]) == [Decimal("300"), Decimal("100")]

    def test_zero_weights(self):
        """Test that zero total weight yields zero shares."""
        assert split_cogs(Decimal("50"), [Decimal("0")]) == [Decimal("0")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Tests for the FIFO inventory lot ledger.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from bookkeeping.ledger.lots import (
    EPOCH,
    LEGACY_BATCH_PREFIX,
    InventoryLotLedger,
    fifo_walk,
    weighted_average,
)
from bookkeeping.models import Batch, InventoryItem


T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 2, tzinfo=timezone.utc)
T2 = datetime(2026, 1, 3, tzinfo=timezone.utc)


def _item_with_batches(*batches: Batch) -> InventoryItem:
    stock, cost = weighted_average(list(batches))
    return InventoryItem(name="Harina", stock=stock, cost=cost, batches=list(batches))


class TestFifoConsumption:
    """Oldest-first consumption."""

    def test_consumes_oldest_batch_first(self):
        """Test 7 units over B1(5 @ 100) and B2(5 @ 200) cost 900 and leave 3 @ 200."""
        item = _item_with_batches(
            Batch(id="b1", date=T0, cost=Decimal("100"), stock=Decimal("5")),
            Batch(id="b2", date=T1, cost=Decimal("200"), stock=Decimal("5")),
        )
        lots = InventoryLotLedger([item])

        cost = lots.consume(item.id, 7)

        assert cost == Decimal("900.00")
        assert [b.id for b in item.batches] == ["b2"]
        assert item.batches[0].stock == Decimal("3")
        assert item.stock == Decimal("3")
        assert item.cost == Decimal("200")

    def test_batch_order_follows_date_not_insertion(self):
        """Test that a batch appended later but dated earlier is consumed first."""
        item = _item_with_batches(
            Batch(id="new", date=T2, cost=Decimal("300"), stock=Decimal("2")),
            Batch(id="old", date=T0, cost=Decimal("100"), stock=Decimal("2")),
        )
        lots = InventoryLotLedger([item])

        assert lots.consume(item.id, 2) == Decimal("200.00")
        assert [b.id for b in item.batches] == ["new"]

    def test_fully_consumed_batches_are_pruned(self):
        """Test that a batch taken to zero is removed."""
        item = _item_with_batches(
            Batch(id="b1", date=T0, cost=Decimal("10"), stock=Decimal("4")),
        )
        lots = InventoryLotLedger([item])

        lots.consume(item.id, 4)

        assert item.batches == []
        assert item.stock == Decimal("0")
        assert item.cost == Decimal("0")

    def test_cost_is_rounded_to_cents(self):
        """Test that the returned cost is quantized to two decimals."""
        item = _item_with_batches(
            Batch(date=T0, cost=Decimal("10") / Decimal("3"), stock=Decimal("3")),
        )
        lots = InventoryLotLedger([item])

        assert lots.consume(item.id, 1) == Decimal("3.33")

    def test_zero_or_negative_quantity_is_noop(self):
        """Test that non-positive quantities cost nothing and change nothing."""
        item = _item_with_batches(
            Batch(date=T0, cost=Decimal("100"), stock=Decimal("5")),
        )
        lots = InventoryLotLedger([item])

        assert lots.consume(item.id, 0) == Decimal("0")
        assert lots.consume(item.id, -3) == Decimal("0")
        assert item.stock == Decimal("5")

    def test_unknown_item_is_noop(self):
        """Test that consuming an unknown id costs zero."""
        lots = InventoryLotLedger([])
        assert lots.consume("missing", 5) == Decimal("0")


class TestLegacyBatches:
    """Items with stock but no batches."""

    def test_legacy_batch_synthesized_on_first_consumption(self):
        """Test stock 10 @ 50 with no batches: 4 units cost 200, 6 remain @ 50."""
        item = InventoryItem(name="Azúcar", stock=Decimal("10"), cost=Decimal("50"))
        lots = InventoryLotLedger([item])

        cost = lots.consume(item.id, 4)

        assert cost == Decimal("200.00")
        assert item.stock == Decimal("6")
        assert len(item.batches) == 1
        legacy = item.batches[0]
        assert legacy.id == f"{LEGACY_BATCH_PREFIX}{item.id}"
        assert legacy.stock == Decimal("6")
        assert legacy.cost == Decimal("50")
        assert legacy.date == EPOCH

    def test_legacy_batch_consumed_before_new_purchase(self):
        """Test that the epoch-dated legacy batch comes before any new batch."""
        item = InventoryItem(name="Azúcar", stock=Decimal("2"), cost=Decimal("50"))
        lots = InventoryLotLedger([item])
        lots.add_batch(item.id, 2, Decimal("80"), T0)

        assert lots.consume(item.id, 3) == Decimal("180.00")
        assert item.stock == Decimal("1")
        assert item.cost == Decimal("80")


class TestShortfall:
    """Consumption beyond the recorded stock."""

    def test_shortfall_charged_at_average_cost(self):
        """Test 5 units over 3 @ 100 + the average: 3*100 + 2*100 = 500."""
        item = _item_with_batches(
            Batch(date=T0, cost=Decimal("100"), stock=Decimal("3")),
        )
        lots = InventoryLotLedger([item])

        cost = lots.consume(item.id, 5)

        assert cost == Decimal("500.00")
        assert item.stock == Decimal("0")
        assert item.batches == []

    def test_shortfall_uses_mixed_average(self):
        """Test 6 units over 2 @ 100 and 2 @ 200 (avg 150): 600 + 2*150 = 900."""
        item = _item_with_batches(
            Batch(date=T0, cost=Decimal("100"), stock=Decimal("2")),
            Batch(date=T1, cost=Decimal("200"), stock=Decimal("2")),
        )
        lots = InventoryLotLedger([item])

        assert lots.consume(item.id, 6) == Decimal("900.00")

    def test_empty_item_with_zero_cost_costs_nothing(self):
        """Test that an item with no stock and no cost absorbs at zero."""
        item = InventoryItem(name="Sal")
        lots = InventoryLotLedger([item])

        assert lots.consume(item.id, 4) == Decimal("0.00")
        assert item.stock == Decimal("0")


class TestSimulate:
    """Cost preview."""

    def test_simulate_matches_consume_without_mutation(self):
        """Test that simulate returns the FIFO cost and leaves batches alone."""
        item = _item_with_batches(
            Batch(id="b1", date=T0, cost=Decimal("100"), stock=Decimal("5")),
            Batch(id="b2", date=T1, cost=Decimal("200"), stock=Decimal("5")),
        )
        lots = InventoryLotLedger([item])

        assert lots.simulate(item.id, 7) == Decimal("900.00")
        assert item.stock == Decimal("10")
        assert [b.stock for b in item.batches] == [Decimal("5"), Decimal("5")]

    def test_fifo_walk_does_not_mutate_input(self):
        """Test that the pure walk returns leftovers without touching its input."""
        batches = [Batch(date=T0, cost=Decimal("10"), stock=Decimal("5"))]

        cost, remaining, shortfall = fifo_walk(batches, Decimal("2"))

        assert cost == Decimal("20")
        assert remaining[0].stock == Decimal("3")
        assert shortfall == Decimal("0")
        assert batches[0].stock == Decimal("5")


class TestAdditions:
    """Batches added and withdrawn."""

    def test_add_batch_recomputes_average(self):
        """Test that a new batch updates stock and weighted average."""
        item = InventoryItem(name="Leche")
        lots = InventoryLotLedger([item])

        lots.add_batch(item.id, 4, Decimal("100"), T0)
        lots.add_batch(item.id, 4, Decimal("200"), T1)

        assert item.stock == Decimal("8")
        assert item.cost == Decimal("150")
        assert item.value == Decimal("1200")

    def test_add_batch_rejects_non_positive_quantity(self):
        """Test that a zero-quantity batch is not added."""
        item = InventoryItem(name="Leche")
        lots = InventoryLotLedger([item])

        assert lots.add_batch(item.id, 0, Decimal("100"), T0) is None
        assert item.batches == []

    def test_refund_dated_at_original_time(self):
        """Test that a refunded batch carries the given date and total cost."""
        item = _item_with_batches(
            Batch(id="later", date=T2, cost=Decimal("300"), stock=Decimal("1")),
        )
        lots = InventoryLotLedger([item])

        batch = lots.refund(item.id, 2, Decimal("250"), T0)

        assert batch.date == T0
        assert batch.cost == Decimal("125")
        # The refunded units are now the oldest
        assert lots.consume(item.id, 2) == Decimal("250.00")

    def test_withdraw_targets_named_batch(self):
        """Test that withdraw empties the given batch before falling back to FIFO."""
        item = _item_with_batches(
            Batch(id="old", date=T0, cost=Decimal("100"), stock=Decimal("5")),
            Batch(id="new", date=T1, cost=Decimal("200"), stock=Decimal("5")),
        )
        lots = InventoryLotLedger([item])

        removed = lots.withdraw(item.id, 5, batch_id="new")

        assert removed == Decimal("1000.00")
        assert [b.id for b in item.batches] == ["old"]
        assert item.cost == Decimal("100")

    def test_withdraw_falls_back_to_fifo(self):
        """Test that a partially consumed batch is topped up from the oldest one."""
        item = _item_with_batches(
            Batch(id="old", date=T0, cost=Decimal("100"), stock=Decimal("5")),
            Batch(id="new", date=T1, cost=Decimal("200"), stock=Decimal("2")),
        )
        lots = InventoryLotLedger([item])

        removed = lots.withdraw(item.id, 5, batch_id="new")

        assert removed == Decimal("700.00")
        assert item.stock == Decimal("2")

    def test_total_value(self):
        """Test that total value sums stock value across items."""
        a = _item_with_batches(Batch(date=T0, cost=Decimal("10"), stock=Decimal("3")))
        b = _item_with_batches(Batch(date=T0, cost=Decimal("5"), stock=Decimal("4")))

        assert InventoryLotLedger([a, b]).total_value() == Decimal("50")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

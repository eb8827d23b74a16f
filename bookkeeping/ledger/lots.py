"""
Inventory Lot Ledger

Owns the per-item FIFO batch lists. Every path that changes stock
(purchase, production, counts, reversals) goes through this class, and
it is the single place where the weighted-average cost is derived from
the batches.

FIFO WALK:
    Batches are sorted oldest first. Each batch is consumed fully while
    the remaining need covers it, then the last one partially. Fully
    consumed batches are pruned.

SHORTFALL POLICY:
    If the batches run out before the requested quantity is met (the
    books say 3 but the kitchen used 5), the excess is charged at the
    item's weighted-average cost instead of failing. This absorbs count
    errors; it is logged as a warning, never silently dropped.

LEGACY ITEMS:
    Items created before batch tracking have stock but no batches. On
    first use a synthetic batch is materialized from the current stock and
    average cost, dated at the epoch so it is always consumed first.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog

from bookkeeping.models.accounts import ZERO, round_money, to_decimal
from bookkeeping.models.catalog import Batch, InventoryItem, new_id


logger = structlog.get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
LEGACY_BATCH_PREFIX = "legacy-"


def weighted_average(batches: list[Batch]) -> tuple[Decimal, Decimal]:
    """
    Derive (total stock, average unit cost) from a batch list.

    Average cost is 0 when no stock is left.
    """
    stock = sum((b.stock for b in batches), ZERO)
    if stock <= 0:
        return ZERO, ZERO
    value = sum((b.value for b in batches), ZERO)
    return stock, value / stock


def fifo_walk(
    batches: list[Batch],
    quantity: Decimal,
) -> tuple[Decimal, list[Batch], Decimal]:
    """
    Walk batches oldest first, taking `quantity` units.

    Does not mutate the input. Returns (cost of the units taken, the
    batches left over, quantity that could not be covered).
    """
    needed = quantity
    cost = ZERO
    remaining: list[Batch] = []

    for batch in sorted(batches, key=lambda b: b.date):
        if needed <= 0:
            if batch.stock > 0:
                remaining.append(batch)
            continue
        if batch.stock <= needed:
            cost += batch.stock * batch.cost
            needed -= batch.stock
        else:
            cost += needed * batch.cost
            remaining.append(batch.model_copy(update={"stock": batch.stock - needed}))
            needed = ZERO

    return cost, remaining, needed


class InventoryLotLedger:
    """
    FIFO lot operations over a list of inventory items.

    The ledger works in place on the list it is given. Inside the store that
    list belongs to a draft copy of the state, so nothing is visible until
    the whole operation commits.
    """

    def __init__(self, items: list[InventoryItem]):
        self._items = items

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, item_id: Optional[str]) -> Optional[InventoryItem]:
        if not item_id:
            return None
        return next((i for i in self._items if i.id == item_id), None)

    def find_by_name(self, name: str) -> Optional[InventoryItem]:
        """Case-insensitive name lookup."""
        key = name.strip().lower()
        return next((i for i in self._items if i.name.lower() == key), None)

    def total_value(self) -> Decimal:
        """Sum of stock value across all items."""
        return sum((i.value for i in self._items), ZERO)

    # -------------------------------------------------------------------------
    # Consumption
    # -------------------------------------------------------------------------

    def consume(self, item_id: str, quantity) -> Decimal:
        """
        Remove `quantity` units FIFO and return their exact cost (cents).

        Zero/negative quantity or an unknown item is a no-op costing 0.
        """
        quantity = to_decimal(quantity)
        item = self.get(item_id)
        if item is None or quantity <= 0:
            return ZERO

        batches = self._ordered_batches(item)
        cost, remaining, shortfall = fifo_walk(batches, quantity)

        if shortfall > 0:
            cost += shortfall * item.cost
            logger.warning(
                "fifo_shortfall_absorbed",
                item_id=item.id,
                item_name=item.name,
                requested=str(quantity),
                shortfall=str(shortfall),
                fallback_cost=str(item.cost),
            )

        item.batches = remaining
        self._recompute(item)
        return round_money(cost)

    def simulate(self, item_id: str, quantity) -> Decimal:
        """Cost of consuming `quantity` units, without touching the item."""
        quantity = to_decimal(quantity)
        item = self.get(item_id)
        if item is None or quantity <= 0:
            return ZERO

        cost, _, shortfall = fifo_walk(self._ordered_batches(item), quantity)
        if shortfall > 0:
            cost += shortfall * item.cost
        return round_money(cost)

    def withdraw(
        self,
        item_id: str,
        quantity,
        batch_id: Optional[str] = None,
    ) -> Decimal:
        """
        Take `quantity` units out, starting with a specific batch.

        Used when undoing a purchase or a production run: the batch the
        original event created is emptied first, and anything it can no
        longer cover is taken FIFO. Returns the value removed.
        """
        quantity = to_decimal(quantity)
        item = self.get(item_id)
        if item is None or quantity <= 0:
            return ZERO

        self._materialize(item)
        removed = ZERO
        needed = quantity

        if batch_id:
            for idx, batch in enumerate(item.batches):
                if batch.id != batch_id:
                    continue
                take = min(batch.stock, needed)
                removed += take * batch.cost
                needed -= take
                item.batches[idx] = batch.model_copy(update={"stock": batch.stock - take})
                break
            item.batches = [b for b in item.batches if b.stock > 0]

        if needed > 0:
            removed += self.consume(item_id, needed)
        else:
            self._recompute(item)

        return round_money(removed)

    # -------------------------------------------------------------------------
    # Additions
    # -------------------------------------------------------------------------

    def add_batch(
        self,
        item_id: str,
        quantity,
        unit_cost,
        date: datetime,
        batch_id: Optional[str] = None,
    ) -> Optional[Batch]:
        """
        Append a batch and recompute stock and average cost.

        Returns the new batch, or None for an unknown item or a
        non-positive quantity.
        """
        quantity = to_decimal(quantity)
        item = self.get(item_id)
        if item is None or quantity <= 0:
            return None

        self._materialize(item)
        batch = Batch(
            id=batch_id or new_id(),
            date=date,
            cost=to_decimal(unit_cost),
            stock=quantity,
        )
        item.batches.append(batch)
        self._recompute(item)
        return batch

    def refund(
        self,
        item_id: str,
        quantity,
        total_cost,
        as_of: datetime,
    ) -> Optional[Batch]:
        """
        Put consumed units back.

        The batch is dated at the original event's time (not now), so that
        later FIFO walks see it in its historical position relative to the
        other batches.
        """
        quantity = to_decimal(quantity)
        if quantity <= 0:
            return None
        unit_cost = to_decimal(total_cost) / quantity
        return self.add_batch(item_id, quantity, unit_cost, as_of)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _ordered_batches(self, item: InventoryItem) -> list[Batch]:
        if item.batches:
            return sorted(item.batches, key=lambda b: b.date)
        if item.stock > 0:
            return [self._legacy_batch(item)]
        return []

    def _materialize(self, item: InventoryItem) -> None:
        """Give a legacy (batch-less) item its synthetic epoch batch."""
        if not item.batches and item.stock > 0:
            item.batches = [self._legacy_batch(item)]

    @staticmethod
    def _legacy_batch(item: InventoryItem) -> Batch:
        return Batch(
            id=f"{LEGACY_BATCH_PREFIX}{item.id}",
            date=EPOCH,
            cost=item.cost,
            stock=item.stock,
        )

    @staticmethod
    def _recompute(item: InventoryItem) -> None:
        item.stock, item.cost = weighted_average(item.batches)

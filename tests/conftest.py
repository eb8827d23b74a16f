"""
Shared fixtures.

The clock advances one minute per call so every event gets a distinct,
ordered timestamp and tests never depend on wall time.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bookkeeping.config import CogsPolicy
from bookkeeping.ledger import LedgerEngine, LedgerStore
from bookkeeping.models import PaymentMethod


class SteppingClock:
    """Deterministic clock: starts at `start`, moves `step` per call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + self.step
        return now


@pytest.fixture
def clock():
    return SteppingClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(clock):
    """Open books with 50,000 cash and 100,000 bank."""
    engine = LedgerEngine(store=LedgerStore(), cogs_policy=CogsPolicy.PERIODIC, clock=clock)
    engine.initialize(cash=50000, bank=100000)
    return engine


@pytest.fixture
def perpetual_engine(clock):
    engine = LedgerEngine(store=LedgerStore(), cogs_policy=CogsPolicy.PERPETUAL, clock=clock)
    engine.initialize(cash=50000, bank=100000)
    return engine


@pytest.fixture
def stocked(engine):
    """
    Engine with two inventory items bought by bank:
    10 Harina for 10,000 (1,000 each) and 30 Huevos for 3,000 (100 each).
    """
    harina = engine.purchase_inventory("Harina", quantity=10, amount=10000, method=PaymentMethod.BANK)
    huevos = engine.purchase_inventory("Huevos", quantity=30, amount=3000, method=PaymentMethod.BANK)
    return engine, harina.details.item_id, huevos.details.item_id


"""
Catalog and Inventory Models

Inventory items carry an ordered list of batches (lots). Each batch
remembers when it was acquired, its unit cost and how much of it is left.
FIFO consumption walks the batches oldest first.

Items created before batch tracking existed have stock but no batches.
The lot ledger materializes a synthetic "legacy" batch for them on first
use (see ledger.lots).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import Field, field_validator

from bookkeeping.models.accounts import ZERO, LedgerModel


def new_id() -> str:
    """New random identifier (string UUID)."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so batch ordering never mixes kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Batch(LedgerModel):
    """A lot of stock acquired at one time and one unit cost."""

    id: str = Field(default_factory=new_id)
    date: datetime = Field(
        default_factory=utc_now,
        description="Acquisition time, used for FIFO ordering"
    )
    cost: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Unit cost"
    )
    stock: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Remaining quantity in this lot"
    )

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def value(self) -> Decimal:
        return self.stock * self.cost


class InventoryItem(LedgerModel):
    """
    A stock-keeping item (ingredient or finished product).

    `cost` is the weighted-average unit cost. It is derived from the
    batches and exists for display and for the shortfall fallback only.
    FIFO costing never uses it while batches remain.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    cost: Decimal = Field(default=ZERO, ge=0, description="Weighted-average cost")
    stock: Decimal = Field(default=ZERO, ge=0, description="Sum of batch stock")
    batches: list[Batch] = Field(default_factory=list)
    hidden: bool = Field(default=False, description="Soft-deleted from pickers")

    @property
    def value(self) -> Decimal:
        """Current value of the item (batch values, or stock * cost if untracked)."""
        if self.batches:
            return sum((b.value for b in self.batches), ZERO)
        return self.stock * self.cost


class AssetItem(LedgerModel):
    """A fixed asset. No lot tracking: counts overwrite the value directly."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    value: Decimal = Field(default=ZERO, ge=0, description="Total value")
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    hidden: bool = False

    @property
    def unit_value(self) -> Decimal:
        if self.quantity <= 0:
            return ZERO
        return self.value / self.quantity


class Product(LedgerModel):
    """Sellable product. May be linked to an inventory item."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(default=ZERO, ge=0)
    inventory_item_id: Optional[str] = Field(
        default=None,
        description="Inventory item consumed when sold (perpetual policy only)"
    )
    hidden: bool = False


class Provider(LedgerModel):
    """Supplier or payee."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    hidden: bool = False


class ExpenseType(LedgerModel):
    """Expense category (utilities, payroll, ...)."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    hidden: bool = False

"""
Account Balance Models

The balances record is the heart of the ledger. It is FROZEN on purpose:
nothing can assign to a field. A business operation produces a new record
from the previous one, and the store swaps it in.

Numbers are Decimal end to end. Floats are converted at the boundary by
to_decimal() and never mixed into ledger arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


CENT = Decimal("0.01")
ZERO = Decimal("0")

# Accounting identity tolerance (one cent)
IDENTITY_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert user input (int, float, str, Decimal, None) to Decimal."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents (half up)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class LedgerModel(BaseModel):
    """
    Base for every persisted model.

    Serializes with camelCase aliases (expenseTypes, voidingTxId) so the
    snapshot keeps the shape the storage and backup files expect, while
    Python code uses snake_case names.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PaymentMethod(str, Enum):
    """Liquid account used to pay or collect."""
    CASH = "cash"
    BANK = "bank"


class Accounts(LedgerModel):
    """
    Current balances.

    Asset side: cash, bank, inventory, fixed_assets.
    Equity side: equity (contributed capital).
    Income side: revenue, cost_of_goods, expenses. These are kept
    cumulatively for convenience, but reports always re-derive them
    from the transaction log (see ledger.aggregator).
    """
    model_config = ConfigDict(frozen=True)

    cash: Decimal = Field(default=ZERO, description="Cash on hand (petty cash)")
    bank: Decimal = Field(default=ZERO, description="Bank account")
    inventory: Decimal = Field(default=ZERO, description="Inventory value")
    fixed_assets: Decimal = Field(default=ZERO, description="Fixed asset value")
    equity: Decimal = Field(default=ZERO, description="Contributed capital")
    revenue: Decimal = Field(default=ZERO, description="Cumulative revenue")
    cost_of_goods: Decimal = Field(default=ZERO, description="Cumulative COGS")
    expenses: Decimal = Field(default=ZERO, description="Cumulative expenses")

    def balance(self, method: PaymentMethod) -> Decimal:
        """Balance of the liquid account behind a payment method."""
        return self.cash if PaymentMethod(method) == PaymentMethod.CASH else self.bank

    def shifted(self, **deltas: Decimal) -> "Accounts":
        """Return a copy with each named field moved by its delta."""
        return self.model_copy(
            update={name: getattr(self, name) + delta for name, delta in deltas.items()}
        )

    @property
    def total_assets(self) -> Decimal:
        return self.cash + self.bank + self.inventory + self.fixed_assets

    @property
    def net_income(self) -> Decimal:
        return self.revenue - self.cost_of_goods - self.expenses


def method_field(method: PaymentMethod) -> str:
    """Accounts field name for a payment method."""
    return PaymentMethod(method).value

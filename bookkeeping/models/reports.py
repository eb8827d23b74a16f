"""
Report Models

Derived figures. None of these are persisted: they are recomputed from the
transaction log and the current balances every time they are asked for.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from bookkeeping.models.accounts import ZERO, IDENTITY_TOLERANCE


class LedgerTotals(BaseModel):
    """Income-statement totals aggregated over a window of the log."""

    revenue: Decimal = ZERO
    cost_of_goods: Decimal = ZERO
    expenses: Decimal = ZERO
    transaction_count: int = Field(default=0, ge=0)

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.cost_of_goods

    @property
    def net_income(self) -> Decimal:
        return self.gross_profit - self.expenses


class IdentityCheck(BaseModel):
    """Result of checking Assets == Equity + Net Income."""

    total_assets: Decimal
    equity: Decimal
    net_income: Decimal
    tolerance: Decimal = IDENTITY_TOLERANCE

    @property
    def equity_side(self) -> Decimal:
        return self.equity + self.net_income

    @property
    def difference(self) -> Decimal:
        return self.total_assets - self.equity_side

    @property
    def balanced(self) -> bool:
        return abs(self.difference) <= self.tolerance


class IncomeStatement(BaseModel):
    """Income statement for a period."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    label: str
    revenue: Decimal
    cost_of_goods: Decimal
    gross_profit: Decimal
    expenses: Decimal
    net_income: Decimal


class BalanceSheet(BaseModel):
    """Balance sheet at the current moment."""

    generated_at: datetime
    cash: Decimal
    bank: Decimal
    inventory: Decimal
    fixed_assets: Decimal
    total_assets: Decimal
    equity: Decimal
    retained_earnings: Decimal
    total_equity: Decimal
    difference: Decimal
    balanced: bool


class InventoryValuationRow(BaseModel):
    item_id: str
    name: str
    stock: Decimal
    average_cost: Decimal
    value: Decimal
    batch_count: int
    hidden: bool = False


class AssetRegisterRow(BaseModel):
    asset_id: str
    name: str
    quantity: Decimal
    value: Decimal
    hidden: bool = False


class SelfCheckReport(BaseModel):
    """Outcome of the scripted self-check scenario."""

    passed: bool
    steps: list[str] = Field(default_factory=list)
    before_reversal: Optional[IdentityCheck] = None
    after_reversal: Optional[IdentityCheck] = None
    reverted_tx_id: Optional[str] = None

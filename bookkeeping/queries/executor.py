"""
Report Execution Engine

DESIGN DECISION: Reports are DERIVED, never stored.
Income statements are recomputed from the transaction log by the ledger
aggregator for whatever window is asked for. The balance sheet reads the
current asset and equity balances and takes retained earnings from the
log as well, so both statements always agree with the history.
"""

from datetime import date, datetime
from typing import Optional

from bookkeeping.ledger.aggregator import aggregate, month_bounds
from bookkeeping.ledger.engine import LedgerEngine
from bookkeeping.models.catalog import utc_now
from bookkeeping.models.reports import (
    AssetRegisterRow,
    BalanceSheet,
    IncomeStatement,
    InventoryValuationRow,
    LedgerTotals,
)
from bookkeeping.models.transaction import Transaction, TransactionType


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class ReportError(Exception):
    """A report was asked for with an impossible window."""
    pass


def _statement(
    totals: LedgerTotals,
    label: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> IncomeStatement:
    return IncomeStatement(
        date_from=date_from,
        date_to=date_to,
        label=label,
        revenue=totals.revenue,
        cost_of_goods=totals.cost_of_goods,
        gross_profit=totals.gross_profit,
        expenses=totals.expenses,
        net_income=totals.net_income,
    )


class ReportExecutor:
    """
    Read-only reports over a LedgerEngine.

    GUARANTEES:
    - Only reads; never mutates the engine's state
    - Voided transactions and contra-entries never count toward income
    """

    def __init__(self, engine: LedgerEngine):
        self._engine = engine

    def income_statement(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> IncomeStatement:
        """Income statement for an inclusive date range (whole history if open)."""
        if date_from and date_to and date_from > date_to:
            raise ReportError(f"Start date {date_from} is after end date {date_to}")

        totals = aggregate(self._engine.store.transactions, date_from, date_to)
        if date_from is None and date_to is None:
            label = "All time"
        else:
            label = f"{date_from or '...'} to {date_to or '...'}"
        return _statement(totals, label, date_from, date_to)

    def monthly_income_statement(self, year: int, month: int) -> IncomeStatement:
        if not 1 <= month <= 12:
            raise ReportError(f"Invalid month: {month}")
        start, end = month_bounds(year, month)
        totals = aggregate(self._engine.store.transactions, start, end)
        return _statement(totals, f"{MONTH_NAMES[month - 1]} {year}", start, end)

    def balance_sheet(self, as_of: Optional[datetime] = None) -> BalanceSheet:
        """
        Current position. Retained earnings are the log-derived net income,
        so `difference` is the accounting identity drift.
        """
        accounts = self._engine.accounts
        check = self._engine.identity_check()
        return BalanceSheet(
            generated_at=as_of or utc_now(),
            cash=accounts.cash,
            bank=accounts.bank,
            inventory=accounts.inventory,
            fixed_assets=accounts.fixed_assets,
            total_assets=accounts.total_assets,
            equity=accounts.equity,
            retained_earnings=check.net_income,
            total_equity=check.equity_side,
            difference=check.difference,
            balanced=check.balanced,
        )

    def list_transactions(
        self,
        tx_type: Optional[TransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_voided: bool = True,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transactions matching the filters, newest first. Date bounds are inclusive days."""
        result = []
        for tx in self._engine.store.transactions:
            if tx_type is not None and tx.type != TransactionType(tx_type):
                continue
            day = tx.date.date()
            if date_from is not None and day < date_from:
                continue
            if date_to is not None and day > date_to:
                continue
            if not include_voided and (tx.is_voided or tx.is_contra):
                continue
            result.append(tx)

        result.sort(key=lambda t: t.date, reverse=True)
        return result[:limit] if limit is not None else result

    def inventory_valuation(
        self,
        search: str = "",
        include_hidden: bool = False,
    ) -> list[InventoryValuationRow]:
        """Stock, average cost and value per item, with a case-insensitive name filter."""
        needle = search.strip().lower()
        rows = []
        for item in self._engine.state.inventory:
            if item.hidden and not include_hidden:
                continue
            if needle and needle not in item.name.lower():
                continue
            rows.append(InventoryValuationRow(
                item_id=item.id,
                name=item.name,
                stock=item.stock,
                average_cost=item.cost,
                value=item.value,
                batch_count=len(item.batches),
                hidden=item.hidden,
            ))
        return sorted(rows, key=lambda r: r.name.lower())

    def asset_register(
        self,
        search: str = "",
        include_hidden: bool = False,
    ) -> list[AssetRegisterRow]:
        needle = search.strip().lower()
        rows = [
            AssetRegisterRow(
                asset_id=asset.id,
                name=asset.name,
                quantity=asset.quantity,
                value=asset.value,
                hidden=asset.hidden,
            )
            for asset in self._engine.state.assets
            if (include_hidden or not asset.hidden)
            and (not needle or needle in asset.name.lower())
        ]
        return sorted(rows, key=lambda r: r.name.lower())

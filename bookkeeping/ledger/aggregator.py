"""
Ledger Aggregator

Income-statement figures are never read from the stored cumulative
balances. They are recomputed here from the transaction log, for the
whole history or for any inclusive date window.

CLASSIFICATION:
    SALE                     revenue += amount; cost += cogs
    EXPENSE                  expenses += amount
    ADJUSTMENT cash loss     expenses += amount
    ADJUSTMENT cash gain     revenue += amount
    ADJUSTMENT inventory     cost += cogs (signed: losses positive)
    ADJUSTMENT asset         expenses += amount (loss) / -= amount (gain)
    ADJUSTMENT contra-entry  skipped
    PURCHASE / PRODUCTION / INITIALIZATION   no income effect

Voided transactions are skipped, and so are contra-entries: the pair
cancels out by omission rather than by arithmetic.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from bookkeeping.models.accounts import IDENTITY_TOLERANCE, ZERO, Accounts
from bookkeeping.models.catalog import ensure_utc
from bookkeeping.models.reports import IdentityCheck, LedgerTotals
from bookkeeping.models.transaction import (
    AdjustmentDetails,
    AdjustmentDirection,
    AdjustmentKind,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)

DateBound = Union[date, datetime, None]


def _day(value: datetime) -> date:
    return value.date()


def _in_window(tx: Transaction, date_from: DateBound, date_to: DateBound) -> bool:
    """Inclusive window. Datetime bounds compare exactly, date bounds by day."""
    if isinstance(date_from, datetime):
        date_from = ensure_utc(date_from)
    if isinstance(date_to, datetime):
        date_to = ensure_utc(date_to)
    if date_from is not None:
        if isinstance(date_from, datetime):
            if tx.date < date_from:
                return False
        elif _day(tx.date) < date_from:
            return False
    if date_to is not None:
        if isinstance(date_to, datetime):
            if tx.date > date_to:
                return False
        elif _day(tx.date) > date_to:
            return False
    return True


def _adjustment_totals(tx: Transaction) -> tuple[Decimal, Decimal, Decimal]:
    """(revenue, cost, expenses) contributed by one ADJUSTMENT."""
    details = tx.details
    if not isinstance(details, AdjustmentDetails):
        # Untagged entry from an older snapshot
        if tx.cogs is not None:
            return ZERO, tx.cogs, ZERO
        return ZERO, ZERO, tx.amount

    gain = details.direction == AdjustmentDirection.GAIN

    if details.adjustment_kind == AdjustmentKind.INVENTORY:
        if tx.cogs is not None:
            return ZERO, tx.cogs, ZERO
        return ZERO, (-tx.amount if gain else tx.amount), ZERO

    if details.adjustment_kind == AdjustmentKind.ASSET:
        return ZERO, ZERO, (-tx.amount if gain else tx.amount)

    # Cash / bank audit
    if gain:
        return tx.amount, ZERO, ZERO
    return ZERO, ZERO, tx.amount


def aggregate(
    transactions: Iterable[Transaction],
    date_from: DateBound = None,
    date_to: DateBound = None,
) -> LedgerTotals:
    """Revenue, cost of goods and expenses over the window."""
    revenue = cost = expenses = ZERO
    count = 0

    for tx in transactions:
        if tx.is_voided or tx.is_contra:
            continue
        if not _in_window(tx, date_from, date_to):
            continue

        if tx.type == TransactionType.SALE:
            revenue += tx.amount
            cost += tx.cogs or ZERO
        elif tx.type == TransactionType.EXPENSE:
            expenses += tx.amount
        elif tx.type == TransactionType.ADJUSTMENT:
            r, c, e = _adjustment_totals(tx)
            revenue += r
            cost += c
            expenses += e
        else:
            continue
        count += 1

    return LedgerTotals(
        revenue=revenue,
        cost_of_goods=cost,
        expenses=expenses,
        transaction_count=count,
    )


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    start = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, date.fromordinal(following.toordinal() - 1)


def month_totals(transactions: Iterable[Transaction], year: int, month: int) -> LedgerTotals:
    """Totals for one calendar month."""
    start, end = month_bounds(year, month)
    return aggregate(transactions, start, end)


def check_identity(
    accounts: Accounts,
    totals: LedgerTotals,
    tolerance: Optional[Decimal] = None,
) -> IdentityCheck:
    """
    Assets == Equity + Net Income, with net income taken from the log.

    Liabilities are not modelled, so they are zero.
    """
    check = IdentityCheck(
        total_assets=accounts.total_assets,
        equity=accounts.equity,
        net_income=totals.net_income,
        tolerance=IDENTITY_TOLERANCE if tolerance is None else tolerance,
    )
    if not check.balanced:
        logger.warning(
            "accounting_identity_violated",
            total_assets=str(check.total_assets),
            equity_side=str(check.equity_side),
            difference=str(check.difference),
        )
    return check

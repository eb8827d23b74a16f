"""
Ledger Package

The accounting core: FIFO inventory lots, the balances store, the pure
business operation functions, the aggregator that derives income figures
from the log, and the reversal engine.
"""

from bookkeeping.ledger.aggregator import aggregate, check_identity, month_bounds, month_totals
from bookkeeping.ledger.catalog import CatalogKind, DuplicateNameError, RemovalOutcome
from bookkeeping.ledger.engine import LedgerEngine
from bookkeeping.ledger.lots import InventoryLotLedger, fifo_walk, weighted_average
from bookkeeping.ledger.operations import TransactionBuilder
from bookkeeping.ledger.reversal import (
    ReversalEngine,
    RevertResult,
    RevertStatus,
    inverse_effect,
)
from bookkeeping.ledger.self_check import run_system_audit
from bookkeeping.ledger.store import LedgerDraft, LedgerStore

__all__ = [
    # Aggregation
    "aggregate",
    "check_identity",
    "month_bounds",
    "month_totals",
    # Catalog
    "CatalogKind",
    "DuplicateNameError",
    "RemovalOutcome",
    # Engine
    "LedgerEngine",
    "LedgerDraft",
    "LedgerStore",
    # Lots
    "InventoryLotLedger",
    "fifo_walk",
    "weighted_average",
    # Operations
    "TransactionBuilder",
    # Reversal
    "ReversalEngine",
    "RevertResult",
    "RevertStatus",
    "inverse_effect",
    # Self-check
    "run_system_audit",
]

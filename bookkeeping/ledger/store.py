"""
Account Balances Store and Transaction Log

The store holds the one live AppState. It exposes no setters: every change
runs inside `update()`, which hands out a draft (a deep copy of the state
plus a lot ledger over the draft's inventory) and swaps the draft in only
when the block exits cleanly. An exception inside the block discards the
draft, so a half-applied operation is never observable.

DESIGN DECISION: Balances change only through `LedgerDraft.apply`, which
takes a pure function (accounts -> accounts) from ledger.operations.
Every balance change is therefore attributable to exactly one function.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import structlog
from pydantic import ValidationError

from bookkeeping.ledger.lots import InventoryLotLedger
from bookkeeping.models.accounts import Accounts
from bookkeeping.models.state import AppState
from bookkeeping.models.transaction import Transaction
from bookkeeping.services.storage.interface import SnapshotError


logger = structlog.get_logger(__name__)

BalanceEffect = Callable[[Accounts], Accounts]


class LedgerDraft:
    """
    Working copy of the state for one atomic operation.

    Exposes the lot ledger, the balance apply path and the transaction
    log. Catalog lists are reached through `state` directly.
    """

    def __init__(self, state: AppState):
        self.state = state
        self.lots = InventoryLotLedger(state.inventory)

    @property
    def accounts(self) -> Accounts:
        return self.state.accounts

    def apply(self, effect: BalanceEffect, *args: Any, **kwargs: Any) -> Accounts:
        """Run a balance function on the current accounts and keep the result."""
        self.state.accounts = effect(self.state.accounts, *args, **kwargs)
        return self.state.accounts

    def record(self, tx: Transaction) -> Transaction:
        """Append to the log (newest first)."""
        self.state.transactions.insert(0, tx)
        return tx

    def find_transaction(self, tx_id: str) -> Optional[Transaction]:
        return self.state.find_transaction(tx_id)

    def replace_transaction(self, tx: Transaction) -> None:
        """Swap in an updated copy of an existing transaction (status/link only)."""
        for idx, existing in enumerate(self.state.transactions):
            if existing.id == tx.id:
                self.state.transactions[idx] = tx
                return


class LedgerStore:
    """
    Explicit state container.

    Readers get copies; writers go through `update()`.
    """

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState()

    @property
    def state(self) -> AppState:
        """Deep copy of the live state."""
        return self._state.model_copy(deep=True)

    @property
    def accounts(self) -> Accounts:
        # Accounts is frozen, no copy needed
        return self._state.accounts

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    @property
    def transactions(self) -> list[Transaction]:
        return [tx.model_copy(deep=True) for tx in self._state.transactions]

    @contextmanager
    def update(self) -> Iterator[LedgerDraft]:
        """
        Atomic update block.

            with store.update() as draft:
                draft.apply(purchase_inventory, amount, method)
                draft.lots.add_batch(...)
                draft.record(tx)
        """
        draft = LedgerDraft(self._state.model_copy(deep=True))
        yield draft
        self._state = draft.state

    def apply(self, effect: BalanceEffect, *args: Any, **kwargs: Any) -> Accounts:
        """Single balance change, committed on its own."""
        with self.update() as draft:
            return draft.apply(effect, *args, **kwargs)

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def export_state(self) -> dict[str, Any]:
        """JSON-ready camelCase snapshot."""
        return self._state.to_snapshot()

    def import_state(self, snapshot: Any) -> AppState:
        """
        Replace the whole state from a snapshot.

        The snapshot is validated completely before anything is swapped in;
        on failure the current state is left untouched and SnapshotError is
        raised.
        """
        if isinstance(snapshot, AppState):
            new_state = snapshot.model_copy(deep=True)
        else:
            try:
                new_state = AppState.model_validate(snapshot)
            except ValidationError as e:
                logger.warning("snapshot_rejected", error_count=e.error_count())
                raise SnapshotError(f"Invalid snapshot: {e.error_count()} validation error(s)") from e

        self._state = new_state
        logger.info(
            "snapshot_imported",
            transactions=len(new_state.transactions),
            items=len(new_state.inventory),
        )
        return self.state

    def reset(self) -> None:
        """Back to the factory (uninitialized, zero) state."""
        self._state = AppState()
        logger.info("state_reset")

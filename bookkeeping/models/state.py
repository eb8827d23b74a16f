"""
Application State Snapshot

The whole application state is one serializable object. Storage adapters
and the backup manager save and load it wholesale; nothing outside the
ledger store ever edits it piecemeal.
"""

from typing import Any, Optional

from pydantic import Field

from bookkeeping.models.accounts import Accounts, LedgerModel
from bookkeeping.models.catalog import (
    AssetItem,
    ExpenseType,
    InventoryItem,
    Product,
    Provider,
)
from bookkeeping.models.transaction import Transaction


class AppState(LedgerModel):
    """
    Persisted snapshot.

    `transactions` is kept newest-first.
    """

    initialized: bool = False
    accounts: Accounts = Field(default_factory=Accounts)
    inventory: list[InventoryItem] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)
    providers: list[Provider] = Field(default_factory=list)
    expense_types: list[ExpenseType] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    assets: list[AssetItem] = Field(default_factory=list)

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    def find_transaction(self, tx_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == tx_id), None)

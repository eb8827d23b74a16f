"""
Reversal Engine

Voiding never deletes anything. A revert:
1. computes the inverse balance effect of the original (pure function),
2. undoes its inventory effect through the lot ledger,
3. marks the original VOIDED and links it to a new contra-entry,
4. appends the contra-entry (an ADJUSTMENT with ReversalDetails).

All four happen on the same draft, so they commit together or not at all.

STATE MACHINE:
    ACTIVE --revert--> VOIDED (terminal)
    Contra-entries are terminal as well: they cannot be reverted.

NOT REVERTIBLE (reported, never raised):
    INITIALIZATION, inventory/asset count adjustments, and entries from
    older snapshots that lack the details needed to compute the inverse.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel

from bookkeeping.ledger.operations import TransactionBuilder
from bookkeeping.ledger.store import LedgerDraft
from bookkeeping.models.accounts import ZERO, Accounts, method_field
from bookkeeping.models.catalog import new_id, utc_now
from bookkeeping.models.transaction import (
    AdjustmentDetails,
    AdjustmentDirection,
    AdjustmentKind,
    ExpenseDetails,
    ProductionDetails,
    PurchaseDetails,
    PurchaseKind,
    SaleDetails,
    Transaction,
    TransactionStatus,
    TransactionType,
)


logger = structlog.get_logger(__name__)


class RevertStatus(str, Enum):
    REVERTED = "reverted"
    NOT_FOUND = "not_found"
    ALREADY_VOIDED = "already_voided"
    NOT_REVERTIBLE = "not_revertible"
    CONTRA_ENTRY = "contra_entry"


class RevertResult(BaseModel):
    """Outcome of a revert request."""

    status: RevertStatus
    tx_id: str
    contra_tx_id: Optional[str] = None
    message: str = ""

    @property
    def reverted(self) -> bool:
        return self.status == RevertStatus.REVERTED


def revert_block_reason(tx: Optional[Transaction]) -> Optional[tuple[RevertStatus, str]]:
    """Why a transaction cannot be reverted, or None if it can."""
    if tx is None:
        return RevertStatus.NOT_FOUND, "Transaction not found"
    if tx.is_voided:
        return RevertStatus.ALREADY_VOIDED, "Transaction is already voided"
    if tx.is_contra:
        return RevertStatus.CONTRA_ENTRY, "Contra-entries cannot be reverted"
    if tx.type == TransactionType.INITIALIZATION:
        return RevertStatus.NOT_REVERTIBLE, "Opening balances and capital contributions cannot be reverted"

    details = tx.details
    expected = {
        TransactionType.PURCHASE: PurchaseDetails,
        TransactionType.SALE: SaleDetails,
        TransactionType.EXPENSE: ExpenseDetails,
        TransactionType.PRODUCTION: ProductionDetails,
        TransactionType.ADJUSTMENT: AdjustmentDetails,
    }[tx.type]
    if not isinstance(details, expected):
        return RevertStatus.NOT_REVERTIBLE, "Transaction has no structured details to reverse"

    if isinstance(details, AdjustmentDetails):
        if details.adjustment_kind == AdjustmentKind.INVENTORY:
            return RevertStatus.NOT_REVERTIBLE, "Inventory count adjustments cannot be reverted"
        if details.adjustment_kind == AdjustmentKind.ASSET:
            return RevertStatus.NOT_REVERTIBLE, "Fixed asset count adjustments cannot be reverted"
        if details.account is None:
            return RevertStatus.NOT_REVERTIBLE, "Cash adjustment does not name its account"
    return None


def inverse_effect(prev: Accounts, tx: Transaction) -> Accounts:
    """
    Balance effect that cancels `tx`.

    Assumes revert_block_reason(tx) is None.
    """
    amount = tx.amount
    details = tx.details

    if tx.type == TransactionType.SALE:
        new = prev.shifted(**{method_field(details.method): -amount, "revenue": -amount})
        cogs = tx.cogs or ZERO
        if cogs > 0:
            new = new.shifted(inventory=cogs, cost_of_goods=-cogs)
        return new

    if tx.type == TransactionType.PURCHASE:
        target = "inventory" if details.purchase_kind == PurchaseKind.INVENTORY else "fixed_assets"
        return prev.shifted(**{method_field(details.method): amount, target: -amount})

    if tx.type == TransactionType.EXPENSE:
        return prev.shifted(**{method_field(details.method): amount, "expenses": -amount})

    if tx.type == TransactionType.PRODUCTION:
        return prev

    # Cash / bank audit
    field = method_field(details.account)
    if details.direction == AdjustmentDirection.LOSS:
        return prev.shifted(**{field: amount, "expenses": -amount})
    return prev.shifted(**{field: -amount, "revenue": -amount})


def split_cogs(cogs: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Distribute `cogs` proportionally to `weights`.

    The last share takes the remainder so the parts sum exactly to cogs.
    """
    total = sum(weights, ZERO)
    if total <= 0:
        return [ZERO for _ in weights]
    shares = [cogs * w / total for w in weights[:-1]]
    shares.append(cogs - sum(shares, ZERO))
    return shares


class ReversalEngine:
    """
    Voids transactions on a LedgerDraft.

    The engine does not commit: the caller owns the `store.update()` block.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

    def revert(self, draft: LedgerDraft, tx_id: str) -> RevertResult:
        original = draft.find_transaction(tx_id)
        blocked = revert_block_reason(original)
        if blocked is not None:
            status, message = blocked
            logger.info("revert_rejected", tx_id=tx_id, status=status.value, reason=message)
            return RevertResult(status=status, tx_id=tx_id, message=message)

        draft.apply(inverse_effect, original)
        self._undo_inventory(draft, original)

        contra = TransactionBuilder.contra_entry(original, self._clock(), new_id())
        draft.replace_transaction(
            original.model_copy(update={
                "status": TransactionStatus.VOIDED,
                "voiding_tx_id": contra.id,
            })
        )
        draft.record(contra)

        logger.info(
            "transaction_voided",
            tx_id=original.id,
            tx_type=original.type.value,
            contra_tx_id=contra.id,
        )
        return RevertResult(
            status=RevertStatus.REVERTED,
            tx_id=original.id,
            contra_tx_id=contra.id,
            message=f"Transaction {original.id} voided",
        )

    # -------------------------------------------------------------------------
    # Inventory side
    # -------------------------------------------------------------------------

    def _undo_inventory(self, draft: LedgerDraft, tx: Transaction) -> None:
        details = tx.details

        if isinstance(details, SaleDetails):
            self._refund_sale(draft, tx, details)

        elif isinstance(details, PurchaseDetails):
            if details.purchase_kind == PurchaseKind.INVENTORY:
                draft.lots.withdraw(details.item_id, details.quantity, details.batch_id)
            else:
                self._shrink_asset(draft, details, tx.amount)

        elif isinstance(details, ProductionDetails):
            draft.lots.withdraw(
                details.output_item_id,
                details.output_quantity,
                details.output_batch_id,
            )
            for ingredient in details.ingredients:
                draft.lots.refund(
                    ingredient.item_id,
                    ingredient.quantity,
                    ingredient.total_cost,
                    tx.date,
                )

    @staticmethod
    def _refund_sale(draft: LedgerDraft, tx: Transaction, details: SaleDetails) -> None:
        """Put back the units a perpetual-policy sale consumed."""
        cogs = tx.cogs or ZERO
        if cogs <= 0:
            return

        lines = [line for line in details.cart if line.inventory_item_id and line.quantity > 0]
        if not lines:
            logger.warning("sale_cogs_without_inventory_lines", tx_id=tx.id, cogs=str(cogs))
            return

        shares = split_cogs(cogs, [line.quantity for line in lines])
        for line, share in zip(lines, shares):
            draft.lots.refund(line.inventory_item_id, line.quantity, share, tx.date)

    @staticmethod
    def _shrink_asset(draft: LedgerDraft, details: PurchaseDetails, amount: Decimal) -> None:
        if not details.asset_id:
            return
        assets = draft.state.assets
        for idx, asset in enumerate(assets):
            if asset.id != details.asset_id:
                continue
            value = max(asset.value - amount, ZERO)
            quantity = max(asset.quantity - details.quantity, ZERO)
            if quantity <= 0 or value <= 0:
                del assets[idx]
            else:
                assets[idx] = asset.model_copy(update={"value": value, "quantity": quantity})
            return

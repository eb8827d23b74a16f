"""
Transaction Log Models

Every business event produces exactly one Transaction. Transactions are
append-only: the only fields ever rewritten are `status` and
`voiding_tx_id`, and only by the reversal engine.

DESIGN DECISION: The `details` payload is a tagged union keyed by `kind`.
Each transaction type has its own strict field set, and adjustments are
classified by explicit `adjustment_kind` / `direction` tags rather than by
reading the human description.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from bookkeeping.models.accounts import ZERO, LedgerModel, PaymentMethod
from bookkeeping.models.catalog import ensure_utc, new_id, utc_now


class TransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    EXPENSE = "EXPENSE"
    PRODUCTION = "PRODUCTION"
    ADJUSTMENT = "ADJUSTMENT"
    INITIALIZATION = "INITIALIZATION"


class TransactionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    VOIDED = "VOIDED"  # Terminal


class PurchaseKind(str, Enum):
    INVENTORY = "inventory"
    ASSET = "asset"


class AdjustmentKind(str, Enum):
    """What an adjustment counted."""
    CASH = "cash"            # Cash / bank audit
    INVENTORY = "inventory"  # Physical inventory count
    ASSET = "asset"          # Fixed-asset count


class AdjustmentDirection(str, Enum):
    LOSS = "loss"  # System had more than was counted
    GAIN = "gain"  # Counted more than the system had


# =============================================================================
# DETAILS VARIANTS
# =============================================================================

class PurchaseDetails(LedgerModel):
    kind: Literal["purchase"] = "purchase"
    purchase_kind: PurchaseKind
    method: PaymentMethod
    item_id: Optional[str] = Field(
        default=None,
        description="Inventory item id (inventory purchases)"
    )
    asset_id: Optional[str] = Field(
        default=None,
        description="Asset item id (asset purchases)"
    )
    item_name: str
    quantity: Decimal = Field(default=ZERO, ge=0)
    batch_id: Optional[str] = Field(
        default=None,
        description="Batch created by this purchase"
    )
    provider_name: Optional[str] = None


class SaleLine(LedgerModel):
    """One line of a sale cart."""
    product_id: Optional[str] = None
    inventory_item_id: Optional[str] = None
    name: str
    quantity: Decimal = Field(..., ge=0)
    price: Decimal = Field(..., ge=0, description="Unit price")

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.price


class SaleDetails(LedgerModel):
    kind: Literal["sale"] = "sale"
    method: PaymentMethod
    cart: list[SaleLine] = Field(default_factory=list)


class ExpenseDetails(LedgerModel):
    kind: Literal["expense"] = "expense"
    method: PaymentMethod
    type_name: str
    provider_name: Optional[str] = None


class IngredientUsage(LedgerModel):
    """Ingredient consumed by a production run, at its FIFO unit cost."""
    item_id: str
    name: str
    quantity: Decimal = Field(..., ge=0)
    unit_cost: Decimal = Field(default=ZERO, ge=0)

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.unit_cost


class ProductionDetails(LedgerModel):
    kind: Literal["production"] = "production"
    output_item_id: str
    output_name: str
    output_quantity: Decimal = Field(..., ge=0)
    output_batch_id: Optional[str] = None
    ingredients: list[IngredientUsage] = Field(default_factory=list)


class CountLine(LedgerModel):
    """One counted item in an inventory or asset count."""
    item_id: str
    name: str
    system_quantity: Decimal
    counted_quantity: Decimal
    value: Decimal = Field(
        default=ZERO,
        description="Value moved: positive for a loss, negative for a gain"
    )


class AdjustmentDetails(LedgerModel):
    kind: Literal["adjustment"] = "adjustment"
    adjustment_kind: AdjustmentKind
    direction: AdjustmentDirection
    account: Optional[PaymentMethod] = Field(
        default=None,
        description="Audited account (cash adjustments)"
    )
    system_value: Optional[Decimal] = None
    counted_value: Optional[Decimal] = None
    lines: list[CountLine] = Field(default_factory=list)


class InitializationDetails(LedgerModel):
    kind: Literal["initialization"] = "initialization"
    cash: Decimal = ZERO
    bank: Decimal = ZERO
    inventory_value: Decimal = ZERO
    fixed_asset_value: Decimal = ZERO


class ReversalDetails(LedgerModel):
    """Payload of a contra-entry."""
    kind: Literal["reversal"] = "reversal"
    original_tx_id: str
    original_type: TransactionType


TransactionDetails = Annotated[
    Union[
        PurchaseDetails,
        SaleDetails,
        ExpenseDetails,
        ProductionDetails,
        AdjustmentDetails,
        InitializationDetails,
        ReversalDetails,
    ],
    Field(discriminator="kind"),
]

# Which details variants each transaction type may carry
ALLOWED_DETAILS: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.PURCHASE: ("purchase",),
    TransactionType.SALE: ("sale",),
    TransactionType.EXPENSE: ("expense",),
    TransactionType.PRODUCTION: ("production",),
    TransactionType.ADJUSTMENT: ("adjustment", "reversal"),
    TransactionType.INITIALIZATION: ("initialization",),
}


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(LedgerModel):
    """
    A single business event in the log.

    `voiding_tx_id` is a bidirectional link: on a voided original it points
    at the contra-entry, on the contra-entry it points back at the original.
    """

    id: str = Field(default_factory=new_id)
    date: datetime = Field(default_factory=utc_now)
    type: TransactionType
    amount: Decimal = Field(..., description="Amount of the event")
    description: str = Field(..., max_length=500)
    cogs: Optional[Decimal] = Field(
        default=None,
        description="Exact cost of goods realized by this event"
    )
    details: Optional[TransactionDetails] = None
    status: TransactionStatus = TransactionStatus.ACTIVE
    voiding_tx_id: Optional[str] = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_details_kind(self) -> "Transaction":
        """A details payload must match the transaction type."""
        if self.details is not None:
            allowed = ALLOWED_DETAILS[self.type]
            if self.details.kind not in allowed:
                raise ValueError(
                    f"{self.type.value} transaction cannot carry '{self.details.kind}' details"
                )
        return self

    @property
    def is_voided(self) -> bool:
        return self.status == TransactionStatus.VOIDED

    @property
    def is_contra(self) -> bool:
        """
        True for a contra-entry generated by a reversal.

        Older snapshots have no ReversalDetails; there a contra-entry is an
        active ADJUSTMENT that links back to another transaction.
        """
        if isinstance(self.details, ReversalDetails):
            return True
        return (
            self.type == TransactionType.ADJUSTMENT
            and self.status == TransactionStatus.ACTIVE
            and self.voiding_tx_id is not None
        )

"""
Data Models Package

This package contains all Pydantic models used by the bookkeeping engine.
All data flowing through the system must conform to these schemas.
"""

from bookkeeping.models.accounts import (
    CENT,
    IDENTITY_TOLERANCE,
    ZERO,
    Accounts,
    LedgerModel,
    PaymentMethod,
    method_field,
    round_money,
    to_decimal,
)
from bookkeeping.models.catalog import (
    AssetItem,
    Batch,
    ExpenseType,
    InventoryItem,
    Product,
    Provider,
    new_id,
    utc_now,
)
from bookkeeping.models.transaction import (
    AdjustmentDetails,
    AdjustmentDirection,
    AdjustmentKind,
    CountLine,
    ExpenseDetails,
    IngredientUsage,
    InitializationDetails,
    ProductionDetails,
    PurchaseDetails,
    PurchaseKind,
    ReversalDetails,
    SaleDetails,
    SaleLine,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from bookkeeping.models.state import AppState
from bookkeeping.models.operations import (
    CartItem,
    IngredientRequest,
    OpeningAssetLine,
    OpeningInventoryLine,
    ValidationIssue,
    ValidationResult,
)
from bookkeeping.models.reports import (
    AssetRegisterRow,
    BalanceSheet,
    IdentityCheck,
    IncomeStatement,
    InventoryValuationRow,
    LedgerTotals,
    SelfCheckReport,
)
from bookkeeping.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Accounts
    "CENT",
    "IDENTITY_TOLERANCE",
    "ZERO",
    "Accounts",
    "LedgerModel",
    "PaymentMethod",
    "method_field",
    "round_money",
    "to_decimal",
    # Catalog
    "AssetItem",
    "Batch",
    "ExpenseType",
    "InventoryItem",
    "Product",
    "Provider",
    "new_id",
    "utc_now",
    # Transactions
    "AdjustmentDetails",
    "AdjustmentDirection",
    "AdjustmentKind",
    "CountLine",
    "ExpenseDetails",
    "IngredientUsage",
    "InitializationDetails",
    "ProductionDetails",
    "PurchaseDetails",
    "PurchaseKind",
    "ReversalDetails",
    "SaleDetails",
    "SaleLine",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    # State
    "AppState",
    # Operation inputs
    "CartItem",
    "IngredientRequest",
    "OpeningAssetLine",
    "OpeningInventoryLine",
    "ValidationIssue",
    "ValidationResult",
    # Reports
    "AssetRegisterRow",
    "BalanceSheet",
    "IdentityCheck",
    "IncomeStatement",
    "InventoryValuationRow",
    "LedgerTotals",
    "SelfCheckReport",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

"""
Catalog Maintenance

Inventory items, products, providers and expense types. Names are unique
per catalog, case-insensitively. An entry that some transaction still
references (or, for inventory, that still has batches) is never deleted,
only hidden; hidden entries stay resolvable by id and can be restored.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from bookkeeping.models.accounts import ZERO, to_decimal
from bookkeeping.models.catalog import (
    ExpenseType,
    InventoryItem,
    Product,
    Provider,
)
from bookkeeping.models.state import AppState
from bookkeeping.models.transaction import (
    AdjustmentDetails,
    AdjustmentKind,
    ExpenseDetails,
    ProductionDetails,
    PurchaseDetails,
    PurchaseKind,
    SaleDetails,
    Transaction,
)


CatalogEntry = Union[InventoryItem, Product, Provider, ExpenseType]


class CatalogKind(str, Enum):
    INVENTORY = "inventory"
    PRODUCT = "product"
    PROVIDER = "provider"
    EXPENSE_TYPE = "expense_type"


class RemovalOutcome(str, Enum):
    DELETED = "deleted"
    HIDDEN = "hidden"
    NOT_FOUND = "not_found"


class DuplicateNameError(ValueError):
    """A catalog entry with that name already exists."""

    def __init__(self, kind: CatalogKind, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"A {kind.value} named '{name}' already exists")


def entries(state: AppState, kind: CatalogKind) -> list:
    """The live list backing a catalog (mutating it mutates the state)."""
    return {
        CatalogKind.INVENTORY: state.inventory,
        CatalogKind.PRODUCT: state.products,
        CatalogKind.PROVIDER: state.providers,
        CatalogKind.EXPENSE_TYPE: state.expense_types,
    }[CatalogKind(kind)]


def active(items: list) -> list:
    """Entries shown in pickers, sorted by name."""
    return sorted((i for i in items if not i.hidden), key=lambda i: i.name.lower())


def find_by_name(items: list, name: str) -> Optional[CatalogEntry]:
    key = name.strip().lower()
    return next((i for i in items if i.name.lower() == key), None)


def find_by_id(items: list, entity_id: Optional[str]) -> Optional[CatalogEntry]:
    if not entity_id:
        return None
    return next((i for i in items if i.id == entity_id), None)


# =============================================================================
# CREATE
# =============================================================================

def _check_unique(state: AppState, kind: CatalogKind, name: str) -> None:
    if find_by_name(entries(state, kind), name) is not None:
        raise DuplicateNameError(kind, name.strip())


def add_inventory_item(state: AppState, name: str, cost=ZERO) -> InventoryItem:
    """
    New item with no stock.

    `cost` is a reference cost only: with zero stock it is replaced by the
    first batch's cost.
    """
    _check_unique(state, CatalogKind.INVENTORY, name)
    item = InventoryItem(name=name, cost=to_decimal(cost))
    state.inventory.append(item)
    return item


def add_product(
    state: AppState,
    name: str,
    price=ZERO,
    inventory_item_id: Optional[str] = None,
) -> Product:
    _check_unique(state, CatalogKind.PRODUCT, name)
    product = Product(name=name, price=to_decimal(price), inventory_item_id=inventory_item_id)
    state.products.append(product)
    return product


def add_provider(state: AppState, name: str) -> Provider:
    _check_unique(state, CatalogKind.PROVIDER, name)
    provider = Provider(name=name)
    state.providers.append(provider)
    return provider


def add_expense_type(state: AppState, name: str) -> ExpenseType:
    _check_unique(state, CatalogKind.EXPENSE_TYPE, name)
    expense_type = ExpenseType(name=name)
    state.expense_types.append(expense_type)
    return expense_type


def quick_create_item(
    state: AppState,
    name: str,
    reference_cost=ZERO,
    sale_price: Optional[Decimal] = None,
) -> tuple[InventoryItem, Optional[Product]]:
    """
    Create an item from inside an operation form.

    With a sale price, a product of the same name linked to the item is
    created too (unless a product with that name already exists).
    """
    item = add_inventory_item(state, name, reference_cost)
    product = None
    if sale_price is not None and find_by_name(state.products, name) is None:
        product = add_product(state, name, sale_price, inventory_item_id=item.id)
    return item, product


# =============================================================================
# REFERENCES
# =============================================================================

def _references_item(tx: Transaction, item_id: str) -> bool:
    details = tx.details
    if isinstance(details, PurchaseDetails):
        return details.purchase_kind == PurchaseKind.INVENTORY and details.item_id == item_id
    if isinstance(details, ProductionDetails):
        return details.output_item_id == item_id or any(
            i.item_id == item_id for i in details.ingredients
        )
    if isinstance(details, SaleDetails):
        return any(line.inventory_item_id == item_id for line in details.cart)
    if isinstance(details, AdjustmentDetails):
        return details.adjustment_kind == AdjustmentKind.INVENTORY and any(
            line.item_id == item_id for line in details.lines
        )
    return False


def _references_product(tx: Transaction, product_id: str) -> bool:
    details = tx.details
    return isinstance(details, SaleDetails) and any(
        line.product_id == product_id for line in details.cart
    )


def _references_provider(tx: Transaction, name: str) -> bool:
    details = tx.details
    if isinstance(details, (PurchaseDetails, ExpenseDetails)):
        return (details.provider_name or "").lower() == name.lower()
    return False


def _references_expense_type(tx: Transaction, name: str) -> bool:
    details = tx.details
    return isinstance(details, ExpenseDetails) and details.type_name.lower() == name.lower()


def is_referenced(state: AppState, kind: CatalogKind, entry: CatalogEntry) -> bool:
    """True if deleting `entry` would leave history pointing at nothing."""
    kind = CatalogKind(kind)
    if kind == CatalogKind.INVENTORY:
        if entry.batches or entry.stock > 0:
            return True
        return any(_references_item(tx, entry.id) for tx in state.transactions)
    if kind == CatalogKind.PRODUCT:
        return any(_references_product(tx, entry.id) for tx in state.transactions)
    if kind == CatalogKind.PROVIDER:
        return any(_references_provider(tx, entry.name) for tx in state.transactions)
    return any(_references_expense_type(tx, entry.name) for tx in state.transactions)


# =============================================================================
# REMOVE / RESTORE
# =============================================================================

def remove(state: AppState, kind: CatalogKind, entity_id: str) -> RemovalOutcome:
    """Hard-delete an unreferenced entry, otherwise hide it."""
    items = entries(state, kind)
    entry = find_by_id(items, entity_id)
    if entry is None:
        return RemovalOutcome.NOT_FOUND

    if is_referenced(state, kind, entry):
        entry.hidden = True
        return RemovalOutcome.HIDDEN

    items.remove(entry)
    return RemovalOutcome.DELETED


def restore(state: AppState, kind: CatalogKind, entity_id: str) -> Optional[CatalogEntry]:
    """Un-hide an entry. Returns it, or None if it does not exist."""
    entry = find_by_id(entries(state, kind), entity_id)
    if entry is not None:
        entry.hidden = False
    return entry

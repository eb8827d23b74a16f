"""
Two-Stage Operation Validation

DESIGN DECISION: Validation happens at the boundary, in two stages:

STAGE 1 - INPUT VALIDATION:
- Required names present
- Amounts strictly positive
- Quantities non-negative, carts and ingredient lists non-empty
- Needs nothing but the input itself

STAGE 2 - REFERENCE VALIDATION:
- Referenced ids exist in the current state
- Catalog names are unique
- Requested stock is available (a shortfall is a warning: the ledger
  charges it at average cost, it does not refuse it)
- Needs the current AppState

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes input.
The ledger treats invalid input as a no-op; this is where the user is
told why.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from bookkeeping.ledger import catalog
from bookkeeping.ledger.catalog import CatalogKind
from bookkeeping.models.accounts import ZERO, PaymentMethod, to_decimal
from bookkeeping.models.operations import (
    CartItem,
    IngredientRequest,
    OpeningAssetLine,
    OpeningInventoryLine,
    ValidationIssue,
    ValidationResult,
)
from bookkeeping.models.state import AppState


Issues = list[ValidationIssue]


def _error(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message, severity="error")


def _warning(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message, severity="warning")


def _passes(issues: Issues) -> bool:
    return not any(issue.severity == "error" for issue in issues)


def _check_name(issues: Issues, field: str, value: Optional[str], label: str) -> None:
    if value is None or not value.strip():
        issues.append(_error(field, "missing", f"{label} is required"))


def _check_positive(issues: Issues, field: str, value, label: str) -> None:
    if to_decimal(value) <= 0:
        issues.append(_error(field, "invalid_value", f"{label} must be greater than zero"))


def _check_method(issues: Issues, method) -> None:
    try:
        PaymentMethod(method)
    except ValueError:
        issues.append(_error("method", "invalid_value", f"Unknown payment method: {method}"))


class OperationValidator:
    """
    Validates operation input before it reaches the ledger engine.

    Stage 1: Input validation (no state needed)
    Stage 2: Reference validation (needs the current AppState)
    """

    def __init__(self, state: Optional[AppState] = None):
        """
        Args:
            state: Snapshot to check references against. If None, stage 2
                   is skipped and references are reported valid.
        """
        self._state = state

    def _run(
        self,
        operation: str,
        input_issues: Issues,
        reference_check=None,
    ) -> ValidationResult:
        input_valid = _passes(input_issues)
        issues = list(input_issues)

        references_valid = False
        if input_valid:
            if self._state is None or reference_check is None:
                references_valid = True
            else:
                reference_issues = reference_check(self._state)
                issues.extend(reference_issues)
                references_valid = _passes(reference_issues)

        return ValidationResult(
            operation=operation,
            input_valid=input_valid,
            references_valid=references_valid,
            issues=issues,
        )

    def _stock_warning(
        self,
        state: AppState,
        field: str,
        item_id: str,
        quantity: Decimal,
    ) -> Issues:
        item = catalog.find_by_id(state.inventory, item_id)
        if item is None:
            return [_error(field, "not_found", f"Inventory item {item_id} does not exist")]
        if quantity > item.stock:
            return [_warning(
                field,
                "insufficient_stock",
                f"Only {item.stock} of {item.name} in stock; "
                f"the shortfall of {quantity - item.stock} is charged at average cost",
            )]
        return []

    # -------------------------------------------------------------------------
    # Onboarding
    # -------------------------------------------------------------------------

    def validate_initialization(
        self,
        cash=ZERO,
        bank=ZERO,
        inventory: Iterable[OpeningInventoryLine] = (),
        assets: Iterable[OpeningAssetLine] = (),
    ) -> ValidationResult:
        issues = []
        if to_decimal(cash) < 0:
            issues.append(_error("cash", "invalid_value", "Opening cash cannot be negative"))
        if to_decimal(bank) < 0:
            issues.append(_error("bank", "invalid_value", "Opening bank balance cannot be negative"))

        seen = set()
        for index, line in enumerate(inventory):
            key = line.name.lower()
            if key in seen:
                issues.append(_error(
                    f"inventory[{index}].name", "duplicate", f"'{line.name}' is listed twice",
                ))
            seen.add(key)
        for index, line in enumerate(assets):
            if line.value == 0:
                issues.append(_warning(
                    f"assets[{index}].value", "zero_value", f"Asset '{line.name}' has no value",
                ))

        def references(state: AppState) -> Issues:
            if state.initialized:
                return [_error("initialized", "already_initialized", "The books are already open")]
            return []

        return self._run("initialize", issues, references)

    # -------------------------------------------------------------------------
    # Purchases and expenses
    # -------------------------------------------------------------------------

    def validate_purchase(
        self,
        item_name: str,
        quantity,
        amount,
        method,
        provider_name: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> ValidationResult:
        """Inventory purchase. An unknown item name is fine: it gets created."""
        issues = []
        if not item_id:
            _check_name(issues, "item_name", item_name, "Item name")
        _check_positive(issues, "quantity", quantity, "Quantity")
        _check_positive(issues, "amount", amount, "Amount")
        _check_method(issues, method)

        def references(state: AppState) -> Issues:
            found = []
            if item_id and catalog.find_by_id(state.inventory, item_id) is None:
                found.append(_error("item_id", "not_found", f"Inventory item {item_id} does not exist"))
            if provider_name and catalog.find_by_name(state.providers, provider_name) is None:
                found.append(_warning(
                    "provider_name", "unknown_provider", f"Provider '{provider_name}' is not in the catalog",
                ))
            return found

        return self._run("purchase_inventory", issues, references)

    def validate_asset_purchase(
        self,
        name: str,
        quantity,
        amount,
        method,
        asset_id: Optional[str] = None,
    ) -> ValidationResult:
        issues = []
        if not asset_id:
            _check_name(issues, "name", name, "Asset name")
        _check_positive(issues, "quantity", quantity, "Quantity")
        _check_positive(issues, "amount", amount, "Amount")
        _check_method(issues, method)

        def references(state: AppState) -> Issues:
            if asset_id and catalog.find_by_id(state.assets, asset_id) is None:
                return [_error("asset_id", "not_found", f"Asset {asset_id} does not exist")]
            return []

        return self._run("purchase_asset", issues, references)

    def validate_expense(self, amount, method, type_name: str) -> ValidationResult:
        issues = []
        _check_positive(issues, "amount", amount, "Amount")
        _check_method(issues, method)
        _check_name(issues, "type_name", type_name, "Expense type")

        def references(state: AppState) -> Issues:
            if catalog.find_by_name(state.expense_types, type_name) is None:
                return [_warning(
                    "type_name", "unknown_expense_type", f"Expense type '{type_name}' is not in the catalog",
                )]
            return []

        return self._run("pay_expense", issues, references)

    # -------------------------------------------------------------------------
    # Sales and production
    # -------------------------------------------------------------------------

    def validate_sale(self, cart: Iterable[CartItem], method) -> ValidationResult:
        cart = list(cart)
        issues = []
        if not any(entry.quantity > 0 for entry in cart):
            issues.append(_error("cart", "empty", "The cart is empty"))
        _check_method(issues, method)

        def references(state: AppState) -> Issues:
            found = []
            for index, entry in enumerate(cart):
                if not entry.product_id:
                    continue
                product = catalog.find_by_id(state.products, entry.product_id)
                if product is None:
                    found.append(_error(
                        f"cart[{index}].product_id", "not_found", f"Product {entry.product_id} does not exist",
                    ))
                elif product.inventory_item_id:
                    found.extend(self._stock_warning(
                        state, f"cart[{index}].quantity", product.inventory_item_id, entry.quantity,
                    ))
            return found

        return self._run("register_sale", issues, references)

    def validate_production(
        self,
        output_name: str,
        output_quantity,
        ingredients: Iterable[IngredientRequest],
    ) -> ValidationResult:
        ingredients = [i for i in ingredients if i.quantity > 0]
        issues = []
        _check_name(issues, "output_name", output_name, "Output item name")
        _check_positive(issues, "output_quantity", output_quantity, "Output quantity")
        if not ingredients:
            issues.append(_error("ingredients", "empty", "At least one ingredient is required"))

        def references(state: AppState) -> Issues:
            found = []
            for index, request in enumerate(ingredients):
                found.extend(self._stock_warning(
                    state, f"ingredients[{index}]", request.item_id, request.quantity,
                ))
            return found

        return self._run("produce", issues, references)

    # -------------------------------------------------------------------------
    # Counts and audits
    # -------------------------------------------------------------------------

    def validate_inventory_count(self, counts: Mapping[str, Decimal]) -> ValidationResult:
        issues = []
        if not counts:
            issues.append(_error("counts", "empty", "No counted quantities were entered"))
        for item_id, counted in counts.items():
            if to_decimal(counted) < 0:
                issues.append(_error(
                    f"counts[{item_id}]", "invalid_value", "Counted quantity cannot be negative",
                ))

        def references(state: AppState) -> Issues:
            found = []
            for item_id in counts:
                if catalog.find_by_id(state.inventory, item_id) is None:
                    found.append(_error(
                        f"counts[{item_id}]", "not_found", f"Inventory item {item_id} does not exist",
                    ))
            return found

        return self._run("count_inventory", issues, references)

    def validate_asset_count(self, counts: Mapping[str, Decimal]) -> ValidationResult:
        issues = []
        if not counts:
            issues.append(_error("counts", "empty", "No counted quantities were entered"))
        for asset_id, counted in counts.items():
            if to_decimal(counted) < 0:
                issues.append(_error(
                    f"counts[{asset_id}]", "invalid_value", "Counted quantity cannot be negative",
                ))

        def references(state: AppState) -> Issues:
            return [
                _error(f"counts[{asset_id}]", "not_found", f"Asset {asset_id} does not exist")
                for asset_id in counts
                if catalog.find_by_id(state.assets, asset_id) is None
            ]

        return self._run("count_assets", issues, references)

    def validate_cash_audit(self, account, counted_value) -> ValidationResult:
        issues = []
        _check_method(issues, account)
        if to_decimal(counted_value) < 0:
            issues.append(_error("counted_value", "invalid_value", "Counted balance cannot be negative"))

        def references(state: AppState) -> Issues:
            if to_decimal(counted_value) == state.accounts.balance(PaymentMethod(account)):
                return [ValidationIssue(
                    field="counted_value",
                    issue_type="no_difference",
                    message="Counted balance matches the books; nothing will be recorded",
                    severity="info",
                )]
            return []

        return self._run("audit_cash", issues, references)

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def validate_catalog_name(self, kind: CatalogKind, name: str) -> ValidationResult:
        issues = []
        _check_name(issues, "name", name, "Name")

        def references(state: AppState) -> Issues:
            existing = catalog.find_by_name(catalog.entries(state, kind), name)
            if existing is None:
                return []
            hint = " (it is hidden; restore it instead)" if existing.hidden else ""
            return [_error("name", "duplicate", f"'{existing.name}' already exists{hint}")]

        return self._run(f"add_{CatalogKind(kind).value}", issues, references)

    @staticmethod
    def summarize(result: ValidationResult) -> str:
        """
        Plain summary for the person entering the operation.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"Error: {issue.message}")
        for message in result.warnings:
            lines.append(f"Warning: {message}")
        return "\n".join(lines)

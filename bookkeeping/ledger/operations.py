"""
Business Operation Functions

Each operation is a pure function (accounts, params) -> new accounts.
Nothing here touches inventory lots or the transaction log: the engine
combines these with the lot ledger and TransactionBuilder inside one
atomic update. That keeps the balance arithmetic testable on its own.

Balance effects (method is cash or bank):

    purchase inventory    method -= amount; inventory += amount
    purchase asset        method -= amount; fixed_assets += amount
    pay expense           method -= amount; expenses += amount
    register sale         method += amount; revenue += amount
                          (+ inventory -= cost; cost_of_goods += cost when inventoriable)
    production            no change (value moves between inventory items)
    inventory count       inventory -= lost; cost_of_goods += lost
                          inventory += found; cost_of_goods -= found
    asset count           fixed_assets -= diff; expenses += diff
    cash audit            shortage: account -= diff; expenses += diff
                          surplus:  account += diff; revenue += diff
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from bookkeeping.models.accounts import (
    ZERO,
    Accounts,
    PaymentMethod,
    method_field,
    to_decimal,
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
    TransactionType,
)


# =============================================================================
# PURE BALANCE FUNCTIONS
# =============================================================================

def initialize_with_equity(
    cash,
    bank,
    inventory_value,
    fixed_asset_value,
) -> Accounts:
    """Opening balances. Equity is the sum of everything contributed."""
    cash, bank = to_decimal(cash), to_decimal(bank)
    inventory_value, fixed_asset_value = to_decimal(inventory_value), to_decimal(fixed_asset_value)
    return Accounts(
        cash=cash,
        bank=bank,
        inventory=inventory_value,
        fixed_assets=fixed_asset_value,
        equity=cash + bank + inventory_value + fixed_asset_value,
    )


def contribute_capital(prev: Accounts, cash, bank) -> Accounts:
    """Owner puts more money in."""
    cash, bank = to_decimal(cash), to_decimal(bank)
    return prev.shifted(cash=cash, bank=bank, equity=cash + bank)


def purchase_inventory(prev: Accounts, amount, method: PaymentMethod) -> Accounts:
    amount = to_decimal(amount)
    return prev.shifted(**{method_field(method): -amount, "inventory": amount})


def purchase_asset(prev: Accounts, amount, method: PaymentMethod) -> Accounts:
    amount = to_decimal(amount)
    return prev.shifted(**{method_field(method): -amount, "fixed_assets": amount})


def pay_expense(prev: Accounts, amount, method: PaymentMethod) -> Accounts:
    amount = to_decimal(amount)
    return prev.shifted(**{method_field(method): -amount, "expenses": amount})


def register_sale(
    prev: Accounts,
    amount,
    method: PaymentMethod,
    cost=ZERO,
    inventoriable: bool = False,
) -> Accounts:
    """
    Collect a sale.

    Under the periodic policy (the default) sales are pure revenue and
    `inventoriable` is False: COGS is realized later by inventory counts.
    The inventoriable branch is used only when the perpetual policy is
    switched on in settings.
    """
    amount = to_decimal(amount)
    new = prev.shifted(**{method_field(method): amount, "revenue": amount})
    if inventoriable:
        cost = to_decimal(cost)
        new = new.shifted(inventory=-cost, cost_of_goods=cost)
    return new


def production(prev: Accounts) -> Accounts:
    """Transformation conserves value: ingredient cost becomes output cost."""
    return prev


def adjust_inventory(prev: Accounts, lost_cost=ZERO, found_value=ZERO) -> Accounts:
    """
    Physical count result.

    Lost units (FIFO cost) move from inventory to cost of goods. Found
    units come back into inventory and reduce cost of goods.
    """
    net = to_decimal(lost_cost) - to_decimal(found_value)
    return prev.shifted(inventory=-net, cost_of_goods=net)


def adjust_fixed_assets(prev: Accounts, diff) -> Accounts:
    """diff = system value - counted value. Positive is a loss."""
    diff = to_decimal(diff)
    return prev.shifted(fixed_assets=-diff, expenses=diff)


def audit_cash(
    prev: Accounts,
    system_value,
    counted_value,
    account: PaymentMethod,
) -> Accounts:
    """Cash/bank count. Shortages are expenses, surpluses are revenue."""
    diff = to_decimal(system_value) - to_decimal(counted_value)
    field = method_field(account)
    if diff > 0:
        return prev.shifted(**{field: -diff, "expenses": diff})
    return prev.shifted(**{field: abs(diff), "revenue": abs(diff)})


# =============================================================================
# TRANSACTION CONSTRUCTORS
# =============================================================================

class TransactionBuilder:
    """
    Builds the log entry that pairs with each balance function.

    The caller appends the transaction; these only construct it.
    """

    @staticmethod
    def initialization(
        accounts: Accounts,
        date: datetime,
        description: str = "Opening balances",
    ) -> Transaction:
        return Transaction(
            type=TransactionType.INITIALIZATION,
            date=date,
            amount=accounts.equity,
            description=description,
            details=InitializationDetails(
                cash=accounts.cash,
                bank=accounts.bank,
                inventory_value=accounts.inventory,
                fixed_asset_value=accounts.fixed_assets,
            ),
        )

    @staticmethod
    def capital_contribution(
        cash: Decimal,
        bank: Decimal,
        date: datetime,
        description: str = "Capital contribution",
    ) -> Transaction:
        return Transaction(
            type=TransactionType.INITIALIZATION,
            date=date,
            amount=cash + bank,
            description=description,
            details=InitializationDetails(cash=cash, bank=bank),
        )

    @staticmethod
    def inventory_purchase(
        amount: Decimal,
        method: PaymentMethod,
        item_id: str,
        item_name: str,
        quantity: Decimal,
        date: datetime,
        batch_id: Optional[str] = None,
        provider_name: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            type=TransactionType.PURCHASE,
            date=date,
            amount=amount,
            description=f"Inventory purchase: {item_name} (x{quantity})",
            details=PurchaseDetails(
                purchase_kind=PurchaseKind.INVENTORY,
                method=method,
                item_id=item_id,
                item_name=item_name,
                quantity=quantity,
                batch_id=batch_id,
                provider_name=provider_name,
            ),
        )

    @staticmethod
    def asset_purchase(
        amount: Decimal,
        method: PaymentMethod,
        asset_id: Optional[str],
        name: str,
        quantity: Decimal,
        date: datetime,
        provider_name: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            type=TransactionType.PURCHASE,
            date=date,
            amount=amount,
            description=f"Asset purchase: {name} (x{quantity})",
            details=PurchaseDetails(
                purchase_kind=PurchaseKind.ASSET,
                method=method,
                asset_id=asset_id,
                item_name=name,
                quantity=quantity,
                provider_name=provider_name,
            ),
        )

    @staticmethod
    def expense(
        amount: Decimal,
        method: PaymentMethod,
        type_name: str,
        date: datetime,
        provider_name: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            type=TransactionType.EXPENSE,
            date=date,
            amount=amount,
            description=f"Expense ({type_name})",
            details=ExpenseDetails(
                method=method,
                type_name=type_name,
                provider_name=provider_name,
            ),
        )

    @staticmethod
    def sale(
        cart: list[SaleLine],
        method: PaymentMethod,
        date: datetime,
        cogs: Decimal = ZERO,
    ) -> Transaction:
        amount = sum((line.line_total for line in cart), ZERO)
        names = ", ".join(f"{line.name} (x{line.quantity})" for line in cart)
        return Transaction(
            type=TransactionType.SALE,
            date=date,
            amount=amount,
            description=f"Sale: {names}"[:500],
            cogs=cogs,
            details=SaleDetails(method=method, cart=cart),
        )

    @staticmethod
    def production(
        output_item_id: str,
        output_name: str,
        output_quantity: Decimal,
        output_batch_id: Optional[str],
        ingredients: list[IngredientUsage],
        total_cost: Decimal,
        date: datetime,
    ) -> Transaction:
        used = ", ".join(f"{i.quantity}x {i.name}" for i in ingredients)
        return Transaction(
            type=TransactionType.PRODUCTION,
            date=date,
            amount=total_cost,
            description=f"Production: {output_quantity}x {output_name} (using {used})"[:500],
            details=ProductionDetails(
                output_item_id=output_item_id,
                output_name=output_name,
                output_quantity=output_quantity,
                output_batch_id=output_batch_id,
                ingredients=ingredients,
            ),
        )

    @staticmethod
    def inventory_count(
        lines: list[CountLine],
        lost_cost: Decimal,
        found_value: Decimal,
        date: datetime,
    ) -> Transaction:
        net = lost_cost - found_value
        direction = AdjustmentDirection.LOSS if net >= 0 else AdjustmentDirection.GAIN
        return Transaction(
            type=TransactionType.ADJUSTMENT,
            date=date,
            amount=abs(net),
            description=f"Inventory count ({len(lines)} items, net {net})",
            cogs=net,
            details=AdjustmentDetails(
                adjustment_kind=AdjustmentKind.INVENTORY,
                direction=direction,
                lines=lines,
            ),
        )

    @staticmethod
    def asset_count(
        lines: list[CountLine],
        diff: Decimal,
        date: datetime,
    ) -> Transaction:
        direction = AdjustmentDirection.LOSS if diff >= 0 else AdjustmentDirection.GAIN
        return Transaction(
            type=TransactionType.ADJUSTMENT,
            date=date,
            amount=abs(diff),
            description=f"Fixed asset count ({len(lines)} items, net {diff})",
            details=AdjustmentDetails(
                adjustment_kind=AdjustmentKind.ASSET,
                direction=direction,
                lines=lines,
            ),
        )

    @staticmethod
    def cash_audit(
        account: PaymentMethod,
        system_value: Decimal,
        counted_value: Decimal,
        date: datetime,
    ) -> Transaction:
        diff = system_value - counted_value
        direction = AdjustmentDirection.LOSS if diff > 0 else AdjustmentDirection.GAIN
        label = "shortage" if direction == AdjustmentDirection.LOSS else "surplus"
        return Transaction(
            type=TransactionType.ADJUSTMENT,
            date=date,
            amount=abs(diff),
            description=f"{PaymentMethod(account).value.capitalize()} audit {label}: {abs(diff)}",
            details=AdjustmentDetails(
                adjustment_kind=AdjustmentKind.CASH,
                direction=direction,
                account=account,
                system_value=system_value,
                counted_value=counted_value,
            ),
        )

    @staticmethod
    def contra_entry(
        original: Transaction,
        date: datetime,
        contra_id: str,
    ) -> Transaction:
        return Transaction(
            id=contra_id,
            type=TransactionType.ADJUSTMENT,
            date=date,
            amount=original.amount,
            description=f"Void of transaction {original.id}",
            details=ReversalDetails(
                original_tx_id=original.id,
                original_type=original.type,
            ),
            voiding_tx_id=original.id,
        )

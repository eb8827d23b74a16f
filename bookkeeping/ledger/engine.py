"""
Ledger Engine

The operation coordinator. Each public method is one user action and runs
inside exactly one `store.update()` block:

    balance function (ledger.operations)
    + lot ledger mutation (ledger.lots)
    + transaction log entry (TransactionBuilder)

all committed together. Nothing here is async and nothing here persists;
the application facade (bookkeeping.orchestrator) saves after each call.

Invalid input follows the ledger rule: non-positive amounts or quantities
and unknown ids are no-ops that return None. The boundary validator is
where such input gets reported.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional

import structlog

from bookkeeping.config import CogsPolicy, get_settings
from bookkeeping.ledger import catalog, operations
from bookkeeping.ledger.aggregator import aggregate, check_identity
from bookkeeping.ledger.lots import InventoryLotLedger
from bookkeeping.ledger.operations import TransactionBuilder
from bookkeeping.ledger.reversal import ReversalEngine, RevertResult
from bookkeeping.ledger.store import LedgerDraft, LedgerStore
from bookkeeping.models.accounts import (
    ZERO,
    Accounts,
    PaymentMethod,
    round_money,
    to_decimal,
)
from bookkeeping.models.catalog import (
    AssetItem,
    ExpenseType,
    InventoryItem,
    Product,
    Provider,
    utc_now,
)
from bookkeeping.models.operations import (
    CartItem,
    IngredientRequest,
    OpeningAssetLine,
    OpeningInventoryLine,
)
from bookkeeping.models.reports import IdentityCheck, LedgerTotals
from bookkeeping.models.state import AppState
from bookkeeping.models.transaction import (
    CountLine,
    IngredientUsage,
    SaleLine,
    Transaction,
)


logger = structlog.get_logger(__name__)


class LedgerEngine:
    """
    Synchronous bookkeeping core.

    Usage:
        engine = LedgerEngine()
        engine.initialize(cash=50000, bank=100000)
        tx = engine.purchase_inventory("Harina", quantity=10, amount=10000, method="bank")
        engine.revert(tx.id)
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        cogs_policy: Optional[CogsPolicy] = None,
        identity_tolerance: Optional[Decimal] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        ledger_settings = get_settings().ledger
        self._store = store or LedgerStore()
        self._cogs_policy = CogsPolicy(cogs_policy or ledger_settings.cogs_policy)
        self._tolerance = (
            ledger_settings.identity_tolerance if identity_tolerance is None
            else to_decimal(identity_tolerance)
        )
        self._clock = clock or utc_now
        self._reversals = ReversalEngine(self._clock)

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def state(self) -> AppState:
        return self._store.state

    @property
    def accounts(self) -> Accounts:
        return self._store.accounts

    @property
    def cogs_policy(self) -> CogsPolicy:
        return self._cogs_policy

    def totals(self, date_from=None, date_to=None) -> LedgerTotals:
        return aggregate(self._store.transactions, date_from, date_to)

    def identity_check(self) -> IdentityCheck:
        return check_identity(self.accounts, self.totals(), self._tolerance)

    def preview_production_cost(self, ingredients: Iterable[IngredientRequest]) -> Decimal:
        """FIFO cost the ingredients would have right now. Never mutates."""
        lots = InventoryLotLedger(self._store.state.inventory)
        return sum(
            (lots.simulate(i.item_id, i.quantity) for i in ingredients),
            ZERO,
        )

    # -------------------------------------------------------------------------
    # Onboarding and capital
    # -------------------------------------------------------------------------

    def initialize(
        self,
        cash=ZERO,
        bank=ZERO,
        inventory: Iterable[OpeningInventoryLine] = (),
        assets: Iterable[OpeningAssetLine] = (),
    ) -> Optional[Transaction]:
        """
        Open the books once.

        Opening inventory items are created without batches; their first
        consumption gives them a legacy epoch batch.
        """
        if self._store.initialized:
            logger.info("initialize_skipped", reason="already_initialized")
            return None

        with self._store.update() as draft:
            inventory_value = ZERO
            for line in inventory:
                item = catalog.add_inventory_item(draft.state, line.name, line.cost)
                item.stock = line.stock
                inventory_value += line.stock * line.cost

            asset_value = ZERO
            for line in assets:
                draft.state.assets.append(
                    AssetItem(name=line.name, value=line.value, quantity=line.quantity)
                )
                asset_value += line.value

            accounts = operations.initialize_with_equity(cash, bank, inventory_value, asset_value)
            draft.state.accounts = accounts
            draft.state.initialized = True
            tx = draft.record(TransactionBuilder.initialization(accounts, self._clock()))

        logger.info("books_initialized", equity=str(accounts.equity))
        return tx

    def contribute_capital(self, cash=ZERO, bank=ZERO) -> Optional[Transaction]:
        cash, bank = to_decimal(cash), to_decimal(bank)
        if cash < 0 or bank < 0 or cash + bank <= 0:
            return None
        with self._store.update() as draft:
            draft.apply(operations.contribute_capital, cash, bank)
            return draft.record(
                TransactionBuilder.capital_contribution(cash, bank, self._clock())
            )

    # -------------------------------------------------------------------------
    # Purchases, expenses, sales
    # -------------------------------------------------------------------------

    def purchase_inventory(
        self,
        item_name: str,
        quantity,
        amount,
        method: PaymentMethod,
        provider_name: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        """
        Buy stock. An unknown item name creates the item.

        `amount` is the total paid; the new batch's unit cost is
        amount / quantity.
        """
        quantity, amount = to_decimal(quantity), to_decimal(amount)
        if quantity <= 0 or amount < 0:
            return None

        method = PaymentMethod(method)
        now = self._clock()
        with self._store.update() as draft:
            item = self._resolve_item(draft, item_name, item_id)
            if item is None:
                return None
            batch = draft.lots.add_batch(item.id, quantity, amount / quantity, now)
            draft.apply(operations.purchase_inventory, amount, method)
            return draft.record(TransactionBuilder.inventory_purchase(
                amount=amount,
                method=method,
                item_id=item.id,
                item_name=item.name,
                quantity=quantity,
                date=now,
                batch_id=batch.id,
                provider_name=provider_name,
            ))

    def purchase_asset(
        self,
        name: str,
        quantity,
        amount,
        method: PaymentMethod,
        provider_name: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Buy a fixed asset. An existing asset (by id or name) grows."""
        quantity, amount = to_decimal(quantity), to_decimal(amount)
        if quantity <= 0 or amount <= 0:
            return None

        method = PaymentMethod(method)
        with self._store.update() as draft:
            assets = draft.state.assets
            asset = catalog.find_by_id(assets, asset_id) or catalog.find_by_name(assets, name)
            if asset is None:
                asset = AssetItem(name=name, value=amount, quantity=quantity)
                assets.append(asset)
            else:
                asset.value += amount
                asset.quantity += quantity
                asset.hidden = False

            draft.apply(operations.purchase_asset, amount, method)
            return draft.record(TransactionBuilder.asset_purchase(
                amount=amount,
                method=method,
                asset_id=asset.id,
                name=asset.name,
                quantity=quantity,
                date=self._clock(),
                provider_name=provider_name,
            ))

    def pay_expense(
        self,
        amount,
        method: PaymentMethod,
        type_name: str,
        provider_name: Optional[str] = None,
    ) -> Optional[Transaction]:
        amount = to_decimal(amount)
        if amount <= 0:
            return None
        method = PaymentMethod(method)
        with self._store.update() as draft:
            draft.apply(operations.pay_expense, amount, method)
            return draft.record(TransactionBuilder.expense(
                amount, method, type_name, self._clock(), provider_name
            ))

    def register_sale(
        self,
        cart: Iterable[CartItem],
        method: PaymentMethod,
    ) -> Optional[Transaction]:
        """
        Collect a sale.

        Periodic policy: revenue only. Perpetual policy: lines whose product
        is linked to an inventory item are FIFO-consumed now and their cost
        is recorded on the transaction.
        """
        items = [c for c in cart if c.quantity > 0]
        if not items:
            return None

        method = PaymentMethod(method)
        perpetual = self._cogs_policy == CogsPolicy.PERPETUAL
        with self._store.update() as draft:
            lines = []
            cost = ZERO
            for entry in items:
                product = catalog.find_by_id(draft.state.products, entry.product_id)
                linked = product.inventory_item_id if product else None
                lines.append(SaleLine(
                    product_id=entry.product_id,
                    inventory_item_id=linked,
                    name=entry.name,
                    quantity=entry.quantity,
                    price=entry.price,
                ))
                if perpetual and linked:
                    cost += draft.lots.consume(linked, entry.quantity)

            tx = TransactionBuilder.sale(lines, method, self._clock(), cogs=cost)
            draft.apply(
                operations.register_sale,
                tx.amount,
                method,
                cost=cost,
                inventoriable=perpetual,
            )
            return draft.record(tx)

    # -------------------------------------------------------------------------
    # Production
    # -------------------------------------------------------------------------

    def produce(
        self,
        output_name: str,
        output_quantity,
        ingredients: Iterable[IngredientRequest],
        output_item_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        """
        Transform ingredients into an output item.

        The ingredients' FIFO cost becomes one output batch, so total
        inventory value is unchanged.
        """
        output_quantity = to_decimal(output_quantity)
        requests = [i for i in ingredients if to_decimal(i.quantity) > 0]
        if output_quantity <= 0:
            return None

        now = self._clock()
        with self._store.update() as draft:
            output = self._resolve_item(draft, output_name, output_item_id)
            if output is None:
                return None

            used = []
            total_cost = ZERO
            for request in requests:
                item = draft.lots.get(request.item_id)
                if item is None:
                    continue
                cost = draft.lots.consume(item.id, request.quantity)
                total_cost += cost
                used.append(IngredientUsage(
                    item_id=item.id,
                    name=item.name,
                    quantity=request.quantity,
                    unit_cost=cost / request.quantity,
                ))

            batch = draft.lots.add_batch(
                output.id, output_quantity, total_cost / output_quantity, now
            )
            draft.apply(operations.production)
            return draft.record(TransactionBuilder.production(
                output_item_id=output.id,
                output_name=output.name,
                output_quantity=output_quantity,
                output_batch_id=batch.id,
                ingredients=used,
                total_cost=total_cost,
                date=now,
            ))

    # -------------------------------------------------------------------------
    # Physical counts
    # -------------------------------------------------------------------------

    def count_inventory(self, counts: Mapping[str, Decimal]) -> Optional[Transaction]:
        """
        Apply a physical inventory count ({item_id: counted quantity}).

        Shrinkage is consumed FIFO item by item, which is what realizes
        cost of goods under the periodic policy. Surplus comes back as a
        batch at the item's current average cost.
        """
        now = self._clock()
        with self._store.update() as draft:
            lines = []
            lost = found = ZERO
            for item_id, counted in counts.items():
                counted = to_decimal(counted)
                item = draft.lots.get(item_id)
                if item is None or counted < 0 or counted == item.stock:
                    continue

                system = item.stock
                if counted < system:
                    value = draft.lots.consume(item.id, system - counted)
                    lost += value
                else:
                    extra = counted - system
                    found_value = round_money(extra * item.cost)
                    draft.lots.add_batch(item.id, extra, found_value / extra, now)
                    found += found_value
                    value = -found_value

                lines.append(CountLine(
                    item_id=item.id,
                    name=item.name,
                    system_quantity=system,
                    counted_quantity=counted,
                    value=value,
                ))

            if not lines:
                return None

            draft.apply(operations.adjust_inventory, lost, found)
            return draft.record(TransactionBuilder.inventory_count(lines, lost, found, now))

    def count_assets(self, counts: Mapping[str, Decimal]) -> Optional[Transaction]:
        """
        Apply a fixed-asset count ({asset_id: counted quantity}).

        Each counted asset is revalued at its unit value times the counted
        quantity; the difference goes to expenses.
        """
        with self._store.update() as draft:
            lines = []
            diff = ZERO
            for asset_id, counted in counts.items():
                counted = to_decimal(counted)
                asset = catalog.find_by_id(draft.state.assets, asset_id)
                if asset is None or asset.quantity <= 0 or counted < 0 or counted == asset.quantity:
                    continue

                new_value = round_money(asset.unit_value * counted)
                line_diff = asset.value - new_value
                lines.append(CountLine(
                    item_id=asset.id,
                    name=asset.name,
                    system_quantity=asset.quantity,
                    counted_quantity=counted,
                    value=line_diff,
                ))
                asset.value = new_value
                asset.quantity = counted
                diff += line_diff

            if not lines:
                return None

            draft.apply(operations.adjust_fixed_assets, diff)
            return draft.record(TransactionBuilder.asset_count(lines, diff, self._clock()))

    def audit_cash(self, account: PaymentMethod, counted_value) -> Optional[Transaction]:
        """Reconcile cash or bank with a counted balance. No difference, no entry."""
        account = PaymentMethod(account)
        counted_value = to_decimal(counted_value)
        with self._store.update() as draft:
            system_value = draft.accounts.balance(account)
            if system_value == counted_value:
                return None
            draft.apply(operations.audit_cash, system_value, counted_value, account)
            return draft.record(TransactionBuilder.cash_audit(
                account, system_value, counted_value, self._clock()
            ))

    # -------------------------------------------------------------------------
    # Reversal
    # -------------------------------------------------------------------------

    def revert(self, tx_id: str) -> RevertResult:
        with self._store.update() as draft:
            return self._reversals.revert(draft, tx_id)

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def add_inventory_item(self, name: str, cost=ZERO) -> InventoryItem:
        with self._store.update() as draft:
            return catalog.add_inventory_item(draft.state, name, cost)

    def add_product(
        self,
        name: str,
        price=ZERO,
        inventory_item_id: Optional[str] = None,
    ) -> Product:
        with self._store.update() as draft:
            return catalog.add_product(draft.state, name, price, inventory_item_id)

    def add_provider(self, name: str) -> Provider:
        with self._store.update() as draft:
            return catalog.add_provider(draft.state, name)

    def add_expense_type(self, name: str) -> ExpenseType:
        with self._store.update() as draft:
            return catalog.add_expense_type(draft.state, name)

    def quick_create_item(
        self,
        name: str,
        reference_cost=ZERO,
        sale_price=None,
    ) -> tuple[InventoryItem, Optional[Product]]:
        price = None if sale_price is None else to_decimal(sale_price)
        with self._store.update() as draft:
            return catalog.quick_create_item(draft.state, name, reference_cost, price)

    def remove_catalog_entry(
        self,
        kind: catalog.CatalogKind,
        entity_id: str,
    ) -> catalog.RemovalOutcome:
        with self._store.update() as draft:
            return catalog.remove(draft.state, kind, entity_id)

    def restore_catalog_entry(self, kind: catalog.CatalogKind, entity_id: str):
        with self._store.update() as draft:
            return catalog.restore(draft.state, kind, entity_id)

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def export_state(self) -> dict:
        return self._store.export_state()

    def import_state(self, snapshot) -> AppState:
        return self._store.import_state(snapshot)

    def reset(self) -> None:
        self._store.reset()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _resolve_item(
        draft: LedgerDraft,
        name: str,
        item_id: Optional[str] = None,
    ) -> Optional[InventoryItem]:
        """
        Item by id, else by name, else a new one. A hidden match is un-hidden.

        None when nothing matches and the name is blank.
        """
        item = draft.lots.get(item_id) or draft.lots.find_by_name(name)
        if item is None:
            if not (name or "").strip():
                return None
            item = catalog.add_inventory_item(draft.state, name)
        item.hidden = False
        return item

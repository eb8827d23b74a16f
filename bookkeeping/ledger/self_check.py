"""
System Self-Check

Replays a scripted week of business on a fresh, in-memory engine and
checks the accounting identity before and after reverting the most recent
sale. This is the on-demand integrity test behind the "audit" button: it
never touches the live state.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

import structlog

from bookkeeping.config import CogsPolicy, get_settings
from bookkeeping.ledger.engine import LedgerEngine
from bookkeeping.ledger.store import LedgerStore
from bookkeeping.models.accounts import PaymentMethod
from bookkeeping.models.catalog import ExpenseType, Product, Provider
from bookkeeping.models.operations import CartItem, IngredientRequest
from bookkeeping.models.reports import IdentityCheck, SelfCheckReport
from bookkeeping.models.state import AppState
from bookkeeping.models.transaction import TransactionType


logger = structlog.get_logger(__name__)


def _seed_state() -> AppState:
    return AppState(
        initialized=True,
        products=[
            Product(name="Pan Casero", price=Decimal("500")),
            Product(name="Café Negro", price=Decimal("1000")),
        ],
        providers=[
            Provider(name="Proveedor Harina S.A."),
            Provider(name="Granja Avícola"),
        ],
        expense_types=[
            ExpenseType(name="Agua y Luz"),
            ExpenseType(name="Planilla"),
        ],
    )


def _money(value: Decimal) -> str:
    return f"{get_settings().ledger.currency_symbol}{value:,.2f}"


def _describe(check: IdentityCheck) -> str:
    return (
        f"Assets {_money(check.total_assets)} vs equity + net income {_money(check.equity_side)} "
        f"(difference {_money(check.difference)})"
    )


def run_system_audit(clock: Optional[Callable[[], datetime]] = None) -> SelfCheckReport:
    """Run the scripted scenario and report whether the books balance."""
    engine = LedgerEngine(
        store=LedgerStore(_seed_state()),
        cogs_policy=CogsPolicy.PERIODIC,
        clock=clock,
    )
    steps: list[str] = []
    log = steps.append

    log("Starting system audit on a factory-fresh state")

    log("1. Capital contribution: 50,000 cash and 100,000 bank")
    engine.contribute_capital(cash=50000, bank=100000)

    log("2. Inventory purchase: 10 Harina for 10,000 paid by bank")
    harina_tx = engine.purchase_inventory(
        "Harina", quantity=10, amount=10000, method=PaymentMethod.BANK,
        provider_name="Proveedor Harina S.A.",
    )
    harina_id = harina_tx.details.item_id

    log("3. Fixed asset purchase: 1 Batidora for 20,000 paid in cash")
    engine.purchase_asset("Batidora", quantity=1, amount=20000, method=PaymentMethod.CASH)

    log("4. Simple sale: 2 coffees at 1,500 into cash")
    engine.register_sale(
        [CartItem(name="Café", quantity=2, price=Decimal("1500"))],
        PaymentMethod.CASH,
    )

    log("5. Production: 10 Pan using 2 Harina")
    pan_tx = engine.produce("Pan", 10, [IngredientRequest(item_id=harina_id, quantity=2)])
    pan_id = pan_tx.details.output_item_id

    log("6. Sale: 5 Pan at 500 into bank (no cost of goods at sale time)")
    engine.register_sale(
        [CartItem(name="Pan", quantity=5, price=Decimal("500"))],
        PaymentMethod.BANK,
    )

    log("7. Expense: electricity 5,000 paid by bank")
    engine.pay_expense(5000, PaymentMethod.BANK, "Luz", provider_name="CNFL")

    log("8. New asset (4 Sillas Extras for 5,000 cash) and new inventory (30 Huevos for 3,000 bank)")
    engine.purchase_asset("Sillas Extras", quantity=4, amount=5000, method=PaymentMethod.CASH)
    huevos_tx = engine.purchase_inventory(
        "Huevos", quantity=30, amount=3000, method=PaymentMethod.BANK,
        provider_name="Granja Avícola",
    )
    huevos_id = huevos_tx.details.item_id

    log("9. Sale at a modified price: 1 Pan at 400 into cash")
    engine.register_sale(
        [CartItem(name="Pan", quantity=1, price=Decimal("400"))],
        PaymentMethod.CASH,
    )

    log("10. Physical count: 1 Harina, 6 Pan and 2 Huevos missing go to cost of goods")
    state = engine.state
    stock = {item.id: item.stock for item in state.inventory}
    engine.count_inventory({
        harina_id: stock[harina_id] - 1,
        pan_id: stock[pan_id] - 6,
        huevos_id: stock[huevos_id] - 2,
    })

    accounts = engine.accounts
    totals = engine.totals()
    log(
        f"Balances: bank {_money(accounts.bank)}, cash {_money(accounts.cash)}, "
        f"inventory {_money(accounts.inventory)}, fixed assets {_money(accounts.fixed_assets)}"
    )
    log(
        f"Revenue {_money(totals.revenue)} | cost of goods {_money(totals.cost_of_goods)}, "
        f"expenses {_money(totals.expenses)}"
    )

    before = engine.identity_check()
    passed = before.balanced
    log(("PASS " if before.balanced else "FAIL ") + _describe(before))

    log("11. Reversal test: void the most recent sale")
    last_sale = next(
        (tx for tx in engine.state.transactions if tx.type == TransactionType.SALE),
        None,
    )
    after = None
    reverted_id = None
    if last_sale is None:
        log("FAIL no sale found to revert")
        passed = False
    else:
        result = engine.revert(last_sale.id)
        reverted_id = last_sale.id
        voided = engine.state.find_transaction(last_sale.id)
        contra = engine.state.find_transaction(result.contra_tx_id) if result.contra_tx_id else None

        if not result.reverted or voided is None or not voided.is_voided or contra is None:
            log(f"FAIL revert did not void the sale ({result.status.value})")
            passed = False
        else:
            log(f"Sale {last_sale.id} voided by contra-entry {contra.id}")

        after = engine.identity_check()
        passed = passed and after.balanced
        log(("PASS " if after.balanced else "FAIL ") + "after reversal: " + _describe(after))

    logger.info(
        "self_check_completed",
        passed=passed,
        difference_before=str(before.difference),
        difference_after=str(after.difference) if after else None,
    )
    return SelfCheckReport(
        passed=passed,
        steps=steps,
        before_reversal=before,
        after_reversal=after,
        reverted_tx_id=reverted_id,
    )

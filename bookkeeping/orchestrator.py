"""
Application Facade for the Bookkeeping Core

This module ties the synchronous ledger engine to the async outer
surfaces the UI talks to:
1. Operations (validate -> apply -> persist -> audit)
2. Reversals (revert -> persist -> audit, with a correlation id)
3. State lifecycle (load, import, export, reset)
4. Daily backups and restore
5. Self-check and identity check

DESIGN DECISION: The facade enforces the boundaries:
- Nothing reaches the engine without passing the boundary validator
- Every committed change is saved before the call returns
- A failed save is never silent: it is audited and raised as
  PersistenceError, with the in-memory change kept
- Every step is audited
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional, Union
from uuid import UUID

import structlog

from bookkeeping.audit import AuditLogger, configure_logging, create_correlation_id
from bookkeeping.config import get_settings, validate_all_settings
from bookkeeping.ledger import LedgerEngine, RevertResult, run_system_audit
from bookkeeping.ledger.catalog import CatalogKind, RemovalOutcome
from bookkeeping.models.accounts import ZERO, PaymentMethod
from bookkeeping.models.catalog import ExpenseType, InventoryItem, Product, Provider, utc_now
from bookkeeping.models.operations import (
    CartItem,
    IngredientRequest,
    OpeningAssetLine,
    OpeningInventoryLine,
    ValidationResult,
)
from bookkeeping.models.reports import IdentityCheck, SelfCheckReport
from bookkeeping.models.state import AppState
from bookkeeping.models.transaction import Transaction
from bookkeeping.queries import ReportExecutor
from bookkeeping.services.backup import BackupManager, BackupResult
from bookkeeping.services.storage import (
    InMemoryAuditStorage,
    InMemoryBackupStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    LocalDirectoryBackupStorage,
    PersistenceError,
    SnapshotError,
    StateStorageInterface,
    StorageError,
)
from bookkeeping.validation import OperationValidator


logger = structlog.get_logger(__name__)

OperationOutcome = tuple[Optional[Transaction], ValidationResult]


class BookkeepingService:
    """
    Async facade over one LedgerEngine.

    Flow for every operation:
    1. Validate → OperationValidator against the current state
    2. Apply → one atomic engine call
    3. Persist → StateStorageInterface.save_state
    4. Audit → AuditLogger

    Operations return (transaction, validation). The transaction is None
    when validation failed or the engine found nothing to record.
    """

    def __init__(
        self,
        engine: Optional[LedgerEngine] = None,
        state_storage: Optional[StateStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        backup_manager: Optional[BackupManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._clock = clock or utc_now
        self._engine = engine or LedgerEngine(clock=self._clock)
        self._state_storage = state_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._backup_manager = backup_manager

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    @property
    def reports(self) -> ReportExecutor:
        return ReportExecutor(self._engine)

    def validator(self) -> OperationValidator:
        """A validator bound to the current state."""
        return OperationValidator(self._engine.state)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _persist(self) -> None:
        """
        Save the current state.

        Raises:
            PersistenceError: if storage fails (the in-memory state is kept)
        """
        if self._state_storage is None:
            return
        try:
            await self._state_storage.save_state(self._engine.export_state())
        except StorageError as e:
            await self._audit_logger.log_save_failed(str(e))
            raise PersistenceError(f"State changed but could not be saved: {e}") from e

    async def load(self) -> bool:
        """
        Load the persisted state on startup.

        Returns False when there is nothing saved yet.

        Raises:
            SnapshotError: if the saved state is corrupt (factory state is kept)
        """
        if self._state_storage is None:
            return False

        try:
            snapshot = await self._state_storage.load_state()
            if snapshot is None:
                return False
            state = self._engine.import_state(snapshot)
        except SnapshotError as e:
            await self._audit_logger.log_state_import_failed("startup", str(e))
            raise

        await self._audit_logger.log_state_imported(len(state.transactions), "startup")
        return True

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def _run(
        self,
        validation: ValidationResult,
        action: Callable[[], Optional[Transaction]],
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        correlation_id = correlation_id or create_correlation_id()

        if not validation.is_valid:
            await self._audit_logger.log_validation_failed(
                operation=validation.operation,
                issues=[issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
            return None, validation

        tx = action()
        if tx is None:
            return None, validation

        await self._persist()
        await self._audit_logger.log_operation(
            tx_id=tx.id,
            tx_type=tx.type.value,
            amount=str(tx.amount),
            description=tx.description,
            correlation_id=correlation_id,
        )
        return tx, validation

    async def initialize(
        self,
        cash=ZERO,
        bank=ZERO,
        inventory: Iterable[OpeningInventoryLine] = (),
        assets: Iterable[OpeningAssetLine] = (),
    ) -> OperationOutcome:
        inventory, assets = list(inventory), list(assets)
        validation = self.validator().validate_initialization(cash, bank, inventory, assets)
        tx, validation = await self._run(
            validation,
            lambda: self._engine.initialize(cash, bank, inventory, assets),
        )
        if tx is not None:
            await self._audit_logger.log_state_initialized(str(self._engine.accounts.equity))
        return tx, validation

    async def contribute_capital(self, cash=ZERO, bank=ZERO) -> OperationOutcome:
        # Contributions are allowed on open books, so only stage 1 applies
        validation = OperationValidator().validate_initialization(cash, bank)
        return await self._run(
            validation.model_copy(update={"operation": "contribute_capital"}),
            lambda: self._engine.contribute_capital(cash, bank),
        )

    async def purchase_inventory(
        self,
        item_name: str,
        quantity,
        amount,
        method: PaymentMethod,
        provider_name: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> OperationOutcome:
        validation = self.validator().validate_purchase(
            item_name, quantity, amount, method, provider_name, item_id,
        )
        return await self._run(
            validation,
            lambda: self._engine.purchase_inventory(
                item_name, quantity, amount, method, provider_name, item_id,
            ),
        )

    async def purchase_asset(
        self,
        name: str,
        quantity,
        amount,
        method: PaymentMethod,
        provider_name: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> OperationOutcome:
        validation = self.validator().validate_asset_purchase(name, quantity, amount, method, asset_id)
        return await self._run(
            validation,
            lambda: self._engine.purchase_asset(
                name, quantity, amount, method, provider_name, asset_id,
            ),
        )

    async def pay_expense(
        self,
        amount,
        method: PaymentMethod,
        type_name: str,
        provider_name: Optional[str] = None,
    ) -> OperationOutcome:
        validation = self.validator().validate_expense(amount, method, type_name)
        return await self._run(
            validation,
            lambda: self._engine.pay_expense(amount, method, type_name, provider_name),
        )

    async def register_sale(self, cart: Iterable[CartItem], method: PaymentMethod) -> OperationOutcome:
        cart = list(cart)
        validation = self.validator().validate_sale(cart, method)
        return await self._run(validation, lambda: self._engine.register_sale(cart, method))

    async def produce(
        self,
        output_name: str,
        output_quantity,
        ingredients: Iterable[IngredientRequest],
        output_item_id: Optional[str] = None,
    ) -> OperationOutcome:
        ingredients = list(ingredients)
        validation = self.validator().validate_production(output_name, output_quantity, ingredients)
        return await self._run(
            validation,
            lambda: self._engine.produce(output_name, output_quantity, ingredients, output_item_id),
        )

    async def count_inventory(self, counts: Mapping[str, Decimal]) -> OperationOutcome:
        validation = self.validator().validate_inventory_count(counts)
        return await self._run(validation, lambda: self._engine.count_inventory(counts))

    async def count_assets(self, counts: Mapping[str, Decimal]) -> OperationOutcome:
        validation = self.validator().validate_asset_count(counts)
        return await self._run(validation, lambda: self._engine.count_assets(counts))

    async def audit_cash(self, account: PaymentMethod, counted_value) -> OperationOutcome:
        validation = self.validator().validate_cash_audit(account, counted_value)
        return await self._run(validation, lambda: self._engine.audit_cash(account, counted_value))

    # -------------------------------------------------------------------------
    # Reversal
    # -------------------------------------------------------------------------

    async def revert(
        self,
        tx_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> RevertResult:
        """
        Void a transaction with a contra-entry.

        A rejected reversal changes nothing and is audited as such.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._engine.revert(tx_id)

        if not result.reverted:
            await self._audit_logger.log_revert_rejected(
                tx_id=tx_id,
                status=result.status.value,
                message=result.message,
                correlation_id=correlation_id,
            )
            return result

        await self._persist()
        await self._audit_logger.log_transaction_voided(
            tx_id=tx_id,
            contra_tx_id=result.contra_tx_id,
            correlation_id=correlation_id,
        )
        return result

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def _catalog_added(self, kind: CatalogKind, entry) -> None:
        await self._persist()
        await self._audit_logger.log_catalog_changed(
            entity_type=kind.value,
            entity_id=entry.id,
            action="created",
            name=entry.name,
        )

    async def _check_catalog_name(self, kind: CatalogKind, name: str) -> ValidationResult:
        validation = self.validator().validate_catalog_name(kind, name)
        if not validation.is_valid:
            await self._audit_logger.log_validation_failed(
                operation=validation.operation,
                issues=[issue.model_dump() for issue in validation.issues],
            )
        return validation

    async def add_inventory_item(
        self,
        name: str,
        cost=ZERO,
    ) -> tuple[Optional[InventoryItem], ValidationResult]:
        validation = await self._check_catalog_name(CatalogKind.INVENTORY, name)
        if not validation.is_valid:
            return None, validation
        item = self._engine.add_inventory_item(name, cost)
        await self._catalog_added(CatalogKind.INVENTORY, item)
        return item, validation

    async def add_product(
        self,
        name: str,
        price=ZERO,
        inventory_item_id: Optional[str] = None,
    ) -> tuple[Optional[Product], ValidationResult]:
        validation = await self._check_catalog_name(CatalogKind.PRODUCT, name)
        if not validation.is_valid:
            return None, validation
        product = self._engine.add_product(name, price, inventory_item_id)
        await self._catalog_added(CatalogKind.PRODUCT, product)
        return product, validation

    async def add_provider(self, name: str) -> tuple[Optional[Provider], ValidationResult]:
        validation = await self._check_catalog_name(CatalogKind.PROVIDER, name)
        if not validation.is_valid:
            return None, validation
        provider = self._engine.add_provider(name)
        await self._catalog_added(CatalogKind.PROVIDER, provider)
        return provider, validation

    async def add_expense_type(self, name: str) -> tuple[Optional[ExpenseType], ValidationResult]:
        validation = await self._check_catalog_name(CatalogKind.EXPENSE_TYPE, name)
        if not validation.is_valid:
            return None, validation
        expense_type = self._engine.add_expense_type(name)
        await self._catalog_added(CatalogKind.EXPENSE_TYPE, expense_type)
        return expense_type, validation

    async def quick_create_item(
        self,
        name: str,
        reference_cost=ZERO,
        sale_price=None,
    ) -> tuple[Optional[InventoryItem], Optional[Product], ValidationResult]:
        """Create an inventory item (and, with a sale price, its product) from a form."""
        validation = await self._check_catalog_name(CatalogKind.INVENTORY, name)
        if not validation.is_valid:
            return None, None, validation
        item, product = self._engine.quick_create_item(name, reference_cost, sale_price)
        await self._catalog_added(CatalogKind.INVENTORY, item)
        if product is not None:
            await self._audit_logger.log_catalog_changed(
                entity_type=CatalogKind.PRODUCT.value,
                entity_id=product.id,
                action="created",
                name=product.name,
            )
        return item, product, validation

    async def remove_catalog_entry(self, kind: CatalogKind, entity_id: str) -> RemovalOutcome:
        outcome = self._engine.remove_catalog_entry(kind, entity_id)
        if outcome == RemovalOutcome.NOT_FOUND:
            return outcome
        await self._persist()
        await self._audit_logger.log_catalog_changed(
            entity_type=CatalogKind(kind).value,
            entity_id=entity_id,
            action=outcome.value,
            name="",
        )
        return outcome

    async def restore_catalog_entry(self, kind: CatalogKind, entity_id: str):
        entry = self._engine.restore_catalog_entry(kind, entity_id)
        if entry is None:
            return None
        await self._persist()
        await self._audit_logger.log_catalog_changed(
            entity_type=CatalogKind(kind).value,
            entity_id=entry.id,
            action="restored",
            name=entry.name,
        )
        return entry

    # -------------------------------------------------------------------------
    # State lifecycle
    # -------------------------------------------------------------------------

    def export_state(self) -> dict:
        return self._engine.export_state()

    async def import_state(
        self,
        snapshot: Union[AppState, dict],
        source: str = "import",
    ) -> AppState:
        """
        Replace the whole state with a validated snapshot.

        Raises:
            SnapshotError: if the snapshot is invalid (state untouched)
            PersistenceError: if the imported state could not be saved
        """
        try:
            state = self._engine.import_state(snapshot)
        except SnapshotError as e:
            await self._audit_logger.log_state_import_failed(source, str(e))
            raise

        await self._persist()
        await self._audit_logger.log_state_imported(len(state.transactions), source)
        return state

    async def reset(self) -> None:
        """Back to the factory state, in memory and in storage."""
        self._engine.reset()
        if self._state_storage is not None:
            try:
                await self._state_storage.clear_state()
            except StorageError as e:
                await self._audit_logger.log_save_failed(str(e))
                raise PersistenceError(f"State was reset but storage could not be cleared: {e}") from e
        await self._audit_logger.log_state_reset()

    # -------------------------------------------------------------------------
    # Backups
    # -------------------------------------------------------------------------

    async def daily_backup(self, today: Optional[date] = None) -> Optional[BackupResult]:
        """
        Write today's backup if it does not exist yet.

        Returns None when no backup storage is configured.
        """
        if self._backup_manager is None:
            return None

        try:
            result = await self._backup_manager.save_daily_backup(
                self._engine.state, today=today, now=self._clock(),
            )
        except StorageError as e:
            await self._audit_logger.log_error(
                error_type="backup_failed",
                error_message=str(e),
            )
            raise

        if result.created:
            await self._audit_logger.log_backup_created(result.name)
            if result.pruned:
                await self._audit_logger.log_backup_pruned(result.pruned)
        else:
            await self._audit_logger.log_backup_skipped(result.name)
        return result

    async def list_backups(self) -> list[str]:
        if self._backup_manager is None:
            return []
        return await self._backup_manager.list_backups()

    async def restore_backup(self, name: str) -> AppState:
        """
        Replace the live state with a stored backup.

        Raises:
            StorageError: if there is no backup storage
            NotFoundError: if the backup does not exist
            SnapshotError: if the backup is corrupt (state untouched)
        """
        if self._backup_manager is None:
            raise StorageError("Backup storage is not configured")

        try:
            state = await self._backup_manager.restore_backup(name)
        except SnapshotError as e:
            await self._audit_logger.log_state_import_failed(name, str(e))
            raise

        state = self._engine.import_state(state)
        await self._persist()
        await self._audit_logger.log_backup_restored(name)
        return state

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    async def check_identity(self) -> IdentityCheck:
        check = self._engine.identity_check()
        await self._audit_logger.log_identity_check(check.balanced, str(check.difference))
        return check

    async def run_self_check(self) -> SelfCheckReport:
        """Run the scripted audit scenario on a separate in-memory engine."""
        report = run_system_audit(clock=self._clock)
        difference = report.after_reversal.difference if report.after_reversal else ZERO
        await self._audit_logger.log_identity_check(report.passed, str(difference))
        return report


def create_app_components(
    in_memory: bool = False,
) -> BookkeepingService:
    """
    Factory function to create the application service.

    Args:
        in_memory: Keep state, audit trail and backups in memory.
                   Set to True for testing and demos.

    Returns:
        A BookkeepingService; call `await service.load()` before use.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    status = validate_all_settings()
    for name, valid in status.items():
        if valid is False:
            logger.warning("settings_invalid", section=name, error=status.get(f"{name}_error"))

    if in_memory:
        state_storage = InMemoryStateStorage()
        audit_storage = InMemoryAuditStorage()
        backup_storage = InMemoryBackupStorage()
    else:
        state_storage = JsonFileStateStorage(settings.storage.state_path)
        audit_storage = JsonLinesAuditStorage(settings.storage.audit_log_path)
        backup_storage = LocalDirectoryBackupStorage(settings.backup.directory)

    return BookkeepingService(
        engine=LedgerEngine(),
        state_storage=state_storage,
        audit_logger=AuditLogger(audit_storage),
        backup_manager=BackupManager(backup_storage, settings.backup),
    )

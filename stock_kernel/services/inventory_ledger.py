"""
InventoryLedger -- the in-process API collaborators call.

Responsibility:
    Owns the transaction boundary.  Every public method opens one unit of
    work from the session factory, runs the engine or selector inside it,
    commits on success and rolls back on any failure, and hands back frozen
    DTOs.  Store-level failures surface as TransactionAbortedError with the
    driver error chained.

Architecture position:
    Kernel > Services -- the outermost kernel layer.  Engines below it only
    flush; this class is the one place that commits.

Invariants enforced:
    - One operation == one atomic unit: an engine failure, a validation
      error or a store abort leaves no item change and no ledger row.
    - Ledger guard listeners are registered before the first operation.

Failure modes:
    - Validation errors (StockKernelError subclasses) propagate unchanged
      after rollback.
    - TransactionAbortedError for OperationalError, IntegrityError and other
      DBAPIError raised while the unit is open or committing.
"""

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Generator, Mapping

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    AdjustmentResult,
    ConsumptionResult,
    ExpirationAlert,
    ItemSnapshot,
    LedgerEntryRecord,
    ReconciliationReport,
    Reference,
    ReversalResult,
    StockAlert,
)
from stock_kernel.domain.policy import parse_threshold
from stock_kernel.exceptions import (
    InvalidAdjustmentError,
    ItemNotFoundError,
    TransactionAbortedError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.ledger_entry import LedgerReason
from stock_kernel.selectors.ledger_selector import DEFAULT_PAGE_SIZE, LedgerSelector
from stock_kernel.selectors.stock_status_selector import StockStatusSelector
from stock_kernel.services.adjustment_service import AdjustmentService
from stock_kernel.services.consumption_service import ConsumptionService
from stock_kernel.services.item_store import UNSET, ItemStore
from stock_kernel.services.reversal_service import ReversalService

logger = get_logger("services.inventory_ledger")


class InventoryLedger:
    """
    Facade over the Item Store, Ledger Store, engines and readers.

    Usage:
        ledger = InventoryLedger(get_session_factory(), catalog)
        ledger.adjust("progesterone", Decimal("10"), LedgerReason.RESTOCK,
                      performed_by="admin")
        ledger.consume(event_id=501, performed_by="nurse-1")
        ledger.reverse(event_id=501, performed_by="nurse-1")
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        catalog: ItemCatalog,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._catalog = catalog
        self._clock = clock or SystemClock()
        register_immutability_listeners()

    @property
    def catalog(self) -> ItemCatalog:
        return self._catalog

    @contextmanager
    def _unit_of_work(self, operation: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except DBAPIError as exc:
            detail = str(exc.orig) if exc.orig is not None else str(exc)
            logger.error(
                "transaction_aborted",
                extra={
                    "operation": operation,
                    "driver_error": type(exc.orig).__name__ if exc.orig is not None else None,
                },
            )
            raise TransactionAbortedError(operation, detail) from exc

    # =========================================================================
    # Engines
    # =========================================================================

    def adjust(
        self,
        item_type: str,
        delta: Decimal | int | float | str,
        reason: LedgerReason | str,
        reference: Reference | None = None,
        performed_by: str | None = None,
        notes: str | None = None,
        expiration_date: date | None = None,
        lot_number: str | None = None,
    ) -> AdjustmentResult:
        """Change one item's quantity by ``delta``; see AdjustmentService."""
        with LogContext.bind(item_type=item_type, actor_id=performed_by):
            with self._unit_of_work("adjust") as session:
                return AdjustmentService(session, self._catalog, self._clock).adjust(
                    item_type,
                    delta,
                    reason,
                    reference=reference,
                    performed_by=performed_by,
                    notes=notes,
                    expiration_date=expiration_date,
                    lot_number=lot_number,
                )

    def consume(
        self,
        event_id: object,
        performed_by: str | None,
        consumption: Mapping[str, Decimal | int | float | str] | None = None,
        notes: str | None = None,
    ) -> ConsumptionResult:
        """Consume stock for one event, all or nothing; see ConsumptionService."""
        with LogContext.bind(event_id=str(event_id), actor_id=performed_by):
            with self._unit_of_work("consume") as session:
                return ConsumptionService(session, self._catalog, self._clock).consume(
                    event_id, performed_by, consumption, notes=notes
                )

    def reverse(
        self,
        event_id: object,
        performed_by: str | None,
        notes: str | None = None,
    ) -> ReversalResult:
        """Undo an event's outstanding consumption; see ReversalService."""
        with LogContext.bind(event_id=str(event_id), actor_id=performed_by):
            with self._unit_of_work("reverse") as session:
                return ReversalService(session, self._catalog, self._clock).reverse(
                    event_id, performed_by, notes=notes
                )

    # =========================================================================
    # Item Store
    # =========================================================================

    def get_item(self, item_type: str) -> ItemSnapshot:
        with self._unit_of_work("get_item") as session:
            return ItemSnapshot.from_model(ItemStore(session, self._catalog).get(item_type))

    def list_items(self) -> list[ItemSnapshot]:
        with self._unit_of_work("list_items") as session:
            return [ItemSnapshot.from_model(i) for i in ItemStore(session, self._catalog).list()]

    def upsert_item(
        self,
        item_type: str,
        quantity: Decimal | int | str = Decimal("0"),
        unit: str | None = None,
        low_stock_threshold: Decimal | int | str | None = None,
        expiration_date: date | None = None,
        lot_number: str | None = None,
        notes: str | None = None,
    ) -> ItemSnapshot:
        """Insert or fully replace an item row (administrative)."""
        with self._unit_of_work("upsert_item") as session:
            item = ItemStore(session, self._catalog).upsert(
                item_type,
                quantity=quantity,
                unit=unit,
                low_stock_threshold=parse_threshold(item_type, low_stock_threshold),
                expiration_date=expiration_date,
                lot_number=lot_number,
                notes=notes,
            )
            return ItemSnapshot.from_model(item)

    def update_item(
        self,
        item_type: str,
        *,
        low_stock_threshold=UNSET,
        expiration_date=UNSET,
        lot_number=UNSET,
        notes=UNSET,
    ) -> ItemSnapshot:
        """
        Update item metadata without touching its quantity.

        Only the keyword arguments supplied are written; pass ``None`` to
        clear a field.

        Raises:
            InvalidAdjustmentError: if no field is supplied or the threshold
                is negative.
            ItemNotFoundError: if the item has no row.
        """
        fields = {
            "low_stock_threshold": low_stock_threshold,
            "expiration_date": expiration_date,
            "lot_number": lot_number,
            "notes": notes,
        }
        if all(value is UNSET for value in fields.values()):
            raise InvalidAdjustmentError("No fields to update", item_type=item_type)
        if low_stock_threshold is not UNSET:
            fields["low_stock_threshold"] = parse_threshold(item_type, low_stock_threshold)

        with self._unit_of_work("update_item") as session:
            store = ItemStore(session, self._catalog)
            item = store.lock(item_type)
            if item is None:
                raise ItemNotFoundError(item_type)
            store.update_metadata(item, **fields)
            logger.info(
                "item_metadata_updated",
                extra={
                    "item_type": item_type,
                    "fields": sorted(k for k, v in fields.items() if v is not UNSET),
                },
            )
            return ItemSnapshot.from_model(item)

    def delete_item(self, item_type: str) -> None:
        """Delete an item row (administrative escape hatch)."""
        with self._unit_of_work("delete_item") as session:
            ItemStore(session, self._catalog).delete(item_type)

    # =========================================================================
    # Readers
    # =========================================================================

    def low_stock(self) -> list[StockAlert]:
        with self._unit_of_work("low_stock") as session:
            return StockStatusSelector(
                session,
                critical_ratio=self._catalog.critical_ratio,
                expiration_warning_days=self._catalog.expiration_warning_days,
            ).low_stock()

    def expiring(self, within_days: int | None = None) -> list[ExpirationAlert]:
        with self._unit_of_work("expiring") as session:
            return StockStatusSelector(
                session,
                critical_ratio=self._catalog.critical_ratio,
                expiration_warning_days=self._catalog.expiration_warning_days,
            ).expiring(self._clock.today(), within_days)

    def history(
        self,
        item_type: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[LedgerEntryRecord]:
        with self._unit_of_work("history") as session:
            return LedgerSelector(session).history(item_type, limit=limit, offset=offset)

    def all_history(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[LedgerEntryRecord]:
        with self._unit_of_work("all_history") as session:
            return LedgerSelector(session).all_history(limit=limit, offset=offset)

    def count_history(self, item_type: str | None = None) -> int:
        with self._unit_of_work("count_history") as session:
            return LedgerSelector(session).count_history(item_type)

    def entries_for_event(self, event_id: object) -> list[LedgerEntryRecord]:
        with self._unit_of_work("entries_for_event") as session:
            return LedgerSelector(session).entries_for_reference(Reference.event(event_id))

    def reconcile(self) -> ReconciliationReport:
        with self._unit_of_work("reconcile") as session:
            report = LedgerSelector(session).reconcile()
        if not report.is_consistent:
            logger.error(
                "ledger_reconciliation_failed",
                extra={
                    "drifted": [r.item_type for r in report.drifted],
                    "broken_entry_ids": [str(e.id) for e in report.broken_entries],
                },
            )
        return report

    def rebuild_projection(self, item_type: str) -> ItemSnapshot:
        """
        Reset an item's stored quantity to its replayed ledger quantity.

        The ledger is authoritative; this repairs a drifted projection.  A
        replayed quantity below zero is refused by the non-negativity guard.
        """
        with self._unit_of_work("rebuild_projection") as session:
            store = ItemStore(session, self._catalog)
            item = store.lock(item_type)
            if item is None:
                raise ItemNotFoundError(item_type)
            replayed = LedgerSelector(session).replay(item_type)
            if replayed != item.quantity:
                logger.warning(
                    "projection_rebuilt",
                    extra={
                        "item_type": item_type,
                        "stored_quantity": item.quantity,
                        "replayed_quantity": replayed,
                    },
                )
                item.quantity = replayed
                session.flush()
            return ItemSnapshot.from_model(item)

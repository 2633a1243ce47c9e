"""
ConsumptionService -- atomic multi-item decrement for one clinical event.

Responsibility:
    Draws fixed amounts from several item types at once for a single event
    (one dose of the tracked resource plus its single-use accessories),
    all or nothing.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  Reuses
    AdjustmentService.apply() for every per-item change.

Algorithm:
    1. Lock phase: lock every item row in sorted item_type order.
    2. Duplicate check: the event must have no un-reversed consumption.
    3. Validate phase: every row exists and holds at least its amount.
       Nothing has been mutated yet, so a failure leaves no trace.
    4. Apply phase: decrement each item and append one ledger row with
       reason=event_consumption and reference=("event", event_id).

    All four phases run in the caller's transaction, so a store abort after
    phase 4 has begun rolls every item back together.

Invariants enforced:
    - All-or-nothing: N items decremented and N ledger rows appended, or
      zero of either.
    - quantity >= 0 for every item.
    - At most one un-reversed consumption per event.

Failure modes:
    - InvalidAdjustmentError: empty consumption map or non-positive amount.
    - InvalidItemTypeError: item type outside the catalog.
    - EventAlreadyConsumedError: the event already consumed stock.
    - ItemNotFoundError: an item has no row (consumption never auto-creates).
    - InsufficientStockError: an item holds less than its amount.
"""

from decimal import Decimal
from typing import Mapping

from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import ConsumptionResult, LedgerEntryRecord, Reference
from stock_kernel.domain.policy import parse_amount
from stock_kernel.exceptions import (
    EventAlreadyConsumedError,
    InsufficientStockError,
    InvalidAdjustmentError,
    ItemNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerReason
from stock_kernel.services.adjustment_service import AdjustmentService
from stock_kernel.services.base import BaseService
from stock_kernel.services.item_store import ItemStore
from stock_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.consumption")


class ConsumptionService(BaseService[InventoryItem]):
    """Batch Consumption Engine."""

    def __init__(
        self,
        session: Session,
        catalog: ItemCatalog,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._catalog = catalog
        self._items = ItemStore(session, catalog)
        self._ledger = LedgerStore(session)
        self._adjustments = AdjustmentService(session, catalog, clock or SystemClock())

    def consume(
        self,
        event_id: object,
        performed_by: str | None,
        consumption: Mapping[str, Decimal | int | float | str] | None = None,
        notes: str | None = None,
    ) -> ConsumptionResult:
        """
        Consume stock for one event.

        Args:
            event_id: Identifier of the originating clinical event.
            performed_by: Actor recorded on every ledger row.
            consumption: Amount per item type.  None uses the catalog's
                default per-event consumption.
            notes: Optional note recorded on every ledger row.
        """
        event_key = str(event_id)
        amounts = self._parse_consumption(
            consumption if consumption is not None else self._catalog.default_consumption
        )
        reference = Reference.event(event_key)

        # Lock phase
        items = self._items.lock_many(amounts)

        already = sorted(
            item_type
            for item_type, net in self._ledger.net_change_by_item(reference).items()
            if net != 0
        )
        if already:
            logger.warning(
                "consumption_rejected",
                extra={
                    "event_id": event_key,
                    "error_code": EventAlreadyConsumedError.code,
                    "consumed_item_types": already,
                },
            )
            raise EventAlreadyConsumedError(event_key, tuple(already))

        # Validate phase: every item is checked before any is touched
        for item_type, amount in amounts.items():
            item = items[item_type]
            if item is None:
                logger.warning(
                    "consumption_rejected",
                    extra={
                        "event_id": event_key,
                        "error_code": ItemNotFoundError.code,
                        "item_type": item_type,
                    },
                )
                raise ItemNotFoundError(item_type)
            if item.quantity < amount:
                logger.warning(
                    "consumption_rejected",
                    extra={
                        "event_id": event_key,
                        "error_code": InsufficientStockError.code,
                        "item_type": item_type,
                        "available": item.quantity,
                        "requested": amount,
                    },
                )
                raise InsufficientStockError(
                    item_type=item_type,
                    available=item.quantity,
                    requested=amount,
                )

        # Apply phase
        entries = [
            self._adjustments.apply(
                items[item_type],
                -amount,
                LedgerReason.EVENT_CONSUMPTION,
                reference=reference,
                performed_by=performed_by,
                notes=notes,
            )
            for item_type, amount in amounts.items()
        ]

        logger.info(
            "consumption_recorded",
            extra={
                "event_id": event_key,
                "performed_by": performed_by,
                "item_count": len(entries),
                "amounts": {k: str(v) for k, v in amounts.items()},
            },
        )
        return ConsumptionResult(
            event_id=event_key,
            entries=tuple(LedgerEntryRecord.from_model(e) for e in entries),
        )

    def _parse_consumption(
        self, consumption: Mapping[str, Decimal | int | float | str]
    ) -> dict[str, Decimal]:
        """Validated amounts in sorted item_type order."""
        if not consumption:
            raise InvalidAdjustmentError("Consumption map cannot be empty")
        return {
            self._catalog.require(item_type): parse_amount(item_type, consumption[item_type])
            for item_type in sorted(consumption)
        }

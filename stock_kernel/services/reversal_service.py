"""
ReversalService -- compensating entries for a deleted clinical event.

Responsibility:
    Undoes an event's stock consumption exactly, by appending new ledger
    rows that negate it.  The original rows are never updated or deleted,
    so the audit trail only grows.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  Reuses
    AdjustmentService.apply() for every per-item change.

Algorithm:
    1. Find the consumption and reversal rows with reference=("event",
       event_id).  None found: no-op success.  Other rows that happen to
       carry the reference are not part of the event's usage.
    2. Lock the referenced items in sorted order (re-creating any that
       were deleted since, at quantity 0).
    3. Re-read the rows under the locks and net the change per item.  Rows
       from an earlier reversal cancel the consumption they compensated.
       Items that appear only in the re-read are locked and the net is
       taken again.
    4. For every item with a non-zero net, append a reversal row of
       ``-net`` with the same reference.

Invariants enforced:
    - For every item the event touched, consumption + reversal sums to zero
      and the quantity returns to its pre-consumption value.
    - Repeating reverse() is a no-op: the net is already zero.
    - All items are credited in one unit of work; partial reversal is never
      observable.
"""

from decimal import Decimal

from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import LedgerEntryRecord, Reference, ReversalResult
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerReason
from stock_kernel.services.adjustment_service import AdjustmentService
from stock_kernel.services.base import BaseService
from stock_kernel.services.item_store import ItemStore
from stock_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.reversal")


class ReversalService(BaseService[InventoryItem]):
    """Reversal Engine."""

    def __init__(
        self,
        session: Session,
        catalog: ItemCatalog,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._items = ItemStore(session, catalog)
        self._ledger = LedgerStore(session)
        self._adjustments = AdjustmentService(session, catalog, clock or SystemClock())

    def reverse(
        self,
        event_id: object,
        performed_by: str | None,
        notes: str | None = None,
    ) -> ReversalResult:
        """
        Reverse everything still outstanding for ``event_id``.

        Returns:
            ReversalResult whose ``entries`` are the rows appended now;
            empty when there was nothing to reverse.
        """
        event_key = str(event_id)
        reference = Reference.event(event_key)

        touched = self._ledger.item_types_for_event(reference)
        if not touched:
            logger.info(
                "reversal_noop",
                extra={"event_id": event_key, "detail": "no ledger entries for event"},
            )
            return ReversalResult(event_id=event_key, entries=())

        # Lock before netting.  Items named only by a consumption committed
        # while we waited are locked on the next pass.
        items: dict[str, InventoryItem] = {}
        while True:
            for item_type in sorted(touched - items.keys()):
                items[item_type] = self._items.lock_or_create(item_type)
            outstanding = self._outstanding(reference)
            touched = set(outstanding)
            if touched <= items.keys():
                break
        if not outstanding:
            logger.info(
                "reversal_noop",
                extra={"event_id": event_key, "detail": "event already reversed"},
            )
            return ReversalResult(event_id=event_key, entries=())

        entries = [
            self._adjustments.apply(
                items[item_type],
                -net,
                LedgerReason.REVERSAL,
                reference=reference,
                performed_by=performed_by,
                notes=notes,
            )
            for item_type, net in outstanding.items()
        ]

        logger.info(
            "reversal_recorded",
            extra={
                "event_id": event_key,
                "performed_by": performed_by,
                "item_count": len(entries),
                "restored": {e.item_type: str(e.quantity_after) for e in entries},
            },
        )
        return ReversalResult(
            event_id=event_key,
            entries=tuple(LedgerEntryRecord.from_model(e) for e in entries),
        )

    def _outstanding(self, reference: Reference) -> dict[str, Decimal]:
        return {
            item_type: net
            for item_type, net in sorted(self._ledger.net_change_by_item(reference).items())
            if net != 0
        }

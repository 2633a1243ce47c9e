"""
AdjustmentService -- single-item quantity changes.

Responsibility:
    Validates and applies one signed change to one item: read the current
    quantity under the row lock (creating the item at 0 when absent),
    reject a result below zero, write the new quantity and append exactly
    one ledger row.  ``apply()`` is the building block the consumption and
    reversal engines reuse.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - quantity >= 0: a change that would go negative raises
      InsufficientStockError before anything is written.
    - Every quantity change writes exactly one ledger row with
      quantity_after == quantity_before + change_amount.
    - item_seq is taken from the locked row's ledger_seq.

Failure modes:
    - InvalidItemTypeError: item type outside the catalog.
    - InvalidAdjustmentError: zero or non-numeric delta.
    - InvalidReasonError: reason outside LedgerReason.
    - InsufficientStockError: current + delta < 0.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import AdjustmentResult, LedgerEntryRecord, Reference
from stock_kernel.domain.policy import coerce_reason, parse_delta
from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry, LedgerReason
from stock_kernel.services.base import BaseService
from stock_kernel.services.item_store import ItemStore
from stock_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.adjustment")


class AdjustmentService(BaseService[InventoryItem]):
    """
    Adjustment Engine.

    Contract:
        Flushes but never commits.  The caller's transaction holds the item
        row lock from the read in ``adjust()`` until commit.
    """

    def __init__(
        self,
        session: Session,
        catalog: ItemCatalog,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._catalog = catalog
        self._clock = clock or SystemClock()
        self._items = ItemStore(session, catalog)
        self._ledger = LedgerStore(session)

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
        """
        Apply ``delta`` to ``item_type`` and record it.

        ``expiration_date`` and ``lot_number``, when given, are stored on the
        item together with the change (a restock of a new lot).

        Returns:
            AdjustmentResult with the post-adjustment quantity.
        """
        self._catalog.require(item_type)
        change = parse_delta(item_type, delta)
        ledger_reason = coerce_reason(reason)

        item = self._items.lock_or_create(item_type)
        entry = self.apply(
            item,
            change,
            ledger_reason,
            reference=reference,
            performed_by=performed_by,
            notes=notes,
        )

        if expiration_date is not None or lot_number is not None:
            if expiration_date is not None:
                item.expiration_date = expiration_date
            if lot_number is not None:
                item.lot_number = lot_number
            self.session.flush()

        logger.info(
            "stock_adjusted",
            extra={
                "item_type": item_type,
                "change_amount": change,
                "quantity_before": entry.quantity_before,
                "quantity_after": entry.quantity_after,
                "reason": ledger_reason.value,
                "performed_by": performed_by,
            },
        )
        return AdjustmentResult(
            item_type=item_type,
            new_quantity=entry.quantity_after,
            entry=LedgerEntryRecord.from_model(entry),
        )

    def apply(
        self,
        item: InventoryItem,
        change: Decimal,
        reason: LedgerReason,
        reference: Reference | None = None,
        performed_by: str | None = None,
        notes: str | None = None,
    ) -> LedgerEntry:
        """
        Change a locked item's quantity and append the matching ledger row.

        Preconditions:
            - ``item`` was returned by an ItemStore locked read in this
              session's current transaction.
            - ``change`` is a non-zero quantity.

        Raises:
            InsufficientStockError: if the new quantity would be negative.
        """
        before = item.quantity
        after = before + change
        if after < 0:
            logger.info(
                "adjustment_rejected",
                extra={
                    "item_type": item.item_type,
                    "available": before,
                    "requested": -change,
                    "reason": reason.value,
                },
            )
            raise InsufficientStockError(
                item_type=item.item_type,
                available=before,
                requested=-change,
            )

        item.quantity = after
        item.ledger_seq += 1
        return self._ledger.append(
            item_type=item.item_type,
            item_seq=item.ledger_seq,
            change_amount=change,
            quantity_before=before,
            quantity_after=after,
            reason=reason,
            timestamp=self._clock.now(),
            reference=reference,
            performed_by=performed_by,
            notes=notes,
        )

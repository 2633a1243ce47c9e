"""
LedgerStore -- append-only writes to the stock ledger.

Responsibility:
    Appends LedgerEntry rows and answers the in-transaction questions the
    engines ask of the ledger (entries for a reference, net change per item).
    There is no update or delete API; the ORM listeners and database
    triggers reject both.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  Paginated history
    for collaborators lives in selectors/ledger_selector.py.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from stock_kernel.domain.dtos import Reference
from stock_kernel.logging_config import get_logger
from stock_kernel.models.ledger_entry import LedgerEntry, LedgerReason
from stock_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")

# Reasons written by the consumption and reversal engines
EVENT_REASONS = (LedgerReason.EVENT_CONSUMPTION, LedgerReason.REVERSAL)


class LedgerStore(BaseService[LedgerEntry]):
    """Append-only ledger store."""

    def append(
        self,
        *,
        item_type: str,
        item_seq: int,
        change_amount: Decimal,
        quantity_before: Decimal,
        quantity_after: Decimal,
        reason: LedgerReason,
        timestamp: datetime,
        reference: Reference | None = None,
        performed_by: str | None = None,
        notes: str | None = None,
    ) -> LedgerEntry:
        """Add one ledger row to the current unit of work and flush it."""
        entry = LedgerEntry(
            item_type=item_type,
            item_seq=item_seq,
            change_amount=change_amount,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reason=reason.value,
            reference_type=reference.reference_type if reference else None,
            reference_id=reference.reference_id if reference else None,
            performed_by=performed_by,
            timestamp=timestamp,
            notes=notes,
        )
        self.session.add(entry)
        self.session.flush()

        logger.debug(
            "ledger_entry_appended",
            extra={
                "item_type": item_type,
                "item_seq": item_seq,
                "change_amount": change_amount,
                "reason": reason.value,
                "entry_id": str(entry.id),
            },
        )
        return entry

    def entries_for_reference(
        self,
        reference: Reference,
        reasons: tuple[LedgerReason, ...] | None = None,
    ) -> list[LedgerEntry]:
        """
        All rows linked to ``reference``, per item in ledger order.

        ``reasons`` restricts the result to rows with one of those reasons.
        """
        stmt = select(LedgerEntry).where(
            LedgerEntry.reference_type == reference.reference_type,
            LedgerEntry.reference_id == reference.reference_id,
        )
        if reasons is not None:
            stmt = stmt.where(LedgerEntry.reason.in_([r.value for r in reasons]))
        return list(
            self.session.execute(
                stmt.order_by(LedgerEntry.item_type, LedgerEntry.item_seq)
            ).scalars()
        )

    def item_types_for_event(self, reference: Reference) -> set[str]:
        """Item types touched by the event's consumption or reversal rows."""
        return {e.item_type for e in self.entries_for_reference(reference, EVENT_REASONS)}

    def net_change_by_item(self, reference: Reference) -> dict[str, Decimal]:
        """
        Net change per item type across the event rows linked to ``reference``.

        Consumption rows and the reversal rows that compensate them cancel
        out, so a fully reversed event nets to zero for every item.  Rows
        with any other reason are ignored.
        """
        net: dict[str, Decimal] = {}
        for entry in self.entries_for_reference(reference, EVENT_REASONS):
            net[entry.item_type] = net.get(entry.item_type, Decimal("0")) + entry.change_amount
        return net

"""
Module: stock_kernel.selectors.ledger_selector
Responsibility: Read-only queries over the stock ledger -- paginated history,
    reference lookups, replay of an item's quantity and reconciliation of
    every item against its ledger.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The ledger is the source of truth: ``replay()`` recomputes a quantity
      from ``opening_quantity`` plus the change amounts of the rows after
      ``opening_seq``, without trusting the item row's ``quantity``.
    - Sums are computed on Decimal values in Python, never as SQL
      aggregates, so every backend gives exact results.

Audit relevance:
    ``reconcile()`` is the audit check for the projection: it reports any
    item whose stored quantity has drifted from its replayed quantity, any
    row whose before/change/after arithmetic is broken, and any row whose
    quantity_before does not continue the previous row's quantity_after.
"""

from collections import defaultdict
from decimal import Decimal

from sqlalchemy import func, select

from stock_kernel.domain.dtos import (
    ItemReconciliation,
    LedgerEntryRecord,
    ReconciliationReport,
    Reference,
)
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry
from stock_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50


class LedgerSelector(BaseSelector[LedgerEntry]):
    """Read side of the stock ledger."""

    # =========================================================================
    # History
    # =========================================================================

    def history(
        self,
        item_type: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[LedgerEntryRecord]:
        """One item's ledger rows, newest first."""
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.item_type == item_type)
            .order_by(LedgerEntry.timestamp.desc(), LedgerEntry.item_seq.desc())
            .limit(limit)
            .offset(offset)
        )
        return [LedgerEntryRecord.from_model(e) for e in self.session.execute(stmt).scalars()]

    def all_history(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[LedgerEntryRecord]:
        """Every item's ledger rows, newest first."""
        stmt = (
            select(LedgerEntry)
            .order_by(
                LedgerEntry.timestamp.desc(),
                LedgerEntry.item_type,
                LedgerEntry.item_seq.desc(),
            )
            .limit(limit)
            .offset(offset)
        )
        return [LedgerEntryRecord.from_model(e) for e in self.session.execute(stmt).scalars()]

    def count_history(self, item_type: str | None = None) -> int:
        """Number of ledger rows for one item, or for all items."""
        stmt = select(func.count()).select_from(LedgerEntry)
        if item_type is not None:
            stmt = stmt.where(LedgerEntry.item_type == item_type)
        return self.session.execute(stmt).scalar_one()

    def entries_for_reference(self, reference: Reference) -> list[LedgerEntryRecord]:
        """Rows linked to an external entity, oldest first."""
        stmt = (
            select(LedgerEntry)
            .where(
                LedgerEntry.reference_type == reference.reference_type,
                LedgerEntry.reference_id == reference.reference_id,
            )
            .order_by(LedgerEntry.timestamp, LedgerEntry.item_type, LedgerEntry.item_seq)
        )
        return [LedgerEntryRecord.from_model(e) for e in self.session.execute(stmt).scalars()]

    # =========================================================================
    # Replay and reconciliation
    # =========================================================================

    def replay(self, item_type: str) -> Decimal:
        """Recompute an item's quantity from its ledger."""
        item = self.session.execute(
            select(InventoryItem).where(InventoryItem.item_type == item_type)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(item_type)
        changes = self.session.execute(
            select(LedgerEntry.change_amount).where(
                LedgerEntry.item_type == item_type,
                LedgerEntry.item_seq > item.opening_seq,
            )
        ).scalars()
        return item.opening_quantity + sum(changes, Decimal("0"))

    def reconcile(self) -> ReconciliationReport:
        """Check every item's stored quantity against its replayed quantity."""
        items = {
            item.item_type: item
            for item in self.session.execute(select(InventoryItem)).scalars()
        }

        totals: dict[str, Decimal] = defaultdict(Decimal)
        counts: dict[str, int] = defaultdict(int)
        broken: list[LedgerEntryRecord] = []
        previous: LedgerEntry | None = None

        entries = self.session.execute(
            select(LedgerEntry).order_by(LedgerEntry.item_type, LedgerEntry.item_seq)
        ).scalars()
        for entry in entries:
            item = items.get(entry.item_type)
            in_window = item is not None and entry.item_seq > item.opening_seq

            continues = True
            if in_window:
                if entry.item_seq == item.opening_seq + 1:
                    continues = entry.quantity_before == item.opening_quantity
                elif previous is not None and previous.item_type == entry.item_type:
                    continues = entry.quantity_before == previous.quantity_after
            if not continues or entry.quantity_before + entry.change_amount != entry.quantity_after:
                broken.append(LedgerEntryRecord.from_model(entry))
            previous = entry

            if in_window:
                totals[entry.item_type] += entry.change_amount
                counts[entry.item_type] += 1

        reconciliations = tuple(
            ItemReconciliation(
                item_type=item_type,
                projected_quantity=item.quantity,
                replayed_quantity=item.opening_quantity + totals[item_type],
                entry_count=counts[item_type],
            )
            for item_type, item in sorted(items.items())
        )
        orphan_stmt = select(LedgerEntry.item_type).distinct()
        if items:
            orphan_stmt = orphan_stmt.where(LedgerEntry.item_type.not_in(list(items)))
        orphaned = tuple(sorted(self.session.execute(orphan_stmt).scalars()))
        return ReconciliationReport(
            items=reconciliations,
            broken_entries=tuple(broken),
            orphaned_item_types=orphaned,
        )

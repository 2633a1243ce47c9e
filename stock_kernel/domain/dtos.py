"""
DTOs -- immutable results handed to collaborators.

Responsibility:
    Defines the frozen data structures returned by the engines, the facade
    and the selectors, so callers never hold live ORM rows after the unit of
    work that produced them has closed.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only from the service and selector layers.

Data flow:
    InventoryItem  -> ItemSnapshot
    LedgerEntry    -> LedgerEntryRecord
    engine output  -> AdjustmentResult / ConsumptionResult / ReversalResult
    status queries -> StockAlert / ExpirationAlert
    replay         -> ItemReconciliation / ReconciliationReport
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from stock_kernel.models.inventory_item import InventoryItem
    from stock_kernel.models.ledger_entry import LedgerEntry


@dataclass(frozen=True)
class Reference:
    """Link from a ledger entry to the external entity that caused it."""

    reference_type: str
    reference_id: str

    @classmethod
    def event(cls, event_id: object) -> Reference:
        """Reference to a clinical event (``("event", "<id>")``)."""
        return cls(reference_type="event", reference_id=str(event_id))


@dataclass(frozen=True)
class ItemSnapshot:
    """Point-in-time copy of an inventory item row."""

    item_type: str
    quantity: Decimal
    unit: str
    opening_quantity: Decimal
    low_stock_threshold: Decimal | None = None
    expiration_date: date | None = None
    lot_number: str | None = None
    notes: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, item: InventoryItem) -> ItemSnapshot:
        return cls(
            item_type=item.item_type,
            quantity=item.quantity,
            unit=item.unit,
            opening_quantity=item.opening_quantity,
            low_stock_threshold=item.low_stock_threshold,
            expiration_date=item.expiration_date,
            lot_number=item.lot_number,
            notes=item.notes,
            updated_at=item.updated_at,
        )


@dataclass(frozen=True)
class LedgerEntryRecord:
    """Immutable copy of one ledger row."""

    id: UUID
    item_type: str
    item_seq: int
    change_amount: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    reason: str
    reference_type: str | None
    reference_id: str | None
    performed_by: str | None
    timestamp: datetime
    notes: str | None = None

    @property
    def reference(self) -> Reference | None:
        if self.reference_type is None or self.reference_id is None:
            return None
        return Reference(self.reference_type, self.reference_id)

    @classmethod
    def from_model(cls, entry: LedgerEntry) -> LedgerEntryRecord:
        return cls(
            id=entry.id,
            item_type=entry.item_type,
            item_seq=entry.item_seq,
            change_amount=entry.change_amount,
            quantity_before=entry.quantity_before,
            quantity_after=entry.quantity_after,
            reason=entry.reason,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            performed_by=entry.performed_by,
            timestamp=entry.timestamp,
            notes=entry.notes,
        )


@dataclass(frozen=True)
class AdjustmentResult:
    """Outcome of a single-item adjustment."""

    item_type: str
    new_quantity: Decimal
    entry: LedgerEntryRecord


@dataclass(frozen=True)
class ConsumptionResult:
    """Outcome of a batch consumption: one entry per consumed item."""

    event_id: str
    entries: tuple[LedgerEntryRecord, ...]

    @property
    def quantities(self) -> dict[str, Decimal]:
        """Post-consumption quantity per item type."""
        return {e.item_type: e.quantity_after for e in self.entries}


@dataclass(frozen=True)
class ReversalResult:
    """
    Outcome of reversing an event's consumption.

    ``entries`` is empty when there was nothing left to reverse.
    """

    event_id: str
    entries: tuple[LedgerEntryRecord, ...]

    @property
    def is_noop(self) -> bool:
        return not self.entries

    @property
    def quantities(self) -> dict[str, Decimal]:
        """Post-reversal quantity per item type."""
        return {e.item_type: e.quantity_after for e in self.entries}


class AlertSeverity(str, Enum):
    """Low-stock severity."""

    CRITICAL = "critical"
    WARNING = "warning"


class ExpirationStatus(str, Enum):
    """Expiration state of an item."""

    EXPIRED = "expired"
    EXPIRING = "expiring"


@dataclass(frozen=True)
class StockAlert:
    """An item at or below its low-stock threshold."""

    item_type: str
    quantity: Decimal
    unit: str
    threshold: Decimal
    severity: AlertSeverity


@dataclass(frozen=True)
class ExpirationAlert:
    """An item that has expired or will expire within the window."""

    item_type: str
    expiration_date: date
    days_until: int
    status: ExpirationStatus
    lot_number: str | None = None


@dataclass(frozen=True)
class ItemReconciliation:
    """Projected vs. replayed quantity for one item."""

    item_type: str
    projected_quantity: Decimal
    replayed_quantity: Decimal
    entry_count: int

    @property
    def drift(self) -> Decimal:
        return self.projected_quantity - self.replayed_quantity

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


@dataclass(frozen=True)
class ReconciliationReport:
    """Reconciliation of every item against its ledger."""

    items: tuple[ItemReconciliation, ...]
    broken_entries: tuple[LedgerEntryRecord, ...] = ()
    orphaned_item_types: tuple[str, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.broken_entries and all(i.is_consistent for i in self.items)

    @property
    def drifted(self) -> tuple[ItemReconciliation, ...]:
        return tuple(i for i in self.items if not i.is_consistent)

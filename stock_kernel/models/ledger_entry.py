"""
Module: stock_kernel.models.ledger_entry
Responsibility: ORM persistence for the append-only stock ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listener + DB trigger).
    - quantity_after == quantity_before + change_amount (ORM insert guard).
    - change_amount != 0.
    - (item_type, item_seq) is unique; item_seq strictly increases per item.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - LedgerIntegrityError when a row with broken arithmetic is flushed.

Audit relevance:
    The ledger IS the source of truth for on-hand stock.  Replaying every
    row for an item from its opening quantity reproduces the item's current
    quantity.  Reversals are new rows; history is never edited.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class LedgerReason(str, Enum):
    """Why a quantity changed.

    Contract: the closed set of reasons a ledger row may carry.
    EVENT_CONSUMPTION is written only by the batch consumption engine and
    REVERSAL only by the reversal engine.
    """

    EVENT_CONSUMPTION = "event_consumption"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    RESTOCK = "restock"
    CORRECTION = "correction"
    EXPIRED = "expired"
    DAMAGED = "damaged"
    INITIAL_SETUP = "initial_setup"
    REVERSAL = "reversal"


class ReferenceType:
    """Well-known reference types linking a ledger row to an external entity."""

    EVENT = "event"


class LedgerEntry(Base):
    """
    One immutable record of a quantity change.

    Contract:
        Written only by the adjustment, consumption and reversal engines,
        under the item's row lock.  ``timestamp`` comes from the injected
        clock; ``item_seq`` gives a total order per item even when
        timestamps collide.
    """

    __tablename__ = "inventory_ledger"

    __table_args__ = (
        UniqueConstraint("item_type", "item_seq", name="uq_ledger_item_seq"),
        CheckConstraint("change_amount <> 0", name="ck_ledger_change_non_zero"),
        Index("idx_ledger_item_type", "item_type"),
        Index("idx_ledger_reference", "reference_type", "reference_id"),
        Index("idx_ledger_timestamp", "timestamp"),
    )

    item_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Position in this item's history (1-based)
    item_seq: Mapped[int] = mapped_column(nullable=False)

    change_amount: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_before: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(String(30), nullable=False)

    # Optional link to the external entity that caused the change
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    performed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.item_type}#{self.item_seq} "
            f"{self.change_amount:+} ({self.reason})>"
        )

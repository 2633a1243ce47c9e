"""
Module: stock_kernel.models.inventory_item
Responsibility: ORM persistence for the current state of each tracked item
    type -- the cached projection of the ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - quantity >= 0 at every write (CHECK constraint + ORM guard in
      db/immutability.py + engine-level InsufficientStockError).
    - low_stock_threshold >= 0 when set.
    - item_type is unique: one row per tracked item.
    - ledger_seq is the highest item_seq in the ledger for this item type; it
      is only advanced while the row is locked.  A re-created row resumes
      from the ledger, so item_seq never repeats.

Audit relevance:
    quantity must always equal opening_quantity plus the sum of the change
    amounts of this item's ledger rows with item_seq > opening_seq.
    LedgerSelector.reconcile() verifies that.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase


class InventoryItem(TrackedBase):
    """
    One row per tracked item type.

    Contract:
        Rows are created lazily with quantity 0 by the adjustment and
        reversal engines, or explicitly through ItemStore.upsert().  Engines
        only change ``quantity`` while holding the row lock.

    Non-goals:
        Metadata (expiration, lot, notes) carries no invariant.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("item_type", name="uq_inventory_item_type"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint(
            "low_stock_threshold IS NULL OR low_stock_threshold >= 0",
            name="ck_inventory_threshold_non_negative",
        ),
    )

    item_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Current on-hand quantity (projection of the ledger)
    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # StockUnit value: "mL" or "count"
    unit: Mapped[str] = mapped_column(String(10), nullable=False)

    # Replay base: quantity and ledger position when the row was created
    # (or last re-based through ItemStore.upsert)
    opening_quantity: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    opening_seq: Mapped[int] = mapped_column(nullable=False, default=0)

    # Highest item_seq written to the ledger for this item type
    ledger_seq: Mapped[int] = mapped_column(nullable=False, default=0)

    # Optional metadata
    low_stock_threshold: Mapped[Decimal | None] = mapped_column(nullable=True)
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    lot_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.item_type}: {self.quantity} {self.unit}>"

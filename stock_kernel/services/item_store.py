"""
ItemStore -- persistence for the current state of each item type.

Responsibility:
    CRUD on InventoryItem rows plus the locked reads the engines build on.
    ``get``/``list``/``upsert``/``delete`` are pure persistence; the only rule
    applied is the closed item catalog (and the non-negativity guard that
    applies to every write, see db/immutability.py).

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Every quantity-bearing read that feeds a write goes through ``lock``,
      ``lock_many`` or ``lock_or_create`` (SELECT ... FOR UPDATE on
      PostgreSQL; SQLite already holds the write lock from BEGIN IMMEDIATE).
    - ``lock_many`` locks rows in sorted item_type order, so two batch
      operations can never deadlock on each other.
    - A lazily created row resumes ``ledger_seq`` from the ledger, so
      ``(item_type, item_seq)`` never repeats after a delete.

Failure modes:
    - ItemNotFoundError from ``get`` and ``delete``.
    - InvalidItemTypeError for item types outside the catalog.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.values import ZERO, to_quantity
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry
from stock_kernel.services.base import BaseService

logger = get_logger("services.item_store")


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks a metadata field the caller did not supply
UNSET = _Unset()


class ItemStore(BaseService[InventoryItem]):
    """
    Item Store.

    Contract:
        Returns live ORM rows bound to the caller's session.  Converting to
        ItemSnapshot is the facade's job.
    """

    def __init__(self, session: Session, catalog: ItemCatalog):
        super().__init__(session)
        self._catalog = catalog

    # =========================================================================
    # Plain reads
    # =========================================================================

    def find(self, item_type: str) -> InventoryItem | None:
        return self.session.execute(
            select(InventoryItem).where(InventoryItem.item_type == item_type)
        ).scalar_one_or_none()

    def get(self, item_type: str) -> InventoryItem:
        item = self.find(item_type)
        if item is None:
            raise ItemNotFoundError(item_type)
        return item

    def list(self) -> list[InventoryItem]:
        return list(
            self.session.execute(
                select(InventoryItem).order_by(InventoryItem.item_type)
            ).scalars()
        )

    # =========================================================================
    # Locked reads
    # =========================================================================

    def lock(self, item_type: str) -> InventoryItem | None:
        """Lock and return the item row, or None if it does not exist."""
        return self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.item_type == item_type)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lock_many(self, item_types: Iterable[str]) -> dict[str, InventoryItem | None]:
        """
        Lock several item rows, one at a time in sorted item_type order.

        Returns a mapping with an entry for every requested item type; the
        value is None for item types that have no row.
        """
        return {item_type: self.lock(item_type) for item_type in sorted(set(item_types))}

    def lock_or_create(self, item_type: str) -> InventoryItem:
        """
        Lock the item row, creating it with quantity 0 if absent.

        A concurrent creator may win the insert race; the loser's savepoint
        is rolled back and the winner's row is locked instead.
        """
        item = self.lock(item_type)
        if item is not None:
            return item

        self._catalog.require(item_type)
        last_seq = self._last_ledger_seq(item_type)
        savepoint = self.session.begin_nested()
        try:
            item = InventoryItem(
                item_type=item_type,
                quantity=ZERO,
                unit=self._catalog.unit_for(item_type),
                opening_quantity=ZERO,
                opening_seq=last_seq,
                ledger_seq=last_seq,
            )
            self.session.add(item)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("item_create_race_retry", extra={"item_type": item_type})
            item = self.lock(item_type)
            if item is None:
                raise
            return item

        logger.info(
            "item_created",
            extra={"item_type": item_type, "unit": item.unit, "resumed_seq": last_seq},
        )
        return item

    def _last_ledger_seq(self, item_type: str) -> int:
        return self.session.execute(
            select(func.coalesce(func.max(LedgerEntry.item_seq), 0)).where(
                LedgerEntry.item_type == item_type
            )
        ).scalar_one()

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert(
        self,
        item_type: str,
        quantity: Decimal | int | str = ZERO,
        unit: str | None = None,
        low_stock_threshold: Decimal | None = None,
        expiration_date: date | None = None,
        lot_number: str | None = None,
        notes: str | None = None,
    ) -> InventoryItem:
        """
        Insert or fully replace an item row.

        Writing a different quantity onto an existing row moves the replay
        base (``opening_quantity``/``opening_seq``) to that quantity; the
        ledger records no entry for it.  Engine-driven changes must go
        through AdjustmentService instead.
        """
        self._catalog.require(item_type)
        quantity = to_quantity(quantity)
        threshold = to_quantity(low_stock_threshold) if low_stock_threshold is not None else None

        item = self.lock(item_type)
        existed = item is not None
        if item is None:
            item = self.lock_or_create(item_type)

        if quantity != item.quantity:
            if existed:
                logger.warning(
                    "item_rebased",
                    extra={
                        "item_type": item_type,
                        "previous_quantity": item.quantity,
                        "quantity": quantity,
                        "opening_seq": item.ledger_seq,
                    },
                )
            item.quantity = quantity
            item.opening_quantity = quantity
            item.opening_seq = item.ledger_seq

        item.unit = unit or self._catalog.unit_for(item_type)
        item.low_stock_threshold = threshold
        item.expiration_date = expiration_date
        item.lot_number = lot_number
        item.notes = notes
        self.session.flush()
        return item

    def update_metadata(
        self,
        item: InventoryItem,
        *,
        low_stock_threshold: Decimal | None | _Unset = UNSET,
        expiration_date: date | None | _Unset = UNSET,
        lot_number: str | None | _Unset = UNSET,
        notes: str | None | _Unset = UNSET,
    ) -> InventoryItem:
        """Set the supplied metadata fields on a locked row; quantity is untouched."""
        changes = {
            "low_stock_threshold": low_stock_threshold,
            "expiration_date": expiration_date,
            "lot_number": lot_number,
            "notes": notes,
        }
        for field, value in changes.items():
            if value is not UNSET:
                setattr(item, field, value)
        self.session.flush()
        return item

    def delete(self, item_type: str) -> None:
        """
        Delete an item row.  Administrative escape hatch; the item's ledger
        rows stay in place.
        """
        item = self.lock(item_type)
        if item is None:
            raise ItemNotFoundError(item_type)
        self.session.delete(item)
        self.session.flush()
        logger.warning(
            "item_deleted",
            extra={"item_type": item_type, "quantity": item.quantity},
        )

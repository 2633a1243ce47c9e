"""ORM models for the stock kernel."""

from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry, LedgerReason, ReferenceType

__all__ = [
    "InventoryItem",
    "LedgerEntry",
    "LedgerReason",
    "ReferenceType",
]

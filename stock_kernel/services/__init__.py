"""Services for the stock kernel (write side)."""

from stock_kernel.services.adjustment_service import AdjustmentService
from stock_kernel.services.consumption_service import ConsumptionService
from stock_kernel.services.inventory_ledger import InventoryLedger
from stock_kernel.services.item_store import UNSET, ItemStore
from stock_kernel.services.ledger_store import LedgerStore
from stock_kernel.services.reversal_service import ReversalService

__all__ = [
    "AdjustmentService",
    "ConsumptionService",
    "InventoryLedger",
    "ItemStore",
    "LedgerStore",
    "ReversalService",
    "UNSET",
]

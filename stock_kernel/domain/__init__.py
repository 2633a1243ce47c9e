"""
Pure domain layer.

Immutable DTOs, the item catalog, quantity normalization and the stock
policy rules.  Nothing here opens a session or reads the system clock
(except SystemClock, the one sanctioned time source).
"""

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    AdjustmentResult,
    AlertSeverity,
    ConsumptionResult,
    ExpirationAlert,
    ExpirationStatus,
    ItemReconciliation,
    ItemSnapshot,
    LedgerEntryRecord,
    ReconciliationReport,
    Reference,
    ReversalResult,
    StockAlert,
)
from stock_kernel.domain.values import StockUnit, to_quantity

__all__ = [
    "AdjustmentResult",
    "AlertSeverity",
    "Clock",
    "ConsumptionResult",
    "DeterministicClock",
    "ExpirationAlert",
    "ExpirationStatus",
    "ItemCatalog",
    "ItemReconciliation",
    "ItemSnapshot",
    "LedgerEntryRecord",
    "ReconciliationReport",
    "Reference",
    "ReversalResult",
    "StockAlert",
    "StockUnit",
    "SystemClock",
    "to_quantity",
]

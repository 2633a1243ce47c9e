"""Selectors for the stock kernel (read side)."""

from stock_kernel.selectors.ledger_selector import DEFAULT_PAGE_SIZE, LedgerSelector
from stock_kernel.selectors.stock_status_selector import StockStatusSelector

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "LedgerSelector",
    "StockStatusSelector",
]

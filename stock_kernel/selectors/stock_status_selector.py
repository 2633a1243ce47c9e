"""
Module: stock_kernel.selectors.stock_status_selector
Responsibility: Derived read-only views over the Item Store -- low-stock and
    expiration queries.
Architecture position: Kernel > Selectors.  Reads inventory_items only.

Invariants enforced:
    - Read-only; never mutates state.
    - Deciding when to alert, and de-duplicating alerts, belongs to the
      collaborator that consumes these lists.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import DEFAULT_CRITICAL_RATIO, DEFAULT_EXPIRATION_WARNING_DAYS
from stock_kernel.domain.dtos import AlertSeverity, ExpirationAlert, StockAlert
from stock_kernel.domain.policy import classify_expiration, classify_stock
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.selectors.base import BaseSelector

_SEVERITY_RANK = {AlertSeverity.CRITICAL: 0, AlertSeverity.WARNING: 1}


class StockStatusSelector(BaseSelector[InventoryItem]):
    """Stock Status Reader."""

    def __init__(
        self,
        session: Session,
        critical_ratio: Decimal = DEFAULT_CRITICAL_RATIO,
        expiration_warning_days: int = DEFAULT_EXPIRATION_WARNING_DAYS,
    ):
        super().__init__(session)
        self._critical_ratio = critical_ratio
        self._expiration_warning_days = expiration_warning_days

    def low_stock(self) -> list[StockAlert]:
        """
        Items with a threshold whose quantity is at or below it.

        Ordered critical first, then by ascending quantity, then item type.
        """
        rows = self.session.execute(
            select(InventoryItem).where(
                InventoryItem.low_stock_threshold.is_not(None),
                InventoryItem.quantity <= InventoryItem.low_stock_threshold,
            )
        ).scalars()

        alerts = []
        for item in rows:
            severity = classify_stock(item.quantity, item.low_stock_threshold, self._critical_ratio)
            if severity is None:
                continue
            alerts.append(
                StockAlert(
                    item_type=item.item_type,
                    quantity=item.quantity,
                    unit=item.unit,
                    threshold=item.low_stock_threshold,
                    severity=severity,
                )
            )
        alerts.sort(key=lambda a: (_SEVERITY_RANK[a.severity], a.quantity, a.item_type))
        return alerts

    def expiring(self, today: date, within_days: int | None = None) -> list[ExpirationAlert]:
        """
        Items already expired or expiring within ``within_days`` of ``today``.

        Ordered by expiration date, then item type.
        """
        window = self._expiration_warning_days if within_days is None else within_days
        rows = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.expiration_date.is_not(None))
            .order_by(InventoryItem.expiration_date, InventoryItem.item_type)
        ).scalars()

        alerts = []
        for item in rows:
            status = classify_expiration(item.expiration_date, today, window)
            if status is None:
                continue
            alerts.append(
                ExpirationAlert(
                    item_type=item.item_type,
                    expiration_date=item.expiration_date,
                    days_until=(item.expiration_date - today).days,
                    status=status,
                    lot_number=item.lot_number,
                )
            )
        return alerts

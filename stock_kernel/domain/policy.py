"""
Stock policy -- pure decisions shared by the engines and the status reader.

Responsibility:
    Input validation for quantity changes (reason membership, amount shape)
    and the classification rules behind low-stock and expiration queries.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O, no clock access (callers
    pass ``today``).
"""

from datetime import date
from decimal import Decimal

from stock_kernel.domain.dtos import AlertSeverity, ExpirationStatus
from stock_kernel.domain.values import to_quantity
from stock_kernel.exceptions import InvalidAdjustmentError, InvalidReasonError
from stock_kernel.models.ledger_entry import LedgerReason

REASON_VALUES: tuple[str, ...] = tuple(r.value for r in LedgerReason)


def coerce_reason(reason: LedgerReason | str) -> LedgerReason:
    """Return the LedgerReason for ``reason`` or raise InvalidReasonError."""
    if isinstance(reason, LedgerReason):
        return reason
    try:
        return LedgerReason(reason)
    except ValueError:
        raise InvalidReasonError(str(reason), REASON_VALUES) from None


def parse_delta(item_type: str, delta: Decimal | int | float | str) -> Decimal:
    """A signed, non-zero quantity change."""
    try:
        value = to_quantity(delta)
    except ValueError as e:
        raise InvalidAdjustmentError(str(e), item_type=item_type) from e
    if value == 0:
        raise InvalidAdjustmentError(
            f"Adjustment delta for {item_type} must be non-zero", item_type=item_type
        )
    return value


def parse_amount(item_type: str, amount: Decimal | int | float | str) -> Decimal:
    """A strictly positive consumption amount."""
    try:
        value = to_quantity(amount)
    except ValueError as e:
        raise InvalidAdjustmentError(str(e), item_type=item_type) from e
    if value <= 0:
        raise InvalidAdjustmentError(
            f"Consumption amount for {item_type} must be positive, got {amount}",
            item_type=item_type,
        )
    return value


def parse_threshold(item_type: str, threshold: Decimal | int | float | str | None) -> Decimal | None:
    """An optional, non-negative low-stock threshold."""
    if threshold is None:
        return None
    try:
        value = to_quantity(threshold)
    except ValueError as e:
        raise InvalidAdjustmentError(str(e), item_type=item_type) from e
    if value < 0:
        raise InvalidAdjustmentError(
            f"Low stock threshold for {item_type} cannot be negative", item_type=item_type
        )
    return value


def classify_stock(
    quantity: Decimal,
    threshold: Decimal | None,
    critical_ratio: Decimal,
) -> AlertSeverity | None:
    """
    Severity of an item's stock level, or None when it is not low.

    Low means ``quantity <= threshold``; critical means
    ``quantity <= threshold * critical_ratio``.
    """
    if threshold is None or quantity > threshold:
        return None
    if quantity <= threshold * critical_ratio:
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARNING


def classify_expiration(
    expiration_date: date | None,
    today: date,
    within_days: int,
) -> ExpirationStatus | None:
    """Expired if the date is before today, expiring if within the window."""
    if expiration_date is None:
        return None
    days_until = (expiration_date - today).days
    if days_until < 0:
        return ExpirationStatus.EXPIRED
    if days_until <= within_days:
        return ExpirationStatus.EXPIRING
    return None

"""
Values -- quantity normalization.

Responsibility:
    Converts caller-supplied amounts into the Decimal form stored in the
    ledger, so values computed in Python compare equal to values read back
    from the database.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - ValueError for booleans, non-numeric strings, NaN and infinities.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum

# Numeric(38, 9) column scale
QUANTITY_SCALE = Decimal("0.000000001")

ZERO = Decimal("0")


class StockUnit(str, Enum):
    """Unit tag paired with an item quantity."""

    VOLUME = "mL"
    COUNT = "count"


def to_quantity(value: Decimal | int | float | str) -> Decimal:
    """
    Normalize an amount to a Decimal quantized to the column scale.

    Floats go through ``str()`` so ``1.1`` becomes ``Decimal("1.1")`` rather
    than its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid quantity value: {value!r}")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid quantity value: {value!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid quantity value: {value!r}")
    try:
        return value.quantize(QUANTITY_SCALE)
    except InvalidOperation as e:
        raise ValueError(f"Quantity out of range: {value!r}") from e


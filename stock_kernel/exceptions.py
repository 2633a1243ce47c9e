"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (request handlers, the clinical-event lifecycle, admin
tools) must react to failures precisely: an insufficient-stock rejection is
shown to the user, a transaction abort is retried, an immutability violation
is a bug. Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.consume(event_id, performed_by="nurse-1")
    except InsufficientStockError as e:
        api_response(
            code=e.code,
            item_type=e.item_type,
            available=str(e.available),
            requested=str(e.requested),
        )

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ItemError
    |   +-- ItemNotFoundError
    |   +-- InvalidItemTypeError
    |   +-- NegativeQuantityError
    |
    +-- AdjustmentError
    |   +-- InsufficientStockError
    |   +-- InvalidReasonError
    |   +-- InvalidAdjustmentError
    |
    +-- ConsumptionError
    |   +-- EventAlreadyConsumedError
    |
    +-- TransactionError
    |   +-- TransactionAbortedError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- LedgerIntegrityError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Item            | ITEM_NOT_FOUND              | Item type has no row (no auto-create)
                | INVALID_ITEM_TYPE           | Item type outside the configured catalog
                | NEGATIVE_QUANTITY           | A write would persist quantity < 0
----------------|-----------------------------|-----------------------------------------
Adjustment      | INSUFFICIENT_STOCK          | Decrement would drive quantity negative
                | INVALID_REASON              | Reason not in the LedgerReason enum
                | INVALID_ADJUSTMENT          | Zero delta, non-positive amount, empty map
----------------|-----------------------------|-----------------------------------------
Consumption     | EVENT_ALREADY_CONSUMED      | Event has un-reversed consumption
----------------|-----------------------------|-----------------------------------------
Transaction     | TRANSACTION_ABORTED         | Store could not commit the unit of work
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a ledger row
----------------|-----------------------------|-----------------------------------------
Integrity       | LEDGER_INTEGRITY            | before + change != after on a ledger row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors (ItemError, AdjustmentError, ConsumptionError) are raised
   before any mutation. Nothing was written; show the user a message.

2. TransactionAbortedError means the unit of work was rolled back in full.
   Retrying is always safe because a failed attempt leaves no residue.

3. ImmutabilityError and LedgerIntegrityError indicate a programming error or
   tampering. Log and investigate; never retry.
"""

from decimal import Decimal


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Item-related exceptions


class ItemError(StockKernelError):
    """Base exception for item-related errors."""

    code: str = "ITEM_ERROR"


class ItemNotFoundError(ItemError):
    """Referenced item type has no row and the operation does not create one."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_type: str):
        self.item_type = item_type
        super().__init__(f"Inventory item not found: {item_type}")


class InvalidItemTypeError(ItemError):
    """Item type is not a member of the configured catalog."""

    code: str = "INVALID_ITEM_TYPE"

    def __init__(self, item_type: str, allowed: tuple[str, ...] = ()):
        self.item_type = item_type
        self.allowed = allowed
        super().__init__(
            f"Invalid item type {item_type!r}; expected one of {', '.join(allowed)}"
        )


class NegativeQuantityError(ItemError):
    """A write would persist a negative quantity or threshold."""

    code: str = "NEGATIVE_QUANTITY"

    def __init__(self, item_type: str, field: str, value: Decimal):
        self.item_type = item_type
        self.field = field
        self.value = value
        super().__init__(f"{field} for {item_type} cannot be negative: {value}")


# Adjustment-related exceptions


class AdjustmentError(StockKernelError):
    """Base exception for quantity-change errors."""

    code: str = "ADJUSTMENT_ERROR"


class InsufficientStockError(AdjustmentError):
    """Requested decrement would drive the quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_type: str, available: Decimal, requested: Decimal):
        self.item_type = item_type
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {item_type}: "
            f"available {available}, requested {requested}"
        )


class InvalidReasonError(AdjustmentError):
    """Reason is not a member of the ledger reason enum."""

    code: str = "INVALID_REASON"

    def __init__(self, reason: str, allowed: tuple[str, ...] = ()):
        self.reason = reason
        self.allowed = allowed
        super().__init__(
            f"Invalid adjustment reason {reason!r}; expected one of {', '.join(allowed)}"
        )


class InvalidAdjustmentError(AdjustmentError):
    """Malformed change request (zero delta, non-positive amount, empty batch)."""

    code: str = "INVALID_ADJUSTMENT"

    def __init__(self, message: str, item_type: str | None = None):
        self.item_type = item_type
        super().__init__(message)


# Consumption-related exceptions


class ConsumptionError(StockKernelError):
    """Base exception for batch consumption errors."""

    code: str = "CONSUMPTION_ERROR"


class EventAlreadyConsumedError(ConsumptionError):
    """The event already has consumption that has not been reversed."""

    code: str = "EVENT_ALREADY_CONSUMED"

    def __init__(self, event_id: str, item_types: tuple[str, ...]):
        self.event_id = event_id
        self.item_types = item_types
        super().__init__(
            f"Event {event_id} already consumed stock for: {', '.join(item_types)}"
        )


# Transaction-related exceptions


class TransactionError(StockKernelError):
    """Base exception for unit-of-work failures."""

    code: str = "TRANSACTION_ERROR"


class TransactionAbortedError(TransactionError):
    """
    The backing store could not commit the unit of work.

    The whole unit was rolled back; the original driver error is chained
    as ``__cause__``.
    """

    code: str = "TRANSACTION_ABORTED"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Transaction aborted during {operation}: {detail}")


# Immutability-related exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable ledger row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class LedgerIntegrityError(StockKernelError):
    """A ledger row whose before/change/after arithmetic does not hold."""

    code: str = "LEDGER_INTEGRITY"

    def __init__(
        self,
        item_type: str,
        quantity_before: Decimal,
        change_amount: Decimal,
        quantity_after: Decimal,
    ):
        self.item_type = item_type
        self.quantity_before = quantity_before
        self.change_amount = change_amount
        self.quantity_after = quantity_after
        super().__init__(
            f"Ledger arithmetic broken for {item_type}: "
            f"{quantity_before} + {change_amount} != {quantity_after}"
        )

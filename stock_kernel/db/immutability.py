"""
ORM-Level Ledger Guards (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The stock ledger must be tamper-proof: a mistaken adjustment is corrected by a
new compensating row, never by editing or deleting history.  This module is
the first layer of enforcement:

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications made through SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (database triggers)
    - Catches raw SQL and bulk statements
    - Fires at the database level, independent of application code

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule                                         | Error
----------------|----------------------------------------------|---------------------------
LedgerEntry     | Never updated                                | ImmutabilityViolationError
LedgerEntry     | Never deleted                                | ImmutabilityViolationError
LedgerEntry     | quantity_after == quantity_before + change   | LedgerIntegrityError
InventoryItem   | quantity >= 0, low_stock_threshold >= 0      | NegativeQuantityError

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent; InventoryLedger calls it

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from decimal import Decimal

from sqlalchemy import event

from stock_kernel.exceptions import (
    ImmutabilityViolationError,
    LedgerIntegrityError,
    NegativeQuantityError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry

logger = get_logger("db.immutability")


def _check_ledger_entry_update(mapper, connection, target):
    """Ledger rows are never modified."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason="Ledger entries are immutable; write a compensating entry instead",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Ledger rows are never deleted."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason="Ledger entries cannot be deleted",
    )


def _check_ledger_entry_arithmetic(mapper, connection, target):
    """Reject a ledger row whose before/change/after do not add up."""
    before = Decimal(target.quantity_before)
    change = Decimal(target.change_amount)
    after = Decimal(target.quantity_after)
    if before + change != after:
        logger.error(
            "ledger_arithmetic_violation_blocked",
            extra={
                "item_type": target.item_type,
                "quantity_before": before,
                "change_amount": change,
                "quantity_after": after,
            },
        )
        raise LedgerIntegrityError(
            item_type=target.item_type,
            quantity_before=before,
            change_amount=change,
            quantity_after=after,
        )


def _check_item_non_negative(mapper, connection, target):
    """Every write of an item keeps quantity and threshold non-negative."""
    for field in ("quantity", "low_stock_threshold"):
        value = getattr(target, field)
        if value is not None and Decimal(value) < 0:
            logger.error(
                "negative_quantity_blocked",
                extra={
                    "item_type": target.item_type,
                    "field": field,
                    "value": value,
                },
            )
            raise NegativeQuantityError(
                item_type=target.item_type,
                field=field,
                value=Decimal(value),
            )


_LISTENERS = (
    (LedgerEntry, "before_update", _check_ledger_entry_update),
    (LedgerEntry, "before_delete", _check_ledger_entry_delete),
    (LedgerEntry, "before_insert", _check_ledger_entry_arithmetic),
    (InventoryItem, "before_insert", _check_item_non_negative),
    (InventoryItem, "before_update", _check_item_non_negative),
)


def register_immutability_listeners() -> None:
    """
    Register the ledger guard event listeners.

    Safe to call more than once; a listener that is already registered is
    left in place.
    """
    for target, event_name, listener_fn in _LISTENERS:
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the ledger guard event listeners.

    WARNING: Only use this in tests that intentionally bypass the ORM layer
    to prove the database triggers hold on their own.
    """
    for target, event_name, listener_fn in _LISTENERS:
        _safe_remove_listener(target, event_name, listener_fn)


def listeners_registered() -> bool:
    """Check whether every ledger guard is currently registered."""
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _LISTENERS
    )

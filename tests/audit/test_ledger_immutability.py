"""
Ledger immutability at the ORM layer.

Ledger rows are append-only: the session refuses to update or delete them,
refuses to insert a row whose arithmetic does not add up, and refuses to
persist a negative item quantity.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from stock_kernel.db.immutability import listeners_registered
from stock_kernel.exceptions import (
    ImmutabilityViolationError,
    LedgerIntegrityError,
    NegativeQuantityError,
)
from stock_kernel.models.inventory_item import InventoryItem
from stock_kernel.models.ledger_entry import LedgerEntry, LedgerReason


@pytest.fixture
def ledger_row(session, stock) -> LedgerEntry:
    stock(resource=10)
    return session.execute(
        select(LedgerEntry).where(LedgerEntry.item_type == "resource")
    ).scalar_one()


class TestLedgerEntryGuards:

    def test_listeners_registered(self, db_tables):
        assert listeners_registered()

    def test_update_blocked(self, session, ledger_row):
        entry_id = str(ledger_row.id)
        ledger_row.notes = "rewritten"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "LedgerEntry"
        assert exc_info.value.entity_id == entry_id
        session.rollback()

    def test_quantity_rewrite_blocked(self, session, ledger_row):
        ledger_row.change_amount = Decimal("100")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, ledger_row):
        session.delete(ledger_row)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_violation_is_logged(self, session, ledger_row, captured_logs):
        ledger_row.reason = LedgerReason.CORRECTION.value
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked and blocked[0]["operation"] == "UPDATE"

    def test_broken_arithmetic_insert_blocked(self, session):
        session.add(
            LedgerEntry(
                item_type="resource",
                item_seq=1,
                change_amount=Decimal("1"),
                quantity_before=Decimal("0"),
                quantity_after=Decimal("2"),
                reason=LedgerReason.CORRECTION.value,
                timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )
        with pytest.raises(LedgerIntegrityError) as exc_info:
            session.flush()

        assert exc_info.value.quantity_after == Decimal("2")
        session.rollback()


class TestItemGuards:

    def test_negative_quantity_blocked(self, session, stock):
        stock(accessory_a=1)
        item = session.execute(
            select(InventoryItem).where(InventoryItem.item_type == "accessory_a")
        ).scalar_one()

        item.quantity = Decimal("-1")
        with pytest.raises(NegativeQuantityError) as exc_info:
            session.flush()

        assert exc_info.value.item_type == "accessory_a"
        session.rollback()

    def test_negative_threshold_blocked(self, session):
        session.add(
            InventoryItem(
                item_type="accessory_b",
                quantity=Decimal("1"),
                unit="count",
                low_stock_threshold=Decimal("-5"),
            )
        )
        with pytest.raises(NegativeQuantityError) as exc_info:
            session.flush()

        assert exc_info.value.field == "low_stock_threshold"
        session.rollback()

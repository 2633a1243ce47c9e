"""
Tests for LedgerSelector -- history, replay and reconciliation.

Replaying the ledger must always reproduce the stored quantity; the
reconciliation report is how drift or tampering is detected.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import text

from stock_kernel.domain.dtos import Reference
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.models.ledger_entry import LedgerReason

ACTOR = "nurse-1"


class TestHistory:

    def test_newest_first_with_paging(self, stock, adjustment_service, ledger_selector):
        stock(resource=10)
        adjustment_service.adjust("resource", -1, LedgerReason.DAMAGED)

        rows = ledger_selector.history("resource")
        assert [r.item_seq for r in rows] == [2, 1]

        page = ledger_selector.history("resource", limit=1, offset=1)
        assert [r.item_seq for r in page] == [1]

    def test_all_history_and_counts(self, stock, ledger_selector):
        stock(resource=10, accessory_a=2, accessory_b=2)

        assert len(ledger_selector.all_history()) == 3
        assert len(ledger_selector.all_history(limit=2)) == 2
        assert ledger_selector.count_history() == 3
        assert ledger_selector.count_history("accessory_a") == 1
        assert ledger_selector.count_history("accessory_c") == 0

    def test_entries_for_reference(self, stock, consumption_service, ledger_selector):
        stock(resource=10, accessory_a=2)
        consumption_service.consume(42, ACTOR, {"resource": 1, "accessory_a": 1})

        rows = ledger_selector.entries_for_reference(Reference.event(42))

        assert [r.item_type for r in rows] == ["accessory_a", "resource"]
        assert ledger_selector.entries_for_reference(Reference.event(43)) == []


class TestReplay:

    def test_replay_matches_projection(
        self, stock, consumption_service, reversal_service, ledger_selector, item_store
    ):
        stock(resource="10.0", accessory_a=3)
        consumption_service.consume(1, ACTOR, {"resource": "1.5", "accessory_a": 1})
        consumption_service.consume(2, ACTOR, {"resource": "0.5"})
        reversal_service.reverse(1, ACTOR)

        assert ledger_selector.replay("resource") == item_store.get("resource").quantity
        assert ledger_selector.replay("resource") == Decimal("9.5")

    def test_replay_missing_item(self, ledger_selector):
        with pytest.raises(ItemNotFoundError):
            ledger_selector.replay("resource")


class TestReconcile:

    def test_consistent_after_normal_operations(
        self, stock, consumption_service, reversal_service, ledger_selector
    ):
        stock(resource=10, accessory_a=5, accessory_b=5)
        consumption_service.consume(1, ACTOR, {"resource": 1, "accessory_a": 1, "accessory_b": 1})
        reversal_service.reverse(1, ACTOR)

        report = ledger_selector.reconcile()

        assert report.is_consistent
        assert report.drifted == ()
        assert report.orphaned_item_types == ()
        by_type = {r.item_type: r for r in report.items}
        assert by_type["resource"].entry_count == 3
        assert by_type["resource"].replayed_quantity == Decimal("10")

    def test_detects_projection_drift(self, session, stock, ledger_selector):
        stock(resource=10, accessory_a=5)
        session.execute(
            text("UPDATE inventory_items SET quantity = 99 WHERE item_type = 'resource'")
        )
        session.expire_all()

        report = ledger_selector.reconcile()

        assert not report.is_consistent
        (drifted,) = report.drifted
        assert drifted.item_type == "resource"
        assert drifted.drift == Decimal("89")

    def test_detects_broken_arithmetic(self, session, stock, ledger_selector):
        stock(accessory_b=5)
        # Raw INSERT bypasses the ORM arithmetic guard
        session.execute(
            text(
                "INSERT INTO inventory_ledger (id, item_type, item_seq, change_amount, "
                "quantity_before, quantity_after, reason, timestamp) "
                "VALUES (:id, 'accessory_b', 2, 1, 5, 7, 'correction', :ts)"
            ),
            {"id": str(uuid4()), "ts": "2024-01-01 13:00:00"},
        )

        report = ledger_selector.reconcile()

        assert not report.is_consistent
        assert [(e.item_type, e.item_seq) for e in report.broken_entries] == [("accessory_b", 2)]

    def test_reports_orphaned_ledger_rows(self, stock, item_store, ledger_selector):
        stock(resource=10, accessory_c=1)
        item_store.delete("accessory_c")

        report = ledger_selector.reconcile()

        assert report.orphaned_item_types == ("accessory_c",)
        assert [r.item_type for r in report.items] == ["resource"]

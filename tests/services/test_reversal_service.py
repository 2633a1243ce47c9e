"""
Tests for ReversalService -- compensating entries for a deleted event.

Reversal appends new rows and never touches the originals; repeating it is
a no-op because the event's per-item net is already zero.
"""

from decimal import Decimal

from stock_kernel.domain.dtos import Reference
from stock_kernel.models.ledger_entry import LedgerReason
from stock_kernel.services.ledger_store import LedgerStore

ACTOR = "nurse-1"

AMOUNTS = {"resource": "1.0", "accessory_a": "1.0", "accessory_b": "1.0"}


class TestReverse:

    def test_restores_pre_consumption_quantities(
        self, stock, consumption_service, reversal_service, item_store
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumption_service.consume(501, ACTOR, AMOUNTS)

        result = reversal_service.reverse(501, ACTOR)

        assert not result.is_noop
        assert result.quantities == {
            "accessory_a": Decimal("3"),
            "accessory_b": Decimal("5"),
            "resource": Decimal("10.0"),
        }
        assert item_store.get("resource").quantity == Decimal("10.0")

    def test_appends_compensating_entries(
        self, stock, consumption_service, reversal_service, ledger_selector
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumed = consumption_service.consume(501, ACTOR, AMOUNTS)

        result = reversal_service.reverse(501, "admin", notes="event deleted")

        for entry in result.entries:
            assert entry.reason == LedgerReason.REVERSAL.value
            assert entry.change_amount == Decimal("1")
            assert entry.reference == Reference.event(501)
            assert entry.performed_by == "admin"
            assert entry.notes == "event deleted"

        rows = ledger_selector.entries_for_reference(Reference.event(501))
        assert len(rows) == 6
        # The original consumption rows are still there, unchanged
        assert {r.id for r in consumed.entries} <= {r.id for r in rows}

    def test_per_item_net_is_zero(
        self, stock, consumption_service, reversal_service, ledger_selector
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumption_service.consume(501, ACTOR, AMOUNTS)
        reversal_service.reverse(501, ACTOR)

        net: dict[str, Decimal] = {}
        for row in ledger_selector.entries_for_reference(Reference.event(501)):
            net[row.item_type] = net.get(row.item_type, Decimal("0")) + row.change_amount
        assert set(net.values()) == {Decimal("0")}

    def test_unknown_event_is_noop(self, reversal_service, ledger_selector):
        result = reversal_service.reverse(999, ACTOR)

        assert result.is_noop
        assert result.event_id == "999"
        assert ledger_selector.count_history() == 0

    def test_second_reversal_is_noop(
        self, stock, consumption_service, reversal_service, ledger_selector, item_store
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumption_service.consume(501, ACTOR, AMOUNTS)
        reversal_service.reverse(501, ACTOR)

        again = reversal_service.reverse(501, ACTOR)

        assert again.is_noop
        assert len(ledger_selector.entries_for_reference(Reference.event(501))) == 6
        assert item_store.get("resource").quantity == Decimal("10.0")

    def test_reversal_after_reconsume_reverses_only_outstanding(
        self, stock, consumption_service, reversal_service, item_store
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumption_service.consume(501, ACTOR, AMOUNTS)
        reversal_service.reverse(501, ACTOR)
        consumption_service.consume(501, ACTOR, {"resource": "2.0"})

        result = reversal_service.reverse(501, ACTOR)

        assert [e.item_type for e in result.entries] == ["resource"]
        assert result.entries[0].change_amount == Decimal("2")
        assert item_store.get("resource").quantity == Decimal("10.0")

    def test_reversal_recreates_deleted_item(
        self, stock, consumption_service, reversal_service, item_store, ledger_selector
    ):
        stock(resource="10.0", accessory_a="3", accessory_b="5")
        consumption_service.consume(501, ACTOR, AMOUNTS)
        item_store.delete("accessory_a")

        result = reversal_service.reverse(501, ACTOR)

        recreated = item_store.get("accessory_a")
        assert recreated.quantity == Decimal("1")
        assert recreated.unit == "count"
        credited = next(e for e in result.entries if e.item_type == "accessory_a")
        # Sequence continues after the rows written before the delete
        assert credited.item_seq == 3
        assert ledger_selector.replay("accessory_a") == Decimal("1")
        assert ledger_selector.reconcile().is_consistent

    def test_items_first_seen_under_lock_are_reversed(
        self, stock, consumption_service, reversal_service, item_store, monkeypatch
    ):
        stock(resource="10.0", accessory_a="3")
        consumption_service.consume(501, ACTOR, {"resource": "1.0"})
        reversal_service.reverse(501, ACTOR)
        consumption_service.consume(501, ACTOR, {"resource": "1.0", "accessory_a": "1"})
        # First read predates the second consumption's accessory_a row
        monkeypatch.setattr(
            LedgerStore, "item_types_for_event", lambda self, reference: {"resource"}
        )

        result = reversal_service.reverse(501, ACTOR)

        assert sorted(result.quantities) == ["accessory_a", "resource"]
        assert item_store.get("accessory_a").quantity == Decimal("3")
        assert item_store.get("resource").quantity == Decimal("10.0")


class TestEventTaggedAdjustments:

    def test_tagged_restock_is_not_reversed(
        self, stock, adjustment_service, reversal_service, item_store
    ):
        stock(resource="10.0")
        adjustment_service.adjust(
            "resource", "5", LedgerReason.RESTOCK, reference=Reference.event(7)
        )
        adjustment_service.adjust("resource", "-15", LedgerReason.DAMAGED)

        result = reversal_service.reverse(7, ACTOR)

        assert result.is_noop
        assert item_store.get("resource").quantity == Decimal("0")

    def test_only_consumption_is_reversed(
        self, stock, adjustment_service, consumption_service, reversal_service, item_store
    ):
        stock(resource="10.0")
        adjustment_service.adjust(
            "resource", "2", LedgerReason.CORRECTION, reference=Reference.event(7)
        )
        consumption_service.consume(7, ACTOR, {"resource": "1.0"})

        result = reversal_service.reverse(7, ACTOR)

        assert [e.change_amount for e in result.entries] == [Decimal("1")]
        assert item_store.get("resource").quantity == Decimal("12.0")

    def test_tagged_adjustment_does_not_block_consumption(
        self, stock, adjustment_service, consumption_service, item_store
    ):
        stock(resource="10.0")
        adjustment_service.adjust(
            "resource", "5", LedgerReason.RESTOCK, reference=Reference.event(8)
        )

        consumption_service.consume(8, ACTOR, {"resource": "1.0"})

        assert item_store.get("resource").quantity == Decimal("14.0")

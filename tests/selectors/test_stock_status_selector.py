"""Tests for StockStatusSelector -- low-stock and expiration views."""

from datetime import date
from decimal import Decimal

from stock_kernel.domain.dtos import AlertSeverity, ExpirationStatus


class TestLowStock:

    def test_severity_and_ordering(self, item_store, stock_status_selector):
        item_store.upsert("resource", quantity=3, low_stock_threshold=Decimal("4"))
        item_store.upsert("accessory_a", quantity=1, low_stock_threshold=Decimal("4"))
        item_store.upsert("accessory_b", quantity=10, low_stock_threshold=Decimal("4"))
        item_store.upsert("accessory_c", quantity=4, low_stock_threshold=Decimal("4"))
        item_store.upsert("accessory_d", quantity=0)

        alerts = stock_status_selector.low_stock()

        assert [(a.item_type, a.severity) for a in alerts] == [
            ("accessory_a", AlertSeverity.CRITICAL),
            ("resource", AlertSeverity.WARNING),
            ("accessory_c", AlertSeverity.WARNING),
        ]
        resource = alerts[1]
        assert resource.quantity == Decimal("3")
        assert resource.threshold == Decimal("4")
        assert resource.unit == "mL"

    def test_critical_boundary_is_inclusive(self, item_store, stock_status_selector):
        item_store.upsert("resource", quantity=2, low_stock_threshold=Decimal("4"))

        (alert,) = stock_status_selector.low_stock()

        assert alert.severity == AlertSeverity.CRITICAL

    def test_zero_threshold_alerts_only_at_zero(self, item_store, stock_status_selector):
        item_store.upsert("accessory_a", quantity=0, low_stock_threshold=Decimal("0"))
        item_store.upsert("accessory_b", quantity=1, low_stock_threshold=Decimal("0"))

        alerts = stock_status_selector.low_stock()

        assert [(a.item_type, a.severity) for a in alerts] == [
            ("accessory_a", AlertSeverity.CRITICAL),
        ]

    def test_empty_store(self, stock_status_selector):
        assert stock_status_selector.low_stock() == []


class TestExpiring:

    TODAY = date(2024, 1, 1)

    def _seed(self, item_store):
        item_store.upsert("resource", quantity=5, expiration_date=date(2023, 12, 25), lot_number="OLD")
        item_store.upsert("accessory_a", quantity=5, expiration_date=date(2024, 1, 15))
        item_store.upsert("accessory_b", quantity=5, expiration_date=date(2024, 3, 1))
        item_store.upsert("accessory_c", quantity=5)

    def test_default_window(self, item_store, stock_status_selector):
        self._seed(item_store)

        alerts = stock_status_selector.expiring(self.TODAY)

        assert [(a.item_type, a.status, a.days_until) for a in alerts] == [
            ("resource", ExpirationStatus.EXPIRED, -7),
            ("accessory_a", ExpirationStatus.EXPIRING, 14),
        ]
        assert alerts[0].lot_number == "OLD"

    def test_wider_window(self, item_store, stock_status_selector):
        self._seed(item_store)

        alerts = stock_status_selector.expiring(self.TODAY, within_days=90)

        assert [a.item_type for a in alerts] == ["resource", "accessory_a", "accessory_b"]

    def test_expiring_today_is_not_expired(self, item_store, stock_status_selector):
        item_store.upsert("resource", quantity=1, expiration_date=self.TODAY)

        (alert,) = stock_status_selector.expiring(self.TODAY, within_days=0)

        assert alert.status == ExpirationStatus.EXPIRING
        assert alert.days_until == 0

"""Pure-layer tests: quantities, reasons, stock classification, catalog."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.dtos import AlertSeverity, ExpirationStatus
from stock_kernel.domain.policy import (
    classify_expiration,
    classify_stock,
    coerce_reason,
    parse_amount,
    parse_delta,
    parse_threshold,
)
from stock_kernel.domain.values import to_quantity
from stock_kernel.exceptions import (
    InvalidAdjustmentError,
    InvalidItemTypeError,
    InvalidReasonError,
)
from stock_kernel.models.ledger_entry import LedgerReason


class TestToQuantity:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (1, Decimal("1")),
            ("2.5", Decimal("2.5")),
            (0.1, Decimal("0.1")),
            (Decimal("1.0000000004"), Decimal("1.000000000")),
        ],
    )
    def test_normalizes(self, value, expected):
        assert to_quantity(value) == expected

    def test_quantized_to_nine_places(self):
        assert to_quantity("1.5").as_tuple().exponent == -9

    @pytest.mark.parametrize("value", [True, "abc", float("inf"), Decimal("NaN"), None])
    def test_rejects(self, value):
        with pytest.raises(ValueError):
            to_quantity(value)


class TestParsers:

    def test_delta_sign_preserved(self):
        assert parse_delta("resource", "-1.5") == Decimal("-1.5")

    def test_delta_zero_rejected(self):
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            parse_delta("resource", "0.0000000001")
        assert exc_info.value.item_type == "resource"

    @pytest.mark.parametrize("amount", [0, -1])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(InvalidAdjustmentError):
            parse_amount("resource", amount)

    def test_threshold(self):
        assert parse_threshold("resource", None) is None
        assert parse_threshold("resource", 0) == Decimal("0")
        with pytest.raises(InvalidAdjustmentError):
            parse_threshold("resource", -1)

    def test_reason(self):
        assert coerce_reason("reversal") is LedgerReason.REVERSAL
        assert coerce_reason(LedgerReason.RESTOCK) is LedgerReason.RESTOCK
        with pytest.raises(InvalidReasonError) as exc_info:
            coerce_reason("theft")
        assert "restock" in exc_info.value.allowed


class TestClassifyStock:

    RATIO = Decimal("0.5")

    @pytest.mark.parametrize(
        "quantity, threshold, expected",
        [
            ("5", None, None),
            ("5", "4", None),
            ("4", "4", AlertSeverity.WARNING),
            ("2.000000001", "4", AlertSeverity.WARNING),
            ("2", "4", AlertSeverity.CRITICAL),
            ("0", "0", AlertSeverity.CRITICAL),
        ],
    )
    def test_classification(self, quantity, threshold, expected):
        threshold = Decimal(threshold) if threshold is not None else None
        assert classify_stock(Decimal(quantity), threshold, self.RATIO) == expected


class TestClassifyExpiration:

    TODAY = date(2024, 1, 1)

    def test_statuses(self):
        assert classify_expiration(None, self.TODAY, 30) is None
        assert classify_expiration(date(2023, 12, 31), self.TODAY, 30) == ExpirationStatus.EXPIRED
        assert classify_expiration(self.TODAY, self.TODAY, 30) == ExpirationStatus.EXPIRING
        assert classify_expiration(date(2024, 1, 31), self.TODAY, 30) == ExpirationStatus.EXPIRING
        assert classify_expiration(date(2024, 2, 1), self.TODAY, 30) is None


class TestItemCatalog:

    def test_require_and_units(self, catalog):
        assert catalog.require("resource") == "resource"
        assert catalog.unit_for("resource") == "mL"
        assert "accessory_a" in catalog
        with pytest.raises(InvalidItemTypeError):
            catalog.require("bandage")

    def test_mappings_are_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog.units["bandage"] = "count"

    def test_default_consumption_normalized(self):
        catalog = ItemCatalog(units={"resource": "mL"}, default_consumption={"resource": 1.0})
        assert catalog.default_consumption["resource"] == Decimal("1")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"units": {"resource": "litre"}},
            {"units": {"resource": "mL"}, "default_consumption": {"gauze": 1}},
            {"units": {"resource": "mL"}, "default_consumption": {"resource": 0}},
            {"units": {"resource": "mL"}, "critical_ratio": Decimal("1.5")},
            {"units": {"resource": "mL"}, "expiration_warning_days": -1},
        ],
    )
    def test_invalid_catalog_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ItemCatalog(**kwargs)


class TestDeterministicClock:

    def test_advance_and_today(self):
        clock = DeterministicClock(datetime(2024, 1, 1, 23, 59, 59, tzinfo=timezone.utc))
        assert clock.now() == clock.now()
        assert clock.tick() == datetime(2024, 1, 2, 0, 0, 0, tzinfo=timezone.utc)
        clock.advance_days(2)
        assert clock.today() == date(2024, 1, 4)
        assert clock.now() - datetime(2024, 1, 2, tzinfo=timezone.utc) == timedelta(days=2)

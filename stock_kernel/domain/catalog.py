"""
ItemCatalog -- the closed set of tracked item types and stock policy.

Responsibility:
    Holds what the engines need to know about the configured items: which
    item types exist, their unit, the default per-event consumption, and
    the thresholds used by status queries.  Built from configuration by
    ``stock_config.bridges.build_item_catalog``; the kernel never reads
    configuration itself.

Architecture position:
    Kernel > Domain -- pure, immutable, zero I/O.

Failure modes:
    - InvalidItemTypeError from ``require()`` for an unknown item type.
    - ValueError on construction for an unknown unit, a non-positive default
      amount, or a critical ratio outside (0, 1].
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from stock_kernel.domain.values import StockUnit, to_quantity
from stock_kernel.exceptions import InvalidItemTypeError

DEFAULT_CRITICAL_RATIO = Decimal("0.5")
DEFAULT_EXPIRATION_WARNING_DAYS = 30


@dataclass(frozen=True)
class ItemCatalog:
    """
    Immutable item catalog.

    Guarantees:
        - ``units`` and ``default_consumption`` are read-only mappings.
        - Every default consumption amount is a positive quantity of a
          catalog item.
    """

    units: Mapping[str, str]
    default_consumption: Mapping[str, Decimal] = field(default_factory=dict)
    critical_ratio: Decimal = DEFAULT_CRITICAL_RATIO
    expiration_warning_days: int = DEFAULT_EXPIRATION_WARNING_DAYS

    def __post_init__(self) -> None:
        allowed_units = {u.value for u in StockUnit}
        for item_type, unit in self.units.items():
            if unit not in allowed_units:
                raise ValueError(f"Unknown unit {unit!r} for item type {item_type}")

        amounts: dict[str, Decimal] = {}
        for item_type, amount in self.default_consumption.items():
            if item_type not in self.units:
                raise ValueError(f"Default consumption names unknown item type {item_type}")
            quantity = to_quantity(amount)
            if quantity <= 0:
                raise ValueError(f"Default consumption for {item_type} must be positive")
            amounts[item_type] = quantity

        ratio = Decimal(str(self.critical_ratio))
        if not Decimal("0") < ratio <= Decimal("1"):
            raise ValueError(f"critical_ratio must be in (0, 1], got {ratio}")
        if self.expiration_warning_days < 0:
            raise ValueError("expiration_warning_days cannot be negative")

        object.__setattr__(self, "units", MappingProxyType(dict(self.units)))
        object.__setattr__(self, "default_consumption", MappingProxyType(amounts))
        object.__setattr__(self, "critical_ratio", ratio)

    @property
    def item_types(self) -> tuple[str, ...]:
        return tuple(sorted(self.units))

    def __contains__(self, item_type: object) -> bool:
        return item_type in self.units

    def require(self, item_type: str) -> str:
        """Return ``item_type`` if it is in the catalog, else raise."""
        if item_type not in self.units:
            raise InvalidItemTypeError(item_type, self.item_types)
        return item_type

    def unit_for(self, item_type: str) -> str:
        return self.units[self.require(item_type)]

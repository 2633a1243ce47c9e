"""
Configuration Validator (``stock_config.validator``).

Responsibility
--------------
Validates a ``StockLedgerConfig`` before it is turned into kernel inputs,
collecting every problem rather than stopping at the first.

Invariants enforced
-------------------
* Item type names are unique and use a known unit.
* Every consumption profile names catalog items with positive amounts.
* The default profile, when set, exists.
* ``critical_ratio`` lies in (0, 1]; warning days and thresholds are
  non-negative.

Failure modes
-------------
* Errors -> ``ConfigValidationError`` from ``get_active_config()``; the
  configuration MUST NOT be used.
* Warnings -> logged, configuration still usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from stock_config.schema import StockLedgerConfig

KNOWN_UNITS = ("mL", "count")


class ConfigValidationError(ValueError):
    """Configuration failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in self.errors)
        )


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: StockLedgerConfig) -> ConfigValidationResult:
    """Validate a parsed configuration."""
    result = ConfigValidationResult()

    _validate_item_types(config, result)
    _validate_profiles(config, result)
    _validate_policy(config, result)

    return result


def _validate_item_types(config: StockLedgerConfig, result: ConfigValidationResult) -> None:
    if not config.item_types:
        result.add_error("No item types configured")

    seen: set[str] = set()
    for item in config.item_types:
        if not item.name:
            result.add_error("Item type with empty name")
        if item.name in seen:
            result.add_error(f"Duplicate item type '{item.name}'")
        seen.add(item.name)
        if item.unit not in KNOWN_UNITS:
            result.add_error(
                f"Item type '{item.name}' has unknown unit '{item.unit}' "
                f"(expected one of {', '.join(KNOWN_UNITS)})"
            )
        if item.default_threshold is not None and item.default_threshold < 0:
            result.add_error(f"Item type '{item.name}' has a negative default_threshold")


def _validate_profiles(config: StockLedgerConfig, result: ConfigValidationResult) -> None:
    names = {item.name for item in config.item_types}
    for profile in config.consumption_profiles:
        if not profile.amounts:
            result.add_error(f"Consumption profile '{profile.name}' is empty")
        for item_type, amount in profile.amounts:
            if item_type not in names:
                result.add_error(
                    f"Consumption profile '{profile.name}' names unknown item type '{item_type}'"
                )
            if amount <= 0:
                result.add_error(
                    f"Consumption profile '{profile.name}' has non-positive amount "
                    f"{amount} for '{item_type}'"
                )

    if config.default_profile is None:
        if config.consumption_profiles:
            result.add_warning("Consumption profiles defined but no default_profile set")
    elif config.get_profile(config.default_profile) is None:
        result.add_error(f"default_profile '{config.default_profile}' is not defined")


def _validate_policy(config: StockLedgerConfig, result: ConfigValidationResult) -> None:
    ratio = config.policy.critical_ratio
    if not Decimal("0") < ratio <= Decimal("1"):
        result.add_error(f"policy.critical_ratio must be in (0, 1], got {ratio}")
    if config.policy.expiration_warning_days < 0:
        result.add_error("policy.expiration_warning_days cannot be negative")

"""
StockLedgerConfig schema.

Defines the human-authored, reviewable configuration for the stock ledger.
YAML is parsed into these types by the loader, checked by the validator and
converted into kernel inputs by the bridges.

Key distinction:
  StockLedgerConfig = source artifact (human-authored, versioned)
  ItemCatalog       = kernel artifact (built by bridges.build_item_catalog)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemTypeDef:
    """One tracked item type."""

    name: str
    unit: str  # "mL" or "count"
    default_threshold: Decimal | None = None


@dataclass(frozen=True)
class ConsumptionProfile:
    """Fixed amounts drawn from each item for one clinical event."""

    name: str
    amounts: tuple[tuple[str, Decimal], ...] = ()  # (item_type, amount)

    def as_dict(self) -> dict[str, Decimal]:
        return dict(self.amounts)


# ---------------------------------------------------------------------------
# Policy and infrastructure settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StockPolicy:
    """Thresholds used by the stock status queries."""

    critical_ratio: Decimal = Decimal("0.5")
    expiration_warning_days: int = 30


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///stock_ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    busy_timeout: int = 30


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StockLedgerConfig:
    """
    Complete stock ledger configuration.

    ``checksum`` is the SHA-256 of the canonical source document and
    identifies the exact configuration in the ``stock_config_loaded`` trace.
    """

    version: int
    item_types: tuple[ItemTypeDef, ...]
    consumption_profiles: tuple[ConsumptionProfile, ...] = ()
    default_profile: str | None = None
    policy: StockPolicy = field(default_factory=StockPolicy)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""

    def get_profile(self, name: str) -> ConsumptionProfile | None:
        for profile in self.consumption_profiles:
            if profile.name == name:
                return profile
        return None

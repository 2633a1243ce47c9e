"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads the stock ledger YAML file and parses it into typed
``stock_config.schema`` dataclass instances.  Runtime callers go through
``stock_config.get_active_config()`` rather than calling this directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Has no dependency on the
kernel.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the source
  document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric amounts  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    ConsumptionProfile,
    DatabaseSettings,
    ItemTypeDef,
    LoggingSettings,
    StockLedgerConfig,
    StockPolicy,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, what: str) -> Decimal:
    """Parse a YAML scalar into a Decimal (floats go through ``str``)."""
    if isinstance(value, bool):
        raise ValueError(f"{what}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{what}: expected a number, got {value!r}") from None


def parse_item_type(data: dict[str, Any]) -> ItemTypeDef:
    threshold = data.get("default_threshold")
    return ItemTypeDef(
        name=data["name"],
        unit=data["unit"],
        default_threshold=(
            parse_decimal(threshold, f"{data['name']}.default_threshold")
            if threshold is not None
            else None
        ),
    )


def parse_consumption_profile(name: str, data: dict[str, Any]) -> ConsumptionProfile:
    """
    Parse a ``ConsumptionProfile`` from ``{item_type: amount}``.

    Amounts are kept in sorted item_type order.
    """
    amounts = data or {}
    return ConsumptionProfile(
        name=name,
        amounts=tuple(
            (item_type, parse_decimal(amounts[item_type], f"{name}.{item_type}"))
            for item_type in sorted(amounts)
        ),
    )


def parse_policy(data: dict[str, Any]) -> StockPolicy:
    defaults = StockPolicy()
    return StockPolicy(
        critical_ratio=parse_decimal(
            data.get("critical_ratio", defaults.critical_ratio), "policy.critical_ratio"
        ),
        expiration_warning_days=int(
            data.get("expiration_warning_days", defaults.expiration_warning_days)
        ),
    )


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=data.get("url", defaults.url),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
        busy_timeout=int(data.get("busy_timeout", defaults.busy_timeout)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    return LoggingSettings(level=str(data.get("level", LoggingSettings().level)).upper())


def parse_config(data: dict[str, Any]) -> StockLedgerConfig:
    """
    Parse a complete ``StockLedgerConfig`` from the root document.

    Preconditions:
        - ``data`` contains ``version`` and a non-empty ``item_types`` list.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if a numeric field cannot be parsed.
    """
    profiles = data.get("consumption_profiles") or {}
    return StockLedgerConfig(
        version=int(data["version"]),
        item_types=tuple(parse_item_type(item) for item in data["item_types"]),
        consumption_profiles=tuple(
            parse_consumption_profile(name, profiles[name]) for name in sorted(profiles)
        ),
        default_profile=data.get("default_profile"),
        policy=parse_policy(data.get("policy") or {}),
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> StockLedgerConfig:
    """Load and parse a configuration file (no validation)."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

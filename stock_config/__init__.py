"""
stock_config -- single public entrypoint for stock ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a validated ``StockLedgerConfig``.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``stock_kernel``.  The kernel MUST NEVER import from
    ``stock_config``; bridges in this package translate the configuration
    into kernel inputs (``ItemCatalog``, engine settings).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ConfigValidationError`` -- one or more validation errors.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``stock_config_loaded`` log entry with the version and checksum, tying
    every ledger write back to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import load_config
from stock_config.schema import StockLedgerConfig
from stock_config.validator import ConfigValidationError, validate_configuration

_logger = logging.getLogger("stock_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "stock_ledger.yaml"


def get_active_config(config_path: Path | str | None = None) -> StockLedgerConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            the packaged ``stock_config/defaults/stock_ledger.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ConfigValidationError(validation.errors)
    for warning in validation.warnings:
        _logger.warning("stock_config_warning", extra={"warning": warning})

    _logger.info(
        "stock_config_loaded",
        extra={
            "config_version": config.version,
            "checksum": config.checksum,
            "item_type_count": len(config.item_types),
            "default_profile": config.default_profile,
        },
    )
    return config


__all__ = [
    "ConfigValidationError",
    "StockLedgerConfig",
    "get_active_config",
]

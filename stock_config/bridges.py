"""
Config -> Kernel Bridges.

Functions that convert a StockLedgerConfig into kernel-compatible inputs.
These live in stock_config (the producer) because the kernel must NEVER
import stock_config.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import bootstrap_ledger

    config = get_active_config()
    ledger = bootstrap_ledger(config)
"""

from __future__ import annotations

import logging

from stock_config.schema import StockLedgerConfig
from stock_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from stock_kernel.domain.catalog import ItemCatalog
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.logging_config import configure_logging
from stock_kernel.services.inventory_ledger import InventoryLedger

_logger = logging.getLogger("stock_kernel.config")


def build_item_catalog(config: StockLedgerConfig) -> ItemCatalog:
    """Build the kernel's ItemCatalog from item types, default profile and policy."""
    profile = (
        config.get_profile(config.default_profile) if config.default_profile else None
    )
    return ItemCatalog(
        units={item.name: item.unit for item in config.item_types},
        default_consumption=profile.as_dict() if profile else {},
        critical_ratio=config.policy.critical_ratio,
        expiration_warning_days=config.policy.expiration_warning_days,
    )


def seed_items(ledger: InventoryLedger, config: StockLedgerConfig) -> list[str]:
    """
    Create a zero-quantity row for every configured item type that has none.

    Existing rows are left untouched.  Returns the item types created.
    """
    created = []
    for item in config.item_types:
        try:
            ledger.get_item(item.name)
        except ItemNotFoundError:
            ledger.upsert_item(item.name, unit=item.unit, low_stock_threshold=item.default_threshold)
            created.append(item.name)
    if created:
        _logger.info("stock_items_seeded", extra={"item_types": created})
    return created


def bootstrap_ledger(
    config: StockLedgerConfig,
    clock: Clock | None = None,
    seed: bool = True,
) -> InventoryLedger:
    """
    Wire up logging, the engine and the schema from configuration and
    return a ready InventoryLedger.
    """
    configure_logging(level=config.logging.level)
    db = config.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        busy_timeout=db.busy_timeout,
    )
    create_tables()
    ledger = InventoryLedger(get_session_factory(), build_item_catalog(config), clock=clock)
    if seed:
        seed_items(ledger, config)
    return ledger

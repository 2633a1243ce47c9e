"""
Module: stock_kernel.db.triggers
Responsibility: Installing, removing and verifying the database-level
    immutability triggers on the stock ledger (Layer 2 of 2).  This is the
    database complement to the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced:
    - inventory_ledger rows: no UPDATE, no DELETE, regardless of whether the
      statement came through the ORM, a bulk statement, or raw SQL.

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on a violating
      statement, surfaced by SQLAlchemy as a DBAPIError subclass.
    - ValueError for a dialect with no trigger definitions.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from stock_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

LEDGER_TABLE = "inventory_ledger"

ALL_TRIGGER_NAMES = [
    "trg_inventory_ledger_immutability_update",
    "trg_inventory_ledger_immutability_delete",
]

_VIOLATION_MESSAGE = "IMMUTABILITY_VIOLATION: inventory_ledger rows are append-only"


# =============================================================================
# Dialect-specific statements
# =============================================================================

_POSTGRES_INSTALL = [
    f"""
    CREATE OR REPLACE FUNCTION prevent_inventory_ledger_mutation()
    RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION '{_VIOLATION_MESSAGE}';
    END;
    $$ LANGUAGE plpgsql
    """,
    f"DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_update ON {LEDGER_TABLE}",
    f"""
    CREATE TRIGGER trg_inventory_ledger_immutability_update
    BEFORE UPDATE ON {LEDGER_TABLE}
    FOR EACH ROW EXECUTE FUNCTION prevent_inventory_ledger_mutation()
    """,
    f"DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_delete ON {LEDGER_TABLE}",
    f"""
    CREATE TRIGGER trg_inventory_ledger_immutability_delete
    BEFORE DELETE ON {LEDGER_TABLE}
    FOR EACH ROW EXECUTE FUNCTION prevent_inventory_ledger_mutation()
    """,
]

_POSTGRES_DROP = [
    f"DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_update ON {LEDGER_TABLE}",
    f"DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_delete ON {LEDGER_TABLE}",
    "DROP FUNCTION IF EXISTS prevent_inventory_ledger_mutation()",
]

_SQLITE_INSTALL = [
    f"""
    CREATE TRIGGER IF NOT EXISTS trg_inventory_ledger_immutability_update
    BEFORE UPDATE ON {LEDGER_TABLE}
    BEGIN
        SELECT RAISE(ABORT, '{_VIOLATION_MESSAGE}');
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS trg_inventory_ledger_immutability_delete
    BEFORE DELETE ON {LEDGER_TABLE}
    BEGIN
        SELECT RAISE(ABORT, '{_VIOLATION_MESSAGE}');
    END
    """,
]

_SQLITE_DROP = [
    "DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_update",
    "DROP TRIGGER IF EXISTS trg_inventory_ledger_immutability_delete",
]

_STATEMENTS = {
    "postgresql": (_POSTGRES_INSTALL, _POSTGRES_DROP),
    "sqlite": (_SQLITE_INSTALL, _SQLITE_DROP),
}


def _statements_for(engine: Engine) -> tuple[list[str], list[str]]:
    try:
        return _STATEMENTS[engine.dialect.name]
    except KeyError:
        raise ValueError(
            f"No ledger triggers defined for dialect {engine.dialect.name!r}"
        ) from None


def _run(engine: Engine, statements: list[str]) -> None:
    with engine.connect() as conn:
        for statement in statements:
            conn.execute(text(statement))
        conn.commit()


# =============================================================================
# Public API
# =============================================================================


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install the ledger immutability triggers (idempotent).

    Preconditions: Tables must exist (call after create_all()).
    """
    install, _ = _statements_for(engine)
    _run(engine, install)
    logger.info(
        "ledger_triggers_installed",
        extra={"dialect": engine.dialect.name, "triggers": ALL_TRIGGER_NAMES},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove the ledger immutability triggers.

    WARNING: Only for teardown and maintenance.  Re-install immediately.
    """
    _, drop = _statements_for(engine)
    _run(engine, drop)
    logger.warning(
        "ledger_triggers_uninstalled",
        extra={"dialect": engine.dialect.name},
    )


def get_installed_triggers(engine: Engine) -> list[str]:
    """Return the names of the ledger triggers currently installed."""
    names = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    if engine.dialect.name == "postgresql":
        check_sql = f"SELECT tgname FROM pg_trigger WHERE tgname IN ({names}) ORDER BY tgname"
    else:
        check_sql = (
            "SELECT name FROM sqlite_master "
            f"WHERE type = 'trigger' AND name IN ({names}) ORDER BY name"
        )
    with engine.connect() as conn:
        return [row[0] for row in conn.execute(text(check_sql))]


def triggers_installed(engine: Engine) -> bool:
    """Check that every ledger trigger is installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)

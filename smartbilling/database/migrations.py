"""Versioned schema migrations.

Each migration runs once per database, in version order, inside its own
transaction, and is recorded in ``schema_migrations``. Version 1 creates the
current schema on an empty database; the later versions bring databases
created by older releases up to date and are no-ops on a fresh schema.
Migrations that rebuild a table run with SQLite foreign keys switched off.

``STARTUP_CHECKS`` run after the migrations on every call. They cover
upgrades that legacy data can block, such as the ledger unique index while
duplicate rows remain.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, inspect, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.schema import CreateTable

from smartbilling.database.base import Base

logger = logging.getLogger(__name__)

_ITEMS_REBUILD_TABLE = "items_rebuild"

_migration_metadata = MetaData()

schema_migrations = Table(
    "schema_migrations",
    _migration_metadata,
    Column("version", Integer, primary_key=True, autoincrement=False),
    Column("description", String(255), nullable=False),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    apply: Callable[[Connection], None]
    foreign_keys_off: bool = False


def _quote(conn: Connection, identifier: str) -> str:
    return conn.dialect.identifier_preparer.quote(identifier)


def _add_missing_columns(conn: Connection, table_name: str, columns: dict[str, str]) -> list[str]:
    inspector = inspect(conn)
    if not inspector.has_table(table_name):
        return []
    existing = {column["name"] for column in inspector.get_columns(table_name)}
    added = []
    for column_name, ddl in columns.items():
        if column_name in existing:
            continue
        # noinspection SqlNoDataSourceInspection
        conn.exec_driver_sql(
            f"ALTER TABLE {_quote(conn, table_name)} ADD COLUMN {_quote(conn, column_name)} {ddl}"
        )
        added.append(column_name)
        logger.info("Added column %s.%s", table_name, column_name)
    return added


def _baseline_schema(conn: Connection) -> None:
    from smartbilling.models import import_all_models

    import_all_models()
    Base.metadata.create_all(bind=conn)


def _item_pricing_and_expiry_columns(conn: Connection) -> None:
    added = _add_missing_columns(
        conn,
        "items",
        {
            "uom": "VARCHAR(10) NOT NULL DEFAULT 'PCS'",
            "cost_price": "FLOAT NOT NULL DEFAULT 0",
            "mrp": "FLOAT NOT NULL DEFAULT 0",
            "expiry_date": "DATE",
            "updated_at": "TIMESTAMP",
        },
    )
    if "updated_at" in added:
        # noinspection SqlNoDataSourceInspection
        conn.exec_driver_sql("UPDATE items SET updated_at = created_at WHERE updated_at IS NULL")
    _add_missing_columns(conn, "bill_items", {"uom": "VARCHAR(10)"})


def _customer_contact_columns(conn: Connection) -> None:
    _add_missing_columns(
        conn,
        "customer_details",
        {
            "organization_name": "VARCHAR(255) NOT NULL DEFAULT ''",
            "email": "VARCHAR(255) NOT NULL DEFAULT ''",
            "address": "TEXT",
        },
    )


def _history_sale_price(conn: Connection) -> None:
    _add_missing_columns(conn, "item_updates_history", {"sale_price": "FLOAT NOT NULL DEFAULT 0"})


def _item_expiry_marker(conn: Connection) -> None:
    _add_missing_columns(conn, "items", {"expiry_checked_at": "TIMESTAMP"})


def _has_owner_item_unique(inspector) -> bool:
    target = {"user_id", "item_id"}
    for constraint in inspector.get_unique_constraints("expiry_loss_history"):
        if set(constraint.get("column_names") or ()) == target:
            return True
    for index in inspector.get_indexes("expiry_loss_history"):
        if index.get("unique") and set(index.get("column_names") or ()) == target:
            return True
    return False


def _expiry_ledger_uniqueness(conn: Connection) -> None:
    inspector = inspect(conn)
    if not inspector.has_table("expiry_loss_history"):
        return
    if _has_owner_item_unique(inspector):
        return
    # noinspection SqlNoDataSourceInspection
    duplicate = conn.exec_driver_sql(
        "SELECT user_id, item_id FROM expiry_loss_history "
        "GROUP BY user_id, item_id HAVING COUNT(*) > 1 LIMIT 1"
    ).fetchone()
    if duplicate:
        logger.warning(
            "Skipping unique index on expiry_loss_history(user_id, item_id): "
            "duplicate rows exist (user %s, item %s).",
            duplicate[0],
            duplicate[1],
        )
        return
    # noinspection SqlNoDataSourceInspection
    conn.exec_driver_sql(
        "CREATE UNIQUE INDEX uq_expiry_loss_owner_item_idx "
        "ON expiry_loss_history (user_id, item_id)"
    )


def _sqlite_table_sql(conn: Connection, table_name: str) -> Optional[str]:
    return conn.exec_driver_sql(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (table_name,)
    ).scalar()


def _copy_value(conn: Connection, column) -> str:
    name = _quote(conn, column.name)
    if column.nullable or column.primary_key:
        return name
    default = column.default
    if default is not None and default.is_scalar:
        return f"COALESCE({name}, {default.arg!r})"
    if isinstance(column.type, DateTime):
        return f"COALESCE({name}, CURRENT_TIMESTAMP)"
    return name


def _items_autoincrement(conn: Connection) -> None:
    """Rebuild a legacy SQLite ``items`` table with AUTOINCREMENT ids.

    The id sequence starts above every item id already referenced by
    ``expiry_loss_history`` so a new item never inherits a deleted item's
    write-off. Runs with foreign keys off so dropping the old table leaves
    bill lines and stock history untouched.
    """
    if conn.dialect.name != "sqlite":
        return
    table_sql = _sqlite_table_sql(conn, "items")
    if table_sql is None or "AUTOINCREMENT" in table_sql.upper():
        return

    from smartbilling.models import import_all_models
    from smartbilling.models.item import Item

    import_all_models()
    table = Item.__table__
    existing = {column["name"] for column in inspect(conn).get_columns("items")}
    columns = [column for column in table.columns if column.name in existing]

    create_sql = str(CreateTable(table).compile(dialect=conn.dialect)).strip()
    create_sql = create_sql.replace(
        f"CREATE TABLE {table.name} ", f"CREATE TABLE {_ITEMS_REBUILD_TABLE} ", 1
    )
    # noinspection SqlNoDataSourceInspection
    conn.exec_driver_sql(f"DROP TABLE IF EXISTS {_ITEMS_REBUILD_TABLE}")
    conn.exec_driver_sql(create_sql)
    # noinspection SqlNoDataSourceInspection
    conn.exec_driver_sql(
        f"INSERT INTO {_ITEMS_REBUILD_TABLE} ({', '.join(_quote(conn, c.name) for c in columns)}) "
        f"SELECT {', '.join(_copy_value(conn, c) for c in columns)} FROM items"
    )
    # noinspection SqlNoDataSourceInspection
    high_water = conn.exec_driver_sql(
        "SELECT MAX(COALESCE((SELECT MAX(id) FROM items), 0), "
        "COALESCE((SELECT MAX(item_id) FROM expiry_loss_history), 0))"
    ).scalar()
    # noinspection SqlNoDataSourceInspection
    conn.exec_driver_sql("DROP TABLE items")
    conn.exec_driver_sql(f"ALTER TABLE {_ITEMS_REBUILD_TABLE} RENAME TO items")
    for index in table.indexes:
        index.create(bind=conn, checkfirst=True)
    # noinspection SqlNoDataSourceInspection
    conn.exec_driver_sql("DELETE FROM sqlite_sequence WHERE name = 'items'")
    conn.exec_driver_sql(
        "INSERT INTO sqlite_sequence (name, seq) VALUES ('items', ?)", (int(high_water or 0),)
    )
    logger.info("Rebuilt items with AUTOINCREMENT ids (next id above %s).", high_water)


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "baseline schema", _baseline_schema),
    Migration(2, "item pricing, expiry and uom columns", _item_pricing_and_expiry_columns),
    Migration(3, "customer contact columns", _customer_contact_columns),
    Migration(4, "stock history sale price", _history_sale_price),
    Migration(5, "item expiry evaluation marker", _item_expiry_marker),
    Migration(6, "expiry ledger owner/item uniqueness", _expiry_ledger_uniqueness),
    Migration(7, "item ids never reused", _items_autoincrement, foreign_keys_off=True),
)


# Idempotent steps repeated on every run; they converge once the data allows.
STARTUP_CHECKS: tuple[Callable[[Connection], None], ...] = (_expiry_ledger_uniqueness,)


def _set_sqlite_foreign_keys(conn: Connection, enabled: bool) -> None:
    # Only takes effect outside a transaction.
    if conn.dialect.name != "sqlite":
        return
    conn.exec_driver_sql(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
    conn.commit()


def applied_versions(target_engine: Engine) -> set[int]:
    _migration_metadata.create_all(bind=target_engine)
    with target_engine.connect() as conn:
        return set(conn.execute(select(schema_migrations.c.version)).scalars())


def _run_migration(target_engine: Engine, migration: Migration) -> None:
    with target_engine.connect() as conn:
        if migration.foreign_keys_off:
            _set_sqlite_foreign_keys(conn, False)
        try:
            with conn.begin():
                migration.apply(conn)
                conn.execute(
                    schema_migrations.insert().values(
                        version=migration.version,
                        description=migration.description,
                        applied_at=datetime.now(timezone.utc),
                    )
                )
        finally:
            if migration.foreign_keys_off:
                _set_sqlite_foreign_keys(conn, True)


def apply_migrations(
    target_engine: Optional[Engine] = None,
    migrations: tuple[Migration, ...] = MIGRATIONS,
) -> list[int]:
    if target_engine is None:
        from smartbilling.database.engine import engine as target_engine

    done = applied_versions(target_engine)
    applied = []
    for migration in sorted(migrations, key=lambda entry: entry.version):
        if migration.version in done:
            continue
        _run_migration(target_engine, migration)
        logger.info("Applied migration %s: %s", migration.version, migration.description)
        applied.append(migration.version)

    with target_engine.begin() as conn:
        for check in STARTUP_CHECKS:
            check(conn)
    return applied


__all__ = [
    "MIGRATIONS",
    "Migration",
    "STARTUP_CHECKS",
    "applied_versions",
    "apply_migrations",
    "schema_migrations",
]

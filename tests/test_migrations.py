import unittest

from sqlalchemy import inspect

from smartbilling.database import apply_migrations, build_engine
from smartbilling.database.migrations import MIGRATIONS, applied_versions

LEGACY_SCHEMA = (
    "CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR(255), password_hash VARCHAR(255), "
    "shop_name VARCHAR(255), subscription_expiry DATE, external_uid VARCHAR(255), created_at TIMESTAMP)",
    "CREATE TABLE items (id INTEGER PRIMARY KEY, user_id INTEGER, item_code VARCHAR(50), "
    "item_name VARCHAR(255), quantity INTEGER, item_price FLOAT, gst FLOAT, created_at TIMESTAMP)",
    "CREATE TABLE expiry_loss_history (id INTEGER PRIMARY KEY, user_id INTEGER, item_id INTEGER, "
    "item_name VARCHAR(255), loss_amount FLOAT, recorded_at TIMESTAMP)",
)


def column_names(engine, table):
    return {column["name"] for column in inspect(engine).get_columns(table)}


def unique_column_sets(engine, table):
    inspector = inspect(engine)
    sets = [set(c["column_names"]) for c in inspector.get_unique_constraints(table)]
    sets += [set(i["column_names"]) for i in inspector.get_indexes(table) if i.get("unique")]
    return sets


class MigrationTest(unittest.TestCase):
    def setUp(self):
        self.engine = build_engine("sqlite://")

    def tearDown(self):
        self.engine.dispose()

    def test_fresh_database_gets_every_version_once(self):
        applied = apply_migrations(self.engine)

        self.assertEqual(applied, [migration.version for migration in MIGRATIONS])
        self.assertEqual(apply_migrations(self.engine), [])
        self.assertEqual(applied_versions(self.engine), set(applied))
        self.assertIn("expiry_checked_at", column_names(self.engine, "items"))
        self.assertIn({"user_id", "item_id"}, unique_column_sets(self.engine, "expiry_loss_history"))

    def test_legacy_database_is_brought_up_to_date(self):
        with self.engine.begin() as conn:
            for statement in LEGACY_SCHEMA:
                conn.exec_driver_sql(statement)
            conn.exec_driver_sql(
                "INSERT INTO items (id, item_code, item_name, quantity, item_price, gst, created_at) "
                "VALUES (1, 'A', 'Aspirin', 5, 10, 0, '2025-01-01 00:00:00')"
            )

        apply_migrations(self.engine)

        item_columns = column_names(self.engine, "items")
        for name in ("uom", "cost_price", "mrp", "expiry_date", "updated_at", "expiry_checked_at"):
            self.assertIn(name, item_columns)
        self.assertIn({"user_id", "item_id"}, unique_column_sets(self.engine, "expiry_loss_history"))
        with self.engine.connect() as conn:
            updated_at = conn.exec_driver_sql("SELECT updated_at FROM items WHERE id = 1").scalar_one()
        self.assertEqual(str(updated_at), "2025-01-01 00:00:00")

    def test_duplicate_ledger_rows_skip_the_unique_index(self):
        with self.engine.begin() as conn:
            for statement in LEGACY_SCHEMA:
                conn.exec_driver_sql(statement)
            for _ in range(2):
                conn.exec_driver_sql(
                    "INSERT INTO expiry_loss_history (user_id, item_id, item_name, loss_amount) "
                    "VALUES (1, 7, 'Syrup', 100)"
                )

        with self.assertLogs("smartbilling.database.migrations", level="WARNING"):
            apply_migrations(self.engine)

        self.assertNotIn({"user_id", "item_id"}, unique_column_sets(self.engine, "expiry_loss_history"))
        self.assertIn(6, applied_versions(self.engine))

    def test_unique_index_is_added_once_duplicates_are_cleaned(self):
        with self.engine.begin() as conn:
            for statement in LEGACY_SCHEMA:
                conn.exec_driver_sql(statement)
            for _ in range(2):
                conn.exec_driver_sql(
                    "INSERT INTO expiry_loss_history (user_id, item_id, item_name, loss_amount) "
                    "VALUES (1, 1, 'Syrup', 100)"
                )
        with self.assertLogs("smartbilling.database.migrations", level="WARNING"):
            apply_migrations(self.engine)

        with self.engine.begin() as conn:
            conn.exec_driver_sql(
                "DELETE FROM expiry_loss_history WHERE id = (SELECT MAX(id) FROM expiry_loss_history)"
            )

        self.assertEqual(apply_migrations(self.engine), [])
        self.assertIn({"user_id", "item_id"}, unique_column_sets(self.engine, "expiry_loss_history"))

    def test_legacy_items_table_stops_reusing_ids(self):
        with self.engine.begin() as conn:
            for statement in LEGACY_SCHEMA:
                conn.exec_driver_sql(statement)
            conn.exec_driver_sql(
                "INSERT INTO items (id, item_code, item_name, quantity, item_price, gst, created_at) "
                "VALUES (1, 'A', 'Aspirin', 5, 10, 0, '2025-01-01 00:00:00')"
            )
            # Write-off left behind by an item that was deleted before the upgrade.
            conn.exec_driver_sql(
                "INSERT INTO expiry_loss_history (user_id, item_id, item_name, loss_amount) "
                "VALUES (1, 9, 'Syrup', 100)"
            )

        apply_migrations(self.engine)

        with self.engine.begin() as conn:
            table_sql = conn.exec_driver_sql(
                "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'items'"
            ).scalar_one()
            kept = conn.exec_driver_sql("SELECT item_name, quantity FROM items WHERE id = 1").one()
            conn.exec_driver_sql(
                "INSERT INTO items (item_code, item_name, uom, quantity, item_price, cost_price, mrp, gst, "
                "created_at, updated_at) VALUES ('B', 'Balm', 'PCS', 1, 1, 0, 0, 0, "
                "'2025-02-01 00:00:00', '2025-02-01 00:00:00')"
            )
            new_id = conn.exec_driver_sql("SELECT id FROM items WHERE item_code = 'B'").scalar_one()

        self.assertIn("AUTOINCREMENT", table_sql.upper())
        self.assertEqual(tuple(kept), ("Aspirin", 5))
        self.assertEqual(new_id, 10)
        self.assertIn("idx_items_owner_expiry", {i["name"] for i in inspect(self.engine).get_indexes("items")})
        self.assertIn(7, applied_versions(self.engine))

    def test_fresh_schema_uses_autoincrement_item_ids(self):
        apply_migrations(self.engine)
        with self.engine.connect() as conn:
            table_sql = conn.exec_driver_sql(
                "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'items'"
            ).scalar_one()
        self.assertIn("AUTOINCREMENT", table_sql.upper())


if __name__ == "__main__":
    unittest.main()

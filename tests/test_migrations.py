from __future__ import annotations

import shutil
import sqlite3
import tempfile
import unittest
from pathlib import Path

from db.migrate import apply_sqlite_migrations
from db.migrate import discover_migrations
from db.migrate import list_schema_migrations_sync


MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


class MigrationTests(unittest.TestCase):
    def setUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)

    def tearDown(self):
        self.conn.close()

    def test_creates_tables_and_is_idempotent(self):
        first = apply_sqlite_migrations(self.conn, str(MIGRATIONS_DIR), verbose=False)
        self.assertEqual(first[0], "0001_reaction_roles")
        self.assertEqual(apply_sqlite_migrations(self.conn, str(MIGRATIONS_DIR), verbose=False), [])

        tables = {r[0] for r in self.conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        for expected in (
            "emoji_surrogates",
            "reaction_roles",
            "reminders",
            "bets",
            "bet_participants",
            "birthdays",
            "activity",
            "features",
            "emoji_usage",
        ):
            self.assertIn(expected, tables)

        rows = list_schema_migrations_sync(self.conn, limit=2)
        self.assertEqual(len(rows), 2)
        self.assertGreater(rows[0][0], rows[1][0])

    def test_listing_before_any_migration(self):
        self.assertEqual(list_schema_migrations_sync(self.conn), [])

    def test_changed_migration_is_refused(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        target = Path(tmp.name)
        shutil.copy(MIGRATIONS_DIR / "0001_reaction_roles.py", target / "0001_reaction_roles.py")
        apply_sqlite_migrations(self.conn, str(target), verbose=False)

        with open(target / "0001_reaction_roles.py", "a", encoding="utf-8") as fh:
            fh.write("\n# edited\n")
        with self.assertRaises(RuntimeError):
            apply_sqlite_migrations(self.conn, str(target), verbose=False)

    def test_discovery_ignores_other_files_and_rejects_duplicates(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        target = Path(tmp.name)
        (target / "0002_second.sql").write_text("CREATE TABLE b (x INTEGER);", encoding="utf-8")
        (target / "0001_first.sql").write_text("CREATE TABLE a (x INTEGER);", encoding="utf-8")
        (target / "notes.txt").write_text("ignored", encoding="utf-8")
        self.assertEqual([m.label for m in discover_migrations(target)], ["0001_first", "0002_second"])
        self.assertEqual(apply_sqlite_migrations(self.conn, str(target), verbose=False), ["0001_first", "0002_second"])

        (target / "0002_other.py").write_text("def upgrade(conn):\n    pass\n", encoding="utf-8")
        with self.assertRaises(RuntimeError):
            discover_migrations(target)

    def test_missing_directory(self):
        with self.assertRaises(RuntimeError):
            apply_sqlite_migrations(self.conn, "/nonexistent/migrations", verbose=False)


if __name__ == "__main__":
    unittest.main()

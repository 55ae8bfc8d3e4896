from __future__ import annotations

import hashlib
import importlib.util
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path


MIGRATION_RE = re.compile(r"^(\d{4})_([a-zA-Z0-9_]+)\.(sql|py)$")
MIGRATION_LIST_LIMIT = 500


@dataclass(frozen=True)
class MigrationFile:
    version: str
    name: str
    path: Path
    checksum: str

    @property
    def label(self) -> str:
        return f"{self.version}_{self.name}"


def discover_migrations(migrations_dir: str | Path) -> list[MigrationFile]:
    """Migration files in version order. Files not named NNNN_name.(py|sql) are ignored."""
    base = Path(migrations_dir)
    if not base.is_dir():
        raise RuntimeError(f"Migrations directory not found: {migrations_dir}")

    found: dict[str, MigrationFile] = {}
    for path in sorted(base.iterdir()):
        m = MIGRATION_RE.match(path.name)
        if not m or not path.is_file():
            continue
        version = m.group(1)
        if version in found:
            raise RuntimeError(f"Duplicate migration version {version}: {found[version].path.name}, {path.name}")
        found[version] = MigrationFile(
            version=version,
            name=m.group(2),
            path=path,
            checksum=hashlib.sha256(path.read_bytes()).hexdigest(),
        )
    return [found[v] for v in sorted(found)]


def _ensure_migration_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _applied_checksums(conn: sqlite3.Connection) -> dict[str, tuple[str, str]]:
    rows = conn.execute("SELECT version, name, checksum FROM schema_migrations").fetchall()
    return {str(version): (str(name), str(checksum)) for version, name, checksum in rows}


def _run(conn: sqlite3.Connection, migration: MigrationFile) -> None:
    if migration.path.suffix == ".sql":
        conn.executescript(migration.path.read_text(encoding="utf-8"))
        return

    spec = importlib.util.spec_from_file_location(f"ferris_migration_{migration.label}", str(migration.path))
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Could not load migration module: {migration.path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    upgrade = getattr(module, "upgrade", None)
    if not callable(upgrade):
        raise RuntimeError(f"Python migration missing upgrade(conn): {migration.path}")
    upgrade(conn)


def list_schema_migrations_sync(conn: sqlite3.Connection, limit: int = 200) -> list[tuple[str, str, str]]:
    try:
        return conn.execute(
            """
            SELECT version, name, applied_at_utc
            FROM schema_migrations
            ORDER BY version DESC
            LIMIT ?
            """,
            (max(1, min(int(limit), MIGRATION_LIST_LIMIT)),),
        ).fetchall()
    except sqlite3.OperationalError:
        return []


def apply_sqlite_migrations(conn: sqlite3.Connection, migrations_dir: str, *, verbose: bool = True) -> list[str]:
    """
    Apply every migration not yet recorded in schema_migrations, oldest first.

    An applied migration whose file was renamed or edited afterwards aborts the run.
    Returns the labels of the migrations applied by this call.
    """
    migrations = discover_migrations(migrations_dir)
    _ensure_migration_table(conn)
    applied = _applied_checksums(conn)

    newly_applied: list[str] = []
    for migration in migrations:
        existing = applied.get(migration.version)
        if existing is not None:
            old_name, old_checksum = existing
            if old_name != migration.name or old_checksum != migration.checksum:
                raise RuntimeError(
                    f"Migration version {migration.version} already applied with different content "
                    f"(existing name={old_name}, file name={migration.name})."
                )
            continue

        if verbose:
            print(f"[DB] Applying migration {migration.path.name}")
        _run(conn, migration)
        conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, applied_at_utc) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
        newly_applied.append(migration.label)
    return newly_applied

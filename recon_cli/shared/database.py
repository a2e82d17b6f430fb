"""Database utilities: target-database access and the session-store migration runner."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from .config import AppConfig
from .exceptions import DatabaseError

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    description: str
    sql: str


def _open_connection(path: Path, *, read_only: bool = False) -> sqlite3.Connection:
    if read_only:
        uri = f"file:{path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
    else:
        conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _load_migrations(directory: Path = MIGRATIONS_DIR) -> Sequence[Migration]:
    migrations: list[Migration] = []
    for entry in sorted(directory.iterdir()):
        if entry.suffix.lower() != ".sql":
            continue
        name = entry.stem
        try:
            version_str, description = name.split("_", 1)
        except ValueError:
            version_str, description = name, name
        try:
            version = int(version_str)
        except ValueError as exc:  # pragma: no cover - packaging error
            raise DatabaseError(f"Invalid migration filename '{entry.name}'") from exc
        sql = entry.read_text(encoding="utf-8")
        migrations.append(Migration(version=version, name=name, description=description, sql=sql))
    migrations.sort(key=lambda m: m.version)
    return migrations


def _get_applied_versions(connection: sqlite3.Connection) -> set[int]:
    try:
        rows = connection.execute("SELECT version FROM schema_versions").fetchall()
    except sqlite3.OperationalError:
        return set()
    return {int(row[0]) for row in rows}


def run_migrations(config: AppConfig) -> None:
    """Apply pending migrations to the session store."""
    db_path = config.sessions.path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    migrations = _load_migrations()
    if not migrations:
        return

    connection = _open_connection(db_path)
    try:
        applied = _get_applied_versions(connection)
        for migration in migrations:
            if migration.version in applied:
                continue
            connection.executescript(migration.sql)
            connection.execute(
                "INSERT OR REPLACE INTO schema_versions(version, description) VALUES (?, ?)",
                (migration.version, migration.description),
            )
            connection.commit()
    except sqlite3.DatabaseError as exc:
        raise DatabaseError(f"Failed to migrate session store {db_path}: {exc}") from exc
    finally:
        connection.close()


@contextmanager
def connect_sessions(
    config: AppConfig,
    *,
    apply_migrations: bool = True,
) -> Iterator[sqlite3.Connection]:
    """Yield a connection to the import-session store."""
    if apply_migrations:
        run_migrations(config)
    connection = _open_connection(config.sessions.path)
    try:
        yield connection
    finally:
        connection.close()


@contextmanager
def connect_target(config: AppConfig) -> Iterator[sqlite3.Connection]:
    """Yield a read-only connection to the database being reconciled against."""
    db_path = config.database.path
    if not db_path.exists():
        raise DatabaseError(f"Target database not found: {db_path}")
    try:
        connection = _open_connection(db_path, read_only=True)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Unable to open target database {db_path}: {exc}") from exc
    try:
        yield connection
    finally:
        connection.close()

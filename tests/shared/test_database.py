from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from recon_cli.shared import paths
from recon_cli.shared.config import load_config
from recon_cli.shared.database import MIGRATIONS_DIR, connect_sessions, connect_target, run_migrations
from recon_cli.shared.exceptions import DatabaseError


def _temp_config(tmp_path: Path):
    env = {
        paths.DATABASE_PATH_ENV: str(tmp_path / "target.db"),
        paths.SESSIONS_PATH_ENV: str(tmp_path / "state" / "sessions.db"),
    }
    return load_config(config_path=tmp_path / "missing.yaml", env=env)


def _latest_migration_version() -> int:
    return max(
        int(path.stem.split("_", 1)[0]) for path in MIGRATIONS_DIR.iterdir() if path.suffix == ".sql"
    )


def test_run_migrations_creates_session_store(tmp_path: Path) -> None:
    config = _temp_config(tmp_path)
    run_migrations(config)
    assert config.sessions.path.exists()
    with connect_sessions(config, apply_migrations=False) as connection:
        tables = {
            row["name"]
            for row in connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"schema_versions", "data_import_sessions"}.issubset(tables)
        version = connection.execute("SELECT MAX(version) FROM schema_versions").fetchone()[0]
        assert version == _latest_migration_version()


def test_run_migrations_is_idempotent(tmp_path: Path) -> None:
    config = _temp_config(tmp_path)
    run_migrations(config)
    run_migrations(config)
    with connect_sessions(config, apply_migrations=False) as connection:
        count = connection.execute("SELECT COUNT(*) FROM schema_versions").fetchone()[0]
        assert count == len([p for p in MIGRATIONS_DIR.iterdir() if p.suffix == ".sql"])


def test_connect_target_is_read_only(tmp_path: Path) -> None:
    config = _temp_config(tmp_path)
    seed = sqlite3.connect(config.database.path)
    seed.execute("CREATE TABLE contacts (id INTEGER PRIMARY KEY, email TEXT)")
    seed.commit()
    seed.close()

    with connect_target(config) as connection:
        with pytest.raises(sqlite3.OperationalError):
            connection.execute("INSERT INTO contacts (email) VALUES ('a@example.com')")


def test_connect_target_missing_database(tmp_path: Path) -> None:
    config = _temp_config(tmp_path)
    with pytest.raises(DatabaseError, match="not found"):
        with connect_target(config):
            pass

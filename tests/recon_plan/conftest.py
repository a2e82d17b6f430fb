"""Shared pytest fixtures for recon-plan tests.

Configs point every path at the temp directory so no test touches ``~/.recon``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from recon_cli.recon_plan.types import ColumnDescriptor, SchemaSnapshot, TableDescriptor
from recon_cli.shared import paths
from recon_cli.shared.config import AppConfig, load_config


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    """Return an AppConfig with temp target and session databases."""

    env = {
        paths.DATABASE_PATH_ENV: str(tmp_path / "target.db"),
        paths.SESSIONS_PATH_ENV: str(tmp_path / "sessions.db"),
    }
    return load_config(config_path=tmp_path / "config.yaml", env=env)


@pytest.fixture()
def table_factory() -> Callable[..., TableDescriptor]:
    """Build a TableDescriptor from bare column names (nullable text columns)."""

    def _factory(name: str, columns: Sequence[str]) -> TableDescriptor:
        return TableDescriptor(
            name=name,
            columns=tuple(ColumnDescriptor(name=column, type="text") for column in columns),
        )

    return _factory


@pytest.fixture()
def contacts_snapshot(table_factory) -> SchemaSnapshot:
    return SchemaSnapshot(tables=(table_factory("contacts", ["name", "email", "phone"]),))

"""Schema-snapshot collaborators: live SQLite introspection, snapshot files, in-memory."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import yaml

from recon_cli.shared.config import AppConfig
from recon_cli.shared.database import connect_target
from recon_cli.shared.exceptions import DatabaseError, SchemaIntrospectionError

from .types import ColumnDescriptor, SchemaSnapshot, TableDescriptor


class SchemaSource(Protocol):
    def get_schema_snapshot(self) -> SchemaSnapshot:
        ...


class StaticSchemaSource:
    """Serves a snapshot that is already in memory."""

    def __init__(self, snapshot: SchemaSnapshot | Sequence[TableDescriptor] = ()):
        if isinstance(snapshot, SchemaSnapshot):
            self.snapshot = snapshot
        else:
            self.snapshot = SchemaSnapshot(tables=tuple(snapshot))

    def get_schema_snapshot(self) -> SchemaSnapshot:
        return self.snapshot


class SQLiteSchemaSource:
    """Introspects the configured target database through a read-only connection."""

    def __init__(self, config: AppConfig):
        self.config = config

    def get_schema_snapshot(self) -> SchemaSnapshot:
        try:
            with connect_target(self.config) as connection:
                tables = [
                    _describe_table(connection, name) for name in _fetch_table_names(connection)
                ]
        except DatabaseError as exc:
            raise SchemaIntrospectionError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise SchemaIntrospectionError(
                f"Failed to introspect {self.config.database.path}: {exc}"
            ) from exc
        return SchemaSnapshot(tables=tuple(tables))


class FileSchemaSource:
    """Reads a snapshot from a YAML or JSON document.

    Expected shape::

        tables:
          - name: contacts
            columns:
              - {name: id, type: uuid, nullable: false, primary_key: true}
              - {name: email, type: varchar}
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def get_schema_snapshot(self) -> SchemaSnapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SchemaIntrospectionError(f"Cannot read schema file {self.path}: {exc}") from exc
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise SchemaIntrospectionError(f"Schema file {self.path} is not valid YAML/JSON: {exc}") from exc
        return snapshot_from_mapping(data, source=str(self.path))


def snapshot_from_mapping(data: Any, *, source: str = "<snapshot>") -> SchemaSnapshot:
    if not isinstance(data, Mapping):
        raise SchemaIntrospectionError(f"{source}: snapshot root must be a mapping.")
    raw_tables = data.get("tables") or []
    if not isinstance(raw_tables, list):
        raise SchemaIntrospectionError(f"{source}: 'tables' must be a list.")

    tables: list[TableDescriptor] = []
    for entry in raw_tables:
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise SchemaIntrospectionError(f"{source}: every table needs a 'name'.")
        columns: list[ColumnDescriptor] = []
        for column in entry.get("columns") or []:
            if isinstance(column, str):
                columns.append(ColumnDescriptor(name=column, type="text"))
                continue
            if not isinstance(column, Mapping) or not column.get("name"):
                raise SchemaIntrospectionError(
                    f"{source}: columns of '{entry['name']}' need a 'name'."
                )
            columns.append(
                ColumnDescriptor(
                    name=str(column["name"]),
                    type=str(column.get("type", "text")).lower(),
                    nullable=bool(column.get("nullable", True)),
                    is_primary_key=bool(column.get("primary_key", False)),
                )
            )
        try:
            foreign_keys = tuple(
                (str(fk["column"]), str(fk["table"]), str(fk.get("references", "id")))
                for fk in entry.get("foreign_keys") or []
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise SchemaIntrospectionError(
                f"{source}: foreign keys of '{entry['name']}' need 'column' and 'table': {exc}"
            ) from exc
        tables.append(
            TableDescriptor(
                name=str(entry["name"]),
                columns=tuple(columns),
                indexes=tuple(str(index) for index in entry.get("indexes") or []),
                foreign_keys=foreign_keys,
            )
        )
    return SchemaSnapshot(tables=tuple(tables))


# ---------------------------------------------------------------------------
# SQLite introspection helpers


def _fetch_table_names(connection: sqlite3.Connection) -> list[str]:
    cursor = connection.execute(
        "SELECT name FROM sqlite_schema WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [row[0] for row in cursor.fetchall()]


def _describe_table(connection: sqlite3.Connection, table: str) -> TableDescriptor:
    literal = table.replace("'", "''")
    columns = tuple(
        ColumnDescriptor(
            name=row[1],
            type=(row[2] or "text").lower(),
            nullable=not bool(row[3]) and not bool(row[5]),
            is_primary_key=bool(row[5]),
        )
        for row in connection.execute(f"PRAGMA table_info('{literal}')").fetchall()
    )
    indexes = tuple(
        row[1] for row in connection.execute(f"PRAGMA index_list('{literal}')").fetchall()
    )
    foreign_keys = tuple(
        (row[3], row[2], row[4] or "id")
        for row in connection.execute(f"PRAGMA foreign_key_list('{literal}')").fetchall()
    )
    return TableDescriptor(name=table, columns=columns, indexes=indexes, foreign_keys=foreign_keys)

"""Typed Python bindings (TypedDict rows) for the tables an import lands in."""

from __future__ import annotations

import keyword
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from recon_cli.shared.config import PlanningSettings

from .mapper import BOOKKEEPING_COLUMNS, sanitize_identifier
from .planner import DEFAULT_PLANNING, qualifies_for_creation
from .types import ImportPattern, SchemaSnapshot, TypedBindings

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
TEMPLATE_NAME = "bindings.py.j2"

# Canonical and common SQL type names -> Python annotations.
PYTHON_TYPES = {
    "boolean": "bool",
    "bool": "bool",
    "integer": "int",
    "int": "int",
    "bigint": "int",
    "smallint": "int",
    "numeric": "float",
    "decimal": "float",
    "real": "float",
    "float": "float",
    "double": "float",
    "date": "date",
    "timestamp": "datetime",
    "timestamptz": "datetime",
    "varchar": "str",
    "text": "str",
    "char": "str",
    "uuid": "str",
    "jsonb": "dict[str, Any]",
    "json": "dict[str, Any]",
    "blob": "bytes",
}

_TYPE_NAME = re.compile(r"^[a-z ]+")
_WORD_SPLIT = re.compile(r"[^0-9a-zA-Z]+")


@dataclass(slots=True)
class _Field:
    name: str
    annotation: str


@dataclass(slots=True)
class _Binding:
    class_name: str
    table: str
    is_new_table: bool
    fields: list[_Field]
    functional: bool


def python_type(sql_type: str, *, nullable: bool = False) -> str:
    match = _TYPE_NAME.match(sql_type.strip().lower())
    base = match.group(0).strip() if match else ""
    if base.startswith("timestamp"):
        base = "timestamp"
    annotation = PYTHON_TYPES.get(base, "Any")
    if nullable and annotation != "Any":
        return f"{annotation} | None"
    return annotation


def class_name_for(table: str) -> str:
    words = [word for word in _WORD_SPLIT.split(table) if word]
    name = "".join(word[:1].upper() + word[1:] for word in words) or "Imported"
    if name[0].isdigit():
        name = "T" + name
    return f"{name}Row"


def _is_plain_field(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def _planned_fields(pattern: ImportPattern, settings: PlanningSettings) -> list[_Field]:
    fields = [_Field("id", "str")]
    for mapping in pattern.field_mappings:
        nullable = "NOT NULL" not in mapping.constraints
        fields.append(_Field(mapping.suggested_column, python_type(mapping.data_type, nullable=nullable)))
    mapped = {mapping.suggested_column for mapping in pattern.field_mappings}
    if settings.owner_column not in mapped:
        fields.append(_Field(settings.owner_column, "str | None"))
    fields.append(_Field("created_at", "datetime"))
    fields.append(_Field("updated_at", "datetime"))
    return fields


def _existing_fields(pattern: ImportPattern, snapshot: SchemaSnapshot) -> list[_Field]:
    table = snapshot.table(pattern.target_table_name)
    if table is None:
        return [
            _Field(mapping.suggested_column, python_type(mapping.data_type, nullable=True))
            for mapping in pattern.field_mappings
            if mapping.suggested_column not in BOOKKEEPING_COLUMNS
        ]
    return [
        _Field(column.name, python_type(column.type, nullable=column.nullable))
        for column in table.columns
    ]


def generate_bindings(
    patterns: Sequence[ImportPattern],
    snapshot: SchemaSnapshot,
    *,
    source_name: str = "",
    settings: PlanningSettings = DEFAULT_PLANNING,
) -> TypedBindings:
    """Render one ``TypedDict`` per target table.

    New tables describe the columns the plan will create; existing tables describe
    the snapshot's columns. Duplicate class names and field names that are not
    valid Python identifiers are reported as naming conflicts.
    """
    bindings: list[_Binding] = []
    conflicts: list[str] = []
    used_names: dict[str, str] = {}

    for pattern in patterns:
        is_new = qualifies_for_creation(pattern)
        table = (
            sanitize_identifier(pattern.target_table_name, settings.identifier_max_bytes)
            if is_new
            else pattern.target_table_name
        )
        class_name = class_name_for(table)
        if class_name in used_names:
            conflicts.append(
                f"{class_name}: tables '{used_names[class_name]}' and '{table}' share a class name"
            )
            suffix = 2
            while f"{class_name[:-3]}{suffix}Row" in used_names:
                suffix += 1
            class_name = f"{class_name[:-3]}{suffix}Row"
        used_names[class_name] = table

        fields = _planned_fields(pattern, settings) if is_new else _existing_fields(pattern, snapshot)
        awkward = [field.name for field in fields if not _is_plain_field(field.name)]
        conflicts.extend(f"{class_name}.{name}: not a valid Python attribute name" for name in awkward)
        bindings.append(
            _Binding(
                class_name=class_name,
                table=table,
                is_new_table=is_new,
                fields=fields,
                functional=bool(awkward),
            )
        )

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["pyrepr"] = repr
    content = env.get_template(TEMPLATE_NAME).render(
        source_name=source_name or "an import",
        bindings=bindings,
    )
    module_base = sanitize_identifier(source_name, settings.identifier_max_bytes) if source_name else "import"
    return TypedBindings(
        module_name=f"{module_base}_types",
        content=content,
        class_names=tuple(binding.class_name for binding in bindings),
        naming_conflicts=tuple(conflicts),
    )

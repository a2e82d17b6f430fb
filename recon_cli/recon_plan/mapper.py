"""Field-to-column mapping for a chosen table or a brand-new one."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from .inference import infer_type
from .keys import TargetRule, is_foreign_key_candidate, suggest_foreign_key_target
from .types import ColumnDescriptor, FieldMapping, TableDescriptor

DEFAULT_IDENTIFIER_MAX_BYTES = 63
DIGIT_GUARD_PREFIX = "t"
FALLBACK_IDENTIFIER = "field"

# Columns every generated table already declares.
BOOKKEEPING_COLUMNS = frozenset({"id", "created_at", "updated_at"})

_INVALID_IDENTIFIER_CHARS = re.compile(r"[^a-z0-9_]")


def sanitize_identifier(name: str, max_bytes: int = DEFAULT_IDENTIFIER_MAX_BYTES) -> str:
    """Lower-case ``name``, replace characters outside ``[a-z0-9_]`` and bound its length."""
    cleaned = _INVALID_IDENTIFIER_CHARS.sub("_", name.lower())
    if not cleaned:
        cleaned = FALLBACK_IDENTIFIER
    if cleaned[0].isdigit():
        cleaned = DIGIT_GUARD_PREFIX + cleaned
    # Only ASCII survives the substitution, so characters and bytes coincide.
    return cleaned[:max_bytes]


def find_best_column(field_name: str, table: TableDescriptor) -> ColumnDescriptor | None:
    lowered = field_name.lower()
    for column in table.columns:
        if column.name.lower() == lowered:
            return column
    for column in table.columns:
        column_lower = column.name.lower()
        if column_lower and lowered and (column_lower in lowered or lowered in column_lower):
            return column
    return None


def _column_constraints(column: ColumnDescriptor) -> tuple[str, ...]:
    if column.is_primary_key:
        return ("PRIMARY KEY",)
    if not column.nullable:
        return ("NOT NULL",)
    return ()


def unique_identifier(base: str, taken: set[str], max_bytes: int) -> str:
    """Return ``base``, or ``base`` with the first free ``_N`` suffix when it is taken."""
    if base not in taken:
        return base
    counter = 2
    while True:
        suffix = f"_{counter}"
        candidate = base[: max_bytes - len(suffix)] + suffix
        if candidate not in taken:
            return candidate
        counter += 1


def build_mapping(
    field_names: Sequence[str],
    sample: Mapping[str, Any],
    table: TableDescriptor | None,
    *,
    rules: Sequence[TargetRule] | None = None,
    max_bytes: int = DEFAULT_IDENTIFIER_MAX_BYTES,
) -> tuple[FieldMapping, ...]:
    """Map every field to a column; this never fails.

    With a chosen table each field takes the best matching column, falling back to
    its sanitized name. Without one every field becomes a new, de-duplicated column.
    """
    taken: set[str] = set(BOOKKEEPING_COLUMNS)
    mappings: list[FieldMapping] = []
    for field_name in field_names:
        value = sample.get(field_name)
        constraints: tuple[str, ...] = ()
        if table is not None:
            column = find_best_column(field_name, table)
            if column is not None:
                suggested = column.name
                constraints = _column_constraints(column)
            else:
                suggested = sanitize_identifier(field_name, max_bytes)
        else:
            suggested = unique_identifier(sanitize_identifier(field_name, max_bytes), taken, max_bytes)
            taken.add(suggested)

        candidate = is_foreign_key_candidate(field_name, value)
        target = suggest_foreign_key_target(field_name, value, rules) if candidate else None
        mappings.append(
            FieldMapping(
                import_field=field_name,
                suggested_column=suggested,
                data_type=infer_type(value),
                constraints=constraints,
                is_foreign_key_candidate=candidate,
                foreign_key_target=target,
            )
        )
    return tuple(mappings)

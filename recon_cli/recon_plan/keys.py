"""Foreign-key heuristics driven by ordered rule tables."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Sequence

from recon_cli.shared.config import ForeignKeyRule

from .types import ForeignKeyTarget

FOREIGN_KEY_MARKERS = ("_id", "id", "_ref", "_key")

DEFAULT_TARGET_RULES: tuple[ForeignKeyRule, ...] = (
    ForeignKeyRule(contains="user", table="profiles", column="id", confidence=0.8),
    ForeignKeyRule(contains="facility", table="facilities", column="id", confidence=0.8),
)

Predicate = Callable[[str], bool]


@dataclass(frozen=True, slots=True)
class TargetRule:
    """A (predicate, result) pair; the first rule whose predicate holds wins."""

    predicate: Predicate
    target: ForeignKeyTarget


def _contains(fragment: str) -> Predicate:
    def _inner(lowered_name: str) -> bool:
        return fragment in lowered_name

    return _inner


def compile_rules(rules: Sequence[ForeignKeyRule]) -> tuple[TargetRule, ...]:
    """Turn configured substring rules into an ordered predicate table."""
    return tuple(
        TargetRule(
            predicate=_contains(rule.contains.lower()),
            target=ForeignKeyTarget(table=rule.table, column=rule.column, confidence=rule.confidence),
        )
        for rule in rules
    )


_DEFAULT_RULE_TABLE = compile_rules(DEFAULT_TARGET_RULES)


def _is_scalar_key_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int, float, Decimal))


def is_foreign_key_candidate(field_name: str, value: Any) -> bool:
    """True when the field name looks like a reference and the value is a scalar key."""
    lowered = field_name.lower()
    if not any(marker in lowered for marker in FOREIGN_KEY_MARKERS):
        return False
    return _is_scalar_key_value(value)


def suggest_foreign_key_target(
    field_name: str,
    value: Any,
    rules: Sequence[TargetRule] | None = None,
) -> ForeignKeyTarget | None:
    """Return the first rule target matching ``field_name``, or ``None``."""
    _ = value  # kept in the contract for value-aware rules
    lowered = field_name.lower()
    for rule in rules if rules is not None else _DEFAULT_RULE_TABLE:
        if rule.predicate(lowered):
            return rule.target
    return None

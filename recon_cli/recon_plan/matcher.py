"""Rank existing tables by field-name overlap with an import record shape."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .types import TableDescriptor

DEFAULT_MATCH_THRESHOLD = 0.5


@dataclass(frozen=True, slots=True)
class TableMatch:
    table: TableDescriptor
    score: float


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Ranked candidates; an empty result is the explicit "no match" signal."""

    candidates: tuple[TableMatch, ...]

    @property
    def no_match(self) -> bool:
        return not self.candidates

    @property
    def best(self) -> TableMatch | None:
        return self.candidates[0] if self.candidates else None


def names_overlap(field_name: str, column_name: str) -> bool:
    """Case-insensitive exact, prefix or substring match in either direction."""
    field_lower = field_name.lower()
    column_lower = column_name.lower()
    if not field_lower or not column_lower:
        return False
    return (
        field_lower == column_lower
        or column_lower in field_lower
        or field_lower in column_lower
    )


def score_table(field_names: Sequence[str], table: TableDescriptor) -> float:
    """Fraction of overlapping names relative to the larger of the two name sets."""
    columns = table.column_names
    denominator = max(len(field_names), len(columns))
    if denominator == 0:
        return 0.0
    matched = sum(
        1 for field in field_names if any(names_overlap(field, column) for column in columns)
    )
    return matched / denominator


def match_tables(
    field_names: Iterable[str],
    catalog: Sequence[TableDescriptor],
    *,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> MatchResult:
    """Score every catalog table and keep those at or above ``threshold``.

    Thresholds below the 0.5 default are raised to it. Candidates are ordered by
    descending score; equal scores keep catalog order.
    """
    threshold = max(threshold, DEFAULT_MATCH_THRESHOLD)
    unique_fields = tuple(dict.fromkeys(field_names))
    scored = [
        TableMatch(table=table, score=score_table(unique_fields, table)) for table in catalog
    ]
    kept = [match for match in scored if match.score >= threshold]
    kept.sort(key=lambda match: match.score, reverse=True)
    return MatchResult(candidates=tuple(kept))

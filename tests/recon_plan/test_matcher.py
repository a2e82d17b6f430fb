from __future__ import annotations

import pytest

from recon_cli.recon_plan.matcher import match_tables, names_overlap, score_table


def test_names_overlap_is_case_insensitive_and_bidirectional() -> None:
    assert names_overlap("Email", "email")
    assert names_overlap("email_address", "email")
    assert names_overlap("name", "full_name")
    assert names_overlap("phone", "email") is False
    assert names_overlap("", "email") is False


def test_score_uses_larger_name_set(table_factory) -> None:
    table = table_factory("contacts", ["name", "email", "phone"])
    assert score_table(["name", "email"], table) == pytest.approx(2 / 3)


def test_empty_table_and_fields_score_zero(table_factory) -> None:
    assert score_table([], table_factory("empty", [])) == 0.0


def test_empty_catalog_is_no_match() -> None:
    result = match_tables(["name", "email"], [])
    assert result.no_match
    assert result.best is None


def test_threshold_filters_low_scores(table_factory) -> None:
    catalog = [
        table_factory("contacts", ["name", "email", "phone"]),
        table_factory("orders", ["total", "placed_at", "status", "email"]),
    ]
    result = match_tables(["name", "email"], catalog)
    assert [match.table.name for match in result.candidates] == ["contacts"]
    assert all(match.score >= 0.5 for match in result.candidates)


def test_score_at_threshold_is_kept(table_factory) -> None:
    table = table_factory("people", ["name", "age"])
    result = match_tables(["name", "email"], [table])
    assert result.best is not None
    assert result.best.score == 0.5


def test_candidates_ranked_descending_with_stable_ties(table_factory) -> None:
    catalog = [
        table_factory("a", ["name", "email", "phone"]),
        table_factory("b", ["name", "email"]),
        table_factory("c", ["name", "email", "fax"]),
    ]
    result = match_tables(["name", "email"], catalog)
    assert [match.table.name for match in result.candidates] == ["b", "a", "c"]


def test_adding_matching_column_never_lowers_score(table_factory) -> None:
    fields = ["name", "email", "phone"]
    before = score_table(fields, table_factory("contacts", ["name", "email"]))
    after = score_table(fields, table_factory("contacts", ["name", "email", "phone"]))
    assert after >= before


def test_duplicate_field_names_count_once(table_factory) -> None:
    table = table_factory("contacts", ["name", "email"])
    result = match_tables(["name", "name", "email"], [table])
    assert result.best is not None
    assert result.best.score == 1.0


def test_threshold_is_floored_at_one_half(table_factory) -> None:
    catalog = [table_factory("orders", ["total", "status"])]
    assert match_tables(["name"], catalog, threshold=0.0).no_match

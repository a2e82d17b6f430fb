from __future__ import annotations

from recon_cli.recon_plan.mapper import build_mapping, find_best_column, sanitize_identifier
from recon_cli.recon_plan.types import ColumnDescriptor, ForeignKeyTarget, TableDescriptor


def test_sanitize_identifier() -> None:
    assert sanitize_identifier("Email Address") == "email_address"
    assert sanitize_identifier("Total ($)") == "total____"
    assert sanitize_identifier("2024 revenue") == "t2024_revenue"
    assert sanitize_identifier("") == "field"
    assert sanitize_identifier("Crème") == "cr_me"


def test_sanitize_identifier_truncates_to_limit() -> None:
    long_name = "a" * 100
    assert sanitize_identifier(long_name) == "a" * 63
    assert len(sanitize_identifier(long_name, max_bytes=10).encode("utf-8")) == 10


def test_find_best_column_prefers_exact_match() -> None:
    table = TableDescriptor(
        name="contacts",
        columns=(ColumnDescriptor("email_address", "text"), ColumnDescriptor("email", "text")),
    )
    column = find_best_column("EMAIL", table)
    assert column is not None and column.name == "email"


def test_mapping_against_existing_table(table_factory) -> None:
    table = TableDescriptor(
        name="contacts",
        columns=(
            ColumnDescriptor("id", "integer", nullable=False, is_primary_key=True),
            ColumnDescriptor("full_name", "text", nullable=False),
            ColumnDescriptor("email", "text"),
        ),
    )
    mappings = build_mapping(
        ["name", "Email", "Phone Number"],
        {"name": "Acme", "Email": "a@acme.com", "Phone Number": "555"},
        table,
    )
    assert [m.suggested_column for m in mappings] == ["full_name", "email", "phone_number"]
    assert mappings[0].constraints == ("NOT NULL",)
    assert mappings[1].constraints == ()
    assert all(m.data_type == "varchar" for m in mappings)


def test_mapping_for_new_table_deduplicates_columns() -> None:
    mappings = build_mapping(
        ["Name", "name", "ID", "created at"],
        {"Name": "Acme", "name": "acme", "ID": 5, "created at": "2024-01-01"},
        None,
    )
    assert [m.suggested_column for m in mappings] == ["name", "name_2", "id_2", "created_at_2"]
    assert mappings[3].data_type == "date"


def test_mapping_carries_foreign_key_hints() -> None:
    mappings = build_mapping(
        ["user_id", "active"],
        {"user_id": "6f1c", "active": True},
        None,
    )
    user, active = mappings
    assert user.is_foreign_key_candidate
    assert user.foreign_key_target == ForeignKeyTarget("profiles", "id", 0.8)
    assert active.is_foreign_key_candidate is False
    assert active.foreign_key_target is None
    assert active.data_type == "boolean"


def test_missing_sample_value_maps_to_text() -> None:
    (mapping,) = build_mapping(["notes"], {}, None)
    assert mapping.data_type == "text"
    assert mapping.is_foreign_key_candidate is False

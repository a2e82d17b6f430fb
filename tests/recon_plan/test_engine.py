from __future__ import annotations

from dataclasses import replace

import pytest

from recon_cli.recon_plan.catalog import StaticSchemaSource
from recon_cli.recon_plan.engine import ReconciliationEngine, analyze, detect_relationship_hints
from recon_cli.recon_plan.types import (
    AnalysisError,
    AnalysisRequest,
    EmptyBatchError,
    SchemaSnapshot,
    SnapshotUnavailableError,
    UserPreferences,
)
from recon_cli.shared.config import ForeignKeyRule, KeySettings

ACME = [{"name": "Acme", "email": "a@acme.com"}]


class BrokenSource:
    def get_schema_snapshot(self) -> SchemaSnapshot:
        raise ConnectionError("catalog offline")


def test_new_table_scenario_on_empty_catalog(app_config) -> None:
    result = analyze(AnalysisRequest(ACME, "contacts"), StaticSchemaSource(), app_config)

    (pattern,) = result.patterns
    assert pattern.is_new_table
    assert pattern.target_table_name == "contacts"
    assert pattern.confidence_score == 1.0
    assert [(m.suggested_column, m.data_type) for m in pattern.field_mappings] == [
        ("name", "varchar"),
        ("email", "varchar"),
    ]
    assert [op.kind for op in result.plan.operations] == ["create_table"]
    assert result.plan.backup_required is False
    assert not any(f.blocking and not f.passed for f in result.findings)
    assert result.status == "success"
    assert result.next_steps[0] == "Review and approve migration plan"
    assert result.summary.total_records == 1
    assert result.summary.patterns_found == 1
    assert result.summary.high_confidence_pattern_count == 1
    assert result.summary.migration_operation_count == 1
    assert result.summary.safety_checks_total == 3
    assert result.summary.safety_checks_passed == 3
    assert result.typed_bindings is None


def test_partial_match_requires_approval(app_config, contacts_snapshot) -> None:
    result = analyze(AnalysisRequest(ACME, "contacts"), StaticSchemaSource(contacts_snapshot), app_config)

    (pattern,) = result.patterns
    assert pattern.is_new_table is False
    assert pattern.target_table_name == "contacts"
    assert pattern.confidence_score == pytest.approx(2 / 3)
    assert result.plan.operations == ()
    assert result.status == "requires_approval"
    assert "1 low-confidence matches require manual review" not in result.recommendations


def test_manual_approval_preference_dominates(app_config) -> None:
    request = AnalysisRequest(ACME, "contacts", UserPreferences(require_manual_approval=True))
    result = analyze(request, StaticSchemaSource(), app_config)
    assert result.patterns[0].confidence_score == 1.0
    assert all(f.passed for f in result.findings)
    assert result.status == "requires_approval"


def test_no_existing_table_pattern_below_threshold(app_config, table_factory) -> None:
    snapshot = SchemaSnapshot(
        tables=(
            table_factory("orders", ["total", "status", "placed_at", "email"]),
            table_factory("people", ["name", "email"]),
        )
    )
    result = analyze(AnalysisRequest(ACME, "contacts"), StaticSchemaSource(snapshot), app_config)
    assert [p.target_table_name for p in result.patterns] == ["people"]
    assert all(p.confidence_score >= 0.5 for p in result.patterns if not p.is_new_table)
    # Nothing is created, so no access policy is planned either.
    assert result.plan.operations == ()
    assert result.status == "warning"
    assert result.recommendations[0] == "1 high-confidence table matches found - safe to proceed"


def test_analysis_is_deterministic(app_config, contacts_snapshot) -> None:
    for snapshot in (SchemaSnapshot(), contacts_snapshot):
        first = analyze(AnalysisRequest(ACME, "crm"), StaticSchemaSource(snapshot), app_config)
        second = analyze(AnalysisRequest(ACME, "crm"), StaticSchemaSource(snapshot), app_config)
        assert first.to_dict() == second.to_dict()


def test_empty_source_name_uses_default_table(app_config) -> None:
    result = analyze(AnalysisRequest(ACME, ""), StaticSchemaSource(), app_config)
    assert result.patterns[0].target_table_name == "imported_data_table"
    assert result.plan.operations[0].id == "create_table_imported_data_table"


def test_empty_batch_is_rejected(app_config) -> None:
    with pytest.raises(EmptyBatchError):
        analyze(AnalysisRequest([], "contacts"), StaticSchemaSource(), app_config)


def test_non_mapping_records_are_rejected(app_config) -> None:
    with pytest.raises(AnalysisError, match="expected a mapping"):
        analyze(AnalysisRequest([["Acme"]], "contacts"), StaticSchemaSource(), app_config)  # type: ignore[list-item]


def test_snapshot_failure_is_a_hard_failure(app_config) -> None:
    with pytest.raises(SnapshotUnavailableError, match="Analysis failed: catalog offline"):
        analyze(AnalysisRequest(ACME, "contacts"), BrokenSource(), app_config)


def test_auto_apply_eligibility(app_config, contacts_snapshot) -> None:
    prefs = UserPreferences(auto_apply_safe_migrations=True)
    clean = analyze(AnalysisRequest(ACME, "contacts", prefs), StaticSchemaSource(), app_config)
    assert clean.summary.auto_apply_eligible is True

    partial = analyze(
        AnalysisRequest(ACME, "contacts", prefs), StaticSchemaSource(contacts_snapshot), app_config
    )
    assert partial.summary.auto_apply_eligible is False


def test_typed_bindings_follow_preference_then_config(app_config) -> None:
    requested = analyze(
        AnalysisRequest(ACME, "contacts", UserPreferences(generate_typed_bindings=True)),
        StaticSchemaSource(),
        app_config,
    )
    assert requested.typed_bindings is not None
    assert requested.typed_bindings.class_names == ("ContactsRow",)

    enabled = replace(app_config, bindings=replace(app_config.bindings, enabled=True))
    from_config = analyze(AnalysisRequest(ACME, "contacts"), StaticSchemaSource(), enabled)
    assert from_config.typed_bindings is not None

    declined = ReconciliationEngine(enabled).analyze(
        AnalysisRequest(ACME, "contacts", UserPreferences(generate_typed_bindings=False)),
        StaticSchemaSource(),
    )
    assert declined.typed_bindings is None


def test_configured_foreign_key_rules_reach_mappings(app_config) -> None:
    config = replace(
        app_config,
        keys=KeySettings(
            foreign_key_targets=(ForeignKeyRule("customer", "customers", "id", 0.9),)
        ),
    )
    result = analyze(
        AnalysisRequest([{"customer_id": 7, "user_id": 1}], "orders"), StaticSchemaSource(), config
    )
    customer, user = result.patterns[0].field_mappings
    assert customer.foreign_key_target is not None
    assert customer.foreign_key_target.table == "customers"
    assert user.is_foreign_key_candidate and user.foreign_key_target is None
    assert "REFERENCES public.customers(id)" in result.plan.operations[0].forward_statement


def test_relationship_hints_are_not_detected() -> None:
    assert detect_relationship_hints(ACME, None) == ()


def test_new_table_never_reuses_an_existing_table_name(app_config, table_factory) -> None:
    snapshot = SchemaSnapshot(tables=(table_factory("contacts", ["total", "status", "placed_at"]),))
    result = analyze(AnalysisRequest(ACME, "Contacts"), StaticSchemaSource(snapshot), app_config)

    (pattern,) = result.patterns
    assert pattern.is_new_table
    assert pattern.target_table_name == "contacts_2"
    (operation,) = result.plan.operations
    assert "CREATE TABLE public.contacts_2 (" in operation.forward_statement
    assert operation.rollback_statement == "DROP TABLE IF EXISTS public.contacts_2;"


def test_default_table_name_also_avoids_existing_tables(app_config, table_factory) -> None:
    snapshot = SchemaSnapshot(
        tables=(
            table_factory("imported_data_table", ["total"]),
            table_factory("Imported_Data_Table_2", ["status"]),
        )
    )
    result = analyze(AnalysisRequest(ACME, "  "), StaticSchemaSource(snapshot), app_config)

    (pattern,) = result.patterns
    assert pattern.target_table_name == "imported_data_table_3"


def test_configured_threshold_cannot_admit_weak_matches(app_config, table_factory) -> None:
    config = replace(app_config, analysis=replace(app_config.analysis, match_threshold=0.0))
    snapshot = SchemaSnapshot(tables=(table_factory("orders", ["total", "status"]),))
    result = analyze(AnalysisRequest([{"name": "Acme"}], "leads"), StaticSchemaSource(snapshot), config)

    (pattern,) = result.patterns
    assert pattern.is_new_table
    assert pattern.target_table_name == "leads"

from __future__ import annotations

import io
import json

import pytest

from recon_cli.recon_plan.catalog import StaticSchemaSource
from recon_cli.recon_plan.engine import analyze
from recon_cli.recon_plan.render import render_result, render_sessions
from recon_cli.recon_plan.report import describe_changes, dry_run
from recon_cli.recon_plan.sessions import ImportSession
from recon_cli.recon_plan.types import AnalysisRequest
from recon_cli.shared.logging import get_logger


@pytest.fixture()
def result(app_config):
    return analyze(
        AnalysisRequest([{"name": "Acme", "email": "a@acme.com"}], "contacts"),
        StaticSchemaSource(),
        app_config,
    )


def test_render_json_payload(result) -> None:
    stream = io.StringIO()
    render_result(
        result,
        output_format="json",
        logger=get_logger(),
        stream=stream,
        changes=describe_changes(result),
        dry_run_report=dry_run(result.plan),
        session_id="import_1_abc",
    )
    payload = json.loads(stream.getvalue())
    assert payload["status"] == "success"
    assert payload["summary"]["migration_operation_count"] == 1
    assert payload["plan"]["operations"][0]["kind"] == "create_table"
    assert payload["changes"]["table_changes"] == ["Create new table 'contacts' for imported data"]
    assert payload["dry_run"]["executed"] == ["[1] Create new table 'contacts' for imported data"]
    assert payload["session_id"] == "import_1_abc"
    assert payload["typed_bindings"] is None


def test_render_text_mentions_plan_and_steps(result) -> None:
    stream = io.StringIO()
    render_result(result, output_format="text", logger=get_logger(), stream=stream)
    output = stream.getvalue()
    assert "Import Data Migration - contacts" in output
    assert "Status: success" in output
    assert "create_table_contacts" in output
    assert "Safety checks" in output
    assert "Review and approve migration plan" in output


def test_render_rejects_unknown_format(result) -> None:
    with pytest.raises(ValueError):
        render_result(result, output_format="xml", logger=get_logger(), stream=io.StringIO())


def test_render_sessions() -> None:
    session = ImportSession(
        id="import_1_abc",
        import_type="intelligent",
        source_name="contacts",
        status="analyzed",
        analysis_status="success",
        records_total=3,
        created_at="2024-01-01 00:00:00",
        schema_detected={},
        import_config={},
    )
    stream = io.StringIO()
    render_sessions([session], output_format="json", logger=get_logger(), stream=stream)
    assert json.loads(stream.getvalue())[0]["id"] == "import_1_abc"

    text_stream = io.StringIO()
    render_sessions([session], output_format="text", logger=get_logger(), stream=text_stream)
    assert "import_1_abc" in text_stream.getvalue()

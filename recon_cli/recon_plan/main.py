"""recon-plan CLI entrypoint."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import click

from recon_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors
from recon_cli.shared.database import connect_sessions
from recon_cli.shared.exceptions import ReconError
from recon_cli.shared.importers import default_source_name, load_records

from . import render
from .catalog import FileSchemaSource, SchemaSource, SQLiteSchemaSource
from .engine import ReconciliationEngine
from .report import describe_changes, dry_run
from .sessions import list_sessions, record_session
from .types import STATUS_ERROR, AnalysisRequest, AnalysisResult, UserPreferences


@click.group(help="Reconcile import data with an existing schema and plan migrations.")
def cli() -> None:
    """Primary Click group for recon-plan commands."""


@cli.command("analyze")
@click.argument("records", type=click.Path(path_type=str, allow_dash=True))
@click.option("--source-name", type=str, help="Name of the import source (defaults to the file stem).")
@click.option(
    "--schema-file",
    type=click.Path(path_type=str, exists=True, dir_okay=False),
    help="Read the schema snapshot from a YAML/JSON file instead of the target database.",
)
@click.option(
    "--format",
    "output_format",
    default="text",
    show_default=True,
    type=click.Choice(render.OUTPUT_FORMATS),
)
@click.option("--require-approval", is_flag=True, help="Always require manual approval.")
@click.option("--auto-apply-safe", is_flag=True, help="Mark low-risk successful plans as auto-apply eligible.")
@click.option(
    "--typed-bindings/--no-typed-bindings",
    "typed_bindings",
    default=None,
    help="Generate TypedDict row bindings (default from config).",
)
@click.option("--enforce-naming", is_flag=True, help="Recommend snake_case when the schema deviates.")
@click.option(
    "--bindings-out",
    type=click.Path(path_type=str, dir_okay=False),
    help="Write generated bindings to this file (implies --typed-bindings).",
)
@click.option("--dry-run-plan", is_flag=True, help="Walk the plan and show what would run and how to roll back.")
@click.option("--changes", "show_changes", is_flag=True, help="Include a digest of the planned changes.")
@common_cli_options
@handle_cli_errors
def analyze(
    records: str,
    source_name: str | None,
    schema_file: str | None,
    output_format: str,
    require_approval: bool,
    auto_apply_safe: bool,
    typed_bindings: bool | None,
    enforce_naming: bool,
    bindings_out: str | None,
    dry_run_plan: bool,
    show_changes: bool,
    cli_ctx: CLIContext,
) -> None:
    """Analyse an import batch against the current schema."""
    logger = cli_ctx.logger
    batch = load_records(records)
    if bindings_out and typed_bindings is None:
        typed_bindings = True
    request = AnalysisRequest(
        records=batch,
        source_name=source_name or default_source_name(records),
        preferences=UserPreferences(
            auto_apply_safe_migrations=auto_apply_safe,
            generate_typed_bindings=typed_bindings,
            enforce_naming_conventions=enforce_naming,
            require_manual_approval=require_approval,
        ),
    )
    schema_source: SchemaSource = (
        FileSchemaSource(schema_file) if schema_file else SQLiteSchemaSource(cli_ctx.config)
    )
    logger.debug(f"Analysing {len(batch)} record(s) from '{request.source_name}'.")

    result = ReconciliationEngine(cli_ctx.config, logger).analyze(request, schema_source)

    session_id = _persist(cli_ctx, request, result)
    if bindings_out and result.typed_bindings is not None:
        out_path = Path(bindings_out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.typed_bindings.content, encoding="utf-8")
        logger.success(f"Wrote typed bindings to {out_path}")

    render.render_result(
        result,
        output_format=output_format,
        logger=logger,
        changes=describe_changes(result) if show_changes else None,
        dry_run_report=dry_run(result.plan) if dry_run_plan else None,
        session_id=session_id,
    )
    logger.status(result.status, f"Analysis status: {result.status}")
    if result.status == STATUS_ERROR:
        raise click.exceptions.Exit(1)


@cli.command("history")
@click.option("--limit", type=int, default=20, show_default=True, help="Number of sessions to list (0 for all).")
@click.option(
    "--format",
    "output_format",
    default="text",
    show_default=True,
    type=click.Choice(render.OUTPUT_FORMATS),
)
@common_cli_options
@handle_cli_errors
def history(limit: int, output_format: str, cli_ctx: CLIContext) -> None:
    """List recorded import sessions."""
    if not cli_ctx.config.sessions.path.exists():
        cli_ctx.logger.info("No import sessions recorded yet.")
        return
    with connect_sessions(cli_ctx.config, apply_migrations=not cli_ctx.dry_run) as connection:
        sessions = list_sessions(connection, limit)
    render.render_sessions(sessions, output_format=output_format, logger=cli_ctx.logger)


def _persist(cli_ctx: CLIContext, request: AnalysisRequest, result: AnalysisResult) -> str | None:
    if not cli_ctx.persist_sessions:
        cli_ctx.logger.debug("Session persistence skipped.")
        return None
    try:
        with connect_sessions(cli_ctx.config, apply_migrations=False) as connection:
            session_id = record_session(connection, request, result)
    except (ReconError, sqlite3.Error) as exc:
        cli_ctx.logger.warning(f"Could not record import session: {exc}")
        return None
    cli_ctx.logger.debug(f"Recorded import session {session_id}.")
    return session_id


def main() -> None:  # pragma: no cover - CLI entry point
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()

"""Rendering helpers for recon-plan results."""

from __future__ import annotations

import json
import sys
from typing import IO, Any, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from recon_cli.shared.logging import STATUS_STYLES, Logger

from .report import ChangeDigest, DryRunReport
from .sessions import ImportSession
from .types import AnalysisResult

OUTPUT_FORMATS = ("text", "json")


def render_result(
    result: AnalysisResult,
    *,
    output_format: str,
    logger: Logger,
    stream: IO[str] | None = None,
    changes: ChangeDigest | None = None,
    dry_run_report: DryRunReport | None = None,
    session_id: str | None = None,
) -> None:
    stream = stream or sys.stdout
    fmt = (output_format or "text").lower()
    if fmt == "json":
        payload = result.to_dict()
        if changes is not None:
            payload["changes"] = changes.to_dict()
        if dry_run_report is not None:
            payload["dry_run"] = dry_run_report.to_dict()
        if session_id is not None:
            payload["session_id"] = session_id
        _dump_json(payload, stream)
        return
    if fmt == "text":
        _render_text(result, logger=logger, stream=stream, changes=changes, dry_run_report=dry_run_report)
        return
    raise ValueError(f"Unsupported output format '{output_format}'.")


def render_sessions(
    sessions: Sequence[ImportSession],
    *,
    output_format: str,
    logger: Logger,
    stream: IO[str] | None = None,
) -> None:
    stream = stream or sys.stdout
    fmt = (output_format or "text").lower()
    if fmt == "json":
        _dump_json(
            [
                {
                    "id": session.id,
                    "source_name": session.source_name,
                    "status": session.status,
                    "analysis_status": session.analysis_status,
                    "records_total": session.records_total,
                    "created_at": session.created_at,
                }
                for session in sessions
            ],
            stream,
        )
        return
    if fmt != "text":
        raise ValueError(f"Unsupported output format '{output_format}'.")
    if not sessions:
        logger.info("No import sessions recorded yet.")
        return
    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    for column in ("Session", "Source", "Status", "Records", "Created"):
        table.add_column(column)
    for session in sessions:
        table.add_row(
            session.id,
            session.source_name,
            session.analysis_status,
            str(session.records_total),
            session.created_at,
        )
    _console(stream).print(table)


def _console(stream: IO[str]) -> Console:
    return Console(file=stream, highlight=False, force_terminal=False)


def _dump_json(payload: Any, stream: IO[str]) -> None:
    json.dump(payload, stream, indent=2, sort_keys=True)
    stream.write("\n")


def _render_text(
    result: AnalysisResult,
    *,
    logger: Logger,
    stream: IO[str],
    changes: ChangeDigest | None,
    dry_run_report: DryRunReport | None,
) -> None:
    console = _console(stream)
    plan = result.plan
    style = STATUS_STYLES.get(result.status, "bold")
    console.print(f"[bold]{plan.title}[/bold]")
    console.print(f"Status: [{_rich_style(style)}]{result.status}[/]")
    summary = result.summary
    console.print(
        f"• {summary.total_records} record(s), {summary.patterns_found} pattern(s), "
        f"{summary.migration_operation_count} operation(s), "
        f"{summary.safety_checks_passed}/{summary.safety_checks_total} safety checks passed"
    )
    console.print(f"• Estimated duration: {plan.estimated_duration}; backup required: {plan.backup_required}")

    for pattern in result.patterns:
        label = "new table" if pattern.is_new_table else "existing table"
        mappings = Table(
            title=f"{pattern.target_table_name} ({label}, confidence {pattern.confidence_score:.2f})",
            box=box.SIMPLE_HEAVY,
        )
        for column in ("Field", "Column", "Type", "Constraints", "References"):
            mappings.add_column(column)
        for mapping in pattern.field_mappings:
            target = mapping.foreign_key_target
            mappings.add_row(
                mapping.import_field,
                mapping.suggested_column,
                mapping.data_type,
                ", ".join(mapping.constraints),
                f"{target.table}.{target.column}" if target else "",
            )
        console.print(mappings)

    if plan.operations:
        operations = Table(title="Migration operations", box=box.SIMPLE_HEAVY)
        for column in ("#", "Operation", "Kind", "Risk", "Description"):
            operations.add_column(column)
        for operation in plan.operations:
            operations.add_row(
                str(operation.priority),
                operation.id,
                operation.kind,
                operation.risk_tier,
                operation.description,
            )
        console.print(operations)
    else:
        logger.info("No schema changes planned; existing-table matches need manual handling.")

    findings = Table(title="Safety checks", box=box.SIMPLE_HEAVY)
    for column in ("Check", "Result", "Blocking", "Warning"):
        findings.add_column(column)
    for finding in result.findings:
        findings.add_row(
            finding.dimension,
            "pass" if finding.passed else "fail",
            "yes" if finding.blocking else "no",
            finding.warning or "",
        )
    console.print(findings)

    _print_list(console, "Recommendations", result.recommendations)
    _print_list(console, "Next steps", result.next_steps)

    if changes is not None:
        console.print(f"[bold]Changes[/bold]: {changes.overview}")
        for line in (*changes.table_changes, *changes.relationship_changes, *changes.security_considerations):
            console.print(f"  • {line}", markup=False)
        console.print(f"  • Performance impact: {changes.performance_impact}", markup=False)

    if dry_run_report is not None:
        _print_list(console, "Dry run (would execute)", dry_run_report.executed)
        _print_list(console, "Rollback order", dry_run_report.rollback_instructions)

    if result.typed_bindings is not None and result.typed_bindings.naming_conflicts:
        for conflict in result.typed_bindings.naming_conflicts:
            logger.warning(f"Typed bindings: {conflict}")


def _print_list(console: Console, heading: str, items: Sequence[str]) -> None:
    if not items:
        return
    console.print(f"[bold]{heading}[/bold]")
    for item in items:
        console.print(f"  • {item}", markup=False)


def _rich_style(theme_style: str) -> str:
    # Plain consoles do not carry the logging theme, so map theme names to styles.
    return {
        "success": "bold green",
        "warning": "yellow",
        "approval": "bold magenta",
        "error": "bold red",
    }.get(theme_style, "bold")

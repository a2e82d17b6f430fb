"""Human-oriented views of an analysis: change digest and dry-run walkthrough."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .types import DIMENSION_SECURITY, RISK_HIGH, RISK_MEDIUM, AnalysisResult, MigrationPlan


@dataclass(frozen=True, slots=True)
class DryRunReport:
    """What executing the plan would do, without touching any database."""

    plan_id: str
    executed: tuple[str, ...]
    rollback_instructions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "executed": list(self.executed),
            "rollback_instructions": list(self.rollback_instructions),
        }


@dataclass(frozen=True, slots=True)
class ChangeDigest:
    overview: str
    table_changes: tuple[str, ...]
    relationship_changes: tuple[str, ...]
    security_considerations: tuple[str, ...]
    performance_impact: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overview": self.overview,
            "table_changes": list(self.table_changes),
            "relationship_changes": list(self.relationship_changes),
            "security_considerations": list(self.security_considerations),
            "performance_impact": self.performance_impact,
        }


def dry_run(plan: MigrationPlan) -> DryRunReport:
    executed = tuple(
        f"[{operation.priority}] {operation.description}" for operation in plan.operations
    )
    rollback = tuple(
        f"{operation.id}: {operation.rollback_statement}" for operation in reversed(plan.operations)
    )
    return DryRunReport(plan_id=plan.id, executed=executed, rollback_instructions=rollback)


def describe_changes(result: AnalysisResult) -> ChangeDigest:
    """Summarise what the plan changes and what a reviewer should look at."""
    plan = result.plan
    overview = (
        f"{len(plan.operations)} operation(s) across {len(result.patterns)} pattern(s); "
        f"estimated duration {plan.estimated_duration}"
    )

    table_changes: list[str] = [operation.description for operation in plan.operations]
    for pattern in result.patterns:
        if not pattern.is_new_table:
            table_changes.append(
                f"Map onto existing table '{pattern.target_table_name}' "
                f"(confidence {pattern.confidence_score:.2f}, manual review)"
            )

    relationship_changes: list[str] = []
    for pattern in result.patterns:
        for mapping in pattern.field_mappings:
            target = mapping.foreign_key_target
            if mapping.is_foreign_key_candidate and target is not None:
                relationship_changes.append(
                    f"{pattern.target_table_name}.{mapping.suggested_column} -> "
                    f"{target.table}.{target.column}"
                )

    security: list[str] = []
    protected = [operation for operation in plan.operations if operation.access_controlled]
    if protected:
        security.append(f"{len(protected)} table(s) created with row-level access control")
    security.extend(
        finding.warning
        for finding in result.findings
        if not finding.passed and finding.warning and finding.dimension == DIMENSION_SECURITY
    )

    risky = [
        operation
        for operation in plan.operations
        if operation.risk_tier in {RISK_MEDIUM, RISK_HIGH}
    ]
    if plan.backup_required or risky:
        performance = "Significant: take a backup and schedule a maintenance window"
    elif plan.operations:
        performance = "Low: additive changes only"
    else:
        performance = "None: no schema changes planned"

    return ChangeDigest(
        overview=overview,
        table_changes=tuple(table_changes),
        relationship_changes=tuple(relationship_changes),
        security_considerations=tuple(security),
        performance_impact=performance,
    )

"""Migration plan synthesis: DDL generation, ordering and plan-level estimates."""

from __future__ import annotations

import hashlib
import heapq
import math
from collections.abc import Sequence

from recon_cli.shared.config import PlanningSettings
from recon_cli.shared.logging import Logger, get_logger

from .mapper import sanitize_identifier
from .types import (
    OP_CREATE_TABLE,
    RISK_LOW,
    FieldMapping,
    ImportPattern,
    MigrationOperation,
    MigrationPlan,
    PlanBuildError,
)

MAX_CONFIDENCE = 1.0

DEFAULT_PLANNING = PlanningSettings(
    target_schema="public",
    identifier_max_bytes=63,
    owner_column="user_id",
    owner_expression="auth.uid()",
    backup_threshold=3,
    base_seconds=30,
    per_operation_seconds=15,
)

BASE_PRE_MIGRATION_CHECKS = (
    "VERIFY database connection and permissions",
    "CHECK available disk space",
    "CONFIRM no active connections to target tables",
)
BACKUP_CHECK = "CREATE database backup"
BASE_POST_MIGRATION_VALIDATIONS = (
    "VERIFY all tables created successfully",
    "CHECK all constraints are valid",
    "VALIDATE RLS policies are active",
    "TEST import data functionality",
)


def qualifies_for_creation(pattern: ImportPattern) -> bool:
    """Only unambiguous new-table proposals are turned into DDL."""
    return pattern.is_new_table and pattern.confidence_score >= MAX_CONFIDENCE


def column_definition(mapping: FieldMapping, settings: PlanningSettings) -> str:
    definition = f"{mapping.suggested_column} {mapping.data_type.upper()}"
    if "NOT NULL" in mapping.constraints:
        definition += " NOT NULL"
    if mapping.is_foreign_key_candidate and mapping.foreign_key_target is not None:
        target = mapping.foreign_key_target
        definition += f" REFERENCES {settings.target_schema}.{target.table}({target.column})"
    return definition


def create_table_operation(
    pattern: ImportPattern,
    *,
    priority: int,
    settings: PlanningSettings = DEFAULT_PLANNING,
) -> MigrationOperation:
    """Build the single operation that creates, protects and polices a new table."""
    table = sanitize_identifier(pattern.target_table_name, settings.identifier_max_bytes)
    qualified = f"{settings.target_schema}.{table}"

    columns = ["id UUID PRIMARY KEY DEFAULT gen_random_uuid()"]
    columns.extend(column_definition(mapping, settings) for mapping in pattern.field_mappings)
    mapped_columns = {mapping.suggested_column for mapping in pattern.field_mappings}
    if settings.owner_column not in mapped_columns:
        columns.append(f"{settings.owner_column} UUID")
    columns.append("created_at TIMESTAMP WITH TIME ZONE DEFAULT now()")
    columns.append("updated_at TIMESTAMP WITH TIME ZONE DEFAULT now()")
    column_block = ",\n  ".join(columns)

    forward = (
        f"CREATE TABLE {qualified} (\n  {column_block}\n);\n\n"
        f"ALTER TABLE {qualified} ENABLE ROW LEVEL SECURITY;\n\n"
        f'CREATE POLICY "Users can manage their own {table}" ON {qualified}\n'
        f"  FOR ALL USING ({settings.owner_expression} = {settings.owner_column});"
    )
    return MigrationOperation(
        id=f"create_table_{table}",
        kind=OP_CREATE_TABLE,
        priority=priority,
        forward_statement=forward,
        rollback_statement=f"DROP TABLE IF EXISTS {qualified};",
        description=f"Create new table '{table}' for imported data",
        risk_tier=RISK_LOW,
        depends_on=(),
        validation_queries=(
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            f"WHERE table_schema = '{settings.target_schema}' AND table_name = '{table}');",
        ),
        access_controlled=True,
    )


def order_operations(operations: Sequence[MigrationOperation]) -> tuple[MigrationOperation, ...]:
    """Topologically order operations by ``depends_on``; ties go to the lower priority.

    Raises ``PlanBuildError`` on duplicate ids, unknown dependencies or cycles.
    """
    by_id: dict[str, MigrationOperation] = {}
    for operation in operations:
        if operation.id in by_id:
            raise PlanBuildError(f"Duplicate migration operation id '{operation.id}'")
        by_id[operation.id] = operation

    position = {operation.id: index for index, operation in enumerate(operations)}
    remaining = {operation.id: 0 for operation in operations}
    dependents: dict[str, list[str]] = {operation.id: [] for operation in operations}
    for operation in operations:
        for dependency in operation.depends_on:
            if dependency not in by_id:
                raise PlanBuildError(
                    f"Operation '{operation.id}' depends on unknown operation '{dependency}'"
                )
            remaining[operation.id] += 1
            dependents[dependency].append(operation.id)

    ready = [
        (by_id[op_id].priority, position[op_id], op_id)
        for op_id, count in remaining.items()
        if count == 0
    ]
    heapq.heapify(ready)
    ordered: list[MigrationOperation] = []
    while ready:
        _, _, op_id = heapq.heappop(ready)
        ordered.append(by_id[op_id])
        for child in dependents[op_id]:
            remaining[child] -= 1
            if remaining[child] == 0:
                heapq.heappush(ready, (by_id[child].priority, position[child], child))

    if len(ordered) != len(operations):
        stuck = sorted(op_id for op_id, count in remaining.items() if count > 0)
        raise PlanBuildError(f"Cyclic dependency between operations: {', '.join(stuck)}")
    return tuple(ordered)


def estimate_duration(operation_count: int, settings: PlanningSettings = DEFAULT_PLANNING) -> str:
    total_seconds = settings.base_seconds + operation_count * settings.per_operation_seconds
    if total_seconds < 60:
        return f"{total_seconds} seconds"
    if total_seconds < 3600:
        return f"{math.ceil(total_seconds / 60)} minutes"
    return f"{math.ceil(total_seconds / 3600)} hours"


def plan_identifier(source_name: str, operations: Sequence[MigrationOperation]) -> str:
    """Deterministic plan id derived from the source and the operation ids."""
    normalized = "|".join([source_name.strip().lower(), *(operation.id for operation in operations)])
    return "import_migration_" + hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]


class MigrationPlanBuilder:
    """Turns accepted import patterns into an ordered, reversible migration plan."""

    def __init__(self, settings: PlanningSettings = DEFAULT_PLANNING, logger: Logger | None = None):
        self.settings = settings
        self.logger = logger or get_logger()

    def build(
        self,
        patterns: Sequence[ImportPattern],
        *,
        source_name: str = "",
        record_count: int = 0,
    ) -> MigrationPlan:
        operations: list[MigrationOperation] = []
        for pattern in patterns:
            if not qualifies_for_creation(pattern):
                self.logger.stage(
                    "planner",
                    f"Leaving '{pattern.target_table_name}' "
                    f"(confidence {pattern.confidence_score:.2f}) for manual handling",
                )
                continue
            operations.append(
                create_table_operation(pattern, priority=len(operations) + 1, settings=self.settings)
            )

        ordered = order_operations(operations)
        backup_required = len(ordered) > self.settings.backup_threshold
        pre_checks = list(BASE_PRE_MIGRATION_CHECKS)
        if backup_required:
            pre_checks.append(BACKUP_CHECK)
        post_validations = list(BASE_POST_MIGRATION_VALIDATIONS)
        for operation in ordered:
            post_validations.extend(operation.validation_queries)

        label = source_name or "import"
        self.logger.stage("planner", f"Planned {len(ordered)} operation(s) for '{label}'")
        return MigrationPlan(
            id=plan_identifier(source_name, ordered),
            title=f"Import Data Migration - {label}",
            description=f"Migration to import {record_count} records with schema enhancements",
            operations=ordered,
            estimated_duration=estimate_duration(len(ordered), self.settings),
            backup_required=backup_required,
            rollback_plan=tuple(operation.rollback_statement for operation in reversed(ordered)),
            pre_migration_checks=tuple(pre_checks),
            post_migration_validations=tuple(post_validations),
        )


def build_plan(
    patterns: Sequence[ImportPattern],
    *,
    source_name: str = "",
    record_count: int = 0,
    settings: PlanningSettings = DEFAULT_PLANNING,
) -> MigrationPlan:
    """Convenience wrapper around ``MigrationPlanBuilder.build``."""
    builder = MigrationPlanBuilder(settings)
    return builder.build(patterns, source_name=source_name, record_count=record_count)

"""Orchestration of one import analysis, from record batch to decision."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from recon_cli.shared.config import AppConfig
from recon_cli.shared.logging import Logger, get_logger

from .bindings import generate_bindings
from .catalog import SchemaSource
from .decision import build_recommendations, decide
from .keys import compile_rules
from .mapper import build_mapping, sanitize_identifier, unique_identifier
from .matcher import match_tables
from .planner import MigrationPlanBuilder
from .safety import SafetyChecker
from .types import (
    RISK_LOW,
    STATUS_SUCCESS,
    AnalysisError,
    AnalysisRequest,
    AnalysisResult,
    AnalysisSummary,
    EmptyBatchError,
    ImportPattern,
    RelationshipHint,
    SchemaSnapshot,
    SnapshotUnavailableError,
    TableDescriptor,
)

NEW_TABLE_CONFIDENCE = 1.0
NEW_TABLE_ENHANCEMENTS = (
    "Add RLS policies for data security",
    "Create appropriate indexes for performance",
    "Consider relationships with existing tables",
)


def detect_relationship_hints(
    records: Sequence[Mapping[str, Any]],
    table: TableDescriptor | None,
) -> tuple[RelationshipHint, ...]:
    """Relationship detection is not implemented; no hints are ever produced."""
    return ()


class ReconciliationEngine:
    """Stateless analysis service; build one per request or share freely."""

    def __init__(self, config: AppConfig, logger: Logger | None = None):
        self.config = config
        self.logger = logger or get_logger()
        self.rules = compile_rules(config.keys.foreign_key_targets)

    def analyze(self, request: AnalysisRequest, schema_source: SchemaSource) -> AnalysisResult:
        records = self._validated_records(request)
        snapshot = self._snapshot(schema_source)
        analysis = self.config.analysis
        planning = self.config.planning

        sample = records[0]
        field_names = list(sample.keys())
        self.logger.stage(
            "inference",
            f"{len(records)} record(s), {len(field_names)} field(s) from '{request.source_name}'",
        )

        patterns = self._detect_patterns(records, field_names, snapshot, request.source_name)
        plan = MigrationPlanBuilder(planning, self.logger).build(
            patterns,
            source_name=request.source_name,
            record_count=len(records),
        )
        findings = SafetyChecker(logger=self.logger).check(plan, snapshot)
        status, next_steps = decide(
            patterns,
            plan,
            findings,
            request.preferences,
            approval_confidence=analysis.approval_confidence,
        )
        recommendations = build_recommendations(
            patterns,
            findings,
            snapshot,
            request.preferences,
            high_confidence=analysis.high_confidence,
            low_confidence=analysis.low_confidence,
        )
        summary = AnalysisSummary(
            total_records=len(records),
            patterns_found=len(patterns),
            high_confidence_pattern_count=sum(
                1 for pattern in patterns if pattern.confidence_score > analysis.high_confidence
            ),
            migration_operation_count=len(plan.operations),
            safety_checks_passed=sum(1 for finding in findings if finding.passed),
            safety_checks_total=len(findings),
            auto_apply_eligible=(
                request.preferences.auto_apply_safe_migrations
                and status == STATUS_SUCCESS
                and all(operation.risk_tier == RISK_LOW for operation in plan.operations)
            ),
        )

        typed_bindings = None
        wants_bindings = request.preferences.generate_typed_bindings
        if wants_bindings is None:
            wants_bindings = self.config.bindings.enabled
        if wants_bindings:
            typed_bindings = generate_bindings(
                patterns,
                snapshot,
                source_name=request.source_name,
                settings=planning,
            )
            self.logger.stage("bindings", f"Generated {len(typed_bindings.class_names)} row type(s)")

        self.logger.stage("decision", f"Status '{status}'")
        return AnalysisResult(
            patterns=patterns,
            plan=plan,
            findings=findings,
            recommendations=recommendations,
            status=status,
            next_steps=next_steps,
            summary=summary,
            typed_bindings=typed_bindings,
        )

    # ------------------------------------------------------------------

    def _validated_records(self, request: AnalysisRequest) -> Sequence[Mapping[str, Any]]:
        records = request.records
        if not records:
            raise EmptyBatchError("Analysis failed: import batch contains no records")
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise AnalysisError(
                    f"Analysis failed: record {index} is {type(record).__name__}, expected a mapping"
                )
        return records

    def _snapshot(self, schema_source: SchemaSource) -> SchemaSnapshot:
        try:
            snapshot = schema_source.get_schema_snapshot()
        except Exception as exc:  # any collaborator failure aborts the request
            raise SnapshotUnavailableError(f"Analysis failed: {exc}") from exc
        self.logger.stage("catalog", f"Snapshot has {len(snapshot.tables)} table(s)")
        return snapshot

    def _detect_patterns(
        self,
        records: Sequence[Mapping[str, Any]],
        field_names: Sequence[str],
        snapshot: SchemaSnapshot,
        source_name: str,
    ) -> tuple[ImportPattern, ...]:
        sample = records[0]
        max_bytes = self.config.planning.identifier_max_bytes
        result = match_tables(
            field_names,
            snapshot.tables,
            threshold=self.config.analysis.match_threshold,
        )

        if not result.no_match:
            patterns = []
            for match in result.candidates:
                self.logger.stage("matcher", f"'{match.table.name}' scored {match.score:.2f}")
                patterns.append(
                    ImportPattern(
                        target_table_name=match.table.name,
                        confidence_score=match.score,
                        field_mappings=build_mapping(
                            field_names, sample, match.table, rules=self.rules, max_bytes=max_bytes
                        ),
                        relationship_hints=detect_relationship_hints(records, match.table),
                        is_new_table=False,
                    )
                )
            return tuple(patterns)

        table_name = source_name.strip() or self.config.analysis.default_table_name
        table_name = sanitize_identifier(table_name, max_bytes)
        # A proposed table must never share a name with an existing one.
        existing = {table.name.lower() for table in snapshot.tables}
        table_name = unique_identifier(table_name, existing, max_bytes)
        self.logger.stage("matcher", f"No existing table matched; proposing '{table_name}'")
        return (
            ImportPattern(
                target_table_name=table_name,
                confidence_score=NEW_TABLE_CONFIDENCE,
                field_mappings=build_mapping(
                    field_names, sample, None, rules=self.rules, max_bytes=max_bytes
                ),
                relationship_hints=detect_relationship_hints(records, None),
                suggested_enhancements=NEW_TABLE_ENHANCEMENTS,
                is_new_table=True,
            ),
        )


def analyze(
    request: AnalysisRequest,
    schema_source: SchemaSource,
    config: AppConfig,
    logger: Logger | None = None,
) -> AnalysisResult:
    return ReconciliationEngine(config, logger).analyze(request, schema_source)

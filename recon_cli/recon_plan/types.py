"""Core datatypes and error types for the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from recon_cli.shared.exceptions import ReconError


# ----- Exceptions ---------------------------------------------------------------------------


class AnalysisError(ReconError):
    """Base class for failures that abort an analysis request."""


class EmptyBatchError(AnalysisError):
    """Raised when an analysis request carries no records."""


class SnapshotUnavailableError(AnalysisError):
    """Raised when the schema snapshot collaborator fails."""


class PlanBuildError(AnalysisError):
    """Raised when migration operations do not form a valid dependency graph."""


# ----- Vocabulary ---------------------------------------------------------------------------

TYPE_BOOLEAN = "boolean"
TYPE_INTEGER = "integer"
TYPE_NUMERIC = "numeric"
TYPE_DATE = "date"
TYPE_VARCHAR = "varchar"
TYPE_TEXT = "text"
TYPE_JSONB = "jsonb"

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"

OP_CREATE_TABLE = "create_table"
OP_ALTER_TABLE = "alter_table"
OP_ADD_COLUMN = "add_column"
OP_ADD_CONSTRAINT = "add_constraint"
OP_ADD_INDEX = "add_index"
OP_ADD_ACCESS_POLICY = "add_access_policy"

DIMENSION_DATA_INTEGRITY = "data_integrity"
DIMENSION_PERFORMANCE = "performance"
DIMENSION_SECURITY = "security"

STATUS_SUCCESS = "success"
STATUS_WARNING = "warning"
STATUS_REQUIRES_APPROVAL = "requires_approval"
STATUS_ERROR = "error"

RELATION_ONE_TO_MANY = "one_to_many"
RELATION_MANY_TO_ONE = "many_to_one"
RELATION_MANY_TO_MANY = "many_to_many"


# ----- Schema snapshot ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    name: str
    type: str
    nullable: bool = True
    is_primary_key: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "is_primary_key": self.is_primary_key,
        }


@dataclass(frozen=True, slots=True)
class TableDescriptor:
    name: str
    columns: tuple[ColumnDescriptor, ...] = ()
    indexes: tuple[str, ...] = ()
    # (column, referenced table, referenced column)
    foreign_keys: tuple[tuple[str, str, str], ...] = ()

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": [column.to_dict() for column in self.columns],
            "indexes": list(self.indexes),
            "foreign_keys": [list(foreign_key) for foreign_key in self.foreign_keys],
        }


@dataclass(frozen=True, slots=True)
class SchemaSnapshot:
    """Read-only description of the target database at analysis time."""

    tables: tuple[TableDescriptor, ...] = ()

    def table(self, name: str) -> TableDescriptor | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"tables": [table.to_dict() for table in self.tables]}


# ----- Patterns and mappings ----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ForeignKeyTarget:
    table: str
    column: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"table": self.table, "column": self.column, "confidence": self.confidence}


@dataclass(frozen=True, slots=True)
class FieldMapping:
    import_field: str
    suggested_column: str
    data_type: str
    constraints: tuple[str, ...] = ()
    is_foreign_key_candidate: bool = False
    foreign_key_target: ForeignKeyTarget | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "import_field": self.import_field,
            "suggested_column": self.suggested_column,
            "data_type": self.data_type,
            "constraints": list(self.constraints),
            "is_foreign_key_candidate": self.is_foreign_key_candidate,
            "foreign_key_target": (
                self.foreign_key_target.to_dict() if self.foreign_key_target else None
            ),
        }


@dataclass(frozen=True, slots=True)
class RelationshipHint:
    kind: str
    source_field: str
    target_table: str
    target_field: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "source_field": self.source_field,
            "target_table": self.target_table,
            "target_field": self.target_field,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class ImportPattern:
    """Proposed mapping from an import record shape to a (possibly new) table."""

    target_table_name: str
    confidence_score: float
    field_mappings: tuple[FieldMapping, ...]
    relationship_hints: tuple[RelationshipHint, ...] = ()
    suggested_enhancements: tuple[str, ...] = ()
    is_new_table: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_table_name": self.target_table_name,
            "confidence_score": self.confidence_score,
            "is_new_table": self.is_new_table,
            "field_mappings": [mapping.to_dict() for mapping in self.field_mappings],
            "relationship_hints": [hint.to_dict() for hint in self.relationship_hints],
            "suggested_enhancements": list(self.suggested_enhancements),
        }


# ----- Migration plan -----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MigrationOperation:
    id: str
    kind: str
    priority: int
    forward_statement: str
    rollback_statement: str
    description: str
    risk_tier: str = RISK_LOW
    depends_on: tuple[str, ...] = ()
    validation_queries: tuple[str, ...] = ()
    # True when the forward statement also enables row-level access control.
    access_controlled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "priority": self.priority,
            "forward_statement": self.forward_statement,
            "rollback_statement": self.rollback_statement,
            "description": self.description,
            "risk_tier": self.risk_tier,
            "depends_on": list(self.depends_on),
            "validation_queries": list(self.validation_queries),
            "access_controlled": self.access_controlled,
        }


@dataclass(frozen=True, slots=True)
class MigrationPlan:
    id: str
    title: str
    description: str
    operations: tuple[MigrationOperation, ...]
    estimated_duration: str
    backup_required: bool
    rollback_plan: tuple[str, ...] = ()
    pre_migration_checks: tuple[str, ...] = ()
    post_migration_validations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "operations": [operation.to_dict() for operation in self.operations],
            "estimated_duration": self.estimated_duration,
            "backup_required": self.backup_required,
            "rollback_plan": list(self.rollback_plan),
            "pre_migration_checks": list(self.pre_migration_checks),
            "post_migration_validations": list(self.post_migration_validations),
        }


@dataclass(frozen=True, slots=True)
class SafetyFinding:
    dimension: str
    passed: bool
    description: str
    warning: str | None = None
    blocking: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension": self.dimension,
            "passed": self.passed,
            "description": self.description,
            "warning": self.warning,
            "blocking": self.blocking,
        }


# ----- Request / response -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UserPreferences:
    auto_apply_safe_migrations: bool = False
    generate_typed_bindings: bool | None = None
    enforce_naming_conventions: bool = False
    require_manual_approval: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> UserPreferences:
        data = data or {}
        bindings = data.get("generate_typed_bindings")
        return cls(
            auto_apply_safe_migrations=bool(data.get("auto_apply_safe_migrations", False)),
            generate_typed_bindings=None if bindings is None else bool(bindings),
            enforce_naming_conventions=bool(data.get("enforce_naming_conventions", False)),
            require_manual_approval=bool(data.get("require_manual_approval", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "auto_apply_safe_migrations": self.auto_apply_safe_migrations,
            "generate_typed_bindings": self.generate_typed_bindings,
            "enforce_naming_conventions": self.enforce_naming_conventions,
            "require_manual_approval": self.require_manual_approval,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    records: Sequence[Mapping[str, Any]]
    source_name: str
    preferences: UserPreferences = field(default_factory=UserPreferences)


@dataclass(frozen=True, slots=True)
class AnalysisSummary:
    total_records: int
    patterns_found: int
    high_confidence_pattern_count: int
    migration_operation_count: int
    safety_checks_passed: int
    safety_checks_total: int
    auto_apply_eligible: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "patterns_found": self.patterns_found,
            "high_confidence_pattern_count": self.high_confidence_pattern_count,
            "migration_operation_count": self.migration_operation_count,
            "safety_checks_passed": self.safety_checks_passed,
            "safety_checks_total": self.safety_checks_total,
            "auto_apply_eligible": self.auto_apply_eligible,
        }


@dataclass(frozen=True, slots=True)
class TypedBindings:
    """Generated Python module describing the rows of each pattern's table."""

    module_name: str
    content: str
    class_names: tuple[str, ...]
    naming_conflicts: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_name": self.module_name,
            "content": self.content,
            "class_names": list(self.class_names),
            "naming_conflicts": list(self.naming_conflicts),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Canonical output of one analysis request."""

    patterns: tuple[ImportPattern, ...]
    plan: MigrationPlan
    findings: tuple[SafetyFinding, ...]
    recommendations: tuple[str, ...]
    status: str
    next_steps: tuple[str, ...]
    summary: AnalysisSummary
    typed_bindings: TypedBindings | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [pattern.to_dict() for pattern in self.patterns],
            "plan": self.plan.to_dict(),
            "findings": [finding.to_dict() for finding in self.findings],
            "recommendations": list(self.recommendations),
            "status": self.status,
            "next_steps": list(self.next_steps),
            "summary": self.summary.to_dict(),
            "typed_bindings": self.typed_bindings.to_dict() if self.typed_bindings else None,
        }

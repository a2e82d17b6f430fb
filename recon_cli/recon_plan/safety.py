"""Safety assessment of a migration plan against the current schema snapshot."""

from __future__ import annotations

from typing import Callable

from recon_cli.shared.logging import Logger, get_logger

from .types import (
    DIMENSION_DATA_INTEGRITY,
    DIMENSION_PERFORMANCE,
    DIMENSION_SECURITY,
    OP_ADD_ACCESS_POLICY,
    RISK_HIGH,
    MigrationPlan,
    SafetyFinding,
    SchemaSnapshot,
)

PERFORMANCE_IMPACT_LIMIT = 50.0

SafetyCheck = Callable[[MigrationPlan, SchemaSnapshot], SafetyFinding]


def check_data_integrity(plan: MigrationPlan, snapshot: SchemaSnapshot) -> SafetyFinding:
    high_risk = any(operation.risk_tier == RISK_HIGH for operation in plan.operations)
    return SafetyFinding(
        dimension=DIMENSION_DATA_INTEGRITY,
        passed=not high_risk,
        description="Assess data integrity impact",
        warning="Some operations have high risk impact" if high_risk else None,
        blocking=high_risk,
    )


def performance_impact(plan: MigrationPlan, snapshot: SchemaSnapshot) -> float:
    """Planned operations as a percentage of the existing table count.

    An empty catalog has nothing to slow down, so its impact is zero.
    """
    existing = len(snapshot.tables)
    if existing == 0:
        return 0.0
    return len(plan.operations) / existing * 100


def check_performance(plan: MigrationPlan, snapshot: SchemaSnapshot) -> SafetyFinding:
    impact = performance_impact(plan, snapshot)
    passed = impact < PERFORMANCE_IMPACT_LIMIT
    return SafetyFinding(
        dimension=DIMENSION_PERFORMANCE,
        passed=passed,
        description="Evaluate performance impact of migration",
        warning=None if passed else "Migration may impact database performance",
        blocking=False,
    )


def check_security(plan: MigrationPlan, snapshot: SchemaSnapshot) -> SafetyFinding:
    protected = any(
        operation.kind == OP_ADD_ACCESS_POLICY or operation.access_controlled
        for operation in plan.operations
    )
    return SafetyFinding(
        dimension=DIMENSION_SECURITY,
        passed=protected,
        description="Verify security policies are in place",
        warning=None if protected else "Consider adding access policies for new tables",
        blocking=False,
    )


CHECKS: tuple[tuple[str, SafetyCheck], ...] = (
    (DIMENSION_DATA_INTEGRITY, check_data_integrity),
    (DIMENSION_PERFORMANCE, check_performance),
    (DIMENSION_SECURITY, check_security),
)


class SafetyChecker:
    """Runs every check; a check that cannot be scored counts as a failed advisory."""

    def __init__(
        self,
        checks: tuple[tuple[str, SafetyCheck], ...] = CHECKS,
        logger: Logger | None = None,
    ):
        self.checks = checks
        self.logger = logger or get_logger()

    def check(self, plan: MigrationPlan, snapshot: SchemaSnapshot) -> tuple[SafetyFinding, ...]:
        findings: list[SafetyFinding] = []
        for dimension, run_check in self.checks:
            try:
                finding = run_check(plan, snapshot)
            except Exception as exc:  # a broken check must not abort the analysis
                self.logger.warning(f"Safety check '{dimension}' could not be evaluated: {exc}")
                finding = SafetyFinding(
                    dimension=dimension,
                    passed=False,
                    description=f"Evaluate {dimension.replace('_', ' ')}",
                    warning=f"Check could not be evaluated: {exc}",
                    blocking=False,
                )
            findings.append(finding)
        failed = sum(1 for finding in findings if not finding.passed)
        self.logger.stage("safety", f"{len(findings) - failed}/{len(findings)} checks passed")
        return tuple(findings)


def check(
    plan: MigrationPlan,
    snapshot: SchemaSnapshot,
    logger: Logger | None = None,
) -> tuple[SafetyFinding, ...]:
    return SafetyChecker(logger=logger).check(plan, snapshot)

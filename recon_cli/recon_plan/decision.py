"""Final status, next steps and recommendations for an analysis."""

from __future__ import annotations

import re
from collections.abc import Sequence

from .types import (
    RISK_HIGH,
    STATUS_ERROR,
    STATUS_REQUIRES_APPROVAL,
    STATUS_SUCCESS,
    STATUS_WARNING,
    ImportPattern,
    MigrationPlan,
    SafetyFinding,
    SchemaSnapshot,
    UserPreferences,
)

DEFAULT_APPROVAL_CONFIDENCE = 0.7
DEFAULT_HIGH_CONFIDENCE = 0.8
DEFAULT_LOW_CONFIDENCE = 0.6

APPROVAL_STEPS = (
    "Review migration plan and safety checks",
    "Approve or modify planned operations",
    "Execute migration with monitoring",
)
WARNING_STEPS = (
    "Review warning conditions",
    "Consider applying suggested fixes",
    "Proceed with caution if acceptable",
)
SUCCESS_STEPS = (
    "Review and approve migration plan",
    "Execute approved operations",
    "Import data into updated schema",
)

SNAKE_CASE = re.compile(r"^[a-z][a-z0-9_]*$")


def decide(
    patterns: Sequence[ImportPattern],
    plan: MigrationPlan,
    findings: Sequence[SafetyFinding],
    preferences: UserPreferences,
    *,
    approval_confidence: float = DEFAULT_APPROVAL_CONFIDENCE,
) -> tuple[str, tuple[str, ...]]:
    """Return ``(status, next_steps)``; rules are checked in order, first match wins.

    Blocking failures dominate, then anything needing a human checkpoint, then
    advisory failures. Only a clean analysis is a success.
    """
    blocking = [finding for finding in findings if finding.blocking and not finding.passed]
    if blocking:
        return STATUS_ERROR, tuple(f"Fix: {finding.description}" for finding in blocking)

    if (
        preferences.require_manual_approval
        or any(operation.risk_tier == RISK_HIGH for operation in plan.operations)
        or any(pattern.confidence_score < approval_confidence for pattern in patterns)
    ):
        return STATUS_REQUIRES_APPROVAL, APPROVAL_STEPS

    if any(not finding.passed for finding in findings):
        return STATUS_WARNING, WARNING_STEPS

    return STATUS_SUCCESS, SUCCESS_STEPS


def naming_violations(snapshot: SchemaSnapshot) -> list[str]:
    """Table and column names that are not snake_case."""
    violations: list[str] = []
    for table in snapshot.tables:
        if not SNAKE_CASE.match(table.name):
            violations.append(table.name)
        for column in table.columns:
            if not SNAKE_CASE.match(column.name):
                violations.append(f"{table.name}.{column.name}")
    return violations


def build_recommendations(
    patterns: Sequence[ImportPattern],
    findings: Sequence[SafetyFinding],
    snapshot: SchemaSnapshot,
    preferences: UserPreferences,
    *,
    high_confidence: float = DEFAULT_HIGH_CONFIDENCE,
    low_confidence: float = DEFAULT_LOW_CONFIDENCE,
) -> tuple[str, ...]:
    recommendations: list[str] = []

    confident = sum(1 for pattern in patterns if pattern.confidence_score > high_confidence)
    if confident:
        recommendations.append(
            f"{confident} high-confidence table matches found - safe to proceed"
        )

    uncertain = sum(1 for pattern in patterns if pattern.confidence_score < low_confidence)
    if uncertain:
        recommendations.append(f"{uncertain} low-confidence matches require manual review")

    failed = sum(1 for finding in findings if not finding.passed)
    if failed:
        recommendations.append(f"{failed} safety concerns detected - review before proceeding")

    if any(pattern.suggested_enhancements for pattern in patterns):
        recommendations.append(
            "Schema enhancements suggested for optimal performance and security"
        )

    if preferences.enforce_naming_conventions and naming_violations(snapshot):
        recommendations.append("Consider standardizing to snake_case naming convention")

    return tuple(recommendations)

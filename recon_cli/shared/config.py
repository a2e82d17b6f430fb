"""Configuration loading utilities for the reconciliation CLI suite."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Target database whose schema is introspected."""

    path: Path


@dataclass(frozen=True, slots=True)
class SessionSettings:
    """Import-session persistence configuration."""

    enabled: bool
    path: Path


@dataclass(frozen=True, slots=True)
class AnalysisSettings:
    """Confidence thresholds used by the matcher and decision engine."""

    match_threshold: float
    approval_confidence: float
    high_confidence: float
    low_confidence: float
    default_table_name: str


@dataclass(frozen=True, slots=True)
class PlanningSettings:
    """DDL generation and plan sizing configuration."""

    target_schema: str
    identifier_max_bytes: int
    owner_column: str
    owner_expression: str
    backup_threshold: int
    base_seconds: int
    per_operation_seconds: int


@dataclass(frozen=True, slots=True)
class ForeignKeyRule:
    """Substring-to-table rule used when suggesting foreign-key targets."""

    contains: str
    table: str
    column: str
    confidence: float


@dataclass(frozen=True, slots=True)
class KeySettings:
    """Foreign-key heuristics configuration."""

    foreign_key_targets: tuple[ForeignKeyRule, ...]


@dataclass(frozen=True, slots=True)
class BindingSettings:
    """Typed-binding generation defaults."""

    enabled: bool


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    database: DatabaseSettings
    sessions: SessionSettings
    analysis: AnalysisSettings
    planning: PlanningSettings
    keys: KeySettings
    bindings: BindingSettings

    def with_database_path(self, new_path: str | Path) -> AppConfig:
        """Return a copy with an updated database path."""
        resolved = paths.resolve_path(new_path)
        new_db = replace(self.database, path=resolved)
        return replace(self, database=new_db)


# Existing tables scoring below this are never offered as matches.
MIN_MATCH_THRESHOLD = 0.5


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "database": {"path": str(paths.default_database_path(env=env))},
        "sessions": {
            "enabled": True,
            "path": str(paths.default_sessions_path(env=env)),
        },
        "analysis": {
            "match_threshold": MIN_MATCH_THRESHOLD,
            "approval_confidence": 0.7,
            "high_confidence": 0.8,
            "low_confidence": 0.6,
            "default_table_name": "imported_data_table",
        },
        "planning": {
            "target_schema": "public",
            "identifier_max_bytes": 63,
            "owner_column": "user_id",
            "owner_expression": "auth.uid()",
            "backup_threshold": 3,
            "base_seconds": 30,
            "per_operation_seconds": 15,
        },
        "keys": {
            "foreign_key_targets": [
                {"contains": "user", "table": "profiles", "column": "id", "confidence": 0.8},
                {"contains": "facility", "table": "facilities", "column": "id", "confidence": 0.8},
            ],
        },
        "bindings": {"enabled": False},
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "database.path": (paths.DATABASE_PATH_ENV, str),
    "sessions.path": (paths.SESSIONS_PATH_ENV, str),
    "sessions.enabled": ("RECON_SESSIONS_ENABLED", bool),
    "analysis.match_threshold": ("RECON_MATCH_THRESHOLD", float),
    "analysis.approval_confidence": ("RECON_APPROVAL_CONFIDENCE", float),
    "analysis.default_table_name": ("RECON_DEFAULT_TABLE_NAME", str),
    "planning.target_schema": ("RECON_TARGET_SCHEMA", str),
    "planning.identifier_max_bytes": ("RECON_IDENTIFIER_MAX_BYTES", int),
    "planning.owner_column": ("RECON_OWNER_COLUMN", str),
    "planning.owner_expression": ("RECON_OWNER_EXPRESSION", str),
    "bindings.enabled": ("RECON_BINDINGS_ENABLED", bool),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(env or os.environ)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_foreign_key_rules(raw_rules: Any) -> tuple[ForeignKeyRule, ...]:
    if not isinstance(raw_rules, (list, tuple)):
        raise ConfigurationError("keys.foreign_key_targets must be a list of rules.")
    rules: list[ForeignKeyRule] = []
    for entry in raw_rules:
        if not isinstance(entry, Mapping):
            raise ConfigurationError("Each foreign-key rule must be a mapping.")
        rules.append(
            ForeignKeyRule(
                contains=str(entry["contains"]).lower(),
                table=str(entry["table"]),
                column=str(entry.get("column", "id")),
                confidence=float(entry.get("confidence", 0.8)),
            )
        )
    return tuple(rules)


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        database = DatabaseSettings(path=paths.resolve_path(data["database"]["path"]))
        sessions = SessionSettings(
            enabled=bool(data["sessions"]["enabled"]),
            path=paths.resolve_path(data["sessions"]["path"]),
        )
        analysis_cfg = data["analysis"]
        analysis = AnalysisSettings(
            match_threshold=float(analysis_cfg["match_threshold"]),
            approval_confidence=float(analysis_cfg["approval_confidence"]),
            high_confidence=float(analysis_cfg["high_confidence"]),
            low_confidence=float(analysis_cfg["low_confidence"]),
            default_table_name=str(analysis_cfg["default_table_name"]),
        )
        planning_cfg = data["planning"]
        planning = PlanningSettings(
            target_schema=str(planning_cfg["target_schema"]),
            identifier_max_bytes=int(planning_cfg["identifier_max_bytes"]),
            owner_column=str(planning_cfg["owner_column"]),
            owner_expression=str(planning_cfg["owner_expression"]),
            backup_threshold=int(planning_cfg["backup_threshold"]),
            base_seconds=int(planning_cfg["base_seconds"]),
            per_operation_seconds=int(planning_cfg["per_operation_seconds"]),
        )
        keys = KeySettings(
            foreign_key_targets=_build_foreign_key_rules(data["keys"]["foreign_key_targets"]),
        )
        bindings = BindingSettings(enabled=bool(data["bindings"]["enabled"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if not MIN_MATCH_THRESHOLD <= analysis.match_threshold <= 1.0:
        raise ConfigurationError(
            f"analysis.match_threshold must be between {MIN_MATCH_THRESHOLD} and 1."
        )
    if planning.identifier_max_bytes <= 0:
        raise ConfigurationError("planning.identifier_max_bytes must be positive.")

    return AppConfig(
        source_path=source_path,
        database=database,
        sessions=sessions,
        analysis=analysis,
        planning=planning,
        keys=keys,
        bindings=bindings,
    )

"""Persistence of analysed imports for audit and history."""

from __future__ import annotations

import json
import secrets
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from recon_cli.shared.exceptions import DatabaseError

from .types import AnalysisRequest, AnalysisResult

IMPORT_TYPE = "intelligent"
SESSION_STATUS = "analyzed"


@dataclass(slots=True)
class ImportSession:
    id: str
    import_type: str
    source_name: str
    status: str
    analysis_status: str
    records_total: int
    created_at: str
    schema_detected: dict[str, Any]
    import_config: dict[str, Any]


def new_session_id() -> str:
    return f"import_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def record_session(
    connection: sqlite3.Connection,
    request: AnalysisRequest,
    result: AnalysisResult,
    *,
    session_id: str | None = None,
) -> str:
    """Store one analysis and return its session id."""

    session_id = session_id or new_session_id()
    schema_detected = {
        "patterns": [pattern.to_dict() for pattern in result.patterns],
        "migration_plan": result.plan.to_dict(),
        "safety_checks": [finding.to_dict() for finding in result.findings],
        "analyzed_at": datetime.now(timezone.utc).isoformat(),
    }
    import_config = {
        "user_preferences": request.preferences.to_dict(),
        "auto_migration_enabled": request.preferences.auto_apply_safe_migrations,
    }
    try:
        connection.execute(
            """
            INSERT INTO data_import_sessions (
                id,
                import_type,
                source_name,
                status,
                analysis_status,
                schema_detected,
                records_total,
                import_config
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                IMPORT_TYPE,
                request.source_name,
                SESSION_STATUS,
                result.status,
                json.dumps(schema_detected, sort_keys=True),
                len(request.records),
                json.dumps(import_config, sort_keys=True),
            ),
        )
        connection.commit()
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to record import session {session_id}: {exc}") from exc
    return session_id


def list_sessions(connection: sqlite3.Connection, limit: int | None = 20) -> list[ImportSession]:
    """Most recent sessions first; ``limit`` of ``None`` or <= 0 returns all."""

    sql = "SELECT * FROM data_import_sessions ORDER BY created_at DESC, rowid DESC"
    params: tuple[Any, ...] = ()
    if limit is not None and limit > 0:
        sql += " LIMIT ?"
        params = (limit,)
    try:
        rows = connection.execute(sql, params).fetchall()
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to read import sessions: {exc}") from exc
    return [_session_from_row(row) for row in rows]


def _session_from_row(row: sqlite3.Row) -> ImportSession:
    return ImportSession(
        id=row["id"],
        import_type=row["import_type"],
        source_name=row["source_name"],
        status=row["status"],
        analysis_status=row["analysis_status"],
        records_total=int(row["records_total"]),
        created_at=row["created_at"],
        schema_detected=json.loads(row["schema_detected"]) if row["schema_detected"] else {},
        import_config=json.loads(row["import_config"]) if row["import_config"] else {},
    )

"""Persistence helpers for interview session snapshots."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn, utc_now


class SessionSnapshotPayload(BaseModel):
    session_id: str
    user_id: str
    tab_id: str
    status: str
    stage: str
    exchange_count: int = Field(ge=0)
    threshold_score: float
    snapshot: Dict[str, Any]
    created_at: str


def upsert_session_snapshot(**data: Any) -> None:
    """Insert or replace the snapshot row for a session."""

    payload = SessionSnapshotPayload(**data)
    now = utc_now()
    completed_at = now if payload.status != "active" else None
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO interview_sessions
               (id, user_id, tab_id, status, stage, exchange_count, threshold_score,
                snapshot_json, created_at, updated_at, completed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 status = excluded.status,
                 stage = excluded.stage,
                 exchange_count = excluded.exchange_count,
                 threshold_score = excluded.threshold_score,
                 snapshot_json = excluded.snapshot_json,
                 updated_at = excluded.updated_at,
                 completed_at = COALESCE(interview_sessions.completed_at, excluded.completed_at)""",
            (
                payload.session_id,
                payload.user_id,
                payload.tab_id,
                payload.status,
                payload.stage,
                payload.exchange_count,
                payload.threshold_score,
                json.dumps(payload.snapshot, default=str),
                payload.created_at,
                now,
                completed_at,
            ),
        )


def load_session_snapshot(session_id: str) -> Optional[Dict[str, Any]]:
    """Return the stored snapshot for ``session_id`` or ``None``."""

    with get_conn() as conn:
        row = conn.execute(
            "SELECT snapshot_json FROM interview_sessions WHERE id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    return json.loads(row["snapshot_json"])


def list_session_rows(user_id: str) -> List[Dict[str, Any]]:
    """Return summary rows for every stored session of ``user_id``, newest first."""

    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, tab_id, status, stage, exchange_count, threshold_score, updated_at, completed_at
               FROM interview_sessions WHERE user_id = ? ORDER BY updated_at DESC""",
            (user_id,),
        ).fetchall()
    return [dict(row) for row in rows]

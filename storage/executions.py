"""Persistence helpers for workflow audit rows."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn, utc_now


class WorkflowExecutionPayload(BaseModel):
    user_id: str
    session_id: str
    node_name: str
    next_node: Optional[str] = None
    execution_ms: int = Field(default=0, ge=0)
    output: Dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None


class ContextCompactionPayload(BaseModel):
    user_id: str
    session_id: str
    original_length: int = Field(gt=0)
    compacted_length: int = Field(ge=0)
    skills_preserved: int = Field(ge=0)
    workflows_preserved: int = Field(ge=0)


def insert_workflow_execution(**data: Any) -> int:
    """Insert a node execution row and return its primary key."""

    payload = WorkflowExecutionPayload(**data)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO workflow_executions
               (timestamp, user_id, session_id, node_name, next_node, execution_ms, output_json, error_message)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                utc_now(),
                payload.user_id,
                payload.session_id,
                payload.node_name,
                payload.next_node,
                payload.execution_ms,
                json.dumps(payload.output, default=str),
                payload.error_message,
            ),
        )
        return int(cur.lastrowid)


def insert_context_compaction(**data: Any) -> int:
    """Insert a compaction audit row and return its primary key."""

    payload = ContextCompactionPayload(**data)
    ratio = payload.compacted_length / payload.original_length
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO context_compactions
               (timestamp, user_id, session_id, original_length, compacted_length, compression_ratio,
                skills_preserved, workflows_preserved)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                utc_now(),
                payload.user_id,
                payload.session_id,
                payload.original_length,
                payload.compacted_length,
                ratio,
                payload.skills_preserved,
                payload.workflows_preserved,
            ),
        )
        return int(cur.lastrowid)

"""Persistence helpers for per-user global contexts and profiles."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn, utc_now


class GlobalContextPayload(BaseModel):
    user_id: str = Field(min_length=1)
    context_text: str = ""
    skills: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    last_session_id: Optional[str] = None
    version: int = Field(default=0, ge=0)


class UserProfilePayload(BaseModel):
    user_id: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    linkedin_connected: bool = False


def save_global_context(**data: Any) -> None:
    """Insert or replace the global context row for a user."""

    payload = GlobalContextPayload(**data)
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO global_contexts
               (user_id, context_text, skills_json, workflows_json, last_session_id, version, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id) DO UPDATE SET
                 context_text = excluded.context_text,
                 skills_json = excluded.skills_json,
                 workflows_json = excluded.workflows_json,
                 last_session_id = excluded.last_session_id,
                 version = excluded.version,
                 updated_at = excluded.updated_at""",
            (
                payload.user_id,
                payload.context_text,
                json.dumps(payload.skills),
                json.dumps(payload.workflows),
                payload.last_session_id,
                payload.version,
                utc_now(),
            ),
        )


def load_global_context(user_id: str) -> Optional[Dict[str, Any]]:
    """Return the stored global context for ``user_id`` or ``None``."""

    with get_conn() as conn:
        row = conn.execute(
            """SELECT user_id, context_text, skills_json, workflows_json, last_session_id, version, updated_at
               FROM global_contexts WHERE user_id = ?""",
            (user_id,),
        ).fetchone()
    if row is None:
        return None
    return {
        "user_id": row["user_id"],
        "text": row["context_text"],
        "skills": json.loads(row["skills_json"]),
        "workflows": json.loads(row["workflows_json"]),
        "last_session_id": row["last_session_id"],
        "version": row["version"],
        "updated_at": row["updated_at"],
    }


def upsert_user_profile(**data: Any) -> None:
    """Insert or replace profile details used for interview prompts."""

    payload = UserProfilePayload(**data)
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO user_profiles (user_id, name, email, skills_json, linkedin_connected, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id) DO UPDATE SET
                 name = excluded.name,
                 email = excluded.email,
                 skills_json = excluded.skills_json,
                 linkedin_connected = excluded.linkedin_connected,
                 updated_at = excluded.updated_at""",
            (
                payload.user_id,
                payload.name,
                payload.email,
                json.dumps(payload.skills),
                int(payload.linkedin_connected),
                utc_now(),
            ),
        )


def load_user_profile(user_id: str) -> Optional[Dict[str, Any]]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT name, email, skills_json, linkedin_connected FROM user_profiles WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    if row is None:
        return None
    return {
        "name": row["name"],
        "email": row["email"],
        "skills": json.loads(row["skills_json"]),
        "linkedin_connected": bool(row["linkedin_connected"]),
    }

"""Persistence helpers for generated datasets and instances."""
from __future__ import annotations

import datetime as dt
import json
import uuid
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .sqlite import get_conn, utc_now


class InstanceRowPayload(BaseModel):
    id: str
    question: str
    answer: str
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    difficulty: Optional[str] = None
    quality_score: float
    skills_referenced: List[str] = Field(default_factory=list)
    workflows_referenced: List[str] = Field(default_factory=list)
    generated_at: dt.datetime


class DatasetPayload(BaseModel):
    user_id: str
    session_id: str
    instances: List[InstanceRowPayload]


def insert_dataset(**data: Any) -> str:
    """Insert a dataset row together with its instances; return the dataset id.

    The dataset and its instances are written in one transaction so a failed
    write leaves neither behind.
    """

    payload = DatasetPayload(**data)
    dataset_id = str(uuid.uuid4())
    created_at = utc_now()
    count = len(payload.instances)
    average = round(sum(item.quality_score for item in payload.instances) / count, 2) if count else 0.0
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO datasets
               (id, user_id, session_id, name, description, instance_count, average_quality_score, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                dataset_id,
                payload.user_id,
                payload.session_id,
                f"Interview Dataset - {created_at[:10]}",
                f"Generated from interview session {payload.session_id}",
                count,
                average,
                created_at,
            ),
        )
        conn.executemany(
            """INSERT INTO generated_instances
               (id, dataset_id, user_id, session_id, question, answer, tags_json, category, difficulty,
                quality_score, skills_referenced_json, workflows_referenced_json, generated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    item.id,
                    dataset_id,
                    payload.user_id,
                    payload.session_id,
                    item.question,
                    item.answer,
                    json.dumps(item.tags),
                    item.category,
                    item.difficulty,
                    item.quality_score,
                    json.dumps(item.skills_referenced),
                    json.dumps(item.workflows_referenced),
                    item.generated_at.isoformat(),
                )
                for item in payload.instances
            ],
        )
    return dataset_id


def load_dataset(dataset_id: str) -> Optional[Dict[str, Any]]:
    with get_conn() as conn:
        row = conn.execute(
            """SELECT id, user_id, session_id, name, instance_count, average_quality_score
               FROM datasets WHERE id = ?""",
            (dataset_id,),
        ).fetchone()
    return dict(row) if row is not None else None


def list_instances(dataset_id: str) -> List[Dict[str, Any]]:
    """Return instance rows for ``dataset_id`` in insertion order."""

    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, question, answer, tags_json, category, difficulty, quality_score, session_id
               FROM generated_instances WHERE dataset_id = ? ORDER BY rowid""",
            (dataset_id,),
        ).fetchall()
    result: List[Dict[str, Any]] = []
    for row in rows:
        item = dict(row)
        item["tags"] = json.loads(item.pop("tags_json"))
        result.append(item)
    return result


def count_instances_for_session(session_id: str) -> int:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS total FROM generated_instances WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    return int(row["total"])


def instance_rows(instances: Sequence[Any]) -> List[Dict[str, Any]]:
    """Flatten generated instances into row payload dicts."""

    return [
        {
            "id": item.id,
            "question": item.question,
            "answer": item.answer,
            "tags": list(item.tags),
            "category": item.category,
            "difficulty": item.difficulty,
            "quality_score": item.quality_score,
            "skills_referenced": list(item.provenance.skills_referenced),
            "workflows_referenced": list(item.provenance.workflows_referenced),
            "generated_at": item.generated_at,
        }
        for item in instances
    ]

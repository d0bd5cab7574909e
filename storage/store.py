"""SQLite-backed implementation of the workflow persistence contract."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from workflow.errors import PersistenceFailure
from workflow.models import GeneratedInstance, GlobalContext, InterviewSession

from . import contexts, executions, instances, sessions

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_SUMMARY = "New user profile"


@contextmanager
def _guard(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Store %s failed: %s", action, exc)
        raise PersistenceFailure(f"Failed to {action}: {exc}") from exc


class SqliteStore:
    """Persist sessions, shared contexts, datasets and audit rows in SQLite."""

    def save_session(self, session: InterviewSession) -> None:
        with _guard("save session snapshot"):
            sessions.upsert_session_snapshot(
                session_id=session.id,
                user_id=session.user_id,
                tab_id=session.tab_id,
                status=session.status.value,
                stage=session.stage.value,
                exchange_count=len(session.exchanges),
                threshold_score=session.metrics.overall_score,
                snapshot=session.model_dump(mode="json"),
                created_at=session.created_at.isoformat(),
            )

    def load_session(self, session_id: str) -> Optional[InterviewSession]:
        with _guard("load session snapshot"):
            data = sessions.load_session_snapshot(session_id)
        if data is None:
            return None
        return InterviewSession.model_validate(data)

    def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        with _guard("list sessions"):
            return sessions.list_session_rows(user_id)

    def load_global_context(self, user_id: str) -> Optional[GlobalContext]:
        with _guard("load global context"):
            data = contexts.load_global_context(user_id)
        if data is None:
            return None
        return GlobalContext.model_validate(data)

    def save_global_context(self, context: GlobalContext) -> None:
        with _guard("save global context"):
            contexts.save_global_context(
                user_id=context.user_id,
                context_text=context.text,
                skills=context.skills,
                workflows=context.workflows,
                last_session_id=context.last_session_id,
                version=context.version,
            )

    def save_instances(self, session: InterviewSession, items: Sequence[GeneratedInstance]) -> str:
        with _guard("store generated instances"):
            return instances.insert_dataset(
                user_id=session.user_id,
                session_id=session.id,
                instances=instances.instance_rows(items),
            )

    def load_profile_summary(self, user_id: str) -> str:
        with _guard("load user profile"):
            profile = contexts.load_user_profile(user_id)
        if profile is None:
            return DEFAULT_PROFILE_SUMMARY
        skills = ", ".join(profile["skills"]) or "None identified"
        return (
            f"Name: {profile['name'] or 'Unknown'}\n"
            f"Email: {profile['email'] or 'Unknown'}\n"
            f"Skills: {skills}\n"
            f"LinkedIn: {'Connected' if profile['linkedin_connected'] else 'Not connected'}"
        )

    def record_execution(
        self,
        *,
        user_id: str,
        session_id: str,
        node_name: str,
        next_node: Optional[str],
        execution_ms: int,
        output: Dict[str, Any],
        error_message: Optional[str] = None,
    ) -> None:
        with _guard("record workflow execution"):
            executions.insert_workflow_execution(
                user_id=user_id,
                session_id=session_id,
                node_name=node_name,
                next_node=next_node,
                execution_ms=execution_ms,
                output=output,
                error_message=error_message,
            )

    def record_compaction(
        self,
        *,
        user_id: str,
        session_id: str,
        original_length: int,
        compacted_length: int,
        skills_preserved: int,
        workflows_preserved: int,
    ) -> None:
        with _guard("record context compaction"):
            executions.insert_context_compaction(
                user_id=user_id,
                session_id=session_id,
                original_length=original_length,
                compacted_length=compacted_length,
                skills_preserved=skills_preserved,
                workflows_preserved=workflows_preserved,
            )


__all__ = ["DEFAULT_PROFILE_SUMMARY", "SqliteStore"]

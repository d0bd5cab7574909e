"""Contracts for the collaborators the interview workflow depends on.

The workflow never talks to a database, a billing system or a vector index
directly; it is handed implementations of these protocols through
:class:`workflow.orchestrator.WorkflowDeps`.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from llm_gateway import TextGenerator

from .models import GeneratedInstance, GlobalContext, InterviewSession


class QuotaDecision(BaseModel):
    """Result of an atomic check-and-consume against a user's quota."""

    allowed: bool
    remaining: int = Field(ge=0)
    limit: Optional[int] = None
    reset_at: Optional[dt.datetime] = None


class QuotaService(Protocol):
    def check_and_consume(self, user_id: str, amount: int) -> QuotaDecision:
        """Deduct ``amount`` if the user can afford it; never deduct otherwise."""
        ...


class EmbeddingIndex(Protocol):
    def embed_batch(self, instances: Sequence[GeneratedInstance]) -> None:
        ...


class PersistentStore(Protocol):
    def save_session(self, session: InterviewSession) -> None: ...

    def load_session(self, session_id: str) -> Optional[InterviewSession]: ...

    def load_global_context(self, user_id: str) -> Optional[GlobalContext]: ...

    def save_global_context(self, context: GlobalContext) -> None: ...

    def save_instances(self, session: InterviewSession, items: Sequence[GeneratedInstance]) -> str: ...

    def load_profile_summary(self, user_id: str) -> str: ...

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
    ) -> None: ...

    def record_compaction(
        self,
        *,
        user_id: str,
        session_id: str,
        original_length: int,
        compacted_length: int,
        skills_preserved: int,
        workflows_preserved: int,
    ) -> None: ...


__all__ = [
    "EmbeddingIndex",
    "PersistentStore",
    "QuotaDecision",
    "QuotaService",
    "TextGenerator",
]

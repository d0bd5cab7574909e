from __future__ import annotations  # Interview workflow orchestration across tabs and rounds

import logging
import threading
import time
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from typing import Callable, Optional, Set

from config import WorkflowSettings
from observability import log_event
from services.embeddings import EmbeddingDispatcher, NullEmbeddingIndex
from services.global_context import GlobalContextMerger
from services.sessions import SessionKey, SessionStore, append_exchange, key_of, new_session

from .errors import InvalidInput, SessionNotFound, error_from
from .graph import build_graph, run_round
from .models import (
    AnswerResult,
    CompletedAnswer,
    ContextSnapshot,
    CurrentSessionView,
    ErrorInfo,
    InterviewSession,
    PendingAnswer,
    SessionOverview,
    SessionStatus,
    SessionSummary,
    SharedContextView,
    StartResult,
    StatusResult,
    WorkflowNode,
    progress_of,
)
from .nodes import WorkflowNodes
from .ports import EmbeddingIndex, PersistentStore, QuotaService, TextGenerator

logger = logging.getLogger(__name__)


@dataclass
class WorkflowDeps:  # Collaborators injected into the workflow
    generator: TextGenerator
    quota: QuotaService
    store: PersistentStore
    embeddings: EmbeddingIndex = field(default_factory=NullEmbeddingIndex)
    settings: WorkflowSettings = field(default_factory=WorkflowSettings)
    sleep: Callable[[float], None] = time.sleep


class InterviewWorkflow:  # Public engine API used by the HTTP layer and tests
    def __init__(self, deps: WorkflowDeps, *, max_sessions_per_user: Optional[int] = None) -> None:
        self._deps = deps
        self._sessions = SessionStore(max_sessions_per_user)
        self._merger = GlobalContextMerger(deps.store)
        nodes = WorkflowNodes(
            generator=deps.generator,
            quota=deps.quota,
            store=deps.store,
            cfg=deps.settings,
            sleep=deps.sleep,
        )
        self._graph = build_graph(nodes.as_mapping(), deps.store)
        self._embedder = EmbeddingDispatcher(deps.embeddings)
        self._embedding_jobs: Set[Future] = set()
        self._jobs_lock = threading.Lock()

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def merger(self) -> GlobalContextMerger:
        return self._merger

    def start_session(self, user_id: str, tab_id: str) -> StartResult:  # Open a tab and ask the first question
        _require_ids(user_id, tab_id)
        key = SessionKey(user_id, tab_id)
        existing = self._sessions.get(key)
        if existing is not None:
            log_event("session.replaced", existing.id, user_id=user_id, tab_id=tab_id)
            self.close_session(user_id, existing.id, tab_id)

        seed = self._merger.snapshot(user_id)
        profile = self._deps.store.load_profile_summary(user_id)
        session = self._sessions.create(new_session(user_id, tab_id, seed, profile))
        log_event(
            "session.start",
            session.id,
            user_id=user_id,
            tab_id=tab_id,
            seeded_skills=len(seed.skills),
            seeded_workflows=len(seed.workflows),
            context_version=seed.version,
        )
        with self._sessions.round(key):
            session = self._advance(session)
        return StartResult(
            session_id=session.id,
            tab_id=tab_id,
            question=session.pending_question or "",
            progress=progress_of(session),
            context_snapshot=ContextSnapshot(
                skills=list(seed.skills),
                workflows=list(seed.workflows),
                has_global_context=bool(seed.text),
                context_version=seed.version,
            ),
        )

    def submit_answer(self, user_id: str, session_id: str, tab_id: str, answer: str) -> AnswerResult:  # Run one round
        _require_ids(user_id, tab_id)
        text = (answer or "").strip()
        if not text:
            raise InvalidInput("answer must not be empty")
        key = SessionKey(user_id, tab_id)
        with self._sessions.round(key):
            session = self._sessions.require(key, session_id)
            if session.stage is not WorkflowNode.THRESHOLD_CHECK or not session.pending_question:
                raise SessionNotFound(f"Session {session_id} is not awaiting an answer")
            new_skills, new_workflows = append_exchange(session, text)
            log_event(
                "answer.received",
                session.id,
                user_id=user_id,
                tab_id=tab_id,
                exchanges=len(session.exchanges),
                new_skills=new_skills,
                new_workflows=new_workflows,
            )
            session = self._advance(session)

        if session.status is SessionStatus.COMPLETED:
            return CompletedAnswer(
                instances_generated=len(session.instances),
                instances=list(session.instances),
                threshold_metrics=session.metrics,
                session_summary=SessionSummary(
                    questions_answered=len(session.exchanges),
                    skills_identified=len(session.skills),
                    workflows_captured=len(session.workflows),
                    final_score=session.metrics.overall_score,
                ),
            )
        return PendingAnswer(
            next_question=session.pending_question or "",
            progress=progress_of(session),
            threshold_metrics=session.metrics,
            new_skills=new_skills,
            new_workflows=new_workflows,
        )

    def close_session(self, user_id: str, session_id: str, tab_id: str) -> None:  # Persist, merge and drop a tab
        _require_ids(user_id, tab_id)
        key = SessionKey(user_id, tab_id)
        with self._sessions.round(key):
            session = self._sessions.require(key, session_id)
            session.touch()
            self._persist_and_merge(session)
            self._sessions.remove(key, session_id)
        log_event("session.closed", session_id, user_id=user_id, tab_id=tab_id, exchanges=len(session.exchanges))

    def session_status(self, user_id: str, tab_id: Optional[str] = None) -> StatusResult:  # Split-screen view
        current: Optional[CurrentSessionView] = None
        if tab_id:
            session = self._sessions.get(SessionKey(user_id, tab_id))
            if session is not None:
                current = CurrentSessionView(
                    session_id=session.id,
                    tab_id=session.tab_id,
                    current_question=session.pending_question,
                    is_complete=session.generation_ready,
                    progress=progress_of(session),
                )
        overview = [
            SessionOverview(
                session_id=item.id,
                tab_id=item.tab_id,
                questions_answered=len(item.exchanges),
                is_complete=item.generation_ready,
            )
            for item in self._sessions.sessions_for(user_id)
        ]
        shared = self._merger.snapshot(user_id)
        return StatusResult(
            current_session=current,
            all_sessions=overview,
            shared_context=SharedContextView(
                skills=shared.skills,
                workflows=shared.workflows,
                context_length=len(shared.text),
                version=shared.version,
            ),
        )

    def wait_for_embeddings(self, timeout: Optional[float] = None) -> None:  # Block until dispatched jobs finish
        with self._jobs_lock:
            jobs = list(self._embedding_jobs)
        wait(jobs, timeout=timeout)

    @property
    def pending_embeddings(self) -> int:
        with self._jobs_lock:
            return len(self._embedding_jobs)

    def shutdown(self) -> None:
        pending = self.pending_embeddings
        if pending:
            logger.info("Waiting for %d embedding jobs before shutdown", pending)
        self._embedder.shutdown(wait=True)

    def _advance(self, session: InterviewSession) -> InterviewSession:  # Run the graph and settle the outcome
        result = run_round(self._graph, session)
        self._sessions.put(result)
        self._persist_and_merge(result)
        if result.stage.is_terminal:
            self._sessions.remove(key_of(result), result.id)

        if result.stage is WorkflowNode.ERROR:
            error = result.last_error or ErrorInfo(kind="workflow_error", message="Session ended in error")
            log_event(
                "session.error",
                result.id,
                level=logging.WARNING,
                user_id=result.user_id,
                tab_id=result.tab_id,
                error_kind=error.kind,
            )
            raise error_from(error.kind, error.message)
        if result.stage is WorkflowNode.COMPLETE:
            self._dispatch_embeddings(result)
            log_event(
                "session.complete",
                result.id,
                user_id=result.user_id,
                tab_id=result.tab_id,
                overall_score=round(result.metrics.overall_score, 2),
                instances=len(result.instances),
            )
        return result

    def _persist_and_merge(self, session: InterviewSession) -> None:
        self._deps.store.save_session(session)
        self._merger.merge(session)

    def _dispatch_embeddings(self, session: InterviewSession) -> None:
        job = self._embedder.dispatch(session.user_id, session.id, session.instances)
        if job is None:
            return
        with self._jobs_lock:
            self._embedding_jobs.add(job)
        job.add_done_callback(self._forget_job)

    def _forget_job(self, job: Future) -> None:
        with self._jobs_lock:
            self._embedding_jobs.discard(job)


def _require_ids(user_id: str, tab_id: str) -> None:
    if not user_id or not user_id.strip():
        raise InvalidInput("user_id is required")
    if not tab_id or not tab_id.strip():
        raise InvalidInput("tab_id is required")


__all__ = ["InterviewWorkflow", "WorkflowDeps"]

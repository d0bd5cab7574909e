"""Node implementations for the interview state machine.

Each node receives a private copy of the session, mutates it and returns the
node it wants to move to. Failures are raised as :class:`WorkflowError` and
turned into the ``ERROR`` transition by the graph wrapper.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict

from config import WorkflowSettings
from config.extraction import extract_topics
from observability import log_event
from services.compaction import needs_compaction
from services.instances import build_instances
from services.quota import quota_message
from services.threshold import apply_advisory, compute_metrics, in_advisory_band, should_generate

from .agents import ContextCompactor, InstanceWriter, InterviewerAgent, ThresholdAdvisor
from .errors import GenerationFailure, PersistenceFailure, QuotaExceeded, WorkflowError
from .models import InterviewSession, SessionStatus, WorkflowNode
from .ports import PersistentStore, QuotaService, TextGenerator

NodeFn = Callable[[InterviewSession], WorkflowNode]


class WorkflowNodes:
    """Bind collaborators to the four executable nodes."""

    def __init__(
        self,
        *,
        generator: TextGenerator,
        quota: QuotaService,
        store: PersistentStore,
        cfg: WorkflowSettings,
        sleep: Callable[[float], None],
    ) -> None:
        self._quota = quota
        self._store = store
        self._cfg = cfg
        self._interviewer = InterviewerAgent(generator, recent_exchanges=cfg.recent_exchanges)
        self._advisor = ThresholdAdvisor(generator)
        self._writer = InstanceWriter(
            generator,
            max_retries=cfg.generation_max_retries,
            backoff_s=cfg.generation_retry_backoff_s,
            sleep=sleep,
        )
        self._compactor = ContextCompactor(generator)

    def as_mapping(self) -> Dict[WorkflowNode, NodeFn]:
        return {
            WorkflowNode.INTERVIEW: self.interview,
            WorkflowNode.THRESHOLD_CHECK: self.threshold_check,
            WorkflowNode.GENERATE_INSTANCES: self.generate_instances,
            WorkflowNode.CONTEXT_UPDATE: self.context_update,
        }

    def interview(self, session: InterviewSession) -> WorkflowNode:
        session.pending_question = self._interviewer.invoke(session)
        return WorkflowNode.THRESHOLD_CHECK

    def threshold_check(self, session: InterviewSession) -> WorkflowNode:
        cfg = self._cfg
        metrics = compute_metrics(
            session.exchanges,
            skill_count=len(session.skills),
            workflow_count=len(session.workflows),
            context_length=len(session.context),
        )
        if cfg.advisory_mode != "off" and in_advisory_band(metrics, cfg):
            try:
                recommendation = self._advisor.invoke(session, metrics)
            except WorkflowError as exc:
                if cfg.advisory_mode == "override":
                    raise GenerationFailure(f"Threshold analysis failed: {exc.message}") from exc
                log_event(
                    "advisory.failed",
                    session.id,
                    level=logging.WARNING,
                    user_id=session.user_id,
                    error=exc.message,
                )
                recommendation = None
            metrics = apply_advisory(metrics, recommendation, cfg)
            log_event(
                "advisory.result",
                session.id,
                user_id=session.user_id,
                decision=recommendation or "none",
                mode=cfg.advisory_mode,
                overall_score=round(metrics.overall_score, 2),
                override=metrics.advisory_override,
            )
        session.metrics = metrics
        session.generation_ready = should_generate(metrics, len(session.exchanges), cfg)
        log_event(
            "threshold.evaluated",
            session.id,
            user_id=session.user_id,
            overall_score=round(metrics.overall_score, 2),
            exchanges=len(session.exchanges),
            decision="generate" if session.generation_ready else "continue",
        )
        return WorkflowNode.GENERATE_INSTANCES if session.generation_ready else WorkflowNode.INTERVIEW

    def generate_instances(self, session: InterviewSession) -> WorkflowNode:
        if session.generation_attempted:
            raise GenerationFailure("Instance generation already ran for this session")
        session.generation_attempted = True
        target = self._cfg.instances_per_session
        decision = self._quota.check_and_consume(session.user_id, target)
        if not decision.allowed:
            raise QuotaExceeded(quota_message(decision, target))

        topics = extract_topics(f"{item.question} {item.answer}" for item in session.exchanges)
        outcome = self._writer.write(session, count=target, key_topics=topics)
        candidates = outcome.raise_for_status()
        instances = build_instances(
            candidates,
            session_id=session.id,
            skills=session.skills,
            workflows=session.workflows,
            limit=target,
        )
        if instances:
            dataset_id = self._store.save_instances(session, instances)
        else:
            dataset_id = None
        session.instances = instances
        log_event(
            "generation.done" if instances else "generation.empty",
            session.id,
            level=logging.INFO if instances else logging.WARNING,
            user_id=session.user_id,
            candidates=len(candidates),
            kept=len(instances),
            attempts=outcome.attempts,
            dataset_id=dataset_id,
            quota_remaining=decision.remaining,
        )
        return WorkflowNode.CONTEXT_UPDATE

    def context_update(self, session: InterviewSession) -> WorkflowNode:
        cfg = self._cfg
        if needs_compaction(session.context, cfg.context_budget):
            result = self._compactor.compact(
                session.context,
                skills=session.skills,
                workflows=session.workflows,
                ratio=cfg.compaction_ratio,
            )
            session.context = result.text
            log_event(
                "context.compacted",
                session.id,
                user_id=session.user_id,
                original_length=result.original_length,
                compacted_length=result.compacted_length,
                ratio=round(result.compression_ratio, 3),
                skills_preserved=len(session.skills),
                workflows_preserved=len(session.workflows),
            )
            try:
                self._store.record_compaction(
                    user_id=session.user_id,
                    session_id=session.id,
                    original_length=result.original_length,
                    compacted_length=result.compacted_length,
                    skills_preserved=len(session.skills),
                    workflows_preserved=len(session.workflows),
                )
            except PersistenceFailure as exc:
                log_event("audit.failed", session.id, level=logging.WARNING, table="context_compactions", error=exc.message)
        session.status = SessionStatus.COMPLETED
        session.touch()
        return WorkflowNode.COMPLETE


__all__ = ["NodeFn", "WorkflowNodes"]

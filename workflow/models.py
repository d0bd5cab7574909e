from __future__ import annotations  # Pydantic models for interview workflow state

import datetime as dt
from enum import Enum
from typing import Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SessionStatus(str, Enum):  # Lifecycle status of an interview session
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


class WorkflowNode(str, Enum):  # Nodes of the interview state machine
    INTERVIEW = "interview"
    THRESHOLD_CHECK = "threshold_check"
    GENERATE_INSTANCES = "generate_instances"
    CONTEXT_UPDATE = "context_update"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowNode.COMPLETE, WorkflowNode.ERROR)


AdvisoryRecommendation = Literal["ready", "continue"]


class Exchange(BaseModel):  # One answered question
    question: str
    answer: str
    timestamp: dt.datetime = Field(default_factory=_utc_now)
    skills_extracted: List[str] = Field(default_factory=list)
    workflows_identified: List[str] = Field(default_factory=list)


class ThresholdMetrics(BaseModel):  # Saturation sub-scores and their total
    conversation_depth: float = Field(default=0.0, ge=0.0, le=30.0)
    skill_diversity: float = Field(default=0.0, ge=0.0, le=25.0)
    workflow_complexity: float = Field(default=0.0, ge=0.0, le=25.0)
    context_richness: float = Field(default=0.0, ge=0.0, le=20.0)
    overall_score: float = Field(default=0.0, ge=0.0, le=100.0)
    advisory_recommendation: Optional[AdvisoryRecommendation] = None
    advisory_override: bool = False

    @property
    def component_total(self) -> float:
        return self.conversation_depth + self.skill_diversity + self.workflow_complexity + self.context_richness


class InstanceProvenance(BaseModel):  # Links an instance back to its session and entities
    model_config = ConfigDict(frozen=True)

    session_id: str
    skills_referenced: Tuple[str, ...] = ()
    workflows_referenced: Tuple[str, ...] = ()


class GeneratedInstance(BaseModel):  # Immutable question/answer training record
    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    answer: str
    tags: Tuple[str, ...]
    category: Optional[str] = None
    difficulty: Optional[str] = None
    quality_score: float = Field(ge=0.0, le=100.0)
    provenance: InstanceProvenance
    generated_at: dt.datetime = Field(default_factory=_utc_now)


class ErrorInfo(BaseModel):  # Last error recorded on a session
    kind: str
    message: str


class InterviewSession(BaseModel):  # Per-tab interview state
    id: str
    user_id: str
    tab_id: str
    exchanges: List[Exchange] = Field(default_factory=list)
    pending_question: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    metrics: ThresholdMetrics = Field(default_factory=ThresholdMetrics)
    generation_ready: bool = False
    generation_attempted: bool = False
    instances: List[GeneratedInstance] = Field(default_factory=list)
    context: str = ""
    profile_summary: str = ""
    status: SessionStatus = SessionStatus.ACTIVE
    stage: WorkflowNode = WorkflowNode.INTERVIEW
    last_error: Optional[ErrorInfo] = None
    created_at: dt.datetime = Field(default_factory=_utc_now)
    updated_at: dt.datetime = Field(default_factory=_utc_now)

    def add_skills(self, items: Iterable[str]) -> List[str]:  # Ordered union; returns the newly added skills
        return _ordered_union(self.skills, items)

    def add_workflows(self, items: Iterable[str]) -> List[str]:  # Ordered union; returns the newly added workflows
        return _ordered_union(self.workflows, items)

    def touch(self) -> None:
        self.updated_at = _utc_now()


class GlobalContext(BaseModel):  # Shared per-user knowledge snapshot
    user_id: str = Field(min_length=1)
    text: str = ""
    skills: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    last_session_id: Optional[str] = None
    version: int = 0
    updated_at: dt.datetime = Field(default_factory=_utc_now)


class SessionProgress(BaseModel):  # Progress counters reported after every round
    questions_answered: int
    skills_identified: int
    workflows_captured: int
    threshold_score: float


class ContextSnapshot(BaseModel):  # What a new session inherited from the shared context
    skills: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    has_global_context: bool = False
    context_version: int = 0


class SessionSummary(BaseModel):  # Final counters for a completed session
    questions_answered: int
    skills_identified: int
    workflows_captured: int
    final_score: float


class StartResult(BaseModel):  # Outcome of opening a session
    session_id: str
    tab_id: str
    question: str
    progress: SessionProgress
    context_snapshot: ContextSnapshot


class PendingAnswer(BaseModel):  # Round ended with a new question ready
    is_complete: Literal[False] = False
    next_question: str
    progress: SessionProgress
    threshold_metrics: ThresholdMetrics
    new_skills: List[str] = Field(default_factory=list)
    new_workflows: List[str] = Field(default_factory=list)


class CompletedAnswer(BaseModel):  # Round ended with the session complete
    is_complete: Literal[True] = True
    instances_generated: int
    instances: List[GeneratedInstance] = Field(default_factory=list)
    threshold_metrics: ThresholdMetrics
    session_summary: SessionSummary


AnswerResult = Union[PendingAnswer, CompletedAnswer]


class SessionOverview(BaseModel):  # Compact per-tab row for the split-screen view
    session_id: str
    tab_id: str
    questions_answered: int
    is_complete: bool


class CurrentSessionView(BaseModel):
    session_id: str
    tab_id: str
    current_question: Optional[str]
    is_complete: bool
    progress: SessionProgress


class SharedContextView(BaseModel):
    skills: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    context_length: int = 0
    version: int = 0


class StatusResult(BaseModel):  # Split-screen status for one user
    current_session: Optional[CurrentSessionView] = None
    all_sessions: List[SessionOverview] = Field(default_factory=list)
    shared_context: SharedContextView = Field(default_factory=SharedContextView)


def _ordered_union(target: List[str], items: Iterable[str]) -> List[str]:
    seen = {item.lower() for item in target}
    added: List[str] = []
    for item in items:
        value = (item or "").strip()
        if not value or value.lower() in seen:
            continue
        seen.add(value.lower())
        target.append(value)
        added.append(value)
    return added


def ordered_union(left: Iterable[str], right: Iterable[str]) -> List[str]:  # Union preserving first-seen order
    merged: List[str] = []
    _ordered_union(merged, left)
    _ordered_union(merged, right)
    return merged


def progress_of(session: InterviewSession) -> SessionProgress:
    return SessionProgress(
        questions_answered=len(session.exchanges),
        skills_identified=len(session.skills),
        workflows_captured=len(session.workflows),
        threshold_score=session.metrics.overall_score,
    )


__all__ = [
    "AdvisoryRecommendation",
    "AnswerResult",
    "CompletedAnswer",
    "ContextSnapshot",
    "CurrentSessionView",
    "ErrorInfo",
    "Exchange",
    "GeneratedInstance",
    "GlobalContext",
    "InstanceProvenance",
    "InterviewSession",
    "PendingAnswer",
    "SessionOverview",
    "SessionProgress",
    "SessionStatus",
    "SessionSummary",
    "SharedContextView",
    "StartResult",
    "StatusResult",
    "ThresholdMetrics",
    "WorkflowNode",
    "ordered_union",
    "progress_of",
]

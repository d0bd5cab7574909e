"""Adaptive knowledge-interview workflow.

The engine lives in :mod:`workflow.orchestrator`; this package root only
exposes the shared data model and error taxonomy so lower layers can import
them without pulling in the graph.
"""
from .errors import (
    AdmissionRejected,
    GenerationFailure,
    InvalidInput,
    ParseFailure,
    PersistenceFailure,
    QuotaExceeded,
    SessionNotFound,
    WorkflowError,
)
from .models import (
    AnswerResult,
    CompletedAnswer,
    Exchange,
    GeneratedInstance,
    GlobalContext,
    InterviewSession,
    PendingAnswer,
    SessionStatus,
    StartResult,
    StatusResult,
    ThresholdMetrics,
    WorkflowNode,
)

__all__ = [
    "AdmissionRejected",
    "AnswerResult",
    "CompletedAnswer",
    "Exchange",
    "GeneratedInstance",
    "GenerationFailure",
    "GlobalContext",
    "InterviewSession",
    "InvalidInput",
    "ParseFailure",
    "PendingAnswer",
    "PersistenceFailure",
    "QuotaExceeded",
    "SessionNotFound",
    "SessionStatus",
    "StartResult",
    "StatusResult",
    "ThresholdMetrics",
    "WorkflowError",
    "WorkflowNode",
]

from __future__ import annotations  # Workflow error taxonomy


class WorkflowError(RuntimeError):  # Base error carrying a stable kind
    kind = "workflow_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class GenerationFailure(WorkflowError):  # Text-generation provider call failed
    kind = "generation_failure"


class ParseFailure(WorkflowError):  # Provider output was not well-formed
    kind = "parse_failure"


class QuotaExceeded(WorkflowError):  # Quota collaborator refused the request
    kind = "quota_exceeded"


class AdmissionRejected(WorkflowError):  # Per-user session cap reached
    kind = "admission_rejected"


class PersistenceFailure(WorkflowError):  # Store read or write failed
    kind = "persistence_failure"


class SessionNotFound(WorkflowError):  # No active session for the (user, tab) pair
    kind = "session_not_found"


class InvalidInput(WorkflowError):  # Caller supplied a blank id or answer
    kind = "invalid_input"


ERROR_KINDS = {
    cls.kind: cls
    for cls in (
        GenerationFailure,
        ParseFailure,
        QuotaExceeded,
        AdmissionRejected,
        PersistenceFailure,
        SessionNotFound,
        InvalidInput,
    )
}


def error_from(kind: str, message: str) -> WorkflowError:  # Rebuild a typed error from its recorded kind
    return ERROR_KINDS.get(kind, WorkflowError)(message)


__all__ = [
    "AdmissionRejected",
    "ERROR_KINDS",
    "GenerationFailure",
    "InvalidInput",
    "ParseFailure",
    "PersistenceFailure",
    "QuotaExceeded",
    "SessionNotFound",
    "WorkflowError",
    "error_from",
]

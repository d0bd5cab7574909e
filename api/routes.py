"""FastAPI routes for knowledge interview sessions."""
from __future__ import annotations

from typing import Dict, NoReturn, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.runtime import get_workflow
from api.schemas import AckResp, AnswerReq, CloseReq, StartReq
from workflow.errors import (
    AdmissionRejected,
    GenerationFailure,
    InvalidInput,
    ParseFailure,
    PersistenceFailure,
    QuotaExceeded,
    SessionNotFound,
    WorkflowError,
)
from workflow.models import AnswerResult, StartResult, StatusResult
from workflow.orchestrator import InterviewWorkflow


router = APIRouter(prefix="/api/knowledge-interviews")

STATUS_BY_ERROR: Dict[type, int] = {
    AdmissionRejected: 409,
    QuotaExceeded: 429,
    SessionNotFound: 404,
    InvalidInput: 422,
    ParseFailure: 502,
    GenerationFailure: 502,
    PersistenceFailure: 500,
}


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail={"kind": "unauthorized", "message": "Unauthorized"})
    return x_user_id.strip()


def _raise_http(exc: WorkflowError) -> NoReturn:
    status = STATUS_BY_ERROR.get(type(exc), 500)
    raise HTTPException(status_code=status, detail=exc.as_dict()) from exc


@router.post("/start", response_model=StartResult)
def start(
    req: StartReq,
    user_id: str = Depends(current_user),
    workflow: InterviewWorkflow = Depends(get_workflow),
) -> StartResult:
    try:
        return workflow.start_session(user_id, req.tab_id)
    except WorkflowError as exc:
        _raise_http(exc)


@router.post("/answer", response_model=AnswerResult)
def answer(
    req: AnswerReq,
    user_id: str = Depends(current_user),
    workflow: InterviewWorkflow = Depends(get_workflow),
) -> AnswerResult:
    try:
        return workflow.submit_answer(user_id, req.session_id, req.tab_id, req.answer)
    except WorkflowError as exc:
        _raise_http(exc)


@router.post("/close", response_model=AckResp)
def close(
    req: CloseReq,
    user_id: str = Depends(current_user),
    workflow: InterviewWorkflow = Depends(get_workflow),
) -> AckResp:
    try:
        workflow.close_session(user_id, req.session_id, req.tab_id)
    except WorkflowError as exc:
        _raise_http(exc)
    return AckResp()


@router.get("/status", response_model=StatusResult)
def status(
    tab_id: Optional[str] = None,
    user_id: str = Depends(current_user),
    workflow: InterviewWorkflow = Depends(get_workflow),
) -> StatusResult:
    try:
        return workflow.session_status(user_id, tab_id)
    except WorkflowError as exc:
        _raise_http(exc)

"""In-memory registry of active interview sessions."""
from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from config.extraction import extract_skills, extract_workflows
from config.settings import settings
from workflow.errors import AdmissionRejected, SessionNotFound
from workflow.models import Exchange, GlobalContext, InterviewSession


@dataclass(frozen=True)
class SessionKey:
    """Registry key for one browser tab of one user."""

    user_id: str
    tab_id: str


def key_of(session: InterviewSession) -> SessionKey:
    return SessionKey(session.user_id, session.tab_id)


def new_session(user_id: str, tab_id: str, seed: GlobalContext, profile_summary: str) -> InterviewSession:
    """Create a session seeded from a snapshot of the user's shared context."""

    return InterviewSession(
        id=str(uuid.uuid4()),
        user_id=user_id,
        tab_id=tab_id,
        skills=list(seed.skills),
        workflows=list(seed.workflows),
        context=seed.text,
        profile_summary=profile_summary,
    )


def append_exchange(session: InterviewSession, answer: str) -> Tuple[List[str], List[str]]:
    """Record ``answer`` against the pending question.

    Returns the skills and workflows that were new to the session.
    """

    if not session.pending_question:
        raise ValueError("Session has no pending question to answer")
    question = session.pending_question
    exchange = Exchange(
        question=question,
        answer=answer,
        skills_extracted=extract_skills(answer),
        workflows_identified=extract_workflows(answer),
    )
    session.exchanges.append(exchange)
    new_skills = session.add_skills(exchange.skills_extracted)
    new_workflows = session.add_workflows(exchange.workflows_identified)
    session.context = f"{session.context}\n\nQ: {question}\nA: {answer}" if session.context else f"Q: {question}\nA: {answer}"
    session.pending_question = None
    session.touch()
    return new_skills, new_workflows


class SessionStore:
    """Registry keyed by :class:`SessionKey` with a per-user admission cap.

    Callers only ever receive copies; state changes are written back with
    :meth:`put`. Each session also owns a round lock so a tab can run one
    round at a time.
    """

    def __init__(self, max_per_user: Optional[int] = None) -> None:
        self._max_per_user = max_per_user or settings.MAX_SESSIONS_PER_USER
        self._lock = threading.Lock()
        self._sessions: Dict[SessionKey, InterviewSession] = {}
        self._round_locks: Dict[SessionKey, threading.Lock] = {}

    @property
    def max_per_user(self) -> int:
        return self._max_per_user

    def create(self, session: InterviewSession) -> InterviewSession:
        key = key_of(session)
        with self._lock:
            if key in self._sessions:
                raise AdmissionRejected(f"Tab {key.tab_id} already has an active session")
            active = sum(1 for item in self._sessions if item.user_id == key.user_id)
            if active >= self._max_per_user:
                raise AdmissionRejected(
                    f"Maximum {self._max_per_user} concurrent interview sessions allowed per user"
                )
            self._sessions[key] = session.model_copy(deep=True)
            self._round_locks[key] = threading.Lock()
        return session.model_copy(deep=True)

    def get(self, key: SessionKey) -> Optional[InterviewSession]:
        with self._lock:
            session = self._sessions.get(key)
            return session.model_copy(deep=True) if session is not None else None

    def require(self, key: SessionKey, session_id: str) -> InterviewSession:
        session = self.get(key)
        if session is None or session.id != session_id:
            raise SessionNotFound(f"Session {session_id} not found for tab {key.tab_id}")
        return session

    def put(self, session: InterviewSession) -> None:
        key = key_of(session)
        with self._lock:
            current = self._sessions.get(key)
            if current is None or current.id != session.id:
                raise SessionNotFound(f"Session {session.id} is no longer registered")
            self._sessions[key] = session.model_copy(deep=True)

    def remove(self, key: SessionKey, session_id: Optional[str] = None) -> Optional[InterviewSession]:
        with self._lock:
            current = self._sessions.get(key)
            if current is None or (session_id is not None and current.id != session_id):
                return None
            del self._sessions[key]
            self._round_locks.pop(key, None)
            return current

    def sessions_for(self, user_id: str) -> List[InterviewSession]:
        with self._lock:
            return [
                session.model_copy(deep=True)
                for key, session in self._sessions.items()
                if key.user_id == user_id
            ]

    def count_for(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for key in self._sessions if key.user_id == user_id)

    @contextmanager
    def round(self, key: SessionKey) -> Iterator[None]:
        """Hold the round lock for ``key`` for the duration of the block."""

        with self._lock:
            lock = self._round_locks.get(key)
        if lock is None:
            raise SessionNotFound(f"No active session for tab {key.tab_id}")
        with lock:
            yield


__all__ = ["SessionKey", "SessionStore", "append_exchange", "key_of", "new_session"]

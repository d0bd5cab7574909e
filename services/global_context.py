"""Single-writer merging of session state into each user's shared context."""
from __future__ import annotations

import logging
import threading
import weakref

from workflow.models import GlobalContext, InterviewSession, SessionStatus, ordered_union
from workflow.ports import PersistentStore

logger = logging.getLogger(__name__)


def merge_context(current: GlobalContext, session: InterviewSession) -> GlobalContext:
    """Fold ``session`` into ``current``.

    The narrative text is last-write-wins; skills and workflows are an
    ordered union, so they never shrink. A finished session becomes the
    context's most recent session.
    """

    finished = session.status is not SessionStatus.ACTIVE
    return GlobalContext(
        user_id=current.user_id,
        text=session.context,
        skills=ordered_union(current.skills, session.skills),
        workflows=ordered_union(current.workflows, session.workflows),
        last_session_id=session.id if finished else current.last_session_id,
        version=current.version + 1,
    )


class GlobalContextMerger:
    """Serialize merges per user; the store is the only copy of each context."""

    def __init__(self, store: PersistentStore) -> None:
        self._store = store
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> threading.Lock:
        # Entries disappear once no caller holds the lock.
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def _load(self, user_id: str) -> GlobalContext:
        stored = self._store.load_global_context(user_id)
        return stored if stored is not None else GlobalContext(user_id=user_id)

    def snapshot(self, user_id: str) -> GlobalContext:
        """Return the user's current context as stored, or an empty one."""

        if not user_id:
            raise ValueError("user_id is required")
        with self._lock_for(user_id):
            return self._load(user_id)

    def merge(self, session: InterviewSession) -> GlobalContext:
        """Merge and persist ``session`` into its owner's context; return the result."""

        with self._lock_for(session.user_id):
            merged = merge_context(self._load(session.user_id), session)
            self._store.save_global_context(merged)
        logger.info(
            "Global context merged user=%s session=%s version=%d skills=%d workflows=%d",
            session.user_id,
            session.id,
            merged.version,
            len(merged.skills),
            len(merged.workflows),
        )
        return merged


__all__ = ["GlobalContextMerger", "merge_context"]

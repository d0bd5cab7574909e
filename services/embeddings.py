"""Vector indexing of generated instances as an independent background task."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

import httpx

from config.settings import settings
from observability import log_event
from workflow.models import GeneratedInstance
from workflow.ports import EmbeddingIndex

logger = logging.getLogger(__name__)


class NullEmbeddingIndex:  # Used when no indexing service is configured
    def embed_batch(self, instances: Sequence[GeneratedInstance]) -> None:
        logger.debug("Embedding skipped for %d instances; no index configured", len(instances))


class HttpEmbeddingIndex:
    """Submit instances to an HTTP indexing endpoint as one JSON batch."""

    def __init__(self, url: str, *, timeout_s: float = 10.0, client: Optional[httpx.Client] = None) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._client = client

    def embed_batch(self, instances: Sequence[GeneratedInstance]) -> None:
        if not instances:
            return
        payload = {"instances": [_embedding_record(item) for item in instances]}
        if self._client is not None:
            response = self._client.post(self._url, json=payload, timeout=self._timeout_s)
        else:
            with httpx.Client(timeout=self._timeout_s) as client:
                response = client.post(self._url, json=payload)
        response.raise_for_status()


def _embedding_record(item: GeneratedInstance) -> Dict[str, Any]:
    return {
        "id": item.id,
        "question": item.question,
        "answer": item.answer,
        "tags": list(item.tags),
        "category": item.category or "general",
        "difficulty": item.difficulty or "intermediate",
        "quality_score": item.quality_score,
        "session_id": item.provenance.session_id,
    }


def default_embedding_index() -> EmbeddingIndex:
    if settings.EMBEDDINGS_URL:
        return HttpEmbeddingIndex(settings.EMBEDDINGS_URL, timeout_s=settings.EMBEDDINGS_TIMEOUT_S)
    return NullEmbeddingIndex()


class EmbeddingDispatcher:
    """Run ``embed_batch`` off the request thread; failures are logged, never raised."""

    def __init__(self, index: EmbeddingIndex, *, max_workers: int = 2) -> None:
        self._index = index
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="embed")

    def dispatch(self, user_id: str, session_id: str, instances: Sequence[GeneratedInstance]) -> Optional[Future]:
        if not instances:
            return None
        batch: List[GeneratedInstance] = list(instances)
        return self._executor.submit(self._run, user_id, session_id, batch)

    def _run(self, user_id: str, session_id: str, batch: List[GeneratedInstance]) -> bool:
        try:
            self._index.embed_batch(batch)
        except Exception as exc:  # noqa: BLE001
            log_event(
                "embedding.failed",
                session_id,
                level=logging.WARNING,
                user_id=user_id,
                count=len(batch),
                error=str(exc),
            )
            return False
        log_event("embedding.done", session_id, user_id=user_id, count=len(batch))
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


__all__ = [
    "EmbeddingDispatcher",
    "HttpEmbeddingIndex",
    "NullEmbeddingIndex",
    "default_embedding_index",
]

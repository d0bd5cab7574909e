"""Process-wide workflow instance used by the HTTP routes."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from config import (
    EMBEDDING_INDEX_KEY,
    QUOTA_SERVICE_KEY,
    TEXT_GENERATOR_KEY,
    TEXT_GENERATOR_ROUTE,
    find_model,
    load_config_or_default,
    resolve_route,
)
from config.settings import settings
from llm_gateway import GatewayTextGenerator
from services.embeddings import default_embedding_index
from services.quota import SqliteQuotaService
from storage.migrate import migrate
from storage.store import SqliteStore
from workflow.orchestrator import InterviewWorkflow, WorkflowDeps

logger = logging.getLogger(__name__)

_workflow: Optional[InterviewWorkflow] = None
_lock = threading.Lock()


def build_workflow(config_path: Optional[str] = None) -> InterviewWorkflow:
    """Assemble the engine from registry bindings, falling back to configured defaults."""

    cfg = load_config_or_default(Path(config_path or settings.APP_CONFIG_PATH))
    generator = find_model(TEXT_GENERATOR_KEY)
    if generator is None:
        try:
            route = resolve_route(cfg, TEXT_GENERATOR_ROUTE)
        except KeyError as exc:
            raise RuntimeError(f"No text generator bound and no route configured: {exc}") from exc
        generator = GatewayTextGenerator(route)
    quota = find_model(QUOTA_SERVICE_KEY) or SqliteQuotaService()
    embeddings = find_model(EMBEDDING_INDEX_KEY) or default_embedding_index()
    migrate(settings.DB_PATH)
    logger.info("Interview workflow ready db=%s advisory_mode=%s", settings.DB_PATH, cfg.workflow.advisory_mode)
    return InterviewWorkflow(
        WorkflowDeps(
            generator=generator,
            quota=quota,
            store=SqliteStore(),
            embeddings=embeddings,
            settings=cfg.workflow,
        ),
        max_sessions_per_user=settings.MAX_SESSIONS_PER_USER,
    )


def get_workflow() -> InterviewWorkflow:
    global _workflow
    with _lock:
        if _workflow is None:
            _workflow = build_workflow()
        return _workflow


def reset_workflow() -> None:
    """Drop the cached engine so the next request rebuilds it."""

    global _workflow
    with _lock:
        if _workflow is not None:
            _workflow.shutdown()
        _workflow = None

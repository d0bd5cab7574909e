"""Configuration package for the knowledge interview engine."""
from .app import (
    TEXT_GENERATOR_ROUTE,
    AdvisoryMode,
    AppConfig,
    LlmRoute,
    WorkflowSettings,
    load_config,
    load_config_or_default,
    resolve_route,
)
from .registry import (
    EMBEDDING_INDEX_KEY,
    QUOTA_SERVICE_KEY,
    TEXT_GENERATOR_KEY,
    bind_model,
    find_model,
    get_model,
    unbind_model,
)
from .settings import Settings, settings

__all__ = [
    "AdvisoryMode",
    "AppConfig",
    "LlmRoute",
    "TEXT_GENERATOR_ROUTE",
    "WorkflowSettings",
    "load_config",
    "load_config_or_default",
    "resolve_route",
    "EMBEDDING_INDEX_KEY",
    "QUOTA_SERVICE_KEY",
    "TEXT_GENERATOR_KEY",
    "bind_model",
    "find_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]

from __future__ import annotations  # Configuration schema for LLM routing and workflow tuning

from pathlib import Path
from typing import Dict, Literal

from pydantic import BaseModel, Field, model_validator

AdvisoryMode = Literal["off", "log_only", "override"]

TEXT_GENERATOR_ROUTE = "workflow.text_generator"  # Registry entry naming the route for all workflow prompts


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class WorkflowSettings(BaseModel):  # Interview workflow thresholds and budgets
    saturation_score: float = Field(default=75.0, ge=0.0, le=100.0)
    max_exchanges: int = Field(default=20, ge=1)
    advisory_min_score: float = Field(default=60.0, ge=0.0, le=100.0)
    advisory_max_score: float = Field(default=80.0, ge=0.0, le=100.0)
    advisory_mode: AdvisoryMode = "log_only"
    advisory_override_score: float = Field(default=85.0, ge=0.0, le=100.0)
    instances_per_session: int = Field(default=10, ge=1)
    context_budget: int = Field(default=12000, ge=1)
    compaction_ratio: float = Field(default=0.7, gt=0.0, lt=1.0)
    recent_exchanges: int = Field(default=3, ge=1)
    generation_max_retries: int = Field(default=2, ge=0)
    generation_retry_backoff_s: float = Field(default=0.5, ge=0.0)

    @model_validator(mode="after")
    def _check_band(self) -> "WorkflowSettings":  # Advisory band must be ordered
        if self.advisory_min_score > self.advisory_max_score:
            raise ValueError("advisory_min_score must not exceed advisory_max_score")
        return self


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute] = Field(default_factory=dict)
    registry: Dict[str, str] = Field(default_factory=dict)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def load_config_or_default(path: Path) -> AppConfig:  # Fall back to defaults when no config file exists
    if not path.exists():
        return AppConfig()
    return load_config(path)


def resolve_route(cfg: AppConfig, target: str) -> LlmRoute:  # Look up the route bound to a registry target
    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.llm_routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.llm_routes[route_id]

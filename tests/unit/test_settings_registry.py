from pathlib import Path

import pytest
from pydantic import ValidationError

from api.runtime import build_workflow
from config import TEXT_GENERATOR_ROUTE, AppConfig, load_config, load_config_or_default, resolve_route
from config.registry import QUOTA_SERVICE_KEY, TEXT_GENERATOR_KEY, bind_model, find_model, get_model, unbind_model
from config.settings import Settings

ROOT = Path(__file__).resolve().parents[2]


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.MAX_SESSIONS_PER_USER == 3
    assert settings.MIN_ANSWER_CHARS == 15


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(TEXT_GENERATOR_KEY, marker)
    assert get_model(TEXT_GENERATOR_KEY) is marker
    unbind_model(TEXT_GENERATOR_KEY)
    assert find_model(TEXT_GENERATOR_KEY) is None
    with pytest.raises(KeyError):
        get_model(TEXT_GENERATOR_KEY)


def test_shipped_config_resolves_text_route():
    cfg = load_config(ROOT / "app_config.json")
    route = resolve_route(cfg, TEXT_GENERATOR_ROUTE)
    assert route.model == "gpt-4o"
    assert cfg.workflow.saturation_score == 75
    assert cfg.workflow.advisory_mode == "log_only"


def test_missing_config_falls_back_to_defaults(tmp_path):
    cfg = load_config_or_default(tmp_path / "absent.json")
    assert cfg.workflow.max_exchanges == 20
    with pytest.raises(KeyError):
        resolve_route(cfg, TEXT_GENERATOR_ROUTE)


def test_invalid_workflow_settings_are_rejected():
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"workflow": {"advisory_mode": "always"}})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"workflow": {"compaction_ratio": 1.5}})


def test_build_workflow_prefers_registry_bindings(generator, quota, tmp_path):
    bind_model(TEXT_GENERATOR_KEY, generator)
    bind_model(QUOTA_SERVICE_KEY, quota)
    workflow = build_workflow(str(tmp_path / "absent.json"))
    try:
        start = workflow.start_session("u1", "t1")
        assert start.question.startswith("Question 1")
    finally:
        workflow.shutdown()


def test_build_workflow_without_generator_fails(tmp_path):
    with pytest.raises(RuntimeError, match="No text generator"):
        build_workflow(str(tmp_path / "absent.json"))

import logging

from docgen.core.config import DEFAULT_CORS_ORIGINS
from docgen.core.config import Settings
from docgen.core.logging import LOGGING_CONFIG
from docgen.core.logging import build_logging_config
from docgen.core.logging import setup_logging
from docgen.models.pipeline_models import LLMProvider
from docgen.models.pipeline_models import PromptConfig


def test_config_defaults(monkeypatch):
    monkeypatch.delenv("DEFAULT_PROVIDER", raising=False)
    monkeypatch.delenv("INCLUDE_PROJECT_FACTS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.default_provider == "openrouter"
    assert settings.include_project_facts is True
    assert settings.LLM_READ_TIMEOUT == 180.0
    assert settings.cors_allowed_origins == DEFAULT_CORS_ORIGINS


def test_cors_origins_from_comma_list():
    settings = Settings(_env_file=None, cors_allowed_origins="https://a.example, https://b.example")
    assert settings.cors_allowed_origins == ["https://a.example", "https://b.example"]


def test_prompt_config_defaults_follow_settings(monkeypatch):
    from docgen.core.config import settings

    monkeypatch.setattr(settings, "default_provider", "gemini")
    monkeypatch.setattr(settings, "model_id", "gemini-2.5-flash")
    config = PromptConfig()
    assert config.provider is LLMProvider.GEMINI
    assert config.model_name == "gemini-2.5-flash"


def test_logging_config_level():
    config = build_logging_config("info")
    assert config["handlers"]["docgen"]["level"] == "INFO"
    assert config["loggers"]["docgen.services"]["level"] == "INFO"
    assert config["loggers"]["uvicorn.access"]["level"] == "INFO"


def test_logging_config_copy_leaves_module_config_untouched():
    config = build_logging_config("warning")
    assert config["handlers"]["default"]["stream"] == "ext://sys.stderr"
    assert LOGGING_CONFIG["loggers"]["docgen"]["level"] == "DEBUG"


def test_setup_logging_applies_level():
    setup_logging("warning")
    try:
        assert logging.getLogger("docgen.services").level == logging.WARNING
    finally:
        setup_logging("debug")

import os

import pytest

from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.exceptions import ConfigurationError

ENV_KEYS = (
    "AI_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "RATE_LIMIT_DELAY",
    "AI_MAX_ATTEMPTS",
    "CHUNK_DURATION_SECONDS",
    "STYLE_CONFIDENCE_THRESHOLD",
    "CLONED_NOTE_THRESHOLD",
    "CLONED_NOTE_LOOKBACK",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # load_dotenv writes into os.environ; work on a copy so nothing leaks
    environ = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    monkeypatch.setattr(os, "environ", environ)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults_are_valid():
    config = EngineConfiguration()
    config.validate()
    assert config.ai_provider == "mock"
    assert config.chunk_duration_seconds == 5
    assert config.style_confidence_threshold == 0.5
    assert config.preview_confidence_threshold == 0.3
    assert config.cloned_note_threshold == 0.85
    assert config.max_attempts == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"ai_provider": "anthropic"},
        {"ai_provider": "openai"},
        {"ai_provider": "gemini"},
        {"style_confidence_threshold": 1.5},
        {"cloned_note_threshold": -0.1},
        {"chunk_duration_seconds": 0},
        {"max_attempts": 0},
        {"cloned_note_lookback": 0},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ConfigurationError):
        EngineConfiguration(**overrides).validate()


def test_from_environment(clean_env):
    clean_env.setenv("AI_PROVIDER", "OpenAI")
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_env.setenv("RATE_LIMIT_DELAY", "0")
    clean_env.setenv("LOG_LEVEL", "debug")

    config = EngineConfiguration.from_environment()

    assert config.ai_provider == "openai"
    assert config.openai_api_key == "sk-test"
    assert config.rate_limit_delay == 0.0
    assert config.log_level == "DEBUG"


def test_from_environment_reads_dotenv(clean_env, tmp_path):
    (tmp_path / ".env").write_text("AI_PROVIDER=gemini\nGOOGLE_API_KEY=g-key\n")

    config = EngineConfiguration.from_environment()

    assert config.ai_provider == "gemini"
    assert config.gemini_api_key == "g-key"


def test_from_environment_explicit_file(clean_env, tmp_path):
    env_file = tmp_path / "settings.env"
    env_file.write_text("CLONED_NOTE_LOOKBACK=3\n")

    assert EngineConfiguration.from_environment(env_file=str(env_file)).cloned_note_lookback == 3


def test_from_environment_errors(clean_env):
    clean_env.setenv("CHUNK_DURATION_SECONDS", "five")
    with pytest.raises(ConfigurationError):
        EngineConfiguration.from_environment()

    clean_env.setenv("CHUNK_DURATION_SECONDS", "5")
    clean_env.setenv("CLONED_NOTE_THRESHOLD", "2")
    with pytest.raises(ConfigurationError):
        EngineConfiguration.from_environment()
    assert EngineConfiguration.from_environment(validate_on_load=False).cloned_note_threshold == 2.0


def test_to_dict_masks_keys():
    data = EngineConfiguration(openai_api_key="sk-secret").to_dict()
    assert data["openai_api_key"] == "***"
    assert data["gemini_api_key"] is None
    assert "sk-secret" not in str(data)

import pytest

from llm_chat.app.config import DEFAULT_MODEL, load_settings

ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_KEY",
    "LLM_CHAT_MODEL",
    "LLM_CHAT_DATABASE_URL",
    "LLM_CHAT_DEFAULT_SESSION",
    "LLM_CHAT_LOG_LEVEL",
    "LLM_CHAT_LOGS_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_defaults(tmp_path):
    settings = load_settings()

    assert settings.model == DEFAULT_MODEL
    assert settings.default_session == "default"
    assert settings.log_level == "WARNING"
    assert settings.openai_api_key is None
    assert settings.database_url == f"sqlite:///{tmp_path / '.llm-chat' / 'llm-chat.db'}"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abc")
    monkeypatch.setenv("LLM_CHAT_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("LLM_CHAT_DATABASE_URL", "sqlite:///other.db")
    monkeypatch.setenv("LLM_CHAT_DEFAULT_SESSION", "scratch")
    monkeypatch.setenv("LLM_CHAT_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.openai_api_key == "sk-abc"
    assert settings.model == "gpt-4o-mini"
    assert settings.database_url == "sqlite:///other.db"
    assert settings.default_session == "scratch"
    assert settings.log_level == "DEBUG"


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LLM_CHAT_LOG_LEVEL", "LOUD")

    with pytest.raises(ValueError, match="LOG_LEVEL"):
        load_settings()


def test_blank_default_session_is_rejected(monkeypatch):
    monkeypatch.setenv("LLM_CHAT_DEFAULT_SESSION", "   ")

    with pytest.raises(ValueError, match="DEFAULT_SESSION"):
        load_settings()


def test_legacy_openai_key_is_accepted(monkeypatch):
    monkeypatch.setenv("OPENAI_KEY", "sk-legacy")

    assert load_settings().openai_api_key == "sk-legacy"


def test_openai_api_key_wins_over_legacy_name(monkeypatch):
    monkeypatch.setenv("OPENAI_KEY", "sk-legacy")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-current")

    assert load_settings().openai_api_key == "sk-current"

from dataclasses import dataclass

from llm_chat.infrastructure.platform_manager import default_data_dir, get_parameters

# Constants that don't change
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_SESSION = "default"
DEFAULT_LOG_LEVEL = "WARNING"
ENV_PREFIX = "LLM_CHAT_"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass(frozen=True)
class ChatSettings:
    """Client configuration settings loaded from the environment."""

    # Core settings
    model: str
    database_url: str
    default_session: str
    log_level: str
    logs_dir: str

    # Only required when talking to the completion API
    openai_api_key: str | None = None


class Config:
    """Singleton configuration manager for the chat client."""

    _instance = None
    _settings = None

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_settings(self) -> ChatSettings:
        """Get client settings, loading from the environment if not already cached."""
        if self._settings is None:
            self._settings = load_settings()
        return self._settings


def load_settings() -> ChatSettings:
    """Build settings from the environment, applying defaults for unset values."""
    # The API key keeps the name the openai package itself reads; OPENAI_KEY is the legacy name
    secrets = get_parameters(["openai_api_key", "openai_key"])

    params = get_parameters(
        ["model", "database_url", "default_session", "log_level", "logs_dir"],
        ENV_PREFIX,
    )

    data_dir = default_data_dir()
    settings = ChatSettings(
        model=params["model"] or DEFAULT_MODEL,
        database_url=params["database_url"] or f"sqlite:///{data_dir / 'llm-chat.db'}",
        default_session=params["default_session"] or DEFAULT_SESSION,
        log_level=(params["log_level"] or DEFAULT_LOG_LEVEL).upper(),
        logs_dir=params["logs_dir"] or str(data_dir / "logs"),
        openai_api_key=secrets["openai_api_key"] or secrets["openai_key"],
    )

    validate_settings(settings)

    return settings


def validate_settings(settings: ChatSettings) -> None:
    """Validate that all required settings have valid values."""
    required_fields = ["model", "database_url", "default_session", "log_level"]

    for field in required_fields:
        if not getattr(settings, field).strip():
            raise ValueError(f"Configuration value is invalid: {ENV_PREFIX}{field.upper()}")

    if settings.log_level not in LOG_LEVELS:
        raise ValueError(
            f"Configuration value is invalid: {ENV_PREFIX}LOG_LEVEL must be one of {LOG_LEVELS}"
        )


# Create singleton instance
config = Config()


# Convenience functions
def get_settings() -> ChatSettings:
    """Get client settings from the singleton config."""
    return config.get_settings()

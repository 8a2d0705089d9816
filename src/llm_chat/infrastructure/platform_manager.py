import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def default_data_dir() -> Path:
    """Directory holding the database and log files (``~/.llm-chat``)."""
    return Path.home() / ".llm-chat"


def create_logger(
    log_level: str = "WARNING",
    logger_name: str = "llm-chat",
    logs_dir: str | Path | None = None,
) -> logging.Logger:
    """
    Create a logger that outputs to the console (stderr) and to a file.

    Args:
        log_level (str): Logging level (e.g., "INFO", "DEBUG").
        logger_name (str): Name for the logger instance and its log file.
        logs_dir (str | Path | None): Directory for log files. If None, uses
            the logs directory under the data directory.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
    formatter = logging.Formatter(LOG_FORMAT)

    if not logger.handlers:  # Prevent handler duplication
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        try:
            logs_path = Path(logs_dir) if logs_dir is not None else default_data_dir() / "logs"
            logs_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(logs_path / f"{logger_name}.log")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError:
            # If file logging fails, just continue with console logging
            pass

    return logger


def get_parameters(
    param_names: list[str] | str,
    prefix: str = "",
) -> dict[str, str | None]:
    """
    Read configuration parameters from environment variables.

    Variable names are the upper-cased parameter names with ``prefix``
    prepended, e.g. ``get_parameters("model", "LLM_CHAT_")`` reads
    ``LLM_CHAT_MODEL``.

    Args:
        param_names (list[str] | str): Parameter name(s) to look up.
        prefix (str): Prefix for the environment variable names.

    Returns:
        dict[str, str | None]: Lower-case parameter names mapped to their
            values, or None when the variable is unset or empty.
    """
    if isinstance(param_names, str):
        param_names = [param_names]

    result: dict[str, str | None] = {}
    for param_name in param_names:
        value = os.getenv(f"{prefix}{param_name}".upper())
        result[param_name.lower()] = value or None
    return result

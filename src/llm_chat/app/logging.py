import logging
from typing import Any


def log_completion(completion: Any, logger: logging.Logger) -> None:
    logger.info(f"Response created by model: {completion.get('model_version', 'Unknown')}")
    logger.info(f"Usage: {completion.get('usage', 'Unknown')}")
    logger.info(f"Finish reason: {completion.get('finish_reason', 'Unknown')}")

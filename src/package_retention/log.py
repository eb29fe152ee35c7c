import sys
from typing import Any

import requests
from loguru import logger

LOG_LEVELS = ("trace", "debug", "info", "success", "warning", "error", "critical")
LOG_ENCODINGS = ("console", "json")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "{message}"
)


def configure_logging(level: str = "info", encoding: str = "console") -> None:
    """Replace loguru's default sink with one honouring the configured level and encoding."""
    logger.remove()
    if encoding == "json":
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)


def log_response(response: requests.Response, *args: Any, **kwargs: Any) -> None:
    request = response.request
    logger.debug(
        f"HTTP {request.method} {request.url} -> {response.status_code}"
    )


HTTP_HOOKS = {"response": [log_response]}

"""Tests for log module."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

from loguru import logger

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from package_retention.log import HTTP_HOOKS, log_response


def test_log_response() -> None:
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    response = MagicMock()
    response.request.method = "DELETE"
    response.request.url = "https://api.github.com/orgs/org/packages/container/pkg/versions/1"
    response.status_code = 204

    try:
        log_response(response)
    finally:
        logger.remove(handler_id)

    assert [m.strip() for m in messages] == [
        "HTTP DELETE https://api.github.com/orgs/org/packages/container/pkg/versions/1 -> 204"
    ]
    assert HTTP_HOOKS["response"] == [log_response]

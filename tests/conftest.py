"""Shared fixtures."""

import pytest

SETTINGS_ENV = [
    "ORG_NAME",
    "GITHUB_REPO_OWNER",
    "PACKAGE_TYPE",
    "PACKAGES",
    "PACKAGE_ARGS",
    "AGE",
    "VERSION_MATCH",
    "DRY_RUN",
    "TOKEN",
    "GITHUB_TOKEN",
    "REGISTRY_HOST",
    "API_URL",
    "GITHUB_API_URL",
    "LOG_LEVEL",
    "LOG_ENCODING",
    "GITHUB_STEP_SUMMARY",
    "GITHUB_OUTPUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the runner's environment (e.g. GitHub Actions) out of Settings."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)

"""Tests for registry initialization."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from package_retention.registry import GHCRImageRegistry, GitHubPackagesClient, init_registry
from package_retention.settings import Settings


class TestInitRegistry:
    def test_init_registry(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "token")
        monkeypatch.setenv("ORG_NAME", "org")
        monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3")

        packages, images, info = init_registry(Settings())

        assert isinstance(packages, GitHubPackagesClient)
        assert isinstance(images, GHCRImageRegistry)
        assert packages.token == "token"
        assert packages.api_url == "https://ghe.example.com/api/v3"
        assert images.token == "token"
        assert info == "ghcr.io/org (container)"

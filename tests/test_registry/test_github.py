"""Tests for the GitHub Packages client."""

import sys
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from package_retention.registry import GitHubPackagesClient


def page_response(versions: list[dict], next_page: int | None = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = versions
    response.raise_for_status = MagicMock()
    response.links = (
        {"next": {"url": f"https://api.github.com/x/versions?per_page=100&page={next_page}"}}
        if next_page
        else {}
    )
    return response


class TestGitHubPackagesClient:
    def test_headers_setup(self) -> None:
        client = GitHubPackagesClient("token123")
        assert "Bearer token123" in client.headers["Authorization"]
        assert client.headers["Accept"] == "application/vnd.github+json"
        assert client.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert client.api_url == "https://api.github.com"

    def test_list_versions_page(self) -> None:
        client = GitHubPackagesClient("token")
        response = page_response(
            [
                {
                    "id": 123,
                    "name": "sha256:abc",
                    "updated_at": "2024-01-02T00:00:00Z",
                    "created_at": "2024-01-01T00:00:00Z",
                    "metadata": {
                        "package_type": "container",
                        "container": {"tags": ["tag1", "tag2"]},
                    },
                }
            ],
            next_page=2,
        )

        with patch("requests.get", return_value=response) as mock_get:
            page = client.list_versions_page("org", "container", "team%2Fapp")

        call_url = mock_get.call_args[0][0]
        assert call_url == "https://api.github.com/orgs/org/packages/container/team%2Fapp/versions"
        assert mock_get.call_args.kwargs["params"] == {"per_page": 100, "state": "active"}
        assert page.next_page == 2
        assert len(page.versions) == 1
        version = page.versions[0]
        assert version.package_name == "team/app"
        assert version.id == 123
        assert version.name == "sha256:abc"
        assert version.tags == ("tag1", "tag2")
        assert version.updated_at == datetime(2024, 1, 2, tzinfo=UTC)

    def test_version_without_container_metadata(self) -> None:
        client = GitHubPackagesClient("token")
        response = page_response(
            [
                {"id": 1, "name": "1.0.0", "metadata": {"package_type": "npm"}},
                {"id": 2, "name": "sha256:def", "metadata": {"container": None}},
            ]
        )

        with patch("requests.get", return_value=response):
            page = client.list_versions_page("org", "npm", "pkg")

        assert page.next_page is None
        assert [v.tags for v in page.versions] == [(), ()]
        assert page.versions[0].updated_at is None

    def test_list_all_versions_follows_link_header(self) -> None:
        client = GitHubPackagesClient("token")
        responses = [
            page_response([{"id": 1, "name": "a"}], next_page=2),
            page_response([{"id": 2, "name": "b"}], next_page=3),
            page_response([{"id": 3, "name": "c"}]),
        ]

        with patch("requests.get", side_effect=responses) as mock_get:
            versions = client.list_all_versions("org", "container", "pkg")

        assert [v.id for v in versions] == [1, 2, 3]
        pages = [call.kwargs["params"].get("page") for call in mock_get.call_args_list]
        assert pages == [None, 2, 3]

    def test_list_error_propagates(self) -> None:
        client = GitHubPackagesClient("token")
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404")

        with patch("requests.get", return_value=response):
            with pytest.raises(requests.exceptions.HTTPError):
                client.list_all_versions("org", "container", "missing")

    def test_delete_version(self) -> None:
        client = GitHubPackagesClient("token", api_url="https://ghe.example.com/api/v3/")
        response = MagicMock()
        response.raise_for_status = MagicMock()

        with patch("requests.delete", return_value=response) as mock_delete:
            client.delete_version("org", "container", "pkg", 123)

        mock_delete.assert_called_once()
        call_url = mock_delete.call_args[0][0]
        assert call_url == (
            "https://ghe.example.com/api/v3/orgs/org/packages/container/pkg/versions/123"
        )

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

import requests
from dateutil import parser as date_parser  # type: ignore[import-untyped]

from package_retention.base import PackageRegistry, PackageVersion, VersionPage
from package_retention.log import HTTP_HOOKS

GITHUB_API_URL = "https://api.github.com"


class GitHubPackagesClient(PackageRegistry):
    """GitHub Packages REST API client.

    Package names are expected URL-escaped, as they appear in API paths.
    """

    def __init__(self, token: str, api_url: str = GITHUB_API_URL):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _versions_url(self, org: str, package_type: str, package_name: str) -> str:
        return f"{self.api_url}/orgs/{org}/packages/{package_type}/{package_name}/versions"

    def list_versions_page(
        self,
        org: str,
        package_type: str,
        package_name: str,
        page: int | None = None,
    ) -> VersionPage:
        url = self._versions_url(org, package_type, package_name)
        params: dict[str, str | int] = {"per_page": 100, "state": "active"}
        if page is not None:
            params["page"] = page

        response = requests.get(
            url, headers=self.headers, params=params, timeout=30, hooks=HTTP_HOOKS
        )
        response.raise_for_status()

        name = unquote(package_name)
        versions = [self._parse_version(name, version) for version in response.json()]
        return VersionPage(versions, self._next_page(response))

    def delete_version(
        self, org: str, package_type: str, package_name: str, version_id: int
    ) -> None:
        url = f"{self._versions_url(org, package_type, package_name)}/{version_id}"
        response = requests.delete(
            url, headers=self.headers, timeout=30, hooks=HTTP_HOOKS
        )
        response.raise_for_status()

    @staticmethod
    def _next_page(response: requests.Response) -> int | None:
        """Page number of the ``rel="next"`` Link header, if any."""
        next_url = response.links.get("next", {}).get("url")
        if not next_url:
            return None
        page = parse_qs(urlparse(next_url).query).get("page")
        return int(page[0]) if page else None

    @classmethod
    def _parse_version(cls, package_name: str, version: dict[str, Any]) -> PackageVersion:
        metadata = version.get("metadata") or {}
        container = metadata.get("container") if isinstance(metadata, dict) else None
        tags = container.get("tags") if isinstance(container, dict) else None

        return PackageVersion(
            package_name=package_name,
            name=str(version.get("name", "")),
            id=int(version["id"]),
            updated_at=cls._parse_time(version.get("updated_at")),
            tags=tuple(tag for tag in tags or [] if isinstance(tag, str)),
        )

    @staticmethod
    def _parse_time(time_str: str | None) -> datetime | None:
        if not time_str:
            return None
        parsed = date_parser.parse(time_str)
        return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed

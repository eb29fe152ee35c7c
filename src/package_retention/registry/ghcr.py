from __future__ import annotations

from typing import Any

import requests

from package_retention.base import (
    MANIFEST_ACCEPT,
    ImageDescriptor,
    ImageRegistry,
    ManifestParseError,
)
from package_retention.log import HTTP_HOOKS


def parse_reference(reference: str) -> tuple[str, str, str]:
    """Split ``host/repository:tag`` into its parts."""
    host, _, rest = reference.partition("/")
    repository, sep, tag = rest.rpartition(":")
    if not host or not sep or not repository or not tag or "/" in tag:
        raise ValueError(f"Invalid image reference: '{reference}'")
    return host, repository, tag


class GHCRImageRegistry(ImageRegistry):
    """Reads image manifests from GitHub Container Registry (or any OCI registry
    using the same bearer token flow).

    Pull tokens are requested per repository with basic auth (``ghcr`` and the
    GitHub token), anonymously when no token is configured.
    """

    def __init__(self, token: str = ""):
        self.token = token
        self._tokens: dict[tuple[str, str], str] = {}

    def _bearer_token(self, host: str, repository: str) -> str:
        key = (host, repository)
        if key not in self._tokens:
            auth = ("ghcr", self.token) if self.token else None
            response = requests.get(
                f"https://{host}/token",
                params={"scope": f"repository:{repository}:pull", "service": host},
                auth=auth,
                timeout=30,
                hooks=HTTP_HOOKS,
            )
            response.raise_for_status()
            self._tokens[key] = response.json().get("token", "")
        return self._tokens[key]

    def _request(self, method: str, reference: str) -> requests.Response:
        host, repository, tag = parse_reference(reference)
        headers = {
            "Authorization": f"Bearer {self._bearer_token(host, repository)}",
            "Accept": MANIFEST_ACCEPT,
        }
        response = requests.request(
            method,
            f"https://{host}/v2/{repository}/manifests/{tag}",
            headers=headers,
            timeout=30,
            hooks=HTTP_HOOKS,
        )
        response.raise_for_status()
        return response

    def head_descriptor(self, reference: str) -> ImageDescriptor:
        response = self._request("HEAD", reference)
        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        return ImageDescriptor(media_type=media_type)

    def fetch_index_manifest(self, reference: str) -> list[str]:
        response = self._request("GET", reference)
        try:
            manifest: Any = response.json()
        except ValueError as e:
            raise ManifestParseError(f"Invalid index manifest for {reference}: {e}") from e

        manifests = manifest.get("manifests") if isinstance(manifest, dict) else None
        if not isinstance(manifests, list):
            raise ManifestParseError(f"Index manifest for {reference} has no manifests list")

        digests = []
        for descriptor in manifests:
            digest = descriptor.get("digest") if isinstance(descriptor, dict) else None
            if not isinstance(digest, str) or ":" not in digest:
                raise ManifestParseError(
                    f"Index manifest for {reference} has an invalid descriptor: {descriptor}"
                )
            digests.append(digest)
        return digests

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from package_retention.logic import ElectedVersion

CONTAINER = "container"

OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"

INDEX_MEDIA_TYPES = frozenset({OCI_IMAGE_INDEX, DOCKER_MANIFEST_LIST})
MANIFEST_ACCEPT = ", ".join(
    [OCI_IMAGE_INDEX, DOCKER_MANIFEST_LIST, OCI_IMAGE_MANIFEST, DOCKER_MANIFEST]
)


class ConfigurationError(ValueError):
    """Invalid or missing configuration, detected before the pipeline starts."""


class ManifestParseError(ValueError):
    """An image index manifest could not be parsed."""


class PipelineCancelledError(RuntimeError):
    """A pipeline worker observed that a sibling worker failed."""


class RetentionError(Exception):
    """A retention run failed.

    The root cause is chained as ``__cause__``; ``removed`` holds the versions
    the deletion consumer processed before the failure.
    """

    def __init__(self, message: str, removed: list[ElectedVersion]) -> None:
        super().__init__(message)
        self.removed = removed


@dataclass(frozen=True)
class PackageVersion:
    """One version of a package as listed by the package registry.

    For containers ``name`` is usually the manifest digest (``sha256:<hex>``)
    and the human readable names live in ``tags``.
    """

    package_name: str
    name: str
    id: int
    updated_at: datetime | None = None
    tags: tuple[str, ...] = ()


@dataclass
class VersionPage:
    versions: list[PackageVersion]
    next_page: int | None = None


@dataclass(frozen=True)
class ImageDescriptor:
    media_type: str

    @property
    def is_index(self) -> bool:
        return self.media_type in INDEX_MEDIA_TYPES


class PackageRegistry(ABC):
    """Abstract base class for package registries (listing and deleting versions)."""

    @abstractmethod
    def list_versions_page(
        self,
        org: str,
        package_type: str,
        package_name: str,
        page: int | None = None,
    ) -> VersionPage:
        pass

    @abstractmethod
    def delete_version(
        self, org: str, package_type: str, package_name: str, version_id: int
    ) -> None:
        pass

    def list_all_versions(
        self, org: str, package_type: str, package_name: str
    ) -> list[PackageVersion]:
        """Follow pagination until the registry reports no further page."""
        versions: list[PackageVersion] = []
        page: int | None = None

        while True:
            result = self.list_versions_page(org, package_type, package_name, page)
            versions.extend(result.versions)
            if result.next_page is None:
                break
            page = result.next_page

        logger.debug(f"Listed {len(versions)} version(s) of {package_name}")
        return versions


class ImageRegistry(ABC):
    """Abstract base class for OCI registries (reading image manifests).

    References have the form ``<registry-host>/<org>/<package>:<tag>``.
    """

    @abstractmethod
    def head_descriptor(self, reference: str) -> ImageDescriptor:
        pass

    @abstractmethod
    def fetch_index_manifest(self, reference: str) -> list[str]:
        """Return the digests of every child manifest of an image index."""

from __future__ import annotations

from package_retention.base import ImageRegistry, PackageRegistry
from package_retention.settings import Settings

from .ghcr import GHCRImageRegistry
from .github import GitHubPackagesClient

__all__ = [
    "GHCRImageRegistry",
    "GitHubPackagesClient",
    "ImageRegistry",
    "PackageRegistry",
    "init_registry",
]


def init_registry(settings: Settings) -> tuple[PackageRegistry, ImageRegistry, str]:
    """Create the package and image registry clients for the configured organization."""
    packages = GitHubPackagesClient(settings.token, settings.api_url)
    images = GHCRImageRegistry(settings.token)
    info = f"{settings.registry_host}/{settings.org_name} ({settings.package_type})"
    return packages, images, info

"""Core retention logic: deciding which package versions to delete."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from re import Pattern

from loguru import logger

from package_retention.base import CONTAINER, ImageRegistry, PackageVersion


@dataclass(frozen=True)
class RetentionPolicy:
    """Which versions a run deletes.

    A zero ``age`` disables the age filter and a missing ``version_match``
    matches every version.
    """

    age: timedelta = timedelta(0)
    version_match: Pattern[str] | None = None
    package_type: str = CONTAINER
    dry_run: bool = False

    @property
    def dereferences_indexes(self) -> bool:
        return self.package_type == CONTAINER and self.version_match is not None


@dataclass(frozen=True)
class VersionDecision:
    """Decision about what to do with a version."""

    version: PackageVersion
    action: str  # "keep" or "delete"
    reason: str
    dereference: bool = False


@dataclass(frozen=True)
class ElectedVersion:
    """A version chosen for deletion."""

    package_name: str
    version: PackageVersion
    reason: str
    referenced_by: str | None = None

    @property
    def name(self) -> str:
        return self.version.name

    @property
    def id(self) -> int:
        return self.version.id


def format_duration(duration: timedelta) -> str:
    """Format a duration the way it is configured, e.g. ``1h30m`` or ``45s``."""
    seconds = int(duration.total_seconds())
    if seconds <= 0:
        return "0s"
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        value, seconds = divmod(seconds, size)
        if value:
            parts.append(f"{value}{unit}")
    return "".join(parts)


def _match_container(version: PackageVersion, pattern: Pattern[str]) -> str | None:
    """Return the first tag matching the pattern, if any."""
    for tag in version.tags:
        if pattern.search(tag):
            return tag
    return None


def _evaluate_match(version: PackageVersion, policy: RetentionPolicy) -> tuple[bool, str]:
    """Determine if a version matches the version pattern. Returns (matches, reason)."""
    pattern = policy.version_match
    if pattern is None:
        return True, "any version"

    if policy.package_type == CONTAINER:
        tag = _match_container(version, pattern)
        if tag is None:
            return False, f"no tag matches '{pattern.pattern}'"
        return True, f"tag '{tag}' matches '{pattern.pattern}'"

    if pattern.search(version.name):
        return True, f"version matches '{pattern.pattern}'"
    return False, f"version does not match '{pattern.pattern}'"


def _evaluate_age(
    version: PackageVersion, policy: RetentionPolicy, now: datetime
) -> tuple[bool, str]:
    """Determine if a version is old enough to delete. Returns (old_enough, reason)."""
    if policy.age == timedelta(0):
        return True, "no age limit"

    if version.updated_at is None:
        return False, "no update timestamp"

    age = now - version.updated_at
    limit = format_duration(policy.age)
    if version.updated_at + policy.age > now:
        return False, f"too new, <{limit} ({format_duration(age)} old)"
    return True, f">={limit} ({format_duration(age)} old)"


def evaluate_version(
    version: PackageVersion, policy: RetentionPolicy, now: datetime
) -> VersionDecision:
    """Decide whether a listed version is elected for deletion.

    Container versions that match by tag are flagged for index dereferencing
    whatever their age, so children of a matched index are still considered.
    """
    matches, match_reason = _evaluate_match(version, policy)
    if not matches:
        return VersionDecision(version, "keep", match_reason)

    dereference = policy.dereferences_indexes and bool(version.tags)

    old_enough, age_reason = _evaluate_age(version, policy, now)
    if not old_enough:
        return VersionDecision(version, "keep", age_reason, dereference)

    return VersionDecision(
        version, "delete", f"{match_reason}, {age_reason}", dereference
    )


def evaluate_reference(
    version: PackageVersion, policy: RetentionPolicy, now: datetime
) -> tuple[bool, str]:
    """Decide whether a version referenced by a matched image index is deleted.

    Index membership stands in for the pattern check; only age applies.
    """
    return _evaluate_age(version, policy, now)


def index_reference(
    registry_host: str, org: str, package_name: str, version: PackageVersion
) -> str:
    """Image reference for the first tag of a container version."""
    repository = f"{registry_host}/{org}/{package_name}".lower()
    return f"{repository}:{version.tags[0]}"


def resolve_index_digests(images: ImageRegistry, reference: str) -> list[str]:
    """List the child manifest digests of a multi-platform image.

    Single-platform images have no children and yield an empty list.
    """
    descriptor = images.head_descriptor(reference)
    if not descriptor.is_index:
        logger.debug(f"{reference} is a single-platform image ({descriptor.media_type})")
        return []

    digests = images.fetch_index_manifest(reference)
    logger.debug(f"{reference} is an image index with {len(digests)} manifest(s)")
    return digests

"""Retention pipeline: list, filter and dereference versions, then delete them.

A producer thread walks the requested packages in order and streams every
elected version over an unbuffered channel to a consumer thread that deletes
it. Deletion of early packages therefore overlaps with listing later ones.
Within one package, direct elections are streamed before the versions found
through image indexes.
"""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from urllib.parse import quote

from loguru import logger

from package_retention.base import (
    ConfigurationError,
    ImageRegistry,
    PackageRegistry,
    PackageVersion,
    RetentionError,
)
from package_retention.channel import Channel, WorkerGroup
from package_retention.logic import (
    ElectedVersion,
    RetentionPolicy,
    evaluate_reference,
    evaluate_version,
    index_reference,
    resolve_index_digests,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RetentionManager:
    """Apply a retention policy to packages owned by an organization.

    The registries are long-lived collaborators; the manager does not close
    them. ``images`` is only needed when the policy dereferences image
    indexes (container packages with a version pattern).
    """

    def __init__(
        self,
        packages: PackageRegistry,
        policy: RetentionPolicy,
        organization: str,
        package_names: Sequence[str],
        images: ImageRegistry | None = None,
        registry_host: str = "ghcr.io",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not organization:
            raise ConfigurationError("Missing required setting: ORG_NAME")
        if not package_names:
            raise ConfigurationError("At least one package name must be given")
        if policy.dereferences_indexes and images is None:
            raise ConfigurationError(
                "An image registry is required to match container versions by tag"
            )

        self.packages = packages
        self.images = images
        self.policy = policy
        self.organization = organization
        self.package_names = list(package_names)
        self.registry_host = registry_host
        self.clock = clock

    def run(self) -> list[ElectedVersion]:
        """Run the pipeline and return the deleted (or, in dry-run, elected) versions.

        Raises:
            RetentionError: On the first failure of either stage. The root
                cause is chained and ``removed`` holds what was processed
                before the failure. Deletions are never rolled back.
        """
        group = WorkerGroup()
        channel: Channel[ElectedVersion] = Channel(group.scope)
        removed: list[ElectedVersion] = []

        group.go(lambda: self._find_versions(group, channel), name="retention-producer")
        group.go(lambda: self._delete_versions(channel, removed), name="retention-consumer")

        try:
            group.wait()
        except Exception as e:
            raise RetentionError(f"Retention run failed: {e}", removed) from e

        action = "Would delete" if self.policy.dry_run else "Deleted"
        logger.info(f"{action} {len(removed)} package version(s)")
        return removed

    def _find_versions(
        self, group: WorkerGroup, channel: Channel[ElectedVersion]
    ) -> None:
        try:
            for package_name in self.package_names:
                group.scope.raise_if_cancelled()
                self._find_package_versions(package_name, channel)
        finally:
            channel.close()

    def _find_package_versions(
        self, package_name: str, channel: Channel[ElectedVersion]
    ) -> None:
        versions = self.packages.list_all_versions(
            self.organization, self.policy.package_type, quote(package_name, safe="")
        )
        logger.info(f"Found {len(versions)} version(s) of {package_name}")

        by_name: dict[str, PackageVersion] = {}
        references: list[tuple[str, PackageVersion]] = []
        elected: set[int] = set()

        for version in versions:
            logger.info(f"Checking package version {package_name}:{version.name} ({version.id})")
            by_name[version.name] = version

            decision = evaluate_version(version, self.policy, self.clock())

            if decision.dereference:
                references.extend(
                    (digest, version) for digest in self._resolve(package_name, version)
                )

            if decision.action != "delete":
                logger.debug(f"[{package_name}:{version.name}] KEEP: {decision.reason}")
                continue

            logger.info(
                f"Package version {package_name}:{version.name} ({version.id}) "
                f"elected for deletion: {decision.reason}"
            )
            channel.send(ElectedVersion(package_name, version, decision.reason))
            elected.add(version.id)

        for digest, parent in references:
            referenced = by_name.get(digest)
            if referenced is None:
                continue
            if referenced.id in elected:
                logger.debug(
                    f"[{package_name}:{digest}] already elected, referenced by {parent.name}"
                )
                continue

            old_enough, reason = evaluate_reference(referenced, self.policy, self.clock())
            if not old_enough:
                logger.debug(f"[{package_name}:{digest}] KEEP: {reason}")
                continue

            logger.info(
                f"Package version {package_name}:{digest} ({referenced.id}) "
                f"elected for deletion: referenced by {parent.name}, {reason}"
            )
            channel.send(
                ElectedVersion(
                    package_name,
                    referenced,
                    f"referenced by {parent.name}, {reason}",
                    referenced_by=parent.name,
                )
            )
            elected.add(referenced.id)

    def _resolve(self, package_name: str, version: PackageVersion) -> list[str]:
        if self.images is None:
            raise ConfigurationError(
                "An image registry is required to dereference image indexes"
            )
        reference = index_reference(
            self.registry_host, self.organization, package_name, version
        )
        return resolve_index_digests(self.images, reference)

    def _delete_versions(
        self, channel: Channel[ElectedVersion], removed: list[ElectedVersion]
    ) -> None:
        for elected in channel:
            if self.policy.dry_run:
                logger.info(
                    f"DRY RUN: Would delete {elected.package_name}:{elected.name} ({elected.id})"
                )
                removed.append(elected)
                continue

            logger.info(f"Deleting {elected.package_name}:{elected.name} ({elected.id})")
            self.packages.delete_version(
                self.organization,
                self.policy.package_type,
                quote(elected.package_name, safe=""),
                elected.id,
            )
            removed.append(elected)

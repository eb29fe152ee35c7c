import sys
from collections.abc import Sequence

from loguru import logger

from package_retention.base import RetentionError
from package_retention.log import configure_logging
from package_retention.logic import format_duration
from package_retention.pipeline import RetentionManager
from package_retention.registry import init_registry
from package_retention.report import write_output, write_summary
from package_retention.settings import Settings


def main(argv: Sequence[str] | None = None) -> int:
    try:
        # Flags (--age, --dry-run=false, ...) override the environment and
        # positional package names override PACKAGES
        settings = Settings() if argv is None else Settings(_cli_parse_args=list(argv))
        configure_logging(settings.log_level, settings.log_encoding)

        package_names = settings.package_names
        packages, images, registry_info = init_registry(settings)
        manager = RetentionManager(
            packages,
            settings.to_policy(),
            settings.org_name,
            package_names,
            images=images,
            registry_host=settings.registry_host,
        )
    except ValueError as e:
        logger.error(f"Error: {e}")
        return 1

    logger.info(
        f"Registry: {registry_info} | Packages: {', '.join(package_names)} | "
        f"Age: {format_duration(settings.age)} | "
        f"Version match: {settings.version_match or '-'} | Dry run: {settings.dry_run}"
    )

    try:
        removed = manager.run()
    except RetentionError as e:
        logger.error(f"Error: {e.__cause__}")
        write_output(e.removed, settings)
        write_summary(e.removed, settings, error=e)
        return 1

    write_output(removed, settings)
    write_summary(removed, settings)
    return 0


def cli() -> None:
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()

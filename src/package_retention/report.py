"""GitHub Actions reporting: step summary and step outputs."""

from package_retention.logic import ElectedVersion, format_duration
from package_retention.settings import Settings


def write_output(removed: list[ElectedVersion], settings: Settings) -> None:
    """Expose the processed version names as the ``versions`` step output."""
    if not settings.github_output:
        return

    names = ",".join(elected.name for elected in removed)
    with open(settings.github_output, "a") as f:
        f.write(f"versions={names}\n")


def write_summary(
    removed: list[ElectedVersion], settings: Settings, error: Exception | None = None
) -> None:
    """Write the run summary to the GitHub Actions step summary."""
    if not settings.github_step_summary:
        return

    action = "To delete" if settings.dry_run else "Deleted"
    mode = "Dry Run" if settings.dry_run else "Live"
    age = format_duration(settings.age) if settings.age else "none"
    pattern = f"`{settings.version_match}`" if settings.version_match else "none"

    with open(settings.github_step_summary, "w") as f:
        f.write(
            f"### Package Retention\n\n"
            f"| Metric | Count |\n"
            f"|--------|-------|\n"
            f"| Versions: {action.lower()} | {len(removed)} |\n"
            f"| Errors | {1 if error else 0} |\n\n"
            f"**Mode:** {mode} | "
            f"**Age:** {age} | "
            f"**Version match:** {pattern}\n\n"
        )

        if error is not None:
            f.write(f"**Error:** {error}\n\n")

        if removed:
            f.write(f"**{action}: {len(removed)} versions**\n\n")
            f.write("| Package | Version | ID | Tags | Reason |\n")
            f.write("|---------|---------|----|------|--------|\n")
            for elected in removed:
                tags = elected.version.tags
                tags_str = ", ".join(tags) if tags else "untagged"
                f.write(
                    f"| {elected.package_name} | `{elected.name}` | {elected.id} "
                    f"| {tags_str} | {elected.reason} |\n"
                )

"""Tests for report module."""

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from package_retention.base import PackageVersion
from package_retention.logic import ElectedVersion
from package_retention.report import write_output, write_summary
from package_retention.settings import Settings


def elected() -> list[ElectedVersion]:
    now = datetime.now(UTC)
    tagged = PackageVersion("app", "sha256:aaa", 1, now, ("v1.0", "latest"))
    child = PackageVersion("app", "sha256:bbb", 2, now)
    return [
        ElectedVersion("app", tagged, "tag 'v1.0' matches 'v1'"),
        ElectedVersion("app", child, "referenced by sha256:aaa", referenced_by="sha256:aaa"),
    ]


class TestWriteOutput:
    def test_write_output(self, tmp_path: Path) -> None:
        output = tmp_path / "output"
        output.write_text("other=1\n")
        settings = Settings(github_output=str(output))

        write_output(elected(), settings)

        assert output.read_text() == "other=1\nversions=sha256:aaa,sha256:bbb\n"

    def test_no_output_file(self, tmp_path: Path) -> None:
        write_output(elected(), Settings())
        assert list(tmp_path.iterdir()) == []


class TestWriteSummary:
    def test_write_summary_dry_run(self, tmp_path: Path) -> None:
        summary = tmp_path / "summary.md"
        settings = Settings(
            github_step_summary=str(summary),
            dry_run=True,
            age=timedelta(days=30),
            version_match="^v1",
        )

        write_summary(elected(), settings)

        content = summary.read_text()
        assert "Package Retention" in content
        assert "| Versions: to delete | 2 |" in content
        assert "| Errors | 0 |" in content
        assert "Dry Run" in content
        assert "**Age:** 30d" in content
        assert "`^v1`" in content
        assert "**To delete: 2 versions**" in content
        assert "| Package | Version | ID | Tags | Reason |" in content
        assert "| app | `sha256:aaa` | 1 | v1.0, latest |" in content
        assert "| app | `sha256:bbb` | 2 | untagged | referenced by sha256:aaa |" in content

    def test_write_summary_live_with_error(self, tmp_path: Path) -> None:
        summary = tmp_path / "summary.md"
        settings = Settings(github_step_summary=str(summary), dry_run=False)

        write_summary([], settings, error=RuntimeError("boom"))

        content = summary.read_text()
        assert "Live" in content
        assert "| Versions: deleted | 0 |" in content
        assert "| Errors | 1 |" in content
        assert "**Error:** boom" in content
        assert "**Age:** none" in content

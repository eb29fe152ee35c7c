import re
from datetime import timedelta
from typing import Any, Pattern

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, CliPositionalArg, SettingsConfigDict

from package_retention.base import CONTAINER, ConfigurationError
from package_retention.log import LOG_ENCODINGS, LOG_LEVELS
from package_retention.logic import RetentionPolicy

PACKAGE_TYPES = ("npm", "maven", "rubygems", "docker", "nuget", CONTAINER)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION = re.compile(rf"(?:{_DURATION_PART.pattern})+")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``720h``, ``1h30m`` or ``1.5s``."""
    value = value.strip()
    if value in ("", "0"):
        return timedelta(0)
    if not _DURATION.fullmatch(value):
        raise ValueError(f"invalid duration '{value}'")
    seconds = sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART.findall(value)
    )
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="allow",
        # Only used when arguments are passed with _cli_parse_args
        cli_prog_name="package-retention",
        cli_kebab_case=True,
        cli_exit_on_error=False,
    )

    org_name: str = Field(
        default="", validation_alias=AliasChoices("org_name", "github_repo_owner")
    )
    package_type: str = CONTAINER
    packages: str = ""
    package_args: CliPositionalArg[list[str]] = []

    age: timedelta = timedelta(0)
    version_match: str = ""

    dry_run: bool = True

    token: str = Field(default="", validation_alias=AliasChoices("token", "github_token"))
    registry_host: str = "ghcr.io"
    api_url: str = Field(
        default="https://api.github.com",
        validation_alias=AliasChoices("api_url", "github_api_url"),
    )

    log_level: str = "info"
    log_encoding: str = "console"

    github_step_summary: str = ""
    github_output: str = ""

    @field_validator("dry_run", mode="before")
    @classmethod
    def _parse_bool(cls, v: str | bool) -> bool:
        return v if isinstance(v, bool) else v.lower() == "true"

    @field_validator("age", mode="before")
    @classmethod
    def _parse_age(cls, v: Any) -> Any:
        # Plain seconds and Go-style durations; ISO 8601 is left to pydantic
        if isinstance(v, str):
            value = v.strip()
            if value.isdigit():
                return timedelta(seconds=int(value))
            if not value or _DURATION.fullmatch(value):
                return parse_duration(value)
        return v

    @field_validator("org_name", mode="after")
    @classmethod
    def _lower_org(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("package_type", mode="after")
    @classmethod
    def _check_package_type(cls, v: str) -> str:
        if v not in PACKAGE_TYPES:
            raise ValueError(f"PACKAGE_TYPE must be one of {list(PACKAGE_TYPES)}, got '{v}'")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        if v.lower() not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(LOG_LEVELS)}, got '{v}'")
        return v.lower()

    @field_validator("log_encoding", mode="after")
    @classmethod
    def _check_log_encoding(cls, v: str) -> str:
        if v not in LOG_ENCODINGS:
            raise ValueError(f"LOG_ENCODING must be one of {list(LOG_ENCODINGS)}, got '{v}'")
        return v

    @property
    def package_names(self) -> list[str]:
        """Positional package names, or else the comma separated PACKAGES."""
        names = self.package_args or self.packages.split(",")
        return [name.strip() for name in names if name.strip()]

    @property
    def compiled_version_match(self) -> Pattern[str] | None:
        if not self.version_match:
            return None
        try:
            return re.compile(self.version_match)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid VERSION_MATCH '{self.version_match}': {e}"
            ) from e

    def to_policy(self) -> RetentionPolicy:
        # Without either filter every version of every package would be elected
        if not self.age and not self.version_match:
            raise ConfigurationError("Neither AGE nor VERSION_MATCH is set")
        return RetentionPolicy(
            age=self.age,
            version_match=self.compiled_version_match,
            package_type=self.package_type,
            dry_run=self.dry_run,
        )

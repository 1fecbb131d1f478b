"""
Telemetry configuration.

Settings come from ``USAGEGATE_*`` environment variables (the CLI loads a
``.env`` file first). Everything has a default, so a missing variable is
never an error.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "USAGEGATE_"

# Environment variables that mark a CI/CD run
CI_ENV_VARS = [
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "JENKINS_HOME",
]


class TelemetryConfig(BaseModel):
    """Telemetry settings for one process."""

    DEFAULT_SETTINGS_DIR: ClassVar[str] = "~/.usagegate"
    DEFAULT_SETTINGS_FILE: ClassVar[str] = "telemetry.json"
    DEFAULT_PROMPT_TIMEOUT: ClassVar[float] = 30.0
    DEFAULT_POSTHOG_HOST: ClassVar[str] = "https://us.i.posthog.com"
    DEFAULT_TELEMETRY_CMD_LABEL: ClassVar[str] = "via-cordova-telemetry-cmd"

    SETTINGS_DIR: str = Field(
        default=DEFAULT_SETTINGS_DIR,
        description="Directory holding the consent settings file and machine id",
    )
    SETTINGS_FILE: str = Field(
        default=DEFAULT_SETTINGS_FILE,
        description="Name of the JSON settings file inside SETTINGS_DIR",
    )
    PROMPT_TIMEOUT: float = Field(
        default=DEFAULT_PROMPT_TIMEOUT,
        description="Seconds to wait for an answer to the consent prompt",
        gt=0,
    )
    POSTHOG_API_KEY: str = Field(
        default="",
        description="PostHog project key; events are dropped by the reporter when empty",
    )
    POSTHOG_HOST: str = Field(
        default=DEFAULT_POSTHOG_HOST,
        description="PostHog ingestion host",
    )
    TELEMETRY_CMD_LABEL: str = Field(
        default=DEFAULT_TELEMETRY_CMD_LABEL,
        description="Label on the events reported by `telemetry on` and `telemetry off`",
        min_length=1,
    )
    TELEMETRY_DEBUG: bool = Field(
        default=False,
        description="Turn on PostHog client debug output",
    )

    @field_validator("TELEMETRY_DEBUG", mode="before")
    @classmethod
    def validate_telemetry_debug(cls, v: Any) -> bool:
        """
        Convert various string representations to boolean.

        Truthy values: "true", "1", "yes", "on" (case-insensitive)
        """
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return bool(v)

    def get_settings_dir(self) -> Path:
        """Get the absolute settings directory (``~`` expanded)."""
        return Path(self.SETTINGS_DIR).expanduser()


def load_config(environ: Mapping[str, str] | None = None) -> TelemetryConfig:
    """
    Build a TelemetryConfig from ``USAGEGATE_*`` environment variables.

    Example:
        USAGEGATE_PROMPT_TIMEOUT=10
        USAGEGATE_SETTINGS_DIR=/tmp/usagegate

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        TelemetryConfig with loaded settings

    Raises:
        pydantic.ValidationError: If a value is invalid
    """
    environ = os.environ if environ is None else environ

    config_data = {}
    for key in TelemetryConfig.model_fields:
        value = environ.get(f"{ENV_PREFIX}{key}")
        if value is not None and value != "":
            config_data[key] = value

    return TelemetryConfig(**config_data)


def get_settings_path(config: TelemetryConfig) -> Path:
    """Get the path to the consent settings file."""
    return config.get_settings_dir() / config.SETTINGS_FILE


def get_machine_id(config: TelemetryConfig) -> str:
    """Get or create an anonymous machine ID for analytics.

    Random UUID, not derived from anything on the machine. Stored beside the
    settings file.

    Returns:
        UUID string identifying this machine
    """
    settings_dir = config.get_settings_dir()
    machine_id_path = settings_dir / "machine_id"

    if machine_id_path.exists():
        return machine_id_path.read_text().strip()

    machine_id = str(uuid.uuid4())
    settings_dir.mkdir(parents=True, exist_ok=True)
    machine_id_path.write_text(machine_id)
    return machine_id


def is_ci_environment(env: Mapping[str, str] | None = None) -> bool:
    """Check if running in a CI/CD environment.

    Returns:
        True if any CI marker variable is set to a non-empty value
    """
    env = os.environ if env is None else env
    return any(env.get(var) for var in CI_ENV_VARS)

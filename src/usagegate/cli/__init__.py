"""usagegate command-line interface."""

from usagegate.cli.main import TrackedGroup, main, telemetry_group

__all__ = ["TrackedGroup", "main", "telemetry_group"]

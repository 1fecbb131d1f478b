"""Reporters: hand accepted events to an analytics backend.

A reporter receives the already-filtered event parts, e.g.
``("telemetry", "on", "via-cli-prompt-choice", "successful")``. Consent is
decided before a reporter is ever called, so reporters keep no enabled flag
of their own.

PostHogReporter is non-blocking and never raises: delivery problems are
logged at debug level and otherwise ignored.
"""

from __future__ import annotations

import atexit
import logging
import platform
import sys
import threading
from typing import Any, Protocol

from posthog import Posthog

from usagegate.config import TelemetryConfig, get_machine_id, is_ci_environment

logger = logging.getLogger(__name__)

# Positional names of the parts after the category
PART_NAMES = ("action", "label", "value")


class Reporter(Protocol):
    """Receives accepted events, in call order."""

    def report(self, parts: tuple[str, ...]) -> None: ...


class NullReporter:
    """Reporter that drops everything. Used when no backend is configured."""

    def report(self, parts: tuple[str, ...]) -> None:
        logger.debug(f"Dropping event {parts!r}: no analytics backend configured")


def _get_version() -> str:
    """Get usagegate version string."""
    try:
        from usagegate import __version__

        return __version__
    except Exception:
        return "unknown"


def _get_system_properties() -> dict:
    """Get system properties attached to every event."""
    return {
        "os": platform.system(),
        "os_version": platform.release(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "usagegate_version": _get_version(),
        "is_ci": is_ci_environment(),
    }


def event_properties(parts: tuple[str, ...]) -> dict[str, Any]:
    """Name the parts after the category and add the slash-joined path."""
    properties: dict[str, Any] = {"path": "/" + "/".join(parts)}
    properties.update(zip(PART_NAMES, parts[1:]))
    return properties


class PostHogReporter:
    """Sends events to PostHog on a background thread."""

    def __init__(self, config: TelemetryConfig, blocking: bool = False):
        self.config = config
        self.blocking = blocking
        self._client: Any | None = None
        self._client_lock = threading.Lock()

    def _get_client(self) -> Any | None:
        """Get or create the PostHog client (lazy initialization).

        Returns:
            PostHog client instance or None if unconfigured or broken
        """
        if self._client is not None:
            return self._client

        if not self.config.POSTHOG_API_KEY:
            return None

        with self._client_lock:
            if self._client is not None:
                return self._client

            try:
                client = Posthog(
                    project_api_key=self.config.POSTHOG_API_KEY,
                    host=self.config.POSTHOG_HOST,
                    debug=self.config.TELEMETRY_DEBUG,
                    sync_mode=False,
                )
            except Exception as e:
                logger.debug(f"Failed to initialize PostHog: {e}")
                return None

            def _shutdown():
                try:
                    client.shutdown()
                except Exception as e:
                    logger.debug(f"Error in PostHog shutdown: {e}")

            atexit.register(_shutdown)
            self._client = client
            return client

    def report(self, parts: tuple[str, ...]) -> None:
        if not parts:
            logger.debug("Skipping event with no parts")
            return

        try:
            client = self._get_client()
            if client is None:
                return

            event_name = parts[0]
            properties = _get_system_properties()
            properties.update(event_properties(parts))
            distinct_id = get_machine_id(self.config)

            def _capture():
                try:
                    client.capture(
                        distinct_id=distinct_id,
                        event=event_name,
                        properties=properties,
                    )
                except Exception as e:
                    logger.debug(f"Failed to report event {event_name}: {e}")

            if self.blocking:
                _capture()
            else:
                thread = threading.Thread(target=_capture, daemon=True)
                thread.start()

        except Exception as e:
            logger.debug(f"Error in PostHogReporter.report: {e}")


def create_reporter(config: TelemetryConfig) -> Reporter:
    """Pick the reporter for a configuration."""
    if config.POSTHOG_API_KEY:
        return PostHogReporter(config)
    return NullReporter()

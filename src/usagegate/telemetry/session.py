"""Telemetry session: consent resolution and the tracking entry point.

One session per process. The CLI front end initializes it before running
any command; everything after that goes through ``track``:

    telemetry = get_telemetry()
    await telemetry.initialize(sys.argv, os.environ)
    telemetry.track("build", None, "successful")

``initialize`` fixes the override mode for the process. Without an
override it makes sure a consent decision exists, prompting the user (with
a timeout) the first time.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console

from usagegate.config import (
    TelemetryConfig,
    get_machine_id,
    get_settings_path,
    is_ci_environment,
    load_config,
)
from usagegate.errors import TelemetryError
from usagegate.telemetry.gate import TrackingGate
from usagegate.telemetry.override import OverrideMode, get_disabled_reason, resolve
from usagegate.telemetry.prompt import PROMPT_MESSAGE, PromptController
from usagegate.telemetry.reporter import Reporter, create_reporter
from usagegate.telemetry.store import ConsentDecision, ConsentStore, JsonSettingsStore

logger = logging.getLogger(__name__)

TELEMETRY_CMD_LABEL = TelemetryConfig.DEFAULT_TELEMETRY_CMD_LABEL


class Telemetry:
    """Consent-gated event tracking for one CLI process."""

    def __init__(
        self,
        store: ConsentStore,
        reporter: Reporter,
        config: TelemetryConfig | None = None,
        prompt: PromptController | None = None,
        console: Console | None = None,
    ):
        self.config = config or TelemetryConfig()
        self.store = store
        self.reporter = reporter
        self.prompt = prompt or PromptController(store, self.track, console=console)
        self.gate: TrackingGate | None = None
        self._argv: tuple[str, ...] = ()
        self._env: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: TelemetryConfig, console: Console | None = None) -> Telemetry:
        """Build a session backed by the JSON settings file and configured reporter."""
        store = ConsentStore(JsonSettingsStore(get_settings_path(config)))
        return cls(store, create_reporter(config), config=config, console=console)

    @property
    def mode(self) -> OverrideMode | None:
        """Override mode for this process, or None before ``initialize``."""
        return self.gate.mode if self.gate is not None else None

    @property
    def initialized(self) -> bool:
        return self.gate is not None

    async def initialize(self, argv: Sequence[str], env: Mapping[str, str] | None = None) -> None:
        """Resolve the override and make sure a consent decision exists.

        Must complete before command logic runs and before the first
        ``track`` call is evaluated.

        Raises:
            TelemetryError: If the session was already initialized
            ConsentStoreError: If the stored decision cannot be read or the
                prompt's answer cannot be written
        """
        if self.gate is not None:
            raise TelemetryError("Telemetry session already initialized")

        env = os.environ if env is None else env
        mode = resolve(argv, env)
        self._argv = tuple(argv)
        self._env = dict(env)
        self.gate = TrackingGate(mode, self.store)
        logger.debug(f"Telemetry override mode: {mode.value}")

        if mode is not OverrideMode.NONE:
            return

        if self.store.has_decision():
            return

        await self.prompt.ask(PROMPT_MESSAGE, self.config.PROMPT_TIMEOUT)

    def track(self, *parts: Any) -> None:
        """Report an event if the gate allows it.

        Empty and None parts are dropped before the event reaches the
        reporter. Reporter failures are logged and never raised.
        """
        if self.gate is None:
            logger.debug(f"Dropping event {parts!r}: telemetry not initialized")
            return

        if not self.gate.allows():
            return

        filtered = tuple(str(part) for part in parts if part is not None and part != "")

        try:
            self.reporter.report(filtered)
        except Exception as e:
            logger.debug(f"Reporter failed for event {filtered!r}: {e}")

    def turn_on(self) -> None:
        """Opt in, then report it."""
        self.store.set_opted_in(True)
        self.track("telemetry", "on", self.config.TELEMETRY_CMD_LABEL)

    def turn_off(self) -> None:
        """Report the opt-out, then opt out.

        The event goes first: once the flag is flipped the gate would
        suppress it outside the ``telemetry`` command.
        """
        self.track("telemetry", "off", self.config.TELEMETRY_CMD_LABEL)
        self.store.set_opted_in(False)

    def is_opted_in(self) -> bool:
        """Stored answer. Check ``has_user_opted_in_or_out()`` first."""
        return self.store.is_opted_in()

    def has_user_opted_in_or_out(self) -> bool:
        """Has the user already answered the telemetry prompt?"""
        return self.store.has_decision()

    def status(self) -> dict:
        """Get current telemetry status for display.

        Returns:
            Dictionary with telemetry status information
        """
        decision = self.store.read()
        settings_path = get_settings_path(self.config)

        disabled_reason = get_disabled_reason(self._argv, self._env)
        if disabled_reason is None:
            if decision is ConsentDecision.OPTED_OUT:
                disabled_reason = f"User opted out ({settings_path})"
            elif decision is ConsentDecision.UNKNOWN:
                disabled_reason = "User has not been asked yet"

        enabled = disabled_reason is None

        return {
            "enabled": enabled,
            "decision": decision.value,
            "mode": self.mode.value if self.mode is not None else None,
            "disabled_reason": disabled_reason,
            "settings_path": str(settings_path),
            "machine_id": get_machine_id(self.config) if enabled else None,
            "is_ci": is_ci_environment(self._env),
        }


# Process-wide session (lazy initialized)
_telemetry: Telemetry | None = None
_telemetry_lock = threading.Lock()


def get_telemetry(config: TelemetryConfig | None = None) -> Telemetry:
    """Get or create the process-wide telemetry session."""
    global _telemetry

    if _telemetry is not None:
        return _telemetry

    with _telemetry_lock:
        if _telemetry is None:
            _telemetry = Telemetry.from_config(config or load_config())
        return _telemetry


def reset_telemetry() -> None:
    """Forget the process-wide session (tests)."""
    global _telemetry
    _telemetry = None


def track(*parts: Any) -> None:
    """Track an event through the process-wide session."""
    get_telemetry().track(*parts)

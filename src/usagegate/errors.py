"""Exceptions raised by the telemetry core."""

from __future__ import annotations

from pathlib import Path


class TelemetryError(Exception):
    """Base exception for telemetry operations."""

    pass


class ConsentStoreError(TelemetryError):
    """Raised when the persisted consent decision cannot be read or written."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Telemetry settings at {self.path} unusable: {reason}")


class ConsentUndecidedError(TelemetryError):
    """Raised when the consent value is read before the user made a choice.

    Callers must check ``has_decision()`` first.
    """

    def __init__(self) -> None:
        super().__init__("Consent decision requested before the user opted in or out")

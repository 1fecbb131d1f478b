"""Persisted consent decision.

The decision lives in a small JSON key-value settings file. ``ConsentStore``
is the tri-state view over it that the rest of the telemetry code uses:

    store = ConsentStore(JsonSettingsStore(path))
    if store.has_decision():
        store.is_opted_in()
    store.set_opted_in(False)

Read and write failures raise ConsentStoreError. Nothing here retries or
falls back to a default consent value.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from usagegate.errors import ConsentStoreError, ConsentUndecidedError

logger = logging.getLogger(__name__)

CONSENT_KEY = "enabled"


class ConsentDecision(str, Enum):
    """The user's standing answer to the telemetry question."""

    OPTED_IN = "opted_in"
    OPTED_OUT = "opted_out"
    UNKNOWN = "unknown"


class SettingsStore(Protocol):
    """Key-value persistence the consent flag is stored in."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class JsonSettingsStore:
    """Settings kept as a flat JSON object in a single file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text())
        except OSError as e:
            raise ConsentStoreError(self.path, f"cannot read file ({e})") from e
        except json.JSONDecodeError as e:
            raise ConsentStoreError(self.path, f"malformed JSON ({e})") from e

        if not isinstance(data, dict):
            raise ConsentStoreError(self.path, "expected a JSON object")
        return data

    def get(self, key: str) -> Any:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise ConsentStoreError(self.path, f"cannot write file ({e})") from e

        logger.debug(f"Wrote {key}={value!r} to {self.path}")


class ConsentStore:
    """Tri-state consent flag: opted in, opted out, or never asked."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings

    def read(self) -> ConsentDecision:
        """Read the stored decision.

        Raises:
            ConsentStoreError: If the settings cannot be read or hold a
                non-boolean consent value
        """
        value = self.settings.get(CONSENT_KEY)
        if value is None:
            return ConsentDecision.UNKNOWN
        if not isinstance(value, bool):
            raise ConsentStoreError(
                getattr(self.settings, "path", "<settings>"),
                f"'{CONSENT_KEY}' must be true or false, got {value!r}",
            )
        return ConsentDecision.OPTED_IN if value else ConsentDecision.OPTED_OUT

    def has_decision(self) -> bool:
        """Has the user already opted in or out?"""
        return self.read() is not ConsentDecision.UNKNOWN

    def is_opted_in(self) -> bool:
        """Return the stored answer. Only valid once ``has_decision()`` is true."""
        decision = self.read()
        if decision is ConsentDecision.UNKNOWN:
            raise ConsentUndecidedError()
        return decision is ConsentDecision.OPTED_IN

    def set_opted_in(self, opted_in: bool) -> None:
        self.settings.set(CONSENT_KEY, bool(opted_in))

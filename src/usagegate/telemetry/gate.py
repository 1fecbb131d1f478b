"""Allow/deny decision for tracking calls."""

from __future__ import annotations

from usagegate.telemetry.override import OverrideMode
from usagegate.telemetry.store import ConsentStore


def should_track(mode: OverrideMode, store: ConsentStore) -> bool:
    """Decide whether an event may be reported.

    Depends only on the override mode and the stored decision, never on the
    event itself. Without an override, an undecided user is not tracked.
    """
    if mode is OverrideMode.ALWAYS:
        return True
    if mode is OverrideMode.NEVER:
        return False
    return store.has_decision() and store.is_opted_in()


class TrackingGate:
    """``should_track`` bound to one session's override mode and store."""

    def __init__(self, mode: OverrideMode, store: ConsentStore):
        self.mode = mode
        self.store = store

    def allows(self) -> bool:
        return should_track(self.mode, self.store)

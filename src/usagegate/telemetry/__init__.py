"""Consent-gated anonymous usage analytics."""

from .gate import TrackingGate, should_track
from .override import OverrideMode, resolve
from .prompt import PROMPT_MESSAGE, PromptController
from .reporter import NullReporter, PostHogReporter, Reporter, create_reporter
from .session import Telemetry, get_telemetry, reset_telemetry, track
from .store import ConsentDecision, ConsentStore, JsonSettingsStore

__all__ = [
    "ConsentDecision",
    "ConsentStore",
    "JsonSettingsStore",
    "NullReporter",
    "OverrideMode",
    "PROMPT_MESSAGE",
    "PostHogReporter",
    "PromptController",
    "Reporter",
    "Telemetry",
    "TrackingGate",
    "create_reporter",
    "get_telemetry",
    "reset_telemetry",
    "resolve",
    "should_track",
    "track",
]

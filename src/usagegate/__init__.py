"""Consent-gated usage analytics for command-line tools.

This package provides:
- Config: telemetry settings from USAGEGATE_* environment variables
- Telemetry: override resolution, consent prompt, tracking gate, reporters
- CLI: click front end with `telemetry on|off|status`
"""

__version__ = "0.1.0"

from usagegate.config import TelemetryConfig as TelemetryConfig
from usagegate.config import load_config as load_config
from usagegate.errors import ConsentStoreError as ConsentStoreError
from usagegate.errors import ConsentUndecidedError as ConsentUndecidedError
from usagegate.errors import TelemetryError as TelemetryError
from usagegate.telemetry import OverrideMode as OverrideMode
from usagegate.telemetry import Telemetry as Telemetry
from usagegate.telemetry import get_telemetry as get_telemetry
from usagegate.telemetry import track as track

"""Per-invocation override of the stored consent decision.

The override is computed once from the invocation's ``argv`` and environment
and stays fixed for the rest of the process.

``argv`` follows the ``interpreter script command subcommand ...`` layout,
so the top-level command is the third token::

    ["python", "usagegate", "telemetry", "on"]  -> ALWAYS
    ["python", "usagegate", "build", "--no-telemetry"]  -> NEVER
    ["python", "usagegate", "build"]  -> NONE
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum

from usagegate.config import is_ci_environment

NO_TELEMETRY_FLAG = "--no-telemetry"
TELEMETRY_COMMAND = "telemetry"
COMMAND_INDEX = 2


class OverrideMode(str, Enum):
    """How the stored consent decision is overridden for this process."""

    NONE = "none"
    ALWAYS = "always"
    NEVER = "never"


def is_no_telemetry_flag(argv: Sequence[str]) -> bool:
    """Has the user run a command of the form ``tool build --no-telemetry``?"""
    return NO_TELEMETRY_FLAG in argv


def is_do_not_track(env: Mapping[str, str]) -> bool:
    """Is the universal ``DO_NOT_TRACK`` opt-out set?"""
    return bool(env.get("DO_NOT_TRACK"))


def get_command(argv: Sequence[str]) -> str | None:
    """Return the top-level command token, if any."""
    if len(argv) > COMMAND_INDEX:
        return argv[COMMAND_INDEX]
    return None


def resolve(argv: Sequence[str], env: Mapping[str, str]) -> OverrideMode:
    """Map an invocation to its override mode.

    Suppression wins over everything: ``--no-telemetry``, a CI environment
    or ``DO_NOT_TRACK`` give NEVER even for the ``telemetry`` command.
    Running the ``telemetry`` command itself gives ALWAYS, so that changing
    consent is observable whichever way it goes.
    """
    if is_no_telemetry_flag(argv) or is_ci_environment(env) or is_do_not_track(env):
        return OverrideMode.NEVER

    if get_command(argv) == TELEMETRY_COMMAND:
        return OverrideMode.ALWAYS

    return OverrideMode.NONE


def get_disabled_reason(argv: Sequence[str], env: Mapping[str, str]) -> str | None:
    """Explain why the override is NEVER, for status display."""
    if is_no_telemetry_flag(argv):
        return f"{NO_TELEMETRY_FLAG} flag"
    if is_ci_environment(env):
        return "CI environment"
    if is_do_not_track(env):
        return "DO_NOT_TRACK environment variable"
    return None

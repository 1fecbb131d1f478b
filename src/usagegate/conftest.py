"""
Root pytest configuration for usagegate.

Provides fixtures for consent stores, recording reporters, telemetry
sessions and CLI testing.
"""

from __future__ import annotations

import io
import os
from pathlib import Path

import pytest
from click.testing import CliRunner
from rich.console import Console

from usagegate.config import CI_ENV_VARS, ENV_PREFIX, TelemetryConfig
from usagegate.telemetry.prompt import PromptController
from usagegate.telemetry.session import Telemetry, reset_telemetry
from usagegate.telemetry.store import ConsentStore, JsonSettingsStore

# ============================================================================
# Environment Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Keep tests away from the real environment and home directory.

    CI runners set CI=true, which would force every session into NEVER.
    """
    for var in CI_ENV_VARS + ["DO_NOT_TRACK"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith(ENV_PREFIX):
            monkeypatch.delenv(var, raising=False)

    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    reset_telemetry()
    yield
    reset_telemetry()


# ============================================================================
# Telemetry Fixtures
# ============================================================================


class RecordingReporter:
    """Reporter that keeps every event it receives."""

    def __init__(self):
        self.events: list[tuple[str, ...]] = []

    def report(self, parts: tuple[str, ...]) -> None:
        self.events.append(parts)


class FailingReporter:
    """Reporter whose transport is always down."""

    def __init__(self):
        self.calls = 0

    def report(self, parts: tuple[str, ...]) -> None:
        self.calls += 1
        raise ConnectionError("analytics backend unreachable")


class ScriptedReader:
    """Prompt reader that answers from a script and records the questions."""

    def __init__(self, answer: bool = True, error: Exception | None = None):
        self.answer = answer
        self.error = error
        self.questions: list[str] = []

    async def __call__(self, message: str) -> bool:
        self.questions.append(message)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def telemetry_config(tmp_path) -> TelemetryConfig:
    """Config pointing the settings file into a temp directory."""
    return TelemetryConfig(SETTINGS_DIR=str(tmp_path / ".usagegate"), PROMPT_TIMEOUT=1.0)


@pytest.fixture
def settings_path(telemetry_config) -> Path:
    return telemetry_config.get_settings_dir() / telemetry_config.SETTINGS_FILE


@pytest.fixture
def store(settings_path) -> ConsentStore:
    """Consent store over an empty JSON settings file."""
    return ConsentStore(JsonSettingsStore(settings_path))


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def quiet_console() -> Console:
    """Console that writes nowhere visible."""
    return Console(file=io.StringIO(), force_terminal=False)


@pytest.fixture
def make_telemetry(store, reporter, telemetry_config, quiet_console):
    """
    Factory for telemetry sessions with a scripted consent prompt.

    Usage:
        def test_something(make_telemetry):
            telemetry, reader = make_telemetry(answer=False)
    """

    def _make(answer: bool = True, error: Exception | None = None, interactive: bool = True):
        reader = ScriptedReader(answer=answer, error=error)
        telemetry = Telemetry(store, reporter, config=telemetry_config, console=quiet_console)
        telemetry.prompt = PromptController(
            store,
            telemetry.track,
            console=quiet_console,
            reader=reader,
            is_interactive=lambda: interactive,
        )
        return telemetry, reader

    return _make


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing."""
    return CliRunner()


def invoke_cli(runner: CliRunner, cmd, args: list[str], **kwargs):
    """
    Helper to invoke CLI command.

    Args:
        runner: Click test runner
        cmd: Click command or group
        args: Command arguments
        **kwargs: Additional arguments to runner.invoke()

    Returns:
        Click Result object
    """
    return runner.invoke(cmd, args, catch_exceptions=False, **kwargs)


def assert_cli_success(result, msg: str = None):
    """Assert CLI command succeeded (exit code 0)."""
    if result.exit_code != 0:
        error_msg = f"CLI failed (exit code {result.exit_code})"
        if msg:
            error_msg = f"{msg}: {error_msg}"
        if result.output:
            error_msg += f"\nOutput: {result.output}"
        raise AssertionError(error_msg)


def assert_cli_failure(result, expected_code: int = None, msg: str = None):
    """Assert CLI command failed."""
    if result.exit_code == 0:
        error_msg = "CLI succeeded but expected failure"
        if msg:
            error_msg = f"{msg}: {error_msg}"
        raise AssertionError(error_msg)

    if expected_code is not None and result.exit_code != expected_code:
        raise AssertionError(f"Expected exit code {expected_code}, got {result.exit_code}")


def assert_output_contains(result, text: str):
    """Assert CLI output contains text."""
    if text not in result.output:
        raise AssertionError(f"Expected output to contain '{text}'\nGot: {result.output}")

"""usagegate CLI - click front end for the telemetry session.

Host tools build their command group with ``cls=TrackedGroup``; the group
initializes telemetry (prompting for consent the first time) before any
command runs and tracks each command's outcome afterwards:

    @click.group(cls=TrackedGroup)
    def cli():
        ...

    cli.add_command(telemetry_group)

Commands:
- telemetry on / off: change the stored consent decision
- telemetry status: show what is reported and why
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from usagegate.errors import TelemetryError
from usagegate.telemetry.override import COMMAND_INDEX, TELEMETRY_COMMAND, get_command
from usagegate.telemetry.prompt import OPT_IN_MESSAGE, OPT_OUT_MESSAGE
from usagegate.telemetry.session import Telemetry, get_telemetry

load_dotenv()

console = Console()

ARGV_KEY = "usagegate.argv"

# Commands whose next token is reported as the subcommand
COMMANDS_WITH_SUBCOMMANDS = {TELEMETRY_COMMAND}


def get_subcommand(argv: list[str], command: str | None) -> str | None:
    """Return the subcommand token for commands that have one.

    e.g. argv='python usagegate telemetry on' -> 'on'
    """
    if command in COMMANDS_WITH_SUBCOMMANDS and len(argv) > COMMAND_INDEX + 1:
        return argv[COMMAND_INDEX + 1]
    return None


class TrackedGroup(click.Group):
    """A Click group that runs every command inside a telemetry session.

    The session comes from ``ctx.obj`` when the caller provides one (tests,
    embedding hosts) and from ``get_telemetry()`` otherwise.
    """

    def parse_args(self, ctx, args):
        # interpreter + program name + raw arguments, as the resolver expects
        ctx.meta[ARGV_KEY] = [sys.executable, ctx.info_name or "usagegate", *args]
        return super().parse_args(ctx, args)

    def invoke(self, ctx):
        # Before initialize, so override resolution and the prompt are logged
        _configure_logging(ctx.params.get("verbose", False))

        argv = ctx.meta.get(ARGV_KEY, [])
        command = get_command(argv)
        subcommand = get_subcommand(argv, command)

        if not isinstance(ctx.obj, Telemetry):
            ctx.obj = get_telemetry()
        telemetry: Telemetry = ctx.obj

        # Decide (and possibly ask) before any command logic runs
        try:
            asyncio.run(telemetry.initialize(argv, os.environ))
        except TelemetryError as e:
            raise click.ClickException(str(e)) from e

        try:
            rv = super().invoke(ctx)
        except click.exceptions.Exit:
            raise
        except (click.ClickException, click.Abort):
            telemetry.track(command, subcommand, "unsuccessful")
            raise
        except Exception:
            telemetry.track(command, subcommand, "unsuccessful")
            # Only that it happened, never the exception details
            telemetry.track("uncaughtException")
            raise

        telemetry.track(command, subcommand, "successful")
        return rv


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("usagegate").setLevel(logging.DEBUG)


@click.group(cls=TrackedGroup)
@click.option(
    "--no-telemetry",
    is_flag=True,
    help="Do not report anonymous usage for this invocation",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(package_name="usagegate", prog_name="usagegate")
def main(no_telemetry: bool, verbose: bool):
    """
    usagegate - consent-gated usage analytics for command-line tools.

    \b
    Telemetry is only reported after you opt in. Set CI or DO_NOT_TRACK,
    or pass --no-telemetry, to suppress it for a single run.
    """


# ============================================================================
# Telemetry Commands
# ============================================================================


@click.group("telemetry")
def telemetry_group():
    """Manage telemetry and anonymous usage analytics."""
    pass


def _run_consent_change(fn) -> None:
    try:
        fn()
    except TelemetryError as e:
        raise click.ClickException(str(e)) from e


@telemetry_group.command("on")
@click.pass_obj
def telemetry_on(telemetry: Telemetry):
    """
    Opt into anonymous telemetry collection.

    Example:
        usagegate telemetry on
    """
    _run_consent_change(telemetry.turn_on)
    console.print(OPT_IN_MESSAGE, soft_wrap=True)


@telemetry_group.command("off")
@click.pass_obj
def telemetry_off(telemetry: Telemetry):
    """
    Opt out of telemetry collection.

    You can also suppress telemetry for a single run with --no-telemetry,
    or by setting the CI or DO_NOT_TRACK environment variables.

    Example:
        usagegate telemetry off
    """
    _run_consent_change(telemetry.turn_off)
    console.print(OPT_OUT_MESSAGE, soft_wrap=True)


@telemetry_group.command("status")
@click.pass_obj
def telemetry_status(telemetry: Telemetry):
    """
    Show current telemetry status and what data is collected.

    Example:
        usagegate telemetry status
    """
    try:
        status_info = telemetry.status()
    except TelemetryError as e:
        raise click.ClickException(str(e)) from e

    if status_info["enabled"]:
        status_text = "[bold green]Enabled[/bold green]"
        status_emoji = "+"
    else:
        status_text = "[bold red]Disabled[/bold red]"
        status_emoji = "x"

    console.print()
    console.print(
        Panel(
            f"{status_emoji} Telemetry is {status_text}",
            title="Telemetry Status",
            border_style="green" if status_info["enabled"] else "red",
        )
    )

    console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Status", "Enabled" if status_info["enabled"] else "Disabled")
    table.add_row("Decision", status_info["decision"].replace("_", " "))

    if status_info["disabled_reason"]:
        table.add_row("Disabled by", status_info["disabled_reason"])

    table.add_row("Settings file", status_info["settings_path"])

    if status_info["machine_id"]:
        table.add_row("Machine ID", status_info["machine_id"][:16] + "...")

    table.add_row("CI environment", "Yes" if status_info["is_ci"] else "No")

    console.print(table)

    console.print()
    console.print("[bold]What we collect:[/bold]")
    console.print("  - Command and subcommand names (e.g., 'telemetry on')")
    console.print("  - Whether the command succeeded")
    console.print("  - Operating system, Python and usagegate versions")
    console.print()
    console.print("[bold]What we DON'T collect:[/bold]")
    console.print("  - Command arguments, file paths or URLs")
    console.print("  - Exception messages or stack traces")
    console.print("  - Personal information")
    console.print()
    console.print("[dim]To opt out: usagegate telemetry off[/dim]")


main.add_command(telemetry_group)

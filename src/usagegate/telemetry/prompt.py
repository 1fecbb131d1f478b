"""Interactive yes/no consent prompt with a bounded wait.

The answer is read from stdin through the running event loop: the loop
watches the stream and a line is only consumed once it is there to read.
On timeout the watch is dropped, so whatever the user types afterwards is
left for the host command.

Whatever the outcome (answer, timeout, no terminal), the result is written
to the ConsentStore *before* the choice event is tracked, so the event is
gated by the decision it reports.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import TextIO

from rich.console import Console
from rich.prompt import Confirm, InvalidResponse

from usagegate.telemetry.store import ConsentStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

PROMPT_MESSAGE = "May usagegate anonymously report usage statistics to improve the tool over time?"
OPT_IN_MESSAGE = "Thanks for opting into telemetry to help us improve usagegate."
OPT_OUT_MESSAGE = (
    "You have been opted out of telemetry. To change this, run: usagegate telemetry on."
)
PROMPT_CHOICE_LABEL = "via-cli-prompt-choice"

Reader = Callable[[str], Awaitable[bool]]
TrackFn = Callable[..., None]


class PromptController:
    """Ask for telemetry consent and record the answer."""

    def __init__(
        self,
        store: ConsentStore,
        track: TrackFn,
        console: Console | None = None,
        reader: Reader | None = None,
        is_interactive: Callable[[], bool] | None = None,
        stream: TextIO | None = None,
    ):
        self.store = store
        self.track = track
        self.console = console or Console()
        self.stream = stream if stream is not None else sys.stdin
        self.reader = reader or self._read_terminal
        self.is_interactive = is_interactive or self._is_interactive

    def _is_interactive(self) -> bool:
        """Can we ask the user anything at all?"""
        try:
            return self.stream.isatty() and sys.stdout.isatty()
        except (AttributeError, ValueError):
            # Replaced or closed standard streams
            return False

    async def ask(self, message: str = PROMPT_MESSAGE, timeout: float = DEFAULT_TIMEOUT) -> bool:
        """Ask ``message`` and resolve to the user's answer.

        No answer within ``timeout`` seconds, no usable terminal, or a
        failing terminal read all count as opting out.

        Raises:
            ConsentStoreError: If the answer cannot be persisted
        """
        opted_in = await self._wait_for_answer(message, timeout)

        self.store.set_opted_in(opted_in)

        if opted_in:
            self.console.print(OPT_IN_MESSAGE, soft_wrap=True)
        else:
            self.console.print(OPT_OUT_MESSAGE, soft_wrap=True)

        self.track("telemetry", "on" if opted_in else "off", PROMPT_CHOICE_LABEL, "successful")
        return opted_in

    async def _wait_for_answer(self, message: str, timeout: float) -> bool:
        if not self.is_interactive():
            logger.debug("No interactive terminal; treating consent prompt as declined")
            return False

        try:
            return bool(await asyncio.wait_for(self.reader(message), timeout))
        except asyncio.TimeoutError:
            logger.debug(f"No answer to consent prompt within {timeout}s")
            self.console.print()
            return False
        except Exception as e:
            # Closed stdin, undecodable input, a loop that cannot watch the stream
            logger.debug(f"Consent prompt failed to read from terminal: {e!r}")
            return False

    async def _read_terminal(self, message: str) -> bool:
        """Ask until a yes/no answer arrives. Invalid answers re-ask."""
        confirm = Confirm(message, console=self.console)
        while True:
            self.console.print(confirm.make_prompt(...), end="")
            line = await self._readline()
            try:
                return confirm.process_response(line)
            except InvalidResponse as error:
                confirm.on_validate_error(line, error)

    async def _readline(self) -> str:
        """Read one line once the stream has one; cancelling stops the watch.

        Raises:
            EOFError: If the stream is closed
        """
        loop = asyncio.get_running_loop()
        fd = self.stream.fileno()
        ready: asyncio.Future[None] = loop.create_future()

        def _on_ready() -> None:
            if not ready.done():
                ready.set_result(None)

        loop.add_reader(fd, _on_ready)
        try:
            await ready
        finally:
            loop.remove_reader(fd)

        line = self.stream.readline()
        if not line:
            raise EOFError("stdin closed")
        return line

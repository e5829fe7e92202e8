"""Readiness probing for subprocess-backed sessions.

A freshly spawned server may still be starting up, or may already have
died. Before trusting it with the real handshake we send a few bounded
``ping`` probes with growing delays between them.
"""

from __future__ import annotations

import asyncio
import logging

import anyio

from mcp_cli.adapter.base import TransportSession
from mcp_cli.adapter.session import TransportClosedError, root_cause
from mcp_cli.errors import ProcessNotReadyError, ProcessUnavailableError

logger = logging.getLogger(__name__)

# Delay before each probe attempt; its length is the attempt count.
DEFAULT_PROBE_DELAYS = (0.1, 0.5, 1.0)
DEFAULT_PROBE_TIMEOUT = 1.0

# Stream errors the SDK raises once the subprocess end of its pipes is gone.
PROCESS_EXIT_TYPES: tuple[type[BaseException], ...] = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    BrokenPipeError,
    ConnectionResetError,
    EOFError,
    TransportClosedError,
)

# Fallback for untyped failures, matched case-insensitively against
# "<ExceptionType>: <message>" of the probe failure.
PROCESS_EXIT_TOKENS = (
    "process",
    "exit",
    "pipe",
    "broken",
    "eof",
    "connection closed",
)


def is_process_exit_error(exc: BaseException | None) -> bool:
    """Return True if a probe failure looks like the subprocess is gone."""
    if exc is None:
        return False
    exc = root_cause(exc)
    if isinstance(exc, PROCESS_EXIT_TYPES):
        return True
    text = f"{type(exc).__name__}: {exc}".lower()
    return any(token in text for token in PROCESS_EXIT_TOKENS)


class ReadinessProber:
    """Bounded pre-handshake liveness check."""

    def __init__(
        self,
        delays: tuple[float, ...] = DEFAULT_PROBE_DELAYS,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        *,
        verbose: bool = False,
    ) -> None:
        self.delays = delays
        self.probe_timeout = probe_timeout
        self.verbose = verbose

    async def wait_until_ready(self, session: TransportSession, *, label: str = "") -> None:
        """Probe ``session`` until it answers, dies, or attempts run out.

        Raises:
            ProcessUnavailableError: a probe failed with process-exit evidence.
            ProcessNotReadyError: every attempt failed without such evidence.
        """
        total = len(self.delays)
        last_error: Exception | None = None

        for attempt, delay in enumerate(self.delays, start=1):
            await asyncio.sleep(delay)
            self._log("Process readiness check %d/%d for '%s'", attempt, total, label)

            try:
                async with asyncio.timeout(self.probe_timeout):
                    await session.probe()
            except Exception as exc:
                last_error = exc
            else:
                self._log("Process '%s' is ready", label)
                return

            if is_process_exit_error(last_error):
                raise ProcessUnavailableError(
                    f"Process exited unexpectedly - check command '{label}': "
                    f"{type(last_error).__name__}: {last_error}"
                ) from last_error

            self._log("Process '%s' not ready yet (attempt %d): %r", label, attempt, last_error)

        raise ProcessNotReadyError(
            f"Process '{label}' did not become ready after {total} probe attempts"
        ) from last_error

    def _log(self, msg: str, *args: object) -> None:
        if self.verbose:
            logger.info(msg, *args)

"""Stdio transport over a child process.

Launches an MCP server as a subprocess and talks to it over its
stdin/stdout using newline-delimited JSON. The child's stderr stays
connected to ours, unmodified.

Wire format:
- Outbound: JSON object + newline to subprocess stdin
- Inbound: JSON object + newline from subprocess stdout
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Mapping, Sequence

from ..errors import MalformedFrame, TransportClosed, TransportError
from .base import TransportState

logger = logging.getLogger(__name__)

# Tool results can carry base64 images, far beyond asyncio's 64 KiB default.
STREAM_LIMIT = 16 * 1024 * 1024


class StdioTransport:
    """Transport over subprocess stdin/stdout.

    Use :meth:`spawn` to launch the server process. Writes are serialized by
    a writer lock so concurrent senders never interleave frames; reads are
    guarded the same way although only the dispatch loop should read.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        *,
        close_timeout: float = 5.0,
    ) -> None:
        if process.stdin is None or process.stdout is None:
            raise TransportError("Process must be started with piped stdin and stdout")
        self._process = process
        self._stdin = process.stdin
        self._stdout = process.stdout
        self._close_timeout = close_timeout
        self._state = TransportState.OPEN
        self._write_lock = asyncio.Lock()
        self._read_lock = asyncio.Lock()
        self._closed = asyncio.Event()

    @classmethod
    async def spawn(
        cls,
        command: str,
        args: Sequence[str] = (),
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        close_timeout: float = 5.0,
    ) -> StdioTransport:
        """Launch ``command`` with ``args`` and wrap its stdio.

        Args:
            command: Executable to run
            args: Arguments passed to the executable
            env: Extra environment variables, merged over ``os.environ``
            cwd: Working directory for the subprocess
            close_timeout: Seconds to wait for the process at each close step

        Raises:
            TransportError: If the process cannot be started
        """
        merged_env = None
        if env:
            merged_env = {**os.environ, **env}

        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=None,
                cwd=cwd,
                env=merged_env,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise TransportError(f"Failed to spawn MCP server process {command!r}: {e}") from e

        logger.info(f"Launched subprocess: {' '.join([command, *args])} (pid={process.pid})")
        return cls(process, close_timeout=close_timeout)

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def send(self, frame: str) -> None:
        """Write one frame as a JSON line to stdin."""
        if self._state != TransportState.OPEN:
            raise TransportError("Transport is closed")

        data = frame.encode("utf-8") + b"\n"
        async with self._write_lock:
            try:
                self._stdin.write(data)
                await self._stdin.drain()
            except (ConnectionError, OSError) as e:
                raise TransportError(f"Failed to write to MCP server: {e}") from e

    async def receive(self) -> str:
        """Read the next non-blank line from stdout."""
        async with self._read_lock:
            while True:
                try:
                    line = await self._stdout.readline()
                except (ValueError, OSError) as e:
                    # ValueError: line longer than STREAM_LIMIT
                    raise TransportError(f"Failed to read from MCP server: {e}") from e

                if not line:
                    raise TransportClosed("MCP server closed connection (EOF)")

                try:
                    text = line.decode("utf-8").strip()
                except UnicodeDecodeError as e:
                    raise MalformedFrame(f"Frame is not valid UTF-8: {e}") from e

                if text:
                    return text

    async def close(self) -> None:
        """Close stdin, wait for exit, then terminate and finally kill.

        Each wait is bounded by ``close_timeout``. A second call waits for
        the first to finish and returns.
        """
        if self._state == TransportState.CLOSED:
            return
        if self._state == TransportState.CLOSING:
            await self._closed.wait()
            return

        self._state = TransportState.CLOSING
        try:
            self._stdin.close()
            with contextlib.suppress(ConnectionError, OSError):
                await self._stdin.wait_closed()

            if self._process.returncode is not None:
                return

            try:
                await asyncio.wait_for(self._process.wait(), timeout=self._close_timeout)
                return
            except TimeoutError:
                logger.warning(f"Subprocess did not exit, terminating (pid={self.pid})")

            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=self._close_timeout)
            except TimeoutError:
                logger.warning(f"Subprocess ignored terminate, killing (pid={self.pid})")
                with contextlib.suppress(ProcessLookupError):
                    self._process.kill()
                await self._process.wait()
        except OSError as e:
            raise TransportError(f"Failed to close MCP server process: {e}") from e
        finally:
            self._state = TransportState.CLOSED
            self._closed.set()
            logger.info(f"Subprocess closed (pid={self.pid}, returncode={self.returncode})")

"""Local `opencode serve` process management."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import socket
from collections.abc import Awaitable, Callable
from pathlib import Path

logger = logging.getLogger(__name__)

CLIENT_NAME = "opencode-sessions"
LISTENING_MARKER = "opencode server listening"
_URL_PATTERN = re.compile(r"on\s+(https?://\S+)")

SpawnFn = Callable[..., Awaitable[asyncio.subprocess.Process]]


class ServerStartError(RuntimeError):
    """Raised when the OpenCode server cannot be started."""


class OpencodeServer:
    """Spawns an OpenCode server on a free local port and tracks the process."""

    def __init__(
        self,
        binary: str = "opencode",
        *,
        start_timeout: float = 15.0,
        spawn: SpawnFn | None = None,
    ) -> None:
        self.binary = binary
        self.start_timeout = start_timeout
        self.url: str | None = None
        self._spawn = spawn or asyncio.create_subprocess_exec
        self._proc: asyncio.subprocess.Process | None = None
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @staticmethod
    def find_free_port() -> int:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            return sock.getsockname()[1]

    async def start(self, cwd: str | Path) -> str:
        """Start a server in `cwd` and return its base URL once it is listening."""

        await self.stop()
        # A missing cwd also surfaces as FileNotFoundError from the spawn call.
        if not Path(cwd).is_dir():
            raise ServerStartError(f"Workspace directory '{cwd}' does not exist")
        port = self.find_free_port()
        args = ["serve", "--hostname=127.0.0.1", f"--port={port}"]
        env = {**os.environ, "OPENCODE_CLIENT": CLIENT_NAME}
        logger.info("Spawning: %s %s (cwd: %s)", self.binary, " ".join(args), cwd)
        try:
            proc = await self._spawn(
                self.binary,
                *args,
                cwd=str(cwd),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as exc:
            raise ServerStartError(f"OpenCode CLI '{self.binary}' not found on PATH") from exc
        self._proc = proc

        try:
            url = await asyncio.wait_for(self._wait_for_url(proc), timeout=self.start_timeout)
        except asyncio.TimeoutError as exc:
            await self.stop()
            raise ServerStartError(f"Server startup timed out after {self.start_timeout:g}s") from exc
        except ServerStartError:
            await self.stop()
            raise

        self.url = url
        self._drain_task = asyncio.create_task(self._drain(proc))
        logger.info("OpenCode server started at %s (PID: %s)", url, proc.pid)
        return url

    async def stop(self) -> None:
        """Kill the tracked server process, if any."""

        if self._drain_task is not None:
            self._drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None
        proc = self._proc
        if proc is None:
            return
        self._proc = None
        self.url = None
        if proc.returncode is None:
            logger.info("Stopping OpenCode server (PID: %s)...", proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                logger.debug("OpenCode server already exited")
        await proc.wait()

    async def _wait_for_url(self, proc: asyncio.subprocess.Process) -> str:
        if proc.stdout is None:
            raise ServerStartError("Server output is not captured")
        output: list[str] = []
        while True:
            raw = await proc.stdout.readline()
            if not raw:
                code = await proc.wait()
                raise ServerStartError(f"Server exited with code {code}\nOutput: {''.join(output)}")
            text = raw.decode("utf-8", errors="replace")
            output.append(text)
            logger.debug("opencode: %s", text.rstrip())
            if LISTENING_MARKER in text:
                match = _URL_PATTERN.search(text)
                if match:
                    return match.group(1)

    async def _drain(self, proc: asyncio.subprocess.Process) -> None:
        # stdout must keep draining or the server blocks on a full pipe.
        if proc.stdout is None:
            return
        while True:
            raw = await proc.stdout.readline()
            if not raw:
                return
            logger.debug("opencode: %s", raw.decode("utf-8", errors="replace").rstrip())


__all__ = ["OpencodeServer", "ServerStartError", "LISTENING_MARKER", "CLIENT_NAME"]

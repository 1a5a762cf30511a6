"""Facade owning the OpenCode server, client and session operations."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import httpx

from opencode_sessions.client import ClientSettings, OpencodeClient
from opencode_sessions.core.config import ConfigurationError, SessionsConfig
from opencode_sessions.server import OpencodeServer
from opencode_sessions.session import OperationResult, OpsContext, Session, SessionOps

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TITLE = "New Session"


class OpencodeService:
    """Connects to (or launches) an OpenCode server and tracks the current session.

    Stateless operations are reached through `sessions`; the methods defined
    here additionally keep the current session id and title in sync.
    """

    def __init__(
        self,
        config: SessionsConfig | None = None,
        *,
        server: OpencodeServer | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or SessionsConfig()
        self._server = server or OpencodeServer(
            self._config.opencode_binary,
            start_timeout=self._config.server_start_timeout,
        )
        self._http_client = http_client
        self._client: OpencodeClient | None = None
        self._workspace_dir = self._config.workspace_dir
        self.current_session_id: str | None = None
        self.current_session_title = DEFAULT_SESSION_TITLE
        context = OpsContext(
            get_client=lambda: self._client,
            get_workspace_dir=lambda: self._workspace_dir,
        )
        self.sessions = SessionOps(
            context,
            default_agent=self._config.shell_agent,
            default_summary_provider=self._config.summary_provider,
            default_summary_model=self._config.summary_model,
        )

    @property
    def workspace_dir(self) -> str | None:
        return self._workspace_dir

    def is_ready(self) -> bool:
        return self._client is not None

    async def initialize(self, workspace_root: str | Path | None = None) -> None:
        """Connect to the configured server, starting a local one when none is set."""

        if self._client is not None:
            return
        if workspace_root is not None and Path(workspace_root).exists():
            self._workspace_dir = str(Path(workspace_root).resolve())
        if self._workspace_dir is not None and not Path(self._workspace_dir).is_dir():
            raise ConfigurationError(f"Workspace directory '{self._workspace_dir}' does not exist")

        base_url = self._config.base_url
        if not base_url:
            logger.info("Starting OpenCode server...")
            base_url = await self._server.start(self._workspace_dir or os.getcwd())
            logger.debug("OpenCode server PID: %s", self._server.pid)

        settings = ClientSettings(base_url=base_url, timeout_seconds=self._config.timeout_seconds)
        self._client = OpencodeClient(settings, client=self._http_client)
        logger.info("Connected to OpenCode at %s", base_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        await self._server.stop()

    async def __aenter__(self) -> OpencodeService:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session operations that move the current-session pointer
    # ------------------------------------------------------------------
    async def create_session(self) -> str:
        session_id = await self.sessions.create_session()
        self.current_session_id = session_id
        self.current_session_title = DEFAULT_SESSION_TITLE
        return session_id

    async def switch_session(self, session_id: str) -> Session:
        session = await self.sessions.switch_session(session_id)
        self.current_session_id = session.id
        self.current_session_title = session.title
        return session

    async def delete_session(self, session_id: str) -> OperationResult:
        result = await self.sessions.delete_session(session_id)
        if result.success and self.current_session_id == session_id:
            self.current_session_id = None
            self.current_session_title = DEFAULT_SESSION_TITLE
        return result

    async def update_session(self, session_id: str, *, title: str | None = None) -> OperationResult:
        result = await self.sessions.update_session(session_id, title=title)
        if result.success and self.current_session_id == session_id and title is not None:
            self.current_session_title = title
        return result


__all__ = ["OpencodeService", "DEFAULT_SESSION_TITLE"]

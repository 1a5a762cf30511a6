"""OpenCode session operations.

Each method assembles request fields, delegates through one of the
`BaseOps` wrappers and narrows the server payload into a local record.
Which wrapper an operation uses decides how it reports failure:

* raising (`SessionOpsError`): create, list, switch, messages, abort, fork
* `OperationResult` envelope: delete, update, init, command, shell,
  summarize, share, unshare, revert, unrevert
* `None`: status, todos, diff, children
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .base import BaseOps, OpsContext, SessionOpsError
from .models import (
    FileDiff,
    ForkResult,
    OperationResult,
    Session,
    SessionMessage,
    SessionStatus,
    ShareResult,
    Todo,
)

logger = logging.getLogger(__name__)

DEFAULT_SHELL_AGENT = "build"
DEFAULT_SUMMARY_PROVIDER = "anthropic"
DEFAULT_SUMMARY_MODEL = "claude-sonnet-4-5"


def _items(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _to_session(data: Any) -> Session:
    return Session.model_validate(data)


def _to_sessions(data: Any) -> list[Session]:
    return [Session.model_validate(item) for item in _items(data)]


def _to_messages(data: Any) -> list[SessionMessage]:
    return [SessionMessage.model_validate(item) for item in _items(data)]


def _to_status_map(data: Any) -> dict[str, SessionStatus]:
    if not isinstance(data, dict):
        return {}
    statuses: dict[str, SessionStatus] = {}
    for session_id, status in data.items():
        try:
            statuses[str(session_id)] = SessionStatus.model_validate(status)
        except ValidationError as exc:
            logger.warning("Skipping unrecognized status for session %s: %s", session_id, exc)
    return statuses


def _to_todos(data: Any) -> list[Todo]:
    return [Todo.model_validate(item) for item in _items(data)]


def _to_diffs(data: Any) -> list[FileDiff]:
    return [FileDiff.model_validate(item) for item in _items(data)]


def _new_session_id(data: Any) -> str:
    session_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(session_id, str) or not session_id:
        raise SessionOpsError("Create session succeeded but no session ID returned")
    return session_id


def _forked_session_id(data: Any) -> str:
    session_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(session_id, str) or not session_id:
        raise SessionOpsError("Fork succeeded but no new session ID returned")
    return session_id


def _share_url(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    share = data.get("share")
    if not isinstance(share, dict):
        return None
    url = share.get("url")
    return url if isinstance(url, str) and url else None


class SessionOps(BaseOps):
    """Session CRUD, status monitoring, commands, sharing and history."""

    def __init__(
        self,
        context: OpsContext,
        *,
        default_agent: str = DEFAULT_SHELL_AGENT,
        default_summary_provider: str = DEFAULT_SUMMARY_PROVIDER,
        default_summary_model: str = DEFAULT_SUMMARY_MODEL,
    ) -> None:
        super().__init__(context)
        self.default_agent = default_agent
        self.default_summary_provider = default_summary_provider
        self.default_summary_model = default_summary_model

    # ------------------------------------------------------------------
    # Core session CRUD
    # ------------------------------------------------------------------
    async def create_session(self) -> str:
        return await self.safe_execute_or_throw(
            "Create session",
            lambda client: client.session.create(directory=self._workspace_dir),
            _new_session_id,
        )

    async def list_sessions(self) -> list[Session]:
        return await self.safe_execute_or_throw(
            "List sessions",
            lambda client: client.session.list(directory=self._workspace_dir),
            _to_sessions,
        )

    async def switch_session(self, session_id: str) -> Session:
        return await self.safe_execute_or_throw(
            f"Get session {session_id}",
            lambda client: client.session.get(session_id=session_id, directory=self._workspace_dir),
            _to_session,
        )

    async def get_messages(self, session_id: str) -> list[SessionMessage]:
        return await self.safe_execute_or_throw(
            f"Get messages for session {session_id}",
            lambda client: client.session.messages(session_id=session_id, directory=self._workspace_dir),
            _to_messages,
        )

    async def delete_session(self, session_id: str) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Deleting session {session_id}",
            lambda client: client.session.delete(session_id=session_id, directory=self._workspace_dir),
        )
        return OperationResult(success=result.success, error=result.error)

    async def update_session(self, session_id: str, *, title: str | None = None) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Updating session {session_id}",
            lambda client: client.session.update(
                session_id=session_id,
                directory=self._workspace_dir,
                title=title,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    async def abort_session(self, session_id: str) -> None:
        await self.safe_execute_or_throw(
            f"Abort session {session_id}",
            lambda client: client.session.abort(session_id=session_id, directory=self._workspace_dir),
        )

    # ------------------------------------------------------------------
    # Status and state snapshots
    # ------------------------------------------------------------------
    async def get_session_status(self) -> dict[str, SessionStatus] | None:
        """Return the idle/busy/retry status of every session, or None on error."""

        return await self.safe_execute(
            "Get session status",
            lambda client: client.session.status(directory=self._workspace_dir),
            _to_status_map,
        )

    async def get_session_todos(self, session_id: str) -> list[Todo] | None:
        return await self.safe_execute(
            f"Get todos for session {session_id}",
            lambda client: client.session.todo(session_id=session_id, directory=self._workspace_dir),
            _to_todos,
        )

    async def get_session_diff(self, session_id: str, message_id: str | None = None) -> list[FileDiff] | None:
        """File changes made in a session, narrowed to one message when given."""

        return await self.safe_execute(
            f"Getting diff for session {session_id}",
            lambda client: client.session.diff(
                session_id=session_id,
                directory=self._workspace_dir,
                message_id=message_id,
            ),
            _to_diffs,
        )

    async def get_session_children(self, session_id: str) -> list[Session] | None:
        return await self.safe_execute(
            f"Get children for session {session_id}",
            lambda client: client.session.children(session_id=session_id, directory=self._workspace_dir),
            _to_sessions,
        )

    # ------------------------------------------------------------------
    # Commands and actions
    # ------------------------------------------------------------------
    async def init_session(
        self,
        session_id: str,
        *,
        provider_id: str | None = None,
        model_id: str | None = None,
        message_id: str | None = None,
    ) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Initializing session {session_id}",
            lambda client: client.session.init(
                session_id=session_id,
                directory=self._workspace_dir,
                provider_id=provider_id,
                model_id=model_id,
                message_id=message_id,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    async def execute_command(
        self,
        session_id: str,
        command: str,
        args: str | None = None,
        *,
        agent: str | None = None,
        model: str | None = None,
    ) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Executing command {command} in session {session_id}",
            lambda client: client.session.command(
                session_id=session_id,
                directory=self._workspace_dir,
                command=command,
                arguments=args or "",
                agent=agent,
                model=model,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    async def execute_shell(
        self,
        session_id: str,
        command: str,
        *,
        agent: str | None = None,
        provider_id: str | None = None,
        model_id: str | None = None,
    ) -> OperationResult:
        # Model selector only when both ids are present.
        model = {"providerID": provider_id, "modelID": model_id} if provider_id and model_id else None
        result = await self.safe_execute_with_log(
            f"Executing shell command in session {session_id}",
            lambda client: client.session.shell(
                session_id=session_id,
                directory=self._workspace_dir,
                command=command,
                agent=agent or self.default_agent,
                model=model,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    async def summarize_session(
        self,
        session_id: str,
        *,
        provider_id: str | None = None,
        model_id: str | None = None,
        auto: bool | None = None,
    ) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Summarizing session {session_id}",
            lambda client: client.session.summarize(
                session_id=session_id,
                directory=self._workspace_dir,
                provider_id=provider_id or self.default_summary_provider,
                model_id=model_id or self.default_summary_model,
                auto=auto,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------
    async def share_session(self, session_id: str) -> ShareResult:
        result = await self.safe_execute_with_log(
            f"Sharing session {session_id}",
            lambda client: client.session.share(session_id=session_id, directory=self._workspace_dir),
            _share_url,
        )
        if not result.success:
            return ShareResult(success=False, error=result.error)
        return ShareResult(success=True, share_url=result.data)

    async def unshare_session(self, session_id: str) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Unsharing session {session_id}",
            lambda client: client.session.unshare(session_id=session_id, directory=self._workspace_dir),
        )
        return OperationResult(success=result.success, error=result.error)

    # ------------------------------------------------------------------
    # History (revert / fork)
    # ------------------------------------------------------------------
    async def revert_to_message(self, session_id: str, message_id: str) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Reverting session {session_id} to message {message_id}",
            lambda client: client.session.revert(
                session_id=session_id,
                directory=self._workspace_dir,
                message_id=message_id,
            ),
        )
        return OperationResult(success=result.success, error=result.error)

    async def unrevert_session(self, session_id: str) -> OperationResult:
        result = await self.safe_execute_with_log(
            f"Unreverting session {session_id}",
            lambda client: client.session.unrevert(session_id=session_id, directory=self._workspace_dir),
        )
        return OperationResult(success=result.success, error=result.error)

    async def fork_session(self, session_id: str, message_id: str) -> ForkResult:
        operation_name = f"Forking session {session_id} at message {message_id}"
        logger.info("%s %s...", self._log_prefix, operation_name)
        new_session_id = await self.safe_execute_or_throw(
            operation_name,
            lambda client: client.session.fork(
                session_id=session_id,
                directory=self._workspace_dir,
                message_id=message_id,
            ),
            _forked_session_id,
        )
        logger.info("%s %s completed successfully", self._log_prefix, operation_name)
        return ForkResult(success=True, new_session_id=new_session_id)


__all__ = [
    "SessionOps",
    "DEFAULT_SHELL_AGENT",
    "DEFAULT_SUMMARY_PROVIDER",
    "DEFAULT_SUMMARY_MODEL",
]

"""Shared execution helpers for OpenCode operation classes."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from opencode_sessions.client import ApiResult, OpencodeClient

logger = logging.getLogger(__name__)

NOT_INITIALIZED = "OpenCode not initialized"

T = TypeVar("T")

Operation = Callable[[OpencodeClient], Awaitable[ApiResult]]


class SessionOpsError(RuntimeError):
    """Raised when a throwing-mode operation fails or the server answers inconsistently."""


@dataclass(slots=True)
class OpsContext:
    """Late-bound access to the active client and workspace.

    Operation classes read through these callables on every call so a
    restarted server or a changed workspace is picked up without rebuilding
    them.
    """

    get_client: Callable[[], OpencodeClient | None]
    get_workspace_dir: Callable[[], str | None]

    @classmethod
    def fixed(cls, client: OpencodeClient | None, workspace_dir: str | None) -> OpsContext:
        return cls(get_client=lambda: client, get_workspace_dir=lambda: workspace_dir)


@dataclass(slots=True)
class ExecutionResult:
    success: bool
    error: str | None = None
    data: Any = None


def describe_error(error: object) -> str:
    if isinstance(error, str):
        text = error
    else:
        try:
            text = json.dumps(error, default=str)
        except (TypeError, ValueError):
            text = str(error)
    return text or "Unknown error"


def _identity(data: Any) -> Any:
    return data


class BaseOps:
    """Client access plus the raise / envelope / `None` execution wrappers."""

    def __init__(self, context: OpsContext) -> None:
        self._ctx = context

    @property
    def _client(self) -> OpencodeClient | None:
        return self._ctx.get_client()

    @property
    def _workspace_dir(self) -> str | None:
        return self._ctx.get_workspace_dir()

    @property
    def _log_prefix(self) -> str:
        return f"[{type(self).__name__}]"

    def _get_client(self) -> OpencodeClient:
        client = self._client
        if client is None:
            raise SessionOpsError(NOT_INITIALIZED)
        return client

    async def safe_execute(
        self,
        operation_name: str,
        operation: Operation,
        transform: Callable[[Any], T] = _identity,
    ) -> T | None:
        """Run `operation`; return transformed data or `None` on any failure.

        The failure detail is logged, not returned.
        """

        client = self._client
        if client is None:
            logger.warning("%s %s failed: %s", self._log_prefix, operation_name, NOT_INITIALIZED)
            return None
        try:
            result = await operation(client)
            if not result.ok:
                logger.warning("%s %s failed: %s", self._log_prefix, operation_name, describe_error(result.error))
                return None
            return transform(result.data)
        except Exception:  # noqa: BLE001
            logger.exception("%s Error in %s", self._log_prefix, operation_name)
            return None

    async def safe_execute_or_throw(
        self,
        operation_name: str,
        operation: Operation,
        transform: Callable[[Any], T] = _identity,
    ) -> T:
        """Run `operation`; raise `SessionOpsError` on a server error marker."""

        client = self._get_client()
        try:
            result = await operation(client)
            if not result.ok:
                raise SessionOpsError(f"{operation_name} failed: {describe_error(result.error)}")
            return transform(result.data)
        except Exception as exc:
            logger.error("%s Error in %s: %s", self._log_prefix, operation_name, exc)
            raise

    async def safe_execute_result(
        self,
        operation_name: str,
        operation: Operation,
        transform: Callable[[Any], T] = _identity,
    ) -> ExecutionResult:
        """Run `operation`; never raise, report the outcome instead."""

        client = self._client
        if client is None:
            logger.warning("%s %s failed: %s", self._log_prefix, operation_name, NOT_INITIALIZED)
            return ExecutionResult(success=False, error=NOT_INITIALIZED)
        try:
            result = await operation(client)
            if not result.ok:
                error = describe_error(result.error)
                logger.warning("%s %s failed: %s", self._log_prefix, operation_name, error)
                return ExecutionResult(success=False, error=error)
            return ExecutionResult(success=True, data=transform(result.data))
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s Error in %s", self._log_prefix, operation_name)
            return ExecutionResult(success=False, error=str(exc) or "Unknown error")

    async def safe_execute_with_log(
        self,
        operation_name: str,
        operation: Operation,
        transform: Callable[[Any], T] = _identity,
    ) -> ExecutionResult:
        logger.info("%s %s...", self._log_prefix, operation_name)
        result = await self.safe_execute_result(operation_name, operation, transform)
        if result.success:
            logger.info("%s %s completed successfully", self._log_prefix, operation_name)
        return result


__all__ = [
    "BaseOps",
    "ExecutionResult",
    "NOT_INITIALIZED",
    "OpsContext",
    "SessionOpsError",
    "describe_error",
]

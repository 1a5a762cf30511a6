"""Session management for OpenCode servers."""

from .client import ApiResult, ClientSettings, OpencodeClient, OpencodeClientError
from .server import OpencodeServer, ServerStartError
from .service import OpencodeService
from .session import (
    FileDiff,
    ForkResult,
    OperationResult,
    OpsContext,
    Session,
    SessionMessage,
    SessionOps,
    SessionOpsError,
    SessionStatus,
    ShareResult,
    Todo,
)

__all__ = [
    "ApiResult",
    "ClientSettings",
    "OpencodeClient",
    "OpencodeClientError",
    "OpencodeServer",
    "ServerStartError",
    "OpencodeService",
    "OpsContext",
    "SessionOps",
    "SessionOpsError",
    "Session",
    "SessionMessage",
    "SessionStatus",
    "Todo",
    "FileDiff",
    "OperationResult",
    "ShareResult",
    "ForkResult",
]

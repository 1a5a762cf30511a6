"""Session operations for OpenCode servers."""

from .base import NOT_INITIALIZED, BaseOps, ExecutionResult, OpsContext, SessionOpsError
from .models import (
    FileDiff,
    ForkResult,
    OperationResult,
    Session,
    SessionMessage,
    SessionStatus,
    SessionTime,
    ShareResult,
    Todo,
)
from .ops import SessionOps

__all__ = [
    "BaseOps",
    "ExecutionResult",
    "OpsContext",
    "SessionOps",
    "SessionOpsError",
    "NOT_INITIALIZED",
    "Session",
    "SessionTime",
    "SessionMessage",
    "SessionStatus",
    "Todo",
    "FileDiff",
    "OperationResult",
    "ShareResult",
    "ForkResult",
]

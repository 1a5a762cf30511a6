"""Shared client types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ClientSettings:
    """Runtime configuration for the OpenCode HTTP client."""

    base_url: str
    timeout_seconds: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ApiResult:
    """Outcome of a single server call.

    Exactly one of `data` / `error` is meaningful: HTTP error statuses are
    reported through `error` instead of being raised.
    """

    data: Any = None
    error: Any = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = ["ClientSettings", "ApiResult"]

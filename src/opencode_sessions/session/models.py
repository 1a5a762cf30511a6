"""Local records for OpenCode session payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _RemoteModel(BaseModel):
    """Narrow a loosely-typed server payload; unknown fields are dropped."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SessionTime(_RemoteModel):
    created: int | None = None
    updated: int | None = None


class Session(_RemoteModel):
    id: str
    title: str = ""
    project_id: str | None = Field(default=None, alias="projectID")
    directory: str | None = None
    time: SessionTime | None = None


class SessionMessage(_RemoteModel):
    info: dict[str, Any] = Field(default_factory=dict)
    parts: list[Any] = Field(default_factory=list)


class SessionStatus(_RemoteModel):
    type: Literal["idle", "busy", "retry"]
    attempt: int | None = None
    message: str | None = None
    next: int | None = None


class Todo(_RemoteModel):
    id: str
    content: str
    status: str
    priority: str


class FileDiff(_RemoteModel):
    file: str
    before: str = ""
    after: str = ""
    additions: int = 0
    deletions: int = 0


class OperationResult(BaseModel):
    """Uniform `{success, error}` envelope returned by mutating operations.

    `error` is set exactly when `success` is false, and any extra payload
    field declared by a subclass may only be populated on success.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    success: bool
    error: str | None = None

    @model_validator(mode="after")
    def _check_envelope(self) -> OperationResult:
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("failed result requires a non-empty error")
        if not self.success:
            for name in type(self).model_fields:
                if name in {"success", "error"}:
                    continue
                if getattr(self, name) is not None:
                    raise ValueError(f"failed result cannot carry '{name}'")
        return self

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ShareResult(OperationResult):
    share_url: str | None = None


class ForkResult(OperationResult):
    new_session_id: str | None = None


__all__ = [
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

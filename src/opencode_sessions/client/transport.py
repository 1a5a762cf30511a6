"""HTTP transport helpers for the OpenCode client."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .types import ApiResult, ClientSettings

logger = logging.getLogger(__name__)


def build_url(settings: ClientSettings, path: str) -> str:
    base = settings.base_url.rstrip("/")
    return f"{base}/{path.lstrip('/')}"


def session_path(session_id: str, *suffix: str) -> str:
    parts = ["session", quote(session_id, safe="")]
    parts.extend(suffix)
    return "/".join(parts)


def build_headers(settings: ClientSettings) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    headers.update(settings.headers)
    return headers


def build_params(directory: str | None, **extra: str | None) -> dict[str, str]:
    params: dict[str, str] = {}
    if directory:
        params["directory"] = directory
    for key, value in extra.items():
        if value is not None:
            params[key] = value
    return params


def build_body(**fields: Any) -> dict[str, Any]:
    """Drop unset fields so the server applies its own defaults."""

    return {key: value for key, value in fields.items() if value is not None}


def decode_response(response: httpx.Response) -> ApiResult:
    status = response.status_code
    raw = response.content
    if response.is_success:
        if not raw:
            return ApiResult(data=None, status_code=status)
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Non-JSON response body (status %s)", status)
            data = response.text
        return ApiResult(data=data, status_code=status)

    detail: Any = None
    if raw:
        try:
            detail = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            detail = response.text.strip() or None
    if not detail:
        detail = response.reason_phrase or f"HTTP {status}"
    logger.debug("OpenCode request failed with status %s: %s", status, detail)
    return ApiResult(error=detail, status_code=status)


__all__ = [
    "build_url",
    "session_path",
    "build_headers",
    "build_params",
    "build_body",
    "decode_response",
]

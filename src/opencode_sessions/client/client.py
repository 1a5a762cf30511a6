"""Concrete OpenCode HTTP client implementation."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import OpencodeClientError
from .transport import (
    build_body,
    build_headers,
    build_params,
    build_url,
    decode_response,
    session_path,
)
from .types import ApiResult, ClientSettings

logger = logging.getLogger(__name__)


class OpencodeClient:
    """Async client for the OpenCode server's REST surface.

    Mirrors the SDK's non-throwing style: HTTP error statuses come back as
    `ApiResult.error`, while transport failures raise `OpencodeClientError`.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self.session = SessionResource(self)

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> ApiResult:
        url = build_url(self._settings, path)
        headers = build_headers(self._settings)
        logger.debug("OpenCode %s %s params=%s", method, url, params)
        try:
            response = await self._client.request(
                method,
                url,
                params=params or None,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise OpencodeClientError(f"{method} {path} failed: {exc}") from exc
        return decode_response(response)

    async def aclose(self) -> None:
        """Dispose the underlying HTTP client if owned by this instance."""

        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> OpencodeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class SessionResource:
    """`session.*` calls, one coroutine per server route."""

    def __init__(self, client: OpencodeClient) -> None:
        self._client = client

    async def create(
        self,
        *,
        directory: str | None = None,
        title: str | None = None,
        parent_id: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            "session",
            params=build_params(directory),
            json=build_body(title=title, parentID=parent_id),
        )

    async def list(self, *, directory: str | None = None) -> ApiResult:
        return await self._client.request("GET", "session", params=build_params(directory))

    async def get(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request("GET", session_path(session_id), params=build_params(directory))

    async def messages(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "GET", session_path(session_id, "message"), params=build_params(directory)
        )

    async def delete(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request("DELETE", session_path(session_id), params=build_params(directory))

    async def update(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        title: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "PATCH",
            session_path(session_id),
            params=build_params(directory),
            json=build_body(title=title),
        )

    async def abort(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "POST", session_path(session_id, "abort"), params=build_params(directory)
        )

    async def status(self, *, directory: str | None = None) -> ApiResult:
        return await self._client.request("GET", "session/status", params=build_params(directory))

    async def todo(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "GET", session_path(session_id, "todo"), params=build_params(directory)
        )

    async def diff(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        message_id: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "GET",
            session_path(session_id, "diff"),
            params=build_params(directory, messageID=message_id),
        )

    async def children(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "GET", session_path(session_id, "children"), params=build_params(directory)
        )

    async def init(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        provider_id: str | None = None,
        model_id: str | None = None,
        message_id: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "init"),
            params=build_params(directory),
            json=build_body(providerID=provider_id, modelID=model_id, messageID=message_id),
        )

    async def command(
        self,
        *,
        session_id: str,
        command: str,
        directory: str | None = None,
        arguments: str | None = None,
        agent: str | None = None,
        model: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "command"),
            params=build_params(directory),
            json=build_body(command=command, arguments=arguments, agent=agent, model=model),
        )

    async def shell(
        self,
        *,
        session_id: str,
        command: str,
        directory: str | None = None,
        agent: str | None = None,
        model: dict[str, str] | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "shell"),
            params=build_params(directory),
            json=build_body(command=command, agent=agent, model=model),
        )

    async def summarize(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        provider_id: str | None = None,
        model_id: str | None = None,
        auto: bool | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "summarize"),
            params=build_params(directory),
            json=build_body(providerID=provider_id, modelID=model_id, auto=auto),
        )

    async def share(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "POST", session_path(session_id, "share"), params=build_params(directory)
        )

    async def unshare(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "DELETE", session_path(session_id, "share"), params=build_params(directory)
        )

    async def revert(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        message_id: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "revert"),
            params=build_params(directory),
            json=build_body(messageID=message_id),
        )

    async def unrevert(self, *, session_id: str, directory: str | None = None) -> ApiResult:
        return await self._client.request(
            "POST", session_path(session_id, "unrevert"), params=build_params(directory)
        )

    async def fork(
        self,
        *,
        session_id: str,
        directory: str | None = None,
        message_id: str | None = None,
    ) -> ApiResult:
        return await self._client.request(
            "POST",
            session_path(session_id, "fork"),
            params=build_params(directory),
            json=build_body(messageID=message_id),
        )


__all__ = ["OpencodeClient", "SessionResource"]

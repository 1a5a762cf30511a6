import json
from pathlib import Path

import httpx
import pytest

from opencode_sessions.core.config import ConfigurationError, SessionsConfig
from opencode_sessions.service import DEFAULT_SESSION_TITLE, OpencodeService
from opencode_sessions.session import NOT_INITIALIZED, SessionOpsError


class FakeServer:
    def __init__(self, url: str = "http://127.0.0.1:50000") -> None:
        self.url = url
        self.started_in: list[str] = []
        self.stopped = 0
        self.pid = 4242

    async def start(self, cwd) -> str:
        self.started_in.append(str(cwd))
        return self.url

    async def stop(self) -> None:
        self.stopped += 1


class OpencodeStub:
    """Minimal in-memory stand-in for the session routes."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.sessions = {"ses_1": {"id": "ses_1", "title": "Existing"}}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/session":
            self.sessions["ses_new"] = {"id": "ses_new", "title": "New session"}
            return httpx.Response(200, json=self.sessions["ses_new"])
        session_id = path.removeprefix("/session/")
        if session_id not in self.sessions:
            return httpx.Response(404, json={"name": "NotFoundError", "data": {"message": "Session not found"}})
        if request.method == "GET":
            return httpx.Response(200, json=self.sessions[session_id])
        if request.method == "PATCH":
            self.sessions[session_id].update(json.loads(request.content))
            return httpx.Response(200, json=self.sessions[session_id])
        if request.method == "DELETE":
            del self.sessions[session_id]
            return httpx.Response(200, json=True)
        return httpx.Response(405)


def make_service(stub: OpencodeStub, **config: object) -> tuple[OpencodeService, FakeServer]:
    server = FakeServer()
    service = OpencodeService(
        SessionsConfig(**config),
        server=server,  # type: ignore[arg-type]
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub)),
    )
    return service, server


@pytest.mark.asyncio
async def test_initialize_uses_configured_base_url(tmp_path: Path) -> None:
    stub = OpencodeStub()
    service, server = make_service(stub, base_url="http://127.0.0.1:4096")

    await service.initialize(tmp_path)

    assert service.is_ready()
    assert server.started_in == []
    assert service.workspace_dir == str(tmp_path.resolve())

    await service.switch_session("ses_1")
    request = stub.requests[0]
    assert str(request.url).startswith("http://127.0.0.1:4096/session/ses_1")
    assert request.url.params["directory"] == str(tmp_path.resolve())


@pytest.mark.asyncio
async def test_initialize_starts_local_server_without_base_url(tmp_path: Path) -> None:
    service, server = make_service(OpencodeStub())

    await service.initialize(tmp_path)
    await service.initialize(tmp_path)

    assert server.started_in == [str(tmp_path.resolve())]
    assert service.is_ready()


@pytest.mark.asyncio
async def test_initialize_ignores_missing_workspace_root(tmp_path: Path) -> None:
    configured = tmp_path / "configured"
    configured.mkdir()
    service, _server = make_service(OpencodeStub(), base_url="http://127.0.0.1:4096", workspace_dir=str(configured))

    await service.initialize(tmp_path / "missing")

    assert service.workspace_dir == str(configured)


@pytest.mark.asyncio
async def test_initialize_rejects_missing_configured_workspace(tmp_path: Path) -> None:
    missing = tmp_path / "typo"
    service, server = make_service(OpencodeStub(), workspace_dir=str(missing))

    with pytest.raises(ConfigurationError, match="Workspace directory .* does not exist"):
        await service.initialize(missing)

    assert server.started_in == []
    assert not service.is_ready()


@pytest.mark.asyncio
async def test_operations_before_initialize_report_not_initialized() -> None:
    service, _server = make_service(OpencodeStub())

    assert not service.is_ready()
    with pytest.raises(SessionOpsError, match=NOT_INITIALIZED):
        await service.create_session()
    result = await service.delete_session("ses_1")
    assert result.error == NOT_INITIALIZED
    assert await service.sessions.get_session_status() is None


@pytest.mark.asyncio
async def test_create_and_switch_track_current_session() -> None:
    service, _server = make_service(OpencodeStub(), base_url="http://opencode.test")
    await service.initialize()

    session_id = await service.create_session()

    assert session_id == "ses_new"
    assert service.current_session_id == "ses_new"
    assert service.current_session_title == DEFAULT_SESSION_TITLE

    session = await service.switch_session("ses_1")

    assert session.title == "Existing"
    assert service.current_session_id == "ses_1"
    assert service.current_session_title == "Existing"


@pytest.mark.asyncio
async def test_failed_switch_keeps_current_session() -> None:
    service, _server = make_service(OpencodeStub(), base_url="http://opencode.test")
    await service.initialize()
    await service.switch_session("ses_1")

    with pytest.raises(SessionOpsError):
        await service.switch_session("missing")

    assert service.current_session_id == "ses_1"


@pytest.mark.asyncio
async def test_update_renames_current_session() -> None:
    service, _server = make_service(OpencodeStub(), base_url="http://opencode.test")
    await service.initialize()
    await service.switch_session("ses_1")

    result = await service.update_session("ses_1", title="Renamed")

    assert result.success
    assert service.current_session_title == "Renamed"


@pytest.mark.asyncio
async def test_delete_current_session_clears_pointer() -> None:
    service, _server = make_service(OpencodeStub(), base_url="http://opencode.test")
    await service.initialize()
    await service.switch_session("ses_1")

    result = await service.delete_session("ses_1")

    assert result.success
    assert service.current_session_id is None
    assert service.current_session_title == DEFAULT_SESSION_TITLE


@pytest.mark.asyncio
async def test_delete_other_session_failure_keeps_pointer() -> None:
    service, _server = make_service(OpencodeStub(), base_url="http://opencode.test")
    await service.initialize()
    await service.switch_session("ses_1")

    result = await service.delete_session("missing")

    assert not result.success
    assert "Session not found" in (result.error or "")
    assert service.current_session_id == "ses_1"


@pytest.mark.asyncio
async def test_context_manager_closes_client_and_stops_server() -> None:
    stub = OpencodeStub()
    service, server = make_service(stub)

    async with service as active:
        assert active.is_ready()

    assert not service.is_ready()
    assert server.stopped == 1

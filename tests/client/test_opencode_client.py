import json

import httpx
import pytest

from opencode_sessions.client import ApiResult, ClientSettings, OpencodeClient, OpencodeClientError

BASE_URL = "http://127.0.0.1:4096"


def make_client(handler) -> OpencodeClient:
    transport = httpx.MockTransport(handler)
    return OpencodeClient(
        ClientSettings(base_url=BASE_URL),
        client=httpx.AsyncClient(transport=transport),
    )


@pytest.mark.asyncio
async def test_create_posts_to_session_with_directory() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "ses_1", "title": "New session"})

    client = make_client(handler)

    result = await client.session.create(directory="/work/project")

    assert isinstance(result, ApiResult)
    assert result.ok
    assert result.data == {"id": "ses_1", "title": "New session"}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/session"
    assert request.url.params["directory"] == "/work/project"
    assert json.loads(request.content) == {}


@pytest.mark.asyncio
async def test_status_route_is_not_treated_as_session_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/session/status"
        return httpx.Response(200, json={"ses_1": {"type": "busy"}})

    client = make_client(handler)

    result = await client.session.status(directory="/work")

    assert result.data == {"ses_1": {"type": "busy"}}


@pytest.mark.asyncio
async def test_diff_sends_message_id_as_query_param() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/ses_1/diff"
        assert request.url.params["messageID"] == "msg_9"
        assert request.url.params["directory"] == "/work"
        return httpx.Response(200, json=[])

    client = make_client(handler)

    result = await client.session.diff(session_id="ses_1", directory="/work", message_id="msg_9")

    assert result.data == []


@pytest.mark.asyncio
async def test_shell_body_omits_unset_fields() -> None:
    bodies: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/ses_1/shell"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"info": {}, "parts": []})

    client = make_client(handler)

    await client.session.shell(session_id="ses_1", command="ls -la", agent="build")

    assert bodies == [{"command": "ls -la", "agent": "build"}]


@pytest.mark.asyncio
async def test_unshare_uses_delete_on_share_route() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert request.url.path == "/session/ses_1/share"
        return httpx.Response(200, json={"id": "ses_1"})

    client = make_client(handler)

    result = await client.session.unshare(session_id="ses_1")

    assert result.ok


@pytest.mark.asyncio
async def test_session_id_is_path_quoted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.raw_path.startswith(b"/session/a%2Fb")
        return httpx.Response(200, json=True)

    client = make_client(handler)

    result = await client.session.delete(session_id="a/b")

    assert result.data is True


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"name": "NotFoundError", "data": {"message": "Session not found"}})

    client = make_client(handler)

    result = await client.session.get(session_id="missing")

    assert not result.ok
    assert result.status_code == 404
    assert result.error == {"name": "NotFoundError", "data": {"message": "Session not found"}}
    assert result.data is None


@pytest.mark.asyncio
async def test_error_status_without_body_uses_reason_phrase() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    client = make_client(handler)

    result = await client.session.abort(session_id="ses_1")

    assert result.error == "Internal Server Error"


@pytest.mark.asyncio
async def test_transport_failure_raises_client_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(OpencodeClientError) as excinfo:
        await client.session.list()

    assert "connection refused" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda _r: httpx.Response(200, json=[])))
    client = OpencodeClient(ClientSettings(base_url=BASE_URL), client=http_client)

    await client.aclose()

    assert not http_client.is_closed
    await http_client.aclose()

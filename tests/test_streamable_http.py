"""Tests for the streamable HTTP binding: session routing and teardown."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager

import anyio
import httpx
import pytest
from starlette.responses import JSONResponse

from librechat_client_mcp.dispatcher import RequestDispatcher
from librechat_client_mcp.transports.registry import SessionRegistry, TransportKind
from librechat_client_mcp.transports.streamable_http import (
    StreamableHTTPBinding,
    is_initialize_request,
)

from .conftest import FakeGitHubClient, make_repository

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test", "version": "0"},
    },
}
LIST_TOOLS = {"jsonrpc": "2.0", "id": 2, "method": "tools/list"}


class FakeTransport:
    """Stands in for StreamableHTTPServerTransport."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.requests: list[tuple[str, bytes]] = []
        self.terminated = False

    @asynccontextmanager
    async def connect(self):
        yield "read-stream", "write-stream"

    async def handle_request(self, scope, receive, send) -> None:
        message = await receive()
        self.requests.append((scope["method"], message.get("body", b"")))
        response = JSONResponse(
            {"session": self.session_id, "method": scope["method"]},
            headers={"mcp-session-id": self.session_id},
        )
        await response(scope, receive, send)

    async def terminate(self) -> None:
        self.terminated = True


class FakeServer:
    def __init__(self) -> None:
        self.started = anyio.Event()
        self.stopped = anyio.Event()
        self.streams = None

    def create_initialization_options(self):
        return None

    async def run(self, read_stream, write_stream, options, stateless=False):
        self.streams = (read_stream, write_stream)
        self.started.set()
        try:
            await anyio.sleep_forever()
        finally:
            self.stopped.set()


class Harness:
    def __init__(self) -> None:
        self.registry = SessionRegistry()
        self.transports: dict[str, FakeTransport] = {}
        self.servers: dict[str, FakeServer] = {}
        self.binding = StreamableHTTPBinding(
            None,
            self.registry,
            transport_factory=self._transport,
            server_factory=self._server,
        )

    def _transport(self, session_id: str) -> FakeTransport:
        self.transports[session_id] = FakeTransport(session_id)
        return self.transports[session_id]

    def _server(self, session_id: str) -> FakeServer:
        self.servers[session_id] = FakeServer()
        return self.servers[session_id]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.binding.handle_request),
            base_url="http://testserver",
        )


async def initialize(http: httpx.AsyncClient) -> str:
    response = await http.post("/mcp", json=INITIALIZE)
    assert response.status_code == 200
    return response.headers["mcp-session-id"]


def test_initialize_detection():
    assert is_initialize_request(json.dumps(INITIALIZE).encode())
    assert is_initialize_request(json.dumps([INITIALIZE]).encode())
    assert not is_initialize_request(json.dumps(LIST_TOOLS).encode())
    assert not is_initialize_request(b"not json")
    assert not is_initialize_request(b"")


@pytest.mark.asyncio
async def test_initialize_creates_session_and_starts_server():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            session_id = await initialize(http)

            assert harness.registry.ids(TransportKind.STREAMABLE_HTTP) == [session_id]
            assert harness.servers[session_id].started.is_set()
            assert harness.servers[session_id].streams == ("read-stream", "write-stream")
            # The buffered body is replayed to the transport unchanged
            method, body = harness.transports[session_id].requests[0]
            assert method == "POST"
            assert json.loads(body)["method"] == "initialize"


@pytest.mark.asyncio
async def test_requests_are_routed_to_their_own_session():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            first = await initialize(http)
            second = await initialize(http)
            assert first != second

            r1 = await http.post("/mcp", json=LIST_TOOLS, headers={"mcp-session-id": first})
            r2 = await http.get("/mcp", headers={"mcp-session-id": second})

    assert r1.json() == {"session": first, "method": "POST"}
    assert r2.json() == {"session": second, "method": "GET"}
    assert [m for m, _ in harness.transports[first].requests] == ["POST", "POST"]
    assert [m for m, _ in harness.transports[second].requests] == ["POST", "GET"]


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["POST", "DELETE"])
async def test_unknown_session_id_is_not_found(method):
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            response = await http.request(
                method, "/mcp", json=LIST_TOOLS, headers={"mcp-session-id": "no-such-session"}
            )

    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == -32000
    assert body["error"]["data"]["code"] == "session_not_found"
    assert body["id"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "DELETE"])
async def test_missing_session_id_on_stream_and_delete(method):
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            response = await http.request(method, "/mcp")

    assert response.status_code == 400
    assert response.json()["error"]["data"]["code"] == "missing_session_id"


@pytest.mark.asyncio
async def test_non_initialize_post_without_session_id_is_rejected():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            response = await http.post("/mcp", json=LIST_TOOLS)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32600
    assert harness.transports == {}


@pytest.mark.asyncio
async def test_delete_terminates_session():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            session_id = await initialize(http)

            response = await http.delete("/mcp", headers={"mcp-session-id": session_id})
            assert response.status_code == 200
            with anyio.fail_after(1):
                await harness.servers[session_id].stopped.wait()

            assert harness.transports[session_id].terminated
            assert session_id not in harness.registry

            again = await http.post(
                "/mcp", json=LIST_TOOLS, headers={"mcp-session-id": session_id}
            )
            assert again.status_code == 404


@pytest.mark.asyncio
async def test_stopping_binding_closes_every_session():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            ids = [await initialize(http) for _ in range(3)]
        assert harness.binding.session_count == 3

    assert len(harness.registry) == 0
    assert all(harness.transports[i].terminated for i in ids)
    assert all(harness.servers[i].stopped.is_set() for i in ids)
    assert not harness.binding.running


@pytest.mark.asyncio
async def test_not_running_returns_503():
    harness = Harness()
    async with harness.client() as http:
        response = await http.post("/mcp", json=INITIALIZE)

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_closing_one_session_leaves_the_other_working():
    harness = Harness()
    async with harness.binding.run():
        async with harness.client() as http:
            first = await initialize(http)
            second = await initialize(http)

            await http.delete("/mcp", headers={"mcp-session-id": first})
            response = await http.post("/mcp", json=LIST_TOOLS, headers={"mcp-session-id": second})

            assert response.status_code == 200
            assert response.json()["session"] == second
            assert harness.registry.ids(TransportKind.STREAMABLE_HTTP) == [second]
            assert not harness.servers[second].stopped.is_set()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("headers", "status"),
    [
        ({"accept": "text/html", "content-type": "application/json"}, 406),
        ({"accept": "application/json, text/event-stream", "content-type": "text/plain"}, 415),
    ],
)
async def test_rejected_initialize_does_not_leave_a_session(headers, status):
    registry = SessionRegistry()
    dispatcher = RequestDispatcher(make_repository(FakeGitHubClient()))
    binding = StreamableHTTPBinding(dispatcher, registry, json_response=True)
    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=binding.handle_request),
        base_url="http://testserver",
    )

    async with binding.run():
        async with client as http:
            for _ in range(3):
                response = await http.post("/mcp", content=json.dumps(INITIALIZE), headers=headers)
                assert response.status_code == status

            assert len(registry) == 0
            assert binding.session_count == 0


@pytest.mark.asyncio
async def test_initialize_on_real_transport_keeps_the_session():
    registry = SessionRegistry()
    dispatcher = RequestDispatcher(make_repository(FakeGitHubClient()))
    binding = StreamableHTTPBinding(dispatcher, registry, json_response=True)
    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=binding.handle_request),
        base_url="http://testserver",
    )

    async with binding.run():
        async with client as http:
            response = await http.post(
                "/mcp",
                json=INITIALIZE,
                headers={"accept": "application/json, text/event-stream"},
            )
            session_id = response.headers["mcp-session-id"]

            assert response.status_code == 200
            assert response.json()["result"]["serverInfo"]["name"]
            assert registry.ids(TransportKind.STREAMABLE_HTTP) == [session_id]

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_opening_a_session_requires_a_running_binding():
    harness = Harness()
    with pytest.raises(RuntimeError, match="not running"):
        await harness.binding._open_session()
    assert harness.transports == {}

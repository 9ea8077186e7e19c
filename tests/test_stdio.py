"""Tests for the pipe binding."""

from __future__ import annotations

import io
import json

import anyio
import pytest

from librechat_client_mcp import SERVER_NAME
from librechat_client_mcp.dispatcher import RequestDispatcher
from librechat_client_mcp.transports.stdio import STDIO_SESSION_ID, StdioBinding

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


class OpenStdin:
    """An stdin that never reaches EOF until the reader is cancelled."""

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        await anyio.sleep_forever()


def make_dispatcher() -> RequestDispatcher:
    return RequestDispatcher(make_repository(FakeGitHubClient()))


@pytest.mark.asyncio
async def test_request_is_answered_on_stdout():
    stdin = anyio.wrap_file(io.StringIO(json.dumps(INITIALIZE) + "\n"))
    stdout = io.StringIO()
    binding = StdioBinding(make_dispatcher(), streams=(stdin, anyio.wrap_file(stdout)))

    with anyio.fail_after(5):
        await binding.run()

    reply = json.loads(stdout.getvalue().splitlines()[0])
    assert reply["id"] == 1
    assert reply["result"]["serverInfo"]["name"] == SERVER_NAME
    assert not binding.active
    assert binding.session is None


@pytest.mark.asyncio
async def test_close_stops_the_running_server():
    binding = StdioBinding(
        make_dispatcher(),
        streams=(OpenStdin(), anyio.wrap_file(io.StringIO())),
    )

    async with anyio.create_task_group() as tg:
        tg.start_soon(binding.run)
        with anyio.fail_after(5):
            while not binding.active:
                await anyio.sleep(0.01)
        assert binding.session.session_id == STDIO_SESSION_ID

        await binding.close()
        await binding.close()

    assert not binding.active
    assert binding.session is None


@pytest.mark.asyncio
async def test_run_twice_concurrently_is_rejected():
    binding = StdioBinding(
        make_dispatcher(),
        streams=(OpenStdin(), anyio.wrap_file(io.StringIO())),
    )

    async with anyio.create_task_group() as tg:
        tg.start_soon(binding.run)
        with anyio.fail_after(5):
            while not binding.active:
                await anyio.sleep(0.01)

        with pytest.raises(RuntimeError, match="already running"):
            await binding.run()
        await binding.close()

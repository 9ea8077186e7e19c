"""Tests for sessions and the session registry."""

from __future__ import annotations

import pytest

from librechat_client_mcp.errors import SessionNotFoundError
from librechat_client_mcp.transports.registry import (
    Session,
    SessionRegistry,
    TransportKind,
    new_session_id,
)


class Recorder:
    def __init__(self) -> None:
        self.events: list[str] = []

    def closer(self, name: str):
        def close() -> None:
            self.events.append(name)

        return close

    def async_closer(self, name: str):
        async def close() -> None:
            self.events.append(name)

        return close


def make_session(kind: TransportKind = TransportKind.SSE, session_id: str | None = None) -> Session:
    return Session(session_id=session_id or new_session_id(), kind=kind, server=object())


def test_session_ids_are_unique():
    assert len({new_session_id() for _ in range(100)}) == 100


@pytest.mark.asyncio
async def test_close_runs_closers_once_in_reverse_order():
    recorder = Recorder()
    session = make_session()
    session.add_closer(recorder.closer("channel"))
    session.add_closer(recorder.async_closer("server"))

    assert await session.close() is True
    assert await session.close() is False
    assert recorder.events == ["server", "channel"]
    assert session.closed


@pytest.mark.asyncio
async def test_failing_closer_does_not_stop_teardown():
    recorder = Recorder()
    session = make_session()

    def broken() -> None:
        raise RuntimeError("boom")

    session.add_closer(recorder.closer("first"))
    session.add_closer(broken)

    assert await session.close() is True
    assert recorder.events == ["first"]


@pytest.mark.asyncio
async def test_registry_close_is_idempotent():
    registry = SessionRegistry()
    recorder = Recorder()
    session = make_session()
    session.add_closer(recorder.closer("close"))
    registry.register(session)

    assert await registry.close(session.session_id) is True
    assert await registry.close(session.session_id) is False
    assert await registry.close("unknown") is False
    assert recorder.events == ["close"]
    assert len(registry) == 0


def test_duplicate_registration_is_rejected():
    registry = SessionRegistry()
    session = make_session(session_id="same")
    registry.register(session)

    with pytest.raises(ValueError):
        registry.register(make_session(session_id="same"))


def test_lookup_filters_by_kind():
    registry = SessionRegistry()
    sse = make_session(TransportKind.SSE, "sse-1")
    http = make_session(TransportKind.STREAMABLE_HTTP, "http-1")
    registry.register(sse)
    registry.register(http)

    assert registry.get("sse-1") is sse
    assert registry.get("sse-1", TransportKind.STREAMABLE_HTTP) is None
    assert registry.ids(TransportKind.SSE) == ["sse-1"]
    assert "http-1" in registry
    with pytest.raises(SessionNotFoundError):
        registry.require("sse-1", TransportKind.STREAMABLE_HTTP)


def test_discard_unknown_is_noop():
    registry = SessionRegistry()
    assert registry.discard("missing") is None


@pytest.mark.asyncio
async def test_close_all_by_kind_and_everything():
    registry = SessionRegistry()
    for i in range(3):
        registry.register(make_session(TransportKind.SSE, f"sse-{i}"))
    for i in range(2):
        registry.register(make_session(TransportKind.STREAMABLE_HTTP, f"http-{i}"))

    assert await registry.close_all(TransportKind.SSE) == 3
    assert registry.ids() == ["http-0", "http-1"]
    assert await registry.close_all() == 2
    assert await registry.close_all() == 0


def test_describe():
    session = make_session(TransportKind.STREAMABLE_HTTP, "abc")
    described = session.describe()

    assert described["sessionId"] == "abc"
    assert described["transport"] == "streamable_http"
    assert "createdAt" in described

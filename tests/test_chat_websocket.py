"""Tests for the chat room WebSocket."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import RateLimitPolicy
from app.core.errors import LLMAppError
from tests.fakes import FakeClock, FakeLLMClient, FakeVectorIndex, build_test_services, match


class FailingLLMClient(FakeLLMClient):
    async def stream_chat(self, messages, *, model=None, **kwargs):
        raise LLMAppError(code="llm_stream_failed", message="LLM provider error")
        yield  # pragma: no cover


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _client(clock: FakeClock, llm=None) -> TestClient:
    services = build_test_services(
        {"chat-turn": RateLimitPolicy(limit=2, window_seconds=60, block_seconds=30)},
        index=FakeVectorIndex({"content": [match("c1", 0.9, text="Edge notes", url="https://example.com/c1")]}),
        llm=llm or FakeLLMClient(["Hi", " there"]),
        clock=clock,
    )
    return TestClient(create_app(services))


def _turn(ws, content: str = "hello") -> list[dict]:
    ws.send_json({"type": "chat", "content": content})
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["type"] in ("done", "error"):
            return frames


def test_turn_streams_chunks_then_done(clock: FakeClock) -> None:
    with _client(clock).websocket_connect("/party/chat/lobby") as ws:
        frames = _turn(ws)

    assert frames[:2] == [{"type": "chunk", "content": "Hi"}, {"type": "chunk", "content": " there"}]
    assert frames[-1] == {"type": "done", "content": "Hi there", "sources": ["https://example.com/c1"]}


def test_denied_turn_sends_countdown_and_keeps_socket_open(clock: FakeClock) -> None:
    with _client(clock).websocket_connect("/party/chat/lobby") as ws:
        _turn(ws)
        _turn(ws)

        soft = _turn(ws)[-1]
        hard = _turn(ws)[-1]

        assert soft == {
            "type": "error",
            "code": "rate_limited",
            "message": "Slow down! Try again in 30 seconds.",
            "retryAfter": 30,
            "reason": "limit_exceeded",
            "kind": "soft",
        }
        assert hard["kind"] == "hard"
        assert hard["reason"] == "penalty_active"

        clock.advance(30_000)
        assert _turn(ws)[-1]["type"] == "done"


def test_rooms_are_separate_partitions(clock: FakeClock) -> None:
    client = _client(clock)
    with client.websocket_connect("/party/chat/a") as ws:
        for _ in range(3):
            _turn(ws)

    with client.websocket_connect("/party/chat/b") as ws:
        assert _turn(ws)[-1]["type"] == "done"


def test_invalid_frame_gets_error(clock: FakeClock) -> None:
    with _client(clock).websocket_connect("/party/chat/lobby") as ws:
        ws.send_json({"type": "chat", "content": ""})
        frame = ws.receive_json()

        assert frame["type"] == "error"
        assert frame["code"] == "invalid_frame"


def test_non_json_frame_gets_error_and_socket_stays_open(clock: FakeClock) -> None:
    with _client(clock).websocket_connect("/party/chat/lobby") as ws:
        ws.send_text("not json")
        frame = ws.receive_json()

        assert frame["type"] == "error"
        assert frame["code"] == "invalid_frame"
        assert _turn(ws)[-1]["type"] == "done"


def test_llm_failure_sends_error_frame(clock: FakeClock) -> None:
    with _client(clock, llm=FailingLLMClient()).websocket_connect("/party/chat/lobby") as ws:
        frame = _turn(ws)[-1]

    assert frame == {"type": "error", "code": "llm_stream_failed", "message": "LLM provider error"}


def test_history_is_bounded_by_the_service_configuration(clock: FakeClock) -> None:
    llm = FakeLLMClient(["ok"])
    services = build_test_services(llm=llm, clock=clock, history_max_messages=2)

    with TestClient(create_app(services)).websocket_connect("/party/chat/lobby") as ws:
        _turn(ws, "first")
        _turn(ws, "second")

    assert [m["content"] for m in llm.requests[1][1:]] == ["ok", "second"]

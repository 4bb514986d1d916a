from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from journal_realtime.auth import TokenAuthenticator, issue_token
from journal_realtime.errors import TransportError
from journal_realtime.models.session import Identity

SECRET = "test-secret-for-journal-realtime-0123456789"


class RecordingHandle:
    """ConnectionHandle that records pushes instead of writing to a socket."""

    def __init__(self, sid: str, fail_send: bool = False):
        self._sid = sid
        self.fail_send = fail_send
        self.sent: list[tuple[str, Any]] = []
        self.close_calls = 0

    @property
    def sid(self) -> str:
        return self._sid

    async def send(self, event: str, data: Any) -> None:
        if self.fail_send:
            raise RuntimeError("socket gone")
        self.sent.append((event, data))

    async def close(self) -> None:
        self.close_calls += 1


class ScriptedTransport:
    """Reconnection transport whose open() outcomes are scripted per call."""

    def __init__(self, outcomes: Optional[list[Optional[Exception]]] = None, default: Optional[Exception] = None):
        self._outcomes = list(outcomes or [])
        self._default = default
        self.open_tokens: list[str] = []
        self.close_calls = 0
        self._callbacks: list[Callable[[str], None]] = []

    @property
    def opens(self) -> int:
        return len(self.open_tokens)

    async def open(self, token: str) -> None:
        self.open_tokens.append(token)
        outcome = self._outcomes.pop(0) if self._outcomes else self._default
        if outcome is not None:
            raise outcome

    async def close(self) -> None:
        self.close_calls += 1

    def on_disconnect(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self._callbacks.append(callback)
        return lambda: self._callbacks.remove(callback)

    def drop(self, reason: str) -> None:
        for cb in list(self._callbacks):
            cb(reason)


def always_failing() -> ScriptedTransport:
    return ScriptedTransport(default=TransportError("connection refused"))


class FakeSio:
    """Stands in for socketio.AsyncServer in handler-level tests."""

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self.emitted: list[tuple[str, Any, Optional[str]]] = []
        self.disconnected: list[str] = []
        self.background: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def save_session(self, sid: str, session: dict[str, Any]) -> None:
        self.sessions[sid] = session

    async def get_session(self, sid: str) -> dict[str, Any]:
        return self.sessions[sid]

    async def emit(self, event: str, data: Any = None, to: Optional[str] = None, **_: Any) -> None:
        self.emitted.append((event, data, to))

    async def disconnect(self, sid: str, **_: Any) -> None:
        self.disconnected.append(sid)

    def start_background_task(self, target: Callable[..., Any], *args: Any) -> None:
        self.background.append((target, args))

    async def run_background(self) -> None:
        tasks, self.background = self.background, []
        for target, args in tasks:
            await target(*args)


@pytest.fixture
def authenticator() -> TokenAuthenticator:
    return TokenAuthenticator(SECRET)


@pytest.fixture
def make_token() -> Callable[..., str]:
    def _make(user_id: int = 1, role: str = "student", **kwargs: Any) -> str:
        return issue_token(Identity(user_id=user_id, role=role), SECRET, **kwargs)
    return _make


def asgi_environ(query: str = "") -> dict[str, Any]:
    return {"asgi.scope": {"type": "websocket", "query_string": query.encode()}}

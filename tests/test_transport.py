import asyncio
from typing import Any, Callable, Optional

import pytest
from socketio import exceptions as sio_exceptions

from journal_realtime.errors import AuthError, TransportError
from journal_realtime.models.events import S2CEvent
from journal_realtime.reconnect import ConnectionState, DisconnectReason, ReconnectionController
from journal_realtime.transport.socketio import SocketIOTransport, classify_disconnect


class FakeAsyncClient:
    """Minimal socketio.AsyncClient double driven by the test."""

    def __init__(
        self,
        refuse_with: Optional[str] = None,
        send_status: bool = True,
        drop_after: Optional[float] = None,
    ):
        self.refuse_with = refuse_with
        self.send_status = send_status
        self.drop_after = drop_after
        self._drop_task: Optional[asyncio.Task] = None
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.connected = False
        self.connect_kwargs: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.disconnect_calls = 0

    def on(self, event: str, handler: Optional[Callable[..., Any]] = None):
        def register(fn):
            self.handlers[event] = fn
            return fn
        return register(handler) if handler else register

    def event(self, fn):
        self.handlers[fn.__name__] = fn
        return fn

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_kwargs = {"url": url, **kwargs}
        if self.refuse_with is not None:
            await self.handlers["connect_error"]({"message": self.refuse_with})
            raise sio_exceptions.ConnectionError("One or more namespaces failed to connect")
        self.connected = True
        if self.send_status:
            await self.handlers[S2CEvent.CONNECT_STATUS]({"connected": True, "userId": 4, "role": "student"})
        if self.drop_after is not None:
            self._drop_task = asyncio.get_running_loop().create_task(self._drop_later())

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        was_connected, self.connected = self.connected, False
        if was_connected:
            await self.handlers["disconnect"]("client disconnect")

    async def emit(self, event: str, data: Any = None) -> None:
        self.emitted.append((event, data))

    async def call(self, event: str, data: Any = None, timeout: float = 60) -> Any:
        return {"ok": True}

    async def push(self, event: str, data: Any) -> None:
        await self.handlers["*"](event, data)

    async def _drop_later(self) -> None:
        await asyncio.sleep(self.drop_after)
        await self.drop("transport close")

    async def drop(self, reason: str) -> None:
        self.connected = False
        await self.handlers["disconnect"](reason)


def make_transport(client: FakeAsyncClient, **kwargs: Any) -> SocketIOTransport:
    return SocketIOTransport("http://journal.test", client_factory=lambda: client, **kwargs)


@pytest.mark.parametrize(
    "reason, expected",
    [
        ("server disconnect", DisconnectReason.SERVER),
        ("client disconnect", DisconnectReason.CLIENT),
        ("transport close", DisconnectReason.TRANSPORT),
        ("transport error", DisconnectReason.TRANSPORT),
        (None, DisconnectReason.TRANSPORT),
    ],
)
def test_classify_disconnect(reason, expected):
    assert classify_disconnect(reason) == expected


@pytest.mark.asyncio
async def test_open_passes_token_and_waits_for_status():
    client = FakeAsyncClient()
    transport = make_transport(client, socketio_path="rt/socket.io")

    await transport.open("tok")

    assert transport.connected
    assert transport.status == {"connected": True, "userId": 4, "role": "student"}
    assert client.connect_kwargs["auth"] == {"token": "tok"}
    assert client.connect_kwargs["socketio_path"] == "rt/socket.io"
    assert client.connect_kwargs["url"] == "http://journal.test"


@pytest.mark.asyncio
@pytest.mark.parametrize("message", ["credential not provided", "authentication failed"])
async def test_auth_refusal_maps_to_auth_error(message):
    transport = make_transport(FakeAsyncClient(refuse_with=message))
    with pytest.raises(AuthError) as exc:
        await transport.open("tok")
    assert exc.value.code == "connection_refused"
    assert str(exc.value) == message
    assert not transport.connected


@pytest.mark.asyncio
async def test_other_connect_failure_is_transport_error():
    transport = make_transport(FakeAsyncClient(refuse_with="server overloaded"))
    with pytest.raises(TransportError):
        await transport.open("tok")


@pytest.mark.asyncio
async def test_missing_status_times_out():
    client = FakeAsyncClient(send_status=False)
    transport = make_transport(client, ready_timeout=0.01)
    with pytest.raises(TransportError):
        await transport.open("tok")
    assert client.disconnect_calls == 1
    assert not transport.connected


@pytest.mark.asyncio
async def test_events_reach_handlers_except_transport_ones():
    client = FakeAsyncClient()
    transport = make_transport(client)
    seen: list[tuple[str, dict]] = []
    remove = transport.add_event_handler(lambda event, data: seen.append((event, data)))
    await transport.open("tok")

    await client.push(S2CEvent.MESSAGE, {"kind": "message_deleted", "messageId": 1})
    await client.push("connect", {"ignored": True})
    remove()
    await client.push(S2CEvent.MESSAGE, {"kind": "message_deleted", "messageId": 2})

    assert seen == [(S2CEvent.MESSAGE, {"kind": "message_deleted", "messageId": 1})]


@pytest.mark.asyncio
async def test_remote_drop_is_reported_with_reason():
    client = FakeAsyncClient()
    transport = make_transport(client)
    reasons: list[str] = []
    transport.on_disconnect(reasons.append)
    await transport.open("tok")

    await client.drop("transport close")

    assert reasons == [DisconnectReason.TRANSPORT]
    assert not transport.connected


@pytest.mark.asyncio
async def test_close_does_not_report_drop():
    client = FakeAsyncClient()
    transport = make_transport(client)
    reasons: list[str] = []
    transport.on_disconnect(reasons.append)
    await transport.open("tok")

    await transport.close()

    assert client.disconnect_calls == 1
    assert reasons == []
    assert not transport.connected


@pytest.mark.asyncio
async def test_emit_requires_connection():
    transport = make_transport(FakeAsyncClient())
    with pytest.raises(TransportError):
        transport.emit("send_message", {})


@pytest.mark.asyncio
async def test_emit_and_call_when_connected():
    client = FakeAsyncClient()
    transport = make_transport(client)
    await transport.open("tok")

    transport.emit("send_message", {"toUserId": 2})
    await asyncio.sleep(0)
    assert client.emitted == [("send_message", {"toUserId": 2})]
    assert await transport.call("send_message", {"ping": True}) == {"ok": True}


@pytest.mark.asyncio
async def test_drop_during_handshake_fails_open_immediately():
    client = FakeAsyncClient(send_status=False, drop_after=0.01)
    transport = make_transport(client, ready_timeout=5.0)
    reasons: list[str] = []
    transport.on_disconnect(reasons.append)

    with pytest.raises(TransportError, match="during handshake"):
        await asyncio.wait_for(transport.open("tok"), timeout=1.0)
    assert reasons == []
    assert not transport.connected


@pytest.mark.asyncio
async def test_handshake_drop_leaves_single_live_client():
    clients: list[FakeAsyncClient] = []

    def factory() -> FakeAsyncClient:
        first = not clients
        client = FakeAsyncClient(send_status=not first, drop_after=0.01 if first else None)
        clients.append(client)
        return client

    transport = SocketIOTransport("http://journal.test", ready_timeout=0.2, client_factory=factory)
    controller = ReconnectionController(transport, token="tok", retry_delay=0.02)

    await controller.connect()
    await controller.wait_for_state(ConnectionState.CONNECTED, timeout=1.0)
    await asyncio.sleep(0.3)

    live = [c for c in clients if c.connected]
    assert len(clients) == 2
    assert len(live) == 1
    assert transport.connected

    await controller.close()
    assert not any(c.connected for c in clients)

"""
AsyncJournalClient: REST + realtime client for one logged-in user.
"""

import asyncio
from typing import Any, AsyncGenerator, Callable, Optional

from journal_realtime.config import DEFAULT_API_BASE_URL, DEFAULT_SOCKET_URL
from journal_realtime.errors import ConnectionError
from journal_realtime.messages import MessagesAPI
from journal_realtime.models.events import C2SEvent, S2CEvent
from journal_realtime.models.message import Message
from journal_realtime.models.session import DeliveryEvent
from journal_realtime.reconnect import (
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_INTERVAL,
    ConnectionState,
    ReconnectionController,
)
from journal_realtime.transport.http import HttpClient
from journal_realtime.transport.socketio import DEFAULT_SOCKETIO_PATH, SocketIOTransport


class AsyncJournalClient:
    def __init__(
        self,
        access_token: Optional[str] = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        socket_url: str = DEFAULT_SOCKET_URL,
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        retry_delay: float = RECONNECT_INTERVAL,
        ready_timeout: float = 15.0,
        transport: Optional[SocketIOTransport] = None,
        http: Optional[HttpClient] = None,
    ):
        self._access_token = access_token
        self.http = http or HttpClient(base_url=api_base_url, token=access_token)
        self.messages = MessagesAPI(self.http)
        self.transport = transport or SocketIOTransport(
            socket_url, socketio_path=socketio_path, ready_timeout=ready_timeout,
        )
        self.controller = ReconnectionController(
            self.transport, token=access_token, max_attempts=max_attempts, retry_delay=retry_delay,
        )

    @property
    def connected(self) -> bool:
        return self.controller.state == ConnectionState.CONNECTED

    @property
    def state(self) -> str:
        return self.controller.state

    @property
    def user_id(self) -> Optional[int]:
        status = self.transport.status
        return status.get("userId") if status else None

    async def connect(self, access_token: Optional[str] = None) -> bool:
        token = access_token or self._access_token
        if token:
            self._access_token = token
            self.http.set_token(token)
        return await self.controller.connect(token)

    async def disconnect(self) -> None:
        await self.controller.close()

    async def aclose(self) -> None:
        await self.controller.close()
        self.controller.dispose()
        await self.http.close()

    async def __aenter__(self) -> "AsyncJournalClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def on_delivery(self, handler: Callable[[DeliveryEvent], None]) -> Callable[[], None]:
        """Call ``handler`` for every pushed message event. Returns a cleanup function."""
        def _handler(event_type: str, raw: dict[str, Any]) -> None:
            if event_type != S2CEvent.MESSAGE:
                return
            try:
                event = DeliveryEvent.from_wire(raw)
            except ValueError:
                return
            handler(event)
        return self.transport.add_event_handler(_handler)

    async def subscribe(self) -> AsyncGenerator[DeliveryEvent, None]:
        """Persistent delivery stream; survives reconnects, ends when the client is closed or gives up."""
        queue: asyncio.Queue[DeliveryEvent] = asyncio.Queue()
        remove = self.on_delivery(queue.put_nowait)
        try:
            while self.state not in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
            while not queue.empty():
                yield queue.get_nowait()
        finally:
            remove()

    async def send_message(self, to_user_id: int, content: str) -> Message:
        """Create the message over REST; the socket only gets an advisory signal."""
        message = await self.messages.send(to_user_id, content)
        if self.transport.connected:
            self.transport.emit(C2SEvent.SEND_MESSAGE, {"toUserId": to_user_id, "messageId": message.id})
        return message

    async def mark_read(self, from_user_id: int) -> dict[str, Any]:
        result = await self.messages.mark_read(from_user_id)
        if self.transport.connected:
            self.transport.emit(C2SEvent.MARK_MESSAGES_READ, {"fromUserId": from_user_id})
        return result

    async def delete_message(self, message_id: int) -> dict[str, Any]:
        return await self.messages.delete(message_id)

    async def conversation(self, user_id: int) -> list[Message]:
        return await self.messages.conversation(user_id)

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise ConnectionError("Not connected. Call connect() first.")

    async def ping(self, timeout: float = 10.0) -> Any:
        """Round-trip a ``heartbeat`` through the server (acknowledged with ``{"ok": true}``)."""
        self._ensure_connected()
        return await self.transport.call(C2SEvent.HEARTBEAT, None, timeout=timeout)

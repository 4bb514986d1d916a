"""
Socket.IO client transport.

Connection: ``{url}/{socketio_path}`` with ``auth={token}``. ``open()``
resolves once the server's ``connect_status`` event arrives. Built-in
python-socketio reconnection is off: retries belong to ReconnectionController.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio
from socketio import exceptions as sio_exceptions

from journal_realtime.auth import AUTHENTICATION_FAILED, CREDENTIAL_MISSING
from journal_realtime.errors import AuthError, TransportError
from journal_realtime.models.events import S2CEvent, TRANSPORT_EVENTS
from journal_realtime.reconnect import DisconnectReason

logger = logging.getLogger(__name__)

DEFAULT_SOCKETIO_PATH = "socket.io"
AUTH_REFUSALS = {CREDENTIAL_MISSING, AUTHENTICATION_FAILED}


def classify_disconnect(reason: Any) -> str:
    """Map a python-socketio disconnect reason onto DisconnectReason."""
    text = str(reason or "").lower()
    if "server" in text:
        return DisconnectReason.SERVER
    if "client" in text:
        return DisconnectReason.CLIENT
    return DisconnectReason.TRANSPORT


class SocketIOTransport:
    def __init__(
        self,
        url: str,
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        client_factory: Optional[Callable[[], socketio.AsyncClient]] = None,
    ):
        self._url = url
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket", "polling"]
        self._ready_timeout = ready_timeout
        self._client_factory = client_factory or (lambda: socketio.AsyncClient(reconnection=False))
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False
        self._status: Optional[dict[str, Any]] = None
        self._event_handlers: list[Callable[[str, dict[str, Any]], None]] = []
        self._disconnect_callbacks: list[Callable[[str], None]] = []

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    @property
    def status(self) -> Optional[dict[str, Any]]:
        """Last ``connect_status`` payload: ``{connected, userId, role}``."""
        return self._status

    def add_event_handler(self, handler: Callable[[str, dict[str, Any]], None]) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)
        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_disconnect(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self._disconnect_callbacks.append(callback)
        def remove() -> None:
            try:
                self._disconnect_callbacks.remove(callback)
            except ValueError:
                pass
        return remove

    async def open(self, token: str) -> None:
        if self.connected:
            return

        sio = self._client_factory()
        ready_event = asyncio.Event()
        refusal: dict[str, Any] = {}

        @sio.on(S2CEvent.CONNECT_STATUS)
        async def on_status(data: Any) -> None:
            self._status = data if isinstance(data, dict) else {"connected": True}
            ready_event.set()

        @sio.on("*")
        async def on_any(event: str, data: Any = None) -> None:
            if event in TRANSPORT_EVENTS or event == S2CEvent.CONNECT_STATUS:
                return
            if self._event_handlers and isinstance(data, dict):
                for handler in list(self._event_handlers):
                    handler(event, data)

        @sio.event
        async def connect_error(data: Any = None) -> None:
            refusal["message"] = data.get("message") if isinstance(data, dict) else data

        @sio.event
        async def disconnect(reason: Any = None) -> None:
            # Ignored once open() gave up on this client or close() took it down.
            if self._sio is not sio:
                return
            was_connected = self._connected
            self._connected = False
            self._sio = None
            if was_connected:
                self._notify_disconnect(classify_disconnect(reason))
            else:
                # Dropped mid-handshake: open() fails now instead of timing out.
                ready_event.set()

        self._sio = sio
        try:
            await sio.connect(
                self._url,
                auth={"token": token},
                transports=self._transports,
                socketio_path=self._socketio_path,
                wait_timeout=self._ready_timeout,
            )
        except sio_exceptions.ConnectionError as e:
            self._release(sio)
            reason = refusal.get("message")
            if reason in AUTH_REFUSALS:
                raise AuthError(str(reason), code="connection_refused") from e
            raise TransportError(f"Socket.IO connect failed: {reason or e}") from e

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            self._release(sio)
            await sio.disconnect()
            raise TransportError(f"Timed out waiting for 'connect_status' after {self._ready_timeout}s")
        except asyncio.CancelledError:
            self._release(sio)
            await sio.disconnect()
            raise

        if self._sio is not sio:
            raise TransportError("Connection dropped during handshake")
        self._connected = True

    def emit(self, event_type: str, data: Any) -> None:
        """Fire-and-forget emit, scheduled on the running loop. Failures are logged."""
        if not self._sio or not self._sio.connected:
            raise TransportError("Socket.IO not connected")
        sio = self._sio

        async def _do_emit() -> None:
            try:
                await sio.emit(event_type, data)
            except Exception as e:
                logger.error(f"Emit failed for {event_type}: {e}")

        asyncio.get_running_loop().create_task(_do_emit())

    async def call(self, event_type: str, data: Any, timeout: float = 10.0) -> Any:
        """Emit and wait for the server's acknowledgement."""
        if not self._sio or not self._sio.connected:
            raise TransportError("Socket.IO not connected")
        try:
            return await self._sio.call(event_type, data, timeout=timeout)
        except sio_exceptions.TimeoutError as e:
            raise TransportError(f"Timeout waiting for {event_type} acknowledgement") from e

    async def close(self) -> None:
        self._connected = False
        sio, self._sio = self._sio, None
        if sio:
            await sio.disconnect()

    def _release(self, sio: socketio.AsyncClient) -> None:
        if self._sio is sio:
            self._sio = None

    def _notify_disconnect(self, reason: str) -> None:
        for callback in list(self._disconnect_callbacks):
            callback(reason)

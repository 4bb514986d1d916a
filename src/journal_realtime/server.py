"""
Socket.IO server binding.

Wires the authenticator, session registry, dispatcher and read-receipt
synchronizer onto a python-socketio ``AsyncServer``. One instance per
process; the HTTP request layer holds a reference and calls
``server.dispatcher`` / ``server.receipts`` after its writes commit.

Handshake: ``?token=<jwt>`` or ``auth={"token": <jwt>}``. Refusals carry a
textual reason (``credential not provided`` / ``authentication failed``).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError

from journal_realtime.auth import ConnectionAttempt, TokenAuthenticator
from journal_realtime.config import Settings, get_settings
from journal_realtime.dispatcher import MessageDispatcher
from journal_realtime.errors import AuthError
from journal_realtime.models.events import C2SEvent, S2CEvent
from journal_realtime.models.session import Identity
from journal_realtime.receipts import ReadReceiptSynchronizer
from journal_realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)


class SocketHandle:
    """ConnectionHandle over one Socket.IO sid."""

    __slots__ = ("_sio", "_sid")

    def __init__(self, sio: socketio.AsyncServer, sid: str):
        self._sio = sio
        self._sid = sid

    @property
    def sid(self) -> str:
        return self._sid

    async def send(self, event: str, data: Any) -> None:
        await self._sio.emit(event, data, to=self._sid)

    async def close(self) -> None:
        await self._sio.disconnect(self._sid)

    def __repr__(self) -> str:
        return f"SocketHandle(sid={self._sid!r})"


class RealtimeServer:
    def __init__(
        self,
        authenticator: TokenAuthenticator,
        registry: Optional[SessionRegistry] = None,
        settings: Optional[Settings] = None,
        sio: Optional[socketio.AsyncServer] = None,
    ):
        self._settings = settings or get_settings()
        self._authenticator = authenticator
        self.registry = registry or SessionRegistry(close_displaced=self._settings.close_displaced_sessions)
        self.dispatcher = MessageDispatcher(self.registry)
        self.receipts = ReadReceiptSynchronizer(self.dispatcher)
        self.sio = sio or socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=self._settings.cors_origins(),
            logger=self._settings.socketio_logging,
            engineio_logger=self._settings.socketio_logging,
        )

        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(C2SEvent.SEND_MESSAGE, self.on_send_message)
        self.sio.on(C2SEvent.MARK_MESSAGES_READ, self.on_mark_messages_read)
        self.sio.on(C2SEvent.HEARTBEAT, self.on_heartbeat)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> RealtimeServer:
        settings = settings or get_settings()
        authenticator = TokenAuthenticator(settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return cls(authenticator, settings=settings)

    def asgi_app(self, other_asgi_app: Any = None) -> socketio.ASGIApp:
        """ASGI entry point; ``other_asgi_app`` receives every non-Socket.IO request."""
        return socketio.ASGIApp(
            self.sio,
            other_asgi_app=other_asgi_app,
            socketio_path=self._settings.socketio_path,
        )

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        try:
            identity = self._authenticator.authenticate(ConnectionAttempt(environ=environ, auth=auth))
        except AuthError as e:
            logger.warning(f"Refused connection sid={sid}: {e} ({e.code})")
            raise ConnectionRefusedError(str(e)) from e

        await self.sio.save_session(sid, {"user_id": identity.user_id, "role": identity.role})
        await self.registry.register(identity, SocketHandle(self.sio, sid))
        logger.info(f"User {identity.user_id} ({identity.role}) connected, sid={sid}")

        # The CONNECT ack is queued as soon as this handler returns; the
        # status event must follow it, so it goes out from a task.
        self.sio.start_background_task(self._send_connect_status, sid, identity)

    async def _send_connect_status(self, sid: str, identity: Identity) -> None:
        try:
            await self.sio.emit(
                S2CEvent.CONNECT_STATUS,
                {"connected": True, "userId": identity.user_id, "role": identity.role},
                to=sid,
            )
        except Exception as e:
            logger.error(f"Failed to send connect_status to sid={sid}: {e}")

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        user_id = await self._user_id_for(sid)
        if user_id is None:
            return
        self.registry.unregister(user_id, SocketHandle(self.sio, sid))
        logger.info(f"User {user_id} disconnected, sid={sid}, reason={reason}")

    async def on_send_message(self, sid: str, data: Any = None) -> dict[str, Any]:
        """Advisory only; messages are created through the REST layer."""
        user_id = await self._user_id_for(sid)
        logger.info(f"send_message from user {user_id}: {data}")
        return {"ok": True}

    async def on_mark_messages_read(self, sid: str, data: Any = None) -> dict[str, Any]:
        """Advisory only; read state is written through the REST layer."""
        user_id = await self._user_id_for(sid)
        from_user_id = data.get("fromUserId") if isinstance(data, dict) else None
        logger.info(f"mark_messages_read from user {user_id} for sender {from_user_id}")
        return {"ok": True}

    async def on_heartbeat(self, sid: str, data: Any = None) -> dict[str, Any]:
        return {"ok": True}

    async def _user_id_for(self, sid: str) -> Optional[int]:
        try:
            session = await self.sio.get_session(sid)
        except KeyError:
            return None
        return session.get("user_id") if isinstance(session, dict) else None

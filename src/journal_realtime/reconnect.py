"""
Client reconnection controller.

    disconnected -> connecting -> connected
    connected -> reconnecting -> connected | failed

Retry policy:
- transport drop or failed open: up to ``max_attempts`` retries, each
  ``retry_delay`` seconds apart, then ``failed``. The budget counts retries;
  the initial open is not one of them.
- server-initiated drop: one manual reconnect after ``retry_delay``, outside
  the budget. If that open fails, the bounded policy takes over.
- client-initiated close: no retry.

``close()`` (or leaving ``async with``) cancels the pending timer and any
in-flight attempt before closing the transport.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from journal_realtime.auth import CREDENTIAL_MISSING
from journal_realtime.errors import AuthError, TransportError

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_INTERVAL = 3.0


class ConnectionState:
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class DisconnectReason:
    CLIENT = "client"
    SERVER = "server"
    TRANSPORT = "transport"


class Transport(Protocol):
    async def open(self, token: str) -> None: ...

    async def close(self) -> None: ...

    def on_disconnect(self, callback: Callable[[str], None]) -> Callable[[], None]: ...


class RetryTimer:
    """At most one pending ``call_later`` callback, cancellable at any time."""

    def __init__(self) -> None:
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[..., None], *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handle = None
            callback(*args)

        self._handle = loop.call_later(delay, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class ReconnectionController:
    def __init__(
        self,
        transport: Transport,
        token: Optional[str] = None,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        retry_delay: float = RECONNECT_INTERVAL,
    ):
        self._transport = transport
        self._token = token
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._timer = RetryTimer()
        self._attempt_task: Optional[asyncio.Task[bool]] = None
        self._closing = False
        self._opening = False
        self._state_handlers: list[Callable[[str], None]] = []
        self.last_error: Optional[Exception] = None
        self._remove_drop_listener = transport.on_disconnect(self._on_transport_drop)

    @property
    def state(self) -> str:
        return self._state

    @property
    def attempts(self) -> int:
        """Retries made since the last successful open."""
        return self._attempts

    @property
    def retry_pending(self) -> bool:
        return self._timer.pending

    @property
    def transport(self) -> Transport:
        return self._transport

    def add_state_handler(self, handler: Callable[[str], None]) -> Callable[[], None]:
        """Add a state-change handler. Returns a cleanup function."""
        self._state_handlers.append(handler)

        def remove() -> None:
            try:
                self._state_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def wait_for_state(self, state: str, timeout: float = 10.0) -> None:
        if self._state == state:
            return
        reached = asyncio.Event()

        def handler(new_state: str) -> None:
            if new_state == state:
                reached.set()

        remove = self.add_state_handler(handler)
        try:
            await asyncio.wait_for(reached.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Timed out waiting for state {state!r} (current: {self._state!r})")
        finally:
            remove()

    async def connect(self, token: Optional[str] = None) -> bool:
        """Open the connection. Returns whether it is up on return.

        A failed first open is not raised: it enters the retry policy, and
        the outcome is observable through ``state`` and the state handlers.
        """
        if token:
            self._token = token
        if not self._token:
            self._set_state(ConnectionState.FAILED)
            raise AuthError(CREDENTIAL_MISSING, code="credential_missing")
        if self._state == ConnectionState.CONNECTED:
            return True

        self._cancel_pending()
        self._attempts = 0
        self._set_state(ConnectionState.CONNECTING)
        return await self._attempt()

    async def close(self) -> None:
        self._closing = True
        try:
            task = self._cancel_pending()
            if task is not None and task is not asyncio.current_task():
                await asyncio.gather(task, return_exceptions=True)
            await self._transport.close()
        finally:
            self._closing = False
            self._set_state(ConnectionState.DISCONNECTED)

    def dispose(self) -> None:
        """Detach from the transport. The controller is unusable afterwards."""
        self._cancel_pending()
        self._remove_drop_listener()
        self._state_handlers.clear()

    async def __aenter__(self) -> ReconnectionController:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _attempt(self) -> bool:
        self._opening = True
        try:
            await self._transport.open(self._token)  # type: ignore[arg-type]
        except (TransportError, AuthError) as e:
            return self._attempt_failed(e)
        except Exception as e:
            return self._attempt_failed(
                TransportError(f"Transport open failed: {e!r}", details={"exception": type(e).__name__})
            )
        finally:
            self._opening = False

        self._timer.cancel()
        self._attempts = 0
        self.last_error = None
        self._set_state(ConnectionState.CONNECTED)
        return True

    def _attempt_failed(self, error: Exception) -> bool:
        self.last_error = error
        logger.warning(f"Connection attempt failed: {error}")
        self._schedule_retry(DisconnectReason.TRANSPORT)
        return False

    def _on_transport_drop(self, reason: str) -> None:
        # An open in flight reports its own failure and schedules the retry.
        if self._closing or self._opening:
            return
        logger.info(f"Connection dropped ({reason})")
        if reason == DisconnectReason.CLIENT:
            self._cancel_pending()
            self._set_state(ConnectionState.DISCONNECTED)
            return
        self._schedule_retry(reason)

    def _schedule_retry(self, reason: str) -> None:
        if self._closing or self._timer.pending:
            return
        if reason == DisconnectReason.SERVER:
            logger.info(f"Server closed the connection, reconnecting in {self._retry_delay}s")
            self._set_state(ConnectionState.RECONNECTING)
            self._timer.schedule(self._retry_delay, self._fire_retry, False)
            return
        if self._attempts >= self._max_attempts:
            logger.warning(f"Giving up after {self._attempts} reconnection attempts")
            self._set_state(ConnectionState.FAILED)
            return
        logger.info(
            f"Reconnection attempt {self._attempts + 1} of {self._max_attempts} in {self._retry_delay}s"
        )
        self._set_state(ConnectionState.RECONNECTING)
        self._timer.schedule(self._retry_delay, self._fire_retry, True)

    def _fire_retry(self, counted: bool) -> None:
        if counted:
            self._attempts += 1
        self._attempt_task = asyncio.get_running_loop().create_task(self._attempt())

    def _cancel_pending(self) -> Optional[asyncio.Task[bool]]:
        self._timer.cancel()
        task, self._attempt_task = self._attempt_task, None
        if task is not None and not task.done():
            task.cancel()
            return task
        return None

    def _set_state(self, state: str) -> None:
        if state == self._state:
            return
        logger.debug(f"Connection state {self._state} -> {state}")
        self._state = state
        for handler in list(self._state_handlers):
            handler(state)

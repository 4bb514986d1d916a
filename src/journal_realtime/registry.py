"""
Session registry: user id -> the one live connection for that user.

Process-local and lock-free. Every mutation is a plain dict operation that
completes before the next await point, so two registry updates never
interleave on a single event loop. Running several server processes gives
each its own view of who is online.
"""

import logging
from typing import Iterator, Optional

from journal_realtime.models.session import ConnectionHandle, Identity, Session

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, close_displaced: bool = True):
        self._sessions: dict[int, Session] = {}
        self._close_displaced = close_displaced

    async def register(self, identity: Identity, handle: ConnectionHandle) -> Optional[Session]:
        """Store ``handle`` for ``identity.user_id``; last connect wins.

        The swap happens before any await, so the new session is already
        the reachable one while a displaced handle is being closed.
        Returns the displaced session, if any.
        """
        session = Session(user_id=identity.user_id, role=identity.role, handle=handle)
        displaced = self._sessions.get(identity.user_id)
        self._sessions[identity.user_id] = session
        logger.info(f"Session registered for user {identity.user_id} (sid={handle.sid})")

        if displaced is None or displaced.sid == handle.sid:
            return None
        if self._close_displaced:
            logger.info(f"Closing displaced session for user {identity.user_id} (sid={displaced.sid})")
            try:
                await displaced.handle.close()
            except Exception as e:
                logger.error(f"Failed to close displaced session sid={displaced.sid}: {e}")
        return displaced

    def unregister(self, user_id: int, handle: Optional[ConnectionHandle] = None) -> bool:
        """Remove the session for ``user_id``.

        With ``handle``, only removes when it is still the registered one, so
        a late disconnect from a replaced connection cannot evict its successor.
        """
        current = self._sessions.get(user_id)
        if current is None:
            return False
        if handle is not None and current.sid != handle.sid:
            logger.debug(f"Ignoring stale disconnect for user {user_id} (sid={handle.sid})")
            return False
        del self._sessions[user_id]
        logger.info(f"Session removed for user {user_id} (sid={current.sid})")
        return True

    def lookup(self, user_id: int) -> Optional[ConnectionHandle]:
        session = self._sessions.get(user_id)
        return session.handle if session else None

    def get(self, user_id: int) -> Optional[Session]:
        return self._sessions.get(user_id)

    def is_online(self, user_id: int) -> bool:
        return user_id in self._sessions

    def online_user_ids(self) -> list[int]:
        return sorted(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

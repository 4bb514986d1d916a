"""
Request-layer glue: persist first, announce second.

The HTTP layer calls these after validating and authorizing the request.
A failed write raises PersistenceError and nothing is pushed, so an
unpersisted message or read state is never announced.
"""

import itertools
from datetime import datetime, timezone
from typing import Optional, Protocol

from journal_realtime.dispatcher import MessageDispatcher
from journal_realtime.errors import PersistenceError, RealtimeError
from journal_realtime.models.message import Message
from journal_realtime.receipts import ReadReceiptSynchronizer


class MessageStore(Protocol):
    async def create(
        self,
        from_user_id: int,
        to_user_id: int,
        content: str,
        attachment: Optional[dict[str, str]] = None,
    ) -> Message: ...

    async def get(self, message_id: int) -> Optional[Message]: ...

    async def delete(self, message_id: int) -> None: ...

    async def mark_read(self, from_user_id: int, to_user_id: int) -> int: ...

    async def conversation(self, user_a: int, user_b: int) -> list[Message]: ...


class InMemoryMessageStore:
    """Process-local MessageStore, for tests and the dev server."""

    def __init__(self) -> None:
        self._messages: dict[int, Message] = {}
        self._ids = itertools.count(1)

    async def create(
        self,
        from_user_id: int,
        to_user_id: int,
        content: str,
        attachment: Optional[dict[str, str]] = None,
    ) -> Message:
        attachment = attachment or {}
        message = Message(
            id=next(self._ids),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            content=content,
            has_attachment=bool(attachment),
            attachment_type=attachment.get("type"),
            attachment_url=attachment.get("url"),
            attachment_name=attachment.get("name"),
            created_at=datetime.now(timezone.utc),
        )
        self._messages[message.id] = message
        return message

    async def get(self, message_id: int) -> Optional[Message]:
        return self._messages.get(message_id)

    async def delete(self, message_id: int) -> None:
        self._messages.pop(message_id, None)

    async def mark_read(self, from_user_id: int, to_user_id: int) -> int:
        updated = 0
        for message in self._messages.values():
            if message.from_user_id == from_user_id and message.to_user_id == to_user_id and not message.is_read:
                message.is_read = True
                updated += 1
        return updated

    async def conversation(self, user_a: int, user_b: int) -> list[Message]:
        pair = {user_a, user_b}
        rows = [m for m in self._messages.values() if {m.from_user_id, m.to_user_id} == pair]
        return sorted(rows, key=lambda m: (m.created_at or datetime.min.replace(tzinfo=timezone.utc), m.id))


class MessagingService:
    def __init__(
        self,
        store: MessageStore,
        dispatcher: MessageDispatcher,
        receipts: Optional[ReadReceiptSynchronizer] = None,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._receipts = receipts or ReadReceiptSynchronizer(dispatcher)

    async def create_message(
        self,
        from_user_id: int,
        to_user_id: int,
        content: str,
        attachment: Optional[dict[str, str]] = None,
    ) -> tuple[Message, bool]:
        """Persist a message, then push ``new_message`` to the recipient.

        Returns the stored message and whether it reached a live connection.
        """
        try:
            message = await self._store.create(from_user_id, to_user_id, content, attachment)
        except Exception as e:
            raise PersistenceError(f"Failed to store message: {e}") from e
        delivered = await self._dispatcher.announce_new_message(message)
        return message, delivered

    async def delete_message(self, message_id: int) -> bool:
        try:
            message = await self._store.get(message_id)
            if message is None:
                raise RealtimeError("not_found", f"Message {message_id} not found")
            await self._store.delete(message_id)
        except RealtimeError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete message {message_id}: {e}") from e
        return await self._dispatcher.announce_deleted(message.to_user_id, message_id)

    async def mark_read(self, reader_user_id: int, from_user_id: int) -> tuple[int, bool]:
        """Flip unread messages from ``from_user_id`` to read, then notify the sender.

        The sender is notified even when nothing changed; the push is harmless.
        """
        try:
            updated = await self._store.mark_read(from_user_id, reader_user_id)
        except Exception as e:
            raise PersistenceError(f"Failed to mark messages read: {e}") from e
        notified = await self._receipts.notify_read(reader_user_id, from_user_id)
        return updated, notified

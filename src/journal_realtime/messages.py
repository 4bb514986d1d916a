"""
Messages REST API: the request layer that persists, then triggers delivery.
"""

from typing import Any

from journal_realtime.models.message import Conversation, Message
from journal_realtime.transport.http import HttpClient


class MessagesAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def conversation(self, user_id: int) -> list[Message]:
        """All messages exchanged with ``user_id``, oldest first."""
        rows = await self._http.get(f"/messages/conversation/{user_id}")
        return [Message.model_validate(row) for row in rows or []]

    async def conversations(self) -> list[Conversation]:
        rows = await self._http.get("/messages/conversations")
        return [Conversation.model_validate(row) for row in rows or []]

    async def send(self, to_user_id: int, content: str) -> Message:
        """Create a message. The server pushes ``new_message`` to the recipient if online."""
        row = await self._http.post("/messages", {"toUserId": to_user_id, "content": content})
        return Message.model_validate(row)

    async def mark_read(self, from_user_id: int) -> dict[str, Any]:
        return await self._http.put(f"/messages/read/{from_user_id}")

    async def delete(self, message_id: int) -> dict[str, Any]:
        return await self._http.delete(f"/messages/{message_id}")

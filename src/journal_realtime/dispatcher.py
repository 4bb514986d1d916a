"""
Message dispatcher: best-effort push of a delivery event to a live session.

Called by the request layer only after the triggering write is durable.
An absent recipient is the normal offline case: ``False``, no exception,
no retry. The recipient recovers the message on its next fetch. A handle
whose push fails is dropped from the registry if it is still the current one.
"""

import logging

from journal_realtime.models.events import S2CEvent
from journal_realtime.models.message import Message
from journal_realtime.models.session import DeliveryEvent
from journal_realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageDispatcher:
    def __init__(self, registry: SessionRegistry):
        self._registry = registry

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def deliver(self, target_user_id: int, event: DeliveryEvent) -> bool:
        handle = self._registry.lookup(target_user_id)
        if handle is None:
            logger.debug(f"User {target_user_id} offline, {event.kind} not delivered")
            return False
        try:
            await handle.send(S2CEvent.MESSAGE, event.to_wire())
        except Exception as e:
            logger.error(f"Push of {event.kind} to user {target_user_id} (sid={handle.sid}) failed: {e}")
            self._registry.unregister(target_user_id, handle)
            return False
        return True

    async def announce_new_message(self, message: Message) -> bool:
        return await self.deliver(message.to_user_id, DeliveryEvent.new_message(message))

    async def announce_deleted(self, recipient_user_id: int, message_id: int) -> bool:
        return await self.deliver(recipient_user_id, DeliveryEvent.message_deleted(message_id))

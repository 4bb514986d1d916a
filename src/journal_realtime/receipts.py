"""
Read-receipt synchronizer.
"""

from journal_realtime.dispatcher import MessageDispatcher
from journal_realtime.models.session import DeliveryEvent


class ReadReceiptSynchronizer:
    """Tells the original sender that their messages were read.

    The read-state write belongs to the store and must already be durable.
    This only pushes a notification, so calling it again with nothing new
    to mark is harmless: the sender re-renders, nothing else changes.
    """

    def __init__(self, dispatcher: MessageDispatcher):
        self._dispatcher = dispatcher

    async def notify_read(self, reader_user_id: int, original_sender_user_id: int) -> bool:
        return await self._dispatcher.deliver(
            original_sender_user_id,
            DeliveryEvent.messages_read(reader_user_id),
        )

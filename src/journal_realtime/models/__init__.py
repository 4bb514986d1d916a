from journal_realtime.models.events import C2SEvent, S2CEvent, DeliveryKind
from journal_realtime.models.message import Conversation, Message, UserSummary
from journal_realtime.models.session import ConnectionHandle, DeliveryEvent, Identity, Session

__all__ = [
    "C2SEvent",
    "S2CEvent",
    "DeliveryKind",
    "Conversation",
    "Message",
    "UserSummary",
    "ConnectionHandle",
    "DeliveryEvent",
    "Identity",
    "Session",
]

"""
Socket.IO event names and delivery kinds.
"""


class S2CEvent:
    """Server -> client events."""
    CONNECT_STATUS = "connect_status"
    MESSAGE = "message"


class C2SEvent:
    """Client -> server events. Advisory only: persistence goes through the REST layer."""
    SEND_MESSAGE = "send_message"
    MARK_MESSAGES_READ = "mark_messages_read"
    HEARTBEAT = "heartbeat"


class DeliveryKind:
    """``kind`` discriminator carried inside every ``message`` event."""
    NEW_MESSAGE = "new_message"
    MESSAGE_DELETED = "message_deleted"
    MESSAGES_READ = "messages_read"

    ALL = frozenset({NEW_MESSAGE, MESSAGE_DELETED, MESSAGES_READ})


# Reserved by Socket.IO itself; never forwarded to user handlers.
TRANSPORT_EVENTS = frozenset({"connect", "disconnect", "connect_error"})

"""
journal-realtime: realtime presence and message delivery for the school journal.

Socket.IO server side: authenticator, session registry, dispatcher, read receipts.
Client side: reconnecting Socket.IO transport + REST client for the message API.
"""

from journal_realtime.auth import ConnectionAttempt, TokenAuthenticator, issue_token
from journal_realtime.client import AsyncJournalClient
from journal_realtime.dispatcher import MessageDispatcher
from journal_realtime.errors import (
    AuthError,
    ConnectionError,
    PersistenceError,
    RealtimeError,
    TransportError,
)
from journal_realtime.models.events import C2SEvent, DeliveryKind, S2CEvent
from journal_realtime.models.session import DeliveryEvent, Identity, Session
from journal_realtime.receipts import ReadReceiptSynchronizer
from journal_realtime.reconnect import ConnectionState, ReconnectionController
from journal_realtime.registry import SessionRegistry
from journal_realtime.server import RealtimeServer
from journal_realtime.service import InMemoryMessageStore, MessagingService

__version__ = "0.1.0"
__all__ = [
    "AsyncJournalClient",
    "ConnectionAttempt",
    "TokenAuthenticator",
    "issue_token",
    "SessionRegistry",
    "MessageDispatcher",
    "ReadReceiptSynchronizer",
    "ReconnectionController",
    "ConnectionState",
    "RealtimeServer",
    "MessagingService",
    "InMemoryMessageStore",
    "RealtimeError",
    "AuthError",
    "TransportError",
    "PersistenceError",
    "ConnectionError",
    "C2SEvent",
    "S2CEvent",
    "DeliveryKind",
    "DeliveryEvent",
    "Identity",
    "Session",
]

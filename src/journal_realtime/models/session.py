"""
Identity, live session and delivery event models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from journal_realtime.models.events import DeliveryKind
from journal_realtime.models.message import Message


class Identity(BaseModel):
    """Who is behind a connection, as derived from the credential."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    role: str
    username: Optional[str] = None


class ConnectionHandle(Protocol):
    """One open connection that events can be pushed onto."""

    @property
    def sid(self) -> str: ...

    async def send(self, event: str, data: Any) -> None: ...

    async def close(self) -> None: ...


@dataclass
class Session:
    user_id: int
    role: str
    handle: ConnectionHandle
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def sid(self) -> str:
        return self.handle.sid


class DeliveryEvent(BaseModel):
    """Transient push; never persisted by this package."""
    model_config = ConfigDict(frozen=True)

    kind: str
    payload: dict[str, Any] = {}

    @classmethod
    def new_message(cls, message: Message) -> "DeliveryEvent":
        return cls(kind=DeliveryKind.NEW_MESSAGE, payload={"payload": message.to_wire()})

    @classmethod
    def message_deleted(cls, message_id: int) -> "DeliveryEvent":
        return cls(kind=DeliveryKind.MESSAGE_DELETED, payload={"messageId": message_id})

    @classmethod
    def messages_read(cls, from_user_id: int) -> "DeliveryEvent":
        return cls(kind=DeliveryKind.MESSAGES_READ, payload={"fromUserId": from_user_id})

    def to_wire(self) -> dict[str, Any]:
        """Flat dict emitted on the ``message`` event: ``{"kind": ..., **payload}``."""
        return {"kind": self.kind, **self.payload}

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> "DeliveryEvent":
        data = dict(raw)
        kind = data.pop("kind", None)
        if kind not in DeliveryKind.ALL:
            raise ValueError(f"Unknown delivery kind: {kind!r}")
        return cls(kind=kind, payload=data)

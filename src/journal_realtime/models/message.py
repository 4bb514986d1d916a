"""
Message shape as stored by the journal backend.

Owned by the external store; this package only reads it to build events.
Wire form is camelCase (``fromUserId``, ``isRead``...), matching the REST API.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str = ""
    role: str = ""
    avatar_url: Optional[str] = None


class Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    from_user_id: int
    to_user_id: int
    content: str = ""
    is_read: bool = False
    has_attachment: bool = False
    attachment_type: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    created_at: Optional[datetime] = None
    from_user: Optional[UserSummary] = None
    to_user: Optional[UserSummary] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Conversation(BaseModel):
    """One row of GET /messages/conversations."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user: UserSummary
    last_message: dict[str, Any] = {}
    unread_count: int = 0

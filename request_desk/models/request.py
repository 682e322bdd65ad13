"""Request, message and category data models"""

from datetime import datetime
from enum import Enum
from typing import Tuple

from pydantic import BaseModel

from .principal import Role


class RequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Category(BaseModel):
    id: str
    name: str

    class Config:
        frozen = True


class Message(BaseModel):
    """One entry of a request thread; immutable once created"""
    id: str
    request_id: str
    sender_id: str
    sender_name: str
    sender_role: Role
    content: str
    timestamp: datetime
    is_read: bool = False

    class Config:
        frozen = True


class Request(BaseModel):
    """
    A resident-filed service request.

    Instances are frozen; the request store swaps in updated copies
    (``model_copy(update=...)``) so every holder of an old copy sees a
    consistent snapshot.
    """
    id: str
    resident_id: str
    resident_name: str
    category_id: str
    category_name: str
    subject: str
    status: RequestStatus = RequestStatus.OPEN
    created_at: datetime
    updated_at: datetime
    deadline: datetime
    messages: Tuple[Message, ...]

    class Config:
        frozen = True

    @property
    def is_closed(self) -> bool:
        return self.status == RequestStatus.CLOSED

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self.messages if not m.is_read)

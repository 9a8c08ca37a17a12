"""
Data shapes shared between the core and its clients.

The API surface only ever returns these, never ORM rows, so the client layer
works against explicit fields instead of whatever object the store handed out.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, List, Literal, Optional, TypeVar

from counselor.models import ChatSession, Message, MessageRole

T = TypeVar("T")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class ClientSession:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: ChatSession) -> "ClientSession":
        return cls(
            id=row.id,
            name=row.name,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dataclass(frozen=True)
class ClientMessage:
    id: str
    session_id: str
    role: MessageRole
    content: str
    created_at: datetime
    optimistic: bool = False

    @classmethod
    def from_row(cls, row: Message) -> "ClientMessage":
        return cls(
            id=str(row.id),
            session_id=row.session_id,
            role=row.role,
            content=row.content,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class Turn:
    """One entry of the context handed to a completion backend."""
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class TurnResult:
    session_id: str
    reply: str

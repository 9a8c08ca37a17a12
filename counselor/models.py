from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship


def utcnow() -> datetime:
    """
    Naive UTC timestamp. Columns are declared as plain `DateTime` so the
    value is stored and read back exactly like this.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class ChatSession(SQLModel, table=True):
    """
    Named conversation owned by exactly one user.

    `updated_at` orders the session list (most recent activity first) and is
    only moved by a completed assistant turn.
    """
    __tablename__ = "chat_session"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    owner_user_id: str = Field(index=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)

    messages: List["Message"] = Relationship(
        back_populates="session",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Message(SQLModel, table=True):
    """
    Conversation message stored in Postgres. Immutable once written.
    """
    __tablename__ = "message"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(
        foreign_key="chat_session.id",
        index=True,
        ondelete="CASCADE",
    )
    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    session: Optional[ChatSession] = Relationship(back_populates="messages")

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from counselor.db import get_session
from counselor.errors import AuthorizationError, PersistenceError
from counselor.models import ChatSession, Message, MessageRole, utcnow

logger = logging.getLogger(__name__)


@contextmanager
def _storage():
    """
    Open a database session and translate storage failures.

    Anything not committed when the block exits is rolled back.
    """
    try:
        with get_session() as session:
            yield session
    except SQLAlchemyError as exc:
        raise PersistenceError(f"storage failure: {exc.__class__.__name__}") from exc


def _owned(session: Session, user_id: str, session_id: str) -> ChatSession:
    chat_session = session.get(ChatSession, session_id)
    # missing and foreign sessions look the same to the caller
    if chat_session is None or chat_session.owner_user_id != user_id:
        raise AuthorizationError(
            "session is not accessible to this user",
            hint="pick one of your own sessions or start a new one",
        )
    return chat_session


def _next_timestamp(previous: datetime) -> datetime:
    return max(utcnow(), previous + timedelta(microseconds=1))


# -----------------------------
# Sessions
# -----------------------------
def create_session(user_id: str, name: str) -> ChatSession:
    """
    Create an empty session owned by `user_id`.
    """
    chat_session = ChatSession(owner_user_id=user_id, name=name)

    with _storage() as session:
        session.add(chat_session)
        session.commit()
        session.refresh(chat_session)

    logger.info("created session %s for user %s", chat_session.id, user_id)
    return chat_session


def get_owned_session(user_id: str, session_id: str) -> ChatSession:
    """
    Load a session, failing with AuthorizationError unless `user_id` owns it.
    """
    with _storage() as session:
        return _owned(session, user_id, session_id)


def list_sessions(user_id: str, page: int, page_size: int) -> Tuple[List[ChatSession], int]:
    """
    Return one page of the user's sessions, most recently updated first,
    together with the total number of sessions.
    """
    with _storage() as session:
        items = session.exec(
            select(ChatSession)
            .where(ChatSession.owner_user_id == user_id)
            .order_by(ChatSession.updated_at.desc(), ChatSession.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        total = session.exec(
            select(func.count())
            .select_from(ChatSession)
            .where(ChatSession.owner_user_id == user_id)
        ).one()

    return list(items), total


def delete_session(user_id: str, session_id: str) -> None:
    """
    Delete a session and every message in it.
    """
    with _storage() as session:
        chat_session = _owned(session, user_id, session_id)
        session.delete(chat_session)
        session.commit()

    logger.info("deleted session %s for user %s", session_id, user_id)


# -----------------------------
# Messages
# -----------------------------
def save_message(session_id: str, role: MessageRole, content: str) -> Message:
    """
    Save a single conversation message in the database.
    """
    msg = Message(session_id=session_id, role=role, content=content)

    with _storage() as session:
        session.add(msg)
        session.commit()
        session.refresh(msg)

    return msg


def get_messages(
    user_id: str, session_id: str, page: int, page_size: int
) -> Tuple[List[Message], int]:
    """
    Return one page of a session's messages, oldest first, plus the total.
    The ownership check runs before anything in the session is read.
    """
    with _storage() as session:
        _owned(session, user_id, session_id)

        items = session.exec(
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.created_at, Message.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        total = session.exec(
            select(func.count())
            .select_from(Message)
            .where(Message.session_id == session_id)
        ).one()

    return list(items), total


def get_recent_messages(session_id: str, limit: int) -> List[Message]:
    """
    Return the most recent `limit` messages of a session.
    Ordered oldest → newest.
    """
    with _storage() as session:
        newest_first = session.exec(
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        ).all()

    return list(reversed(newest_first))


def record_assistant_turn(session_id: str, content: str) -> Message:
    """
    Store the assistant reply and advance the session's `updated_at` in one
    transaction. Either both land or neither does.
    """
    msg = Message(session_id=session_id, role=MessageRole.ASSISTANT, content=content)

    with _storage() as session:
        chat_session = session.get(ChatSession, session_id)
        if chat_session is None:
            raise PersistenceError(f"session {session_id} disappeared before the reply was stored")

        session.add(msg)
        chat_session.updated_at = _next_timestamp(chat_session.updated_at)
        session.add(chat_session)
        session.commit()
        session.refresh(msg)

    return msg

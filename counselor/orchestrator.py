"""
One inbound user message, start to finish.

    resolve/create session -> store user turn -> assemble context
        -> generate -> store assistant turn + bump session (one transaction)

Every step runs sequentially. Nothing is retried here; a user who wants a
retry sends the message again.
"""

import logging
from typing import Optional

from counselor import repository
from counselor.completion import CompletionBackend, get_backend
from counselor.context import assemble_context
from counselor.contracts import CurrentUser, TurnResult
from counselor.errors import ChatError, UpstreamGenerationFailure, ValidationError
from counselor.models import MessageRole

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "Career Counseling Session"


def submit_turn(
    user: CurrentUser,
    text: str,
    session_id: Optional[str] = None,
    proposed_name: Optional[str] = None,
    backend: Optional[CompletionBackend] = None,
) -> TurnResult:
    """
    Run one conversational turn for `user`.

    Raises:
        ValidationError: `text` is blank. Nothing is written.
        AuthorizationError: `session_id` is not one of the user's sessions.
        UpstreamGenerationFailure: the backend call failed, including a
            missing credential (see `cause`). The user turn is stored, no
            assistant turn is written and `updated_at` is untouched.
        PersistenceError: storage failed at some step.
    """
    content = (text or "").strip()
    if not content:
        raise ValidationError("message cannot be empty")

    if backend is None:
        backend = get_backend()

    if session_id:
        chat_session = repository.get_owned_session(user.id, session_id)
    else:
        name = (proposed_name or "").strip() or DEFAULT_SESSION_NAME
        chat_session = repository.create_session(user.id, name)

    repository.save_message(chat_session.id, MessageRole.USER, content)
    logger.info(
        "user turn stored in session %s (%d chars)", chat_session.id, len(content)
    )

    context = assemble_context(chat_session.id)
    system_directive, turns = context[0].content, context[1:]

    try:
        reply = backend.generate(
            system_directive,
            turns,
            metadata={"user_id": user.id, "session_id": chat_session.id},
        )
    except ChatError as exc:
        logger.warning(
            "no reply for session %s, user turn left unanswered", chat_session.id
        )
        raise UpstreamGenerationFailure(
            "the counselor could not generate a reply",
            session_id=chat_session.id,
            cause=exc,
        ) from exc

    repository.record_assistant_turn(chat_session.id, reply)

    return TurnResult(session_id=chat_session.id, reply=reply)

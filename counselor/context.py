from typing import List

from counselor.contracts import Turn
from counselor.prompts import BACKEND_ROLES, SYSTEM_DIRECTIVE
from counselor.repository import get_recent_messages

CONTEXT_WINDOW = 30


def assemble_context(session_id: str, window: int = CONTEXT_WINDOW) -> List[Turn]:
    """
    Build the turn list sent to the completion backend for a session.

    The first entry is always the system directive; it is not stored and does
    not count against `window`. The rest are the `window` most recent stored
    messages, oldest first. Older history is dropped, not summarized.
    """
    recent = get_recent_messages(session_id, limit=window)

    return [Turn(role="system", content=SYSTEM_DIRECTIVE)] + [
        Turn(role=BACKEND_ROLES[m.role], content=m.content)
        for m in recent
    ]

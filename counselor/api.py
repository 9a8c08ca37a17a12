"""
The calls the UI makes, bound to the signed-in user.

Who the user is comes from outside (cookie, token, sidebar input); this
module only receives the result and refuses to work without one.
"""

import math
from typing import Callable, Optional

from counselor import repository
from counselor.completion import CompletionBackend
from counselor.contracts import ClientMessage, ClientSession, CurrentUser, Page, TurnResult
from counselor.errors import AuthenticationError, ValidationError
from counselor.orchestrator import submit_turn


DEFAULT_PAGE = 1
SESSIONS_PAGE_SIZE = 10
SESSIONS_MAX_PAGE_SIZE = 50
MESSAGES_PAGE_SIZE = 20
MESSAGES_MAX_PAGE_SIZE = 100

CurrentUserProvider = Callable[[], Optional[CurrentUser]]


def _check_paging(page: int, page_size: int, max_page_size: int) -> None:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError(f"page must be an integer >= 1, got {page!r}")
    if (
        isinstance(page_size, bool)
        or not isinstance(page_size, int)
        or not 1 <= page_size <= max_page_size
    ):
        raise ValidationError(
            f"page_size must be an integer between 1 and {max_page_size}, got {page_size!r}"
        )


def _page(items, total: int, page: int, page_size: int) -> Page:
    return Page(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )


class CounselingChat:
    """Programmatic API for one authenticated user."""

    def __init__(self, user: Optional[CurrentUser], backend: Optional[CompletionBackend] = None):
        if user is None:
            raise AuthenticationError("sign in to use the counselor")
        self.user = user
        self.backend = backend

    @classmethod
    def for_current_user(
        cls, provider: CurrentUserProvider, backend: Optional[CompletionBackend] = None
    ) -> "CounselingChat":
        return cls(provider(), backend=backend)

    def create_session(self, name: str) -> ClientSession:
        name = (name or "").strip()
        if not name:
            raise ValidationError("session name cannot be empty")
        return ClientSession.from_row(repository.create_session(self.user.id, name))

    def list_sessions(
        self, page: int = DEFAULT_PAGE, page_size: int = SESSIONS_PAGE_SIZE
    ) -> Page[ClientSession]:
        _check_paging(page, page_size, SESSIONS_MAX_PAGE_SIZE)
        rows, total = repository.list_sessions(self.user.id, page, page_size)
        return _page([ClientSession.from_row(r) for r in rows], total, page, page_size)

    def get_messages(
        self, session_id: str, page: int = DEFAULT_PAGE, page_size: int = MESSAGES_PAGE_SIZE
    ) -> Page[ClientMessage]:
        _check_paging(page, page_size, MESSAGES_MAX_PAGE_SIZE)
        rows, total = repository.get_messages(self.user.id, session_id, page, page_size)
        return _page([ClientMessage.from_row(r) for r in rows], total, page, page_size)

    def delete_session(self, session_id: str) -> dict:
        repository.delete_session(self.user.id, session_id)
        return {"success": True}

    def send_message(
        self, text: str, session_id: Optional[str] = None, name: Optional[str] = None
    ) -> TurnResult:
        return submit_turn(
            self.user,
            text,
            session_id=session_id,
            proposed_name=name,
            backend=self.backend,
        )

"""
Client-side view of one conversation while a message is being sent.

    IDLE --begin_send--> SENDING --on_send_succeeded--> SETTLED
                                 --on_send_failed-----> FAILED

While SENDING, the user's text is shown as an optimistic message after the
last authoritative one. When the server answers it is thrown away, never
merged. Success and failure both re-fetch messages and sessions, so a user
turn stored before a failed reply shows up as a normal message. Sends cannot
be cancelled, only completed.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from counselor.contracts import ClientMessage, ClientSession, TurnResult
from counselor.errors import ChatError, SendInProgressError
from counselor.models import MessageRole, utcnow
from counselor.orchestrator import DEFAULT_SESSION_NAME

OPTIMISTIC_MESSAGE_ID = "optimistic"

# keeps the typing indicator up briefly after a fast reply so it doesn't flicker
TYPING_GRACE_SECONDS = 1.0


class SendPhase(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SETTLED = "settled"
    FAILED = "failed"


SendFn = Callable[[str, Optional[str], Optional[str]], TurnResult]


@dataclass
class ConversationView:
    fetch_messages: Callable[[str], List[ClientMessage]]
    fetch_sessions: Callable[[], List[ClientSession]]
    session_id: Optional[str] = None
    new_session_name: str = DEFAULT_SESSION_NAME
    draft: str = ""
    clock: Callable[[], float] = time.monotonic

    phase: SendPhase = SendPhase.IDLE
    messages: List[ClientMessage] = field(default_factory=list)
    sessions: List[ClientSession] = field(default_factory=list)
    optimistic: Optional[ClientMessage] = None
    last_error: Optional[ChatError] = None
    _typing: bool = False
    _typing_until: Optional[float] = None

    # -----------------------------
    # Derived state
    # -----------------------------
    @property
    def display_messages(self) -> List[ClientMessage]:
        if self.optimistic is None:
            return list(self.messages)
        return list(self.messages) + [self.optimistic]

    @property
    def is_typing(self) -> bool:
        if not self._typing:
            return False
        if self._typing_until is not None and self.clock() >= self._typing_until:
            self._typing = False
            self._typing_until = None
        return self._typing

    @property
    def typing_grace_remaining(self) -> float:
        """Seconds until the post-reply typing indicator goes away (0 if it is not pending)."""
        if not self._typing or self._typing_until is None:
            return 0.0
        return max(0.0, self._typing_until - self.clock())

    @property
    def can_send(self) -> bool:
        return self.phase is not SendPhase.SENDING

    # -----------------------------
    # Loading
    # -----------------------------
    def refresh(self) -> None:
        """Reload the authoritative session list and, if one is open, its messages."""
        self.sessions = list(self.fetch_sessions())
        self.messages = list(self.fetch_messages(self.session_id)) if self.session_id else []

    def select_session(self, session_id: Optional[str]) -> None:
        if self.phase is SendPhase.SENDING:
            raise SendInProgressError("wait for the reply before switching sessions")
        self.session_id = session_id
        self.phase = SendPhase.IDLE
        self.last_error = None
        self.messages = list(self.fetch_messages(session_id)) if session_id else []

    # -----------------------------
    # Transitions
    # -----------------------------
    def begin_send(self, text: Optional[str] = None) -> Optional[str]:
        """
        Enter SENDING with `text` (or the current draft) as the optimistic
        message. Returns the text to submit, or None when it is blank.
        """
        if self.phase is SendPhase.SENDING:
            raise SendInProgressError("a message is already being sent")

        raw = self.draft if text is None else text
        if not raw.strip():
            return None

        self.optimistic = ClientMessage(
            id=OPTIMISTIC_MESSAGE_ID,
            session_id=self.session_id or "",
            role=MessageRole.USER,
            content=raw,
            created_at=utcnow(),
            optimistic=True,
        )
        self.draft = ""
        self.last_error = None
        self.phase = SendPhase.SENDING
        self._typing = True
        self._typing_until = None
        return raw

    def on_send_succeeded(self, result: TurnResult) -> None:
        self.optimistic = None
        self.session_id = result.session_id
        self.phase = SendPhase.SETTLED
        self._typing_until = self.clock() + TYPING_GRACE_SECONDS
        self.refresh()

    def on_send_failed(self, error: ChatError) -> None:
        self.optimistic = None
        self._typing = False
        self._typing_until = None
        self.last_error = error
        self.phase = SendPhase.FAILED

        # the stored user turn stays; a first message may also have created the session
        if self.session_id is None:
            self.session_id = getattr(error, "session_id", None)
        if self.session_id:
            self.refresh()

    def submit(self, send: SendFn, text: Optional[str] = None) -> bool:
        """
        Run a whole send through `send(text, session_id, name)` and land in
        SETTLED or FAILED. Returns True on success.
        """
        payload = self.begin_send(text)
        if payload is None:
            return False

        name = None if self.session_id else self.new_session_name
        try:
            result = send(payload, self.session_id, name)
        except ChatError as exc:
            self.on_send_failed(exc)
            return False
        except Exception as exc:
            self.on_send_failed(ChatError(f"unexpected send failure: {exc}"))
            raise

        self.on_send_succeeded(result)
        return True

"""Exception hierarchy for the counseling chat core.

Every failure the core surfaces is one of these; callers branch on the type,
never on message text.
"""

from __future__ import annotations


class ChatError(Exception):
    """Base exception for all chat errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ValidationError(ChatError):
    """Input rejected before any persistence (empty text, bad pagination)."""


class AuthenticationError(ChatError):
    """No current user is available for the call."""


class AuthorizationError(ChatError):
    """The referenced session is not owned by the caller.

    Also raised for session ids that do not exist, so non-owners cannot test
    for existence.
    """


class ConfigurationError(ChatError):
    """The completion backend is missing a credential or is misconfigured."""


class UpstreamError(ChatError):
    """The completion backend did not return a successful response."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.body = body
        self.provider = provider


class UpstreamGenerationFailure(UpstreamError):
    """A turn failed at generation time after the user message was stored.

    ``session_id`` names the session holding the unanswered user turn, which
    matters when the session was created by this very call. ``cause`` is the
    backend failure; a ``ConfigurationError`` there will not go away on retry.
    """

    def __init__(self, message: str, *, session_id: str, cause: ChatError) -> None:
        super().__init__(
            message,
            hint=cause.hint,
            status_code=getattr(cause, "status_code", None),
            body=getattr(cause, "body", None),
            provider=getattr(cause, "provider", None),
        )
        self.session_id = session_id
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return not isinstance(self.cause, ConfigurationError)


class PersistenceError(ChatError):
    """Storage was unavailable or rejected a write."""


class SendInProgressError(ChatError):
    """A client view tried to start a second send while one is in flight."""

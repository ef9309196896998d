from __future__ import annotations

from typing import Optional

from ...core.exceptions import PermanentError, RelayError, TransientError


class DiscordError(RelayError):
    """Base Discord integration error."""


class InteractionAuthError(DiscordError):
    """Signature headers missing or signature verification failed."""


class MalformedPayloadError(DiscordError):
    """Verified body is not a well-formed interaction payload."""


class UnsupportedInteractionError(DiscordError):
    """Interaction type the relay does not handle."""

    def __init__(self, interaction_type: object) -> None:
        super().__init__(f"Unhandled interaction type: {interaction_type!r}")
        self.interaction_type = interaction_type


class DiscordAPIError(DiscordError):
    """Discord API request error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.status_code = status_code
        self.retry_after = retry_after


class DiscordTransientError(DiscordAPIError, TransientError):
    """Retryable Discord API error (rate limits, 5xx, network issues)."""


class DiscordPermanentError(DiscordAPIError, PermanentError):
    """Non-retryable Discord API error (auth failures, invalid requests)."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity

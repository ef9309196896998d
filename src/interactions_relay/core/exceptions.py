"""Shared error hierarchy.

Adapters compose `TransientError` / `PermanentError` with their own base
classes so retry helpers can decide what to retry without knowing which
platform raised the error.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base error for interactions-relay."""

    recoverable = True
    severity = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(RelayError):
    """Retryable failure (network issues, rate limits, 5xx)."""

    recoverable = True
    severity = "warning"


class PermanentError(RelayError):
    """Non-retryable failure (validation, auth, 4xx)."""

    recoverable = False
    severity = "error"


class ConfigError(RelayError):
    """Raised when the relay configuration is missing or invalid."""

    recoverable = False

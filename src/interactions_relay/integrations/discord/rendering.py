from __future__ import annotations

from typing import Any, Optional

from .constants import (
    CALLBACK_CHANNEL_MESSAGE_WITH_SOURCE,
    CALLBACK_DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE,
    CALLBACK_PONG,
    DISCORD_MAX_MESSAGE_LENGTH,
)


def truncate_for_discord(text: str, max_len: int = DISCORD_MAX_MESSAGE_LENGTH) -> str:
    """Keep the first ``max_len`` characters of ``text``."""
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    if not text:
        return ""
    return text[:max_len]


def pong_response() -> dict[str, Any]:
    return {"type": CALLBACK_PONG}


def message_response(
    content: str, *, embeds: Optional[list[dict[str, Any]]] = None
) -> dict[str, Any]:
    data: dict[str, Any] = {"content": truncate_for_discord(content)}
    if embeds:
        data["embeds"] = embeds
    return {"type": CALLBACK_CHANNEL_MESSAGE_WITH_SOURCE, "data": data}


def deferred_response() -> dict[str, Any]:
    return {"type": CALLBACK_DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE}


def followup_edit_payload(content: str) -> dict[str, Any]:
    return {"content": truncate_for_discord(content)}

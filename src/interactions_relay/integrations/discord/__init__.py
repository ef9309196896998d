"""Discord interactions endpoint integration."""

from .command_registry import registration_targets, sync_commands
from .commands import build_application_commands
from .constants import (
    DISCORD_API_BASE_URL,
    DISCORD_MAX_MESSAGE_LENGTH,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
)
from .errors import (
    DiscordAPIError,
    DiscordError,
    DiscordPermanentError,
    DiscordTransientError,
    InteractionAuthError,
    MalformedPayloadError,
    UnsupportedInteractionError,
)
from .interactions import (
    CommandOption,
    Interaction,
    InteractionKind,
    decode_interaction,
    parse_interaction,
)
from .rendering import (
    deferred_response,
    followup_edit_payload,
    message_response,
    pong_response,
    truncate_for_discord,
)
from .rest import DiscordRestClient
from .signature import verify_key

__all__ = [
    "DISCORD_API_BASE_URL",
    "DISCORD_MAX_MESSAGE_LENGTH",
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "CommandOption",
    "DiscordAPIError",
    "DiscordError",
    "DiscordPermanentError",
    "DiscordRestClient",
    "DiscordTransientError",
    "Interaction",
    "InteractionAuthError",
    "InteractionKind",
    "MalformedPayloadError",
    "UnsupportedInteractionError",
    "build_application_commands",
    "decode_interaction",
    "deferred_response",
    "followup_edit_payload",
    "message_response",
    "parse_interaction",
    "pong_response",
    "registration_targets",
    "sync_commands",
    "truncate_for_discord",
    "verify_key",
]

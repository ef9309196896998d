from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"

# Discord hard limit for message content.
DISCORD_MAX_MESSAGE_LENGTH = 2000

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"

# Interaction types (https://discord.com/developers/docs/interactions/receiving-and-responding).
INTERACTION_TYPE_PING = 1
INTERACTION_TYPE_APPLICATION_COMMAND = 2

# Interaction callback types.
CALLBACK_PONG = 1
CALLBACK_CHANNEL_MESSAGE_WITH_SOURCE = 4
CALLBACK_DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5

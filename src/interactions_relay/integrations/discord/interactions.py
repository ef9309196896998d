from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .constants import INTERACTION_TYPE_APPLICATION_COMMAND, INTERACTION_TYPE_PING
from .errors import InteractionAuthError, MalformedPayloadError
from .signature import Verifier, verify_key


class InteractionKind(str, Enum):
    PING = "ping"
    COMMAND = "command"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class CommandOption:
    name: str
    value: Any


@dataclass(frozen=True)
class Interaction:
    kind: InteractionKind
    raw_type: int
    application_id: str = ""
    # Single-use follow-up credential; kept out of repr so it never lands in logs.
    token: str = field(default="", repr=False)
    command_name: Optional[str] = None
    options: tuple[CommandOption, ...] = ()
    interaction_id: Optional[str] = None

    def option(self, name: str) -> Optional[CommandOption]:
        for item in self.options:
            if item.name == name:
                return item
        return None


def _as_id(value: object) -> Optional[str]:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def classify_interaction_type(value: int) -> InteractionKind:
    if value == INTERACTION_TYPE_PING:
        return InteractionKind.PING
    if value == INTERACTION_TYPE_APPLICATION_COMMAND:
        return InteractionKind.COMMAND
    return InteractionKind.UNSUPPORTED


def extract_command_options(data: dict[str, Any]) -> tuple[CommandOption, ...]:
    options = data.get("options")
    if not isinstance(options, list):
        return ()
    parsed: list[CommandOption] = []
    for item in options:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name:
            continue
        parsed.append(CommandOption(name=name, value=item.get("value")))
    return tuple(parsed)


def decode_interaction(payload: Any) -> Interaction:
    """Build an ``Interaction`` from an already-verified, decoded body."""
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Interaction payload must be a JSON object")
    raw_type = payload.get("type")
    if isinstance(raw_type, bool) or not isinstance(raw_type, int):
        raise MalformedPayloadError("Interaction payload is missing an integer type")

    kind = classify_interaction_type(raw_type)
    interaction_id = _as_id(payload.get("id"))
    if kind is not InteractionKind.COMMAND:
        return Interaction(
            kind=kind,
            raw_type=raw_type,
            application_id=_as_id(payload.get("application_id")) or "",
            interaction_id=interaction_id,
        )

    data = payload.get("data")
    if not isinstance(data, dict):
        raise MalformedPayloadError("Command interaction is missing data")
    command_name = data.get("name")
    if not isinstance(command_name, str) or not command_name.strip():
        raise MalformedPayloadError("Command interaction is missing data.name")
    application_id = _as_id(payload.get("application_id"))
    token = _as_id(payload.get("token"))
    if application_id is None or token is None:
        raise MalformedPayloadError(
            "Command interaction is missing application_id or token"
        )
    return Interaction(
        kind=kind,
        raw_type=raw_type,
        application_id=application_id,
        token=token,
        command_name=command_name.strip(),
        options=extract_command_options(data),
        interaction_id=interaction_id,
    )


def parse_interaction(
    body: bytes,
    *,
    signature: Optional[str],
    timestamp: Optional[str],
    public_key: str,
    verifier: Verifier = verify_key,
) -> Interaction:
    if not signature or not timestamp:
        raise InteractionAuthError("Missing signature headers")
    try:
        verified = verifier(body, signature, timestamp, public_key)
    except Exception as exc:
        raise InteractionAuthError(f"Signature verification errored: {exc}") from exc
    if not verified:
        raise InteractionAuthError("Invalid request signature")
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedPayloadError(f"Interaction body is not valid JSON: {exc}") from exc
    return decode_interaction(payload)

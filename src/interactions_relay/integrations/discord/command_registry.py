from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from ...core.config import CommandRegistration
from ...core.logging_utils import log_event
from .commands import build_application_commands


class CommandOverwriter(Protocol):
    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: Optional[str] = None,
    ) -> list[dict[str, Any]]: ...


def registration_targets(registration: CommandRegistration) -> list[Optional[str]]:
    """Guild ids to overwrite, or ``[None]`` for the global command list."""
    if registration.scope == "global":
        return [None]
    if registration.scope != "guild":
        raise ValueError(f"unsupported registration scope: {registration.scope!r}")
    guild_ids = sorted({gid.strip() for gid in registration.guild_ids if gid.strip()})
    if not guild_ids:
        raise ValueError("guild registration requires at least one guild id")
    return list(guild_ids)


async def sync_commands(
    rest: CommandOverwriter,
    *,
    application_id: str,
    registration: CommandRegistration,
    logger: logging.Logger,
    commands: Optional[Sequence[dict[str, Any]]] = None,
) -> int:
    """Publish the relay's slash commands; returns how many lists were overwritten."""
    payload = list(commands) if commands is not None else build_application_commands()
    names = [command["name"] for command in payload]
    targets = registration_targets(registration)
    for guild_id in targets:
        registered = await rest.bulk_overwrite_application_commands(
            application_id=application_id,
            commands=payload,
            guild_id=guild_id,
        )
        log_event(
            logger,
            logging.INFO,
            "relay.commands.registered",
            application_id=application_id,
            scope=registration.scope,
            guild_id=guild_id,
            commands=names,
            registered=len(registered),
        )
    return len(targets)

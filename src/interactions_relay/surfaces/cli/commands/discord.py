from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer

from ....core.config import RelayConfig
from ....core.exceptions import ConfigError
from ....core.logging_utils import setup_logging
from ....core.retry import RetryPolicy, retry_transient
from ....integrations.discord.command_registry import sync_commands
from ....integrations.discord.commands import build_application_commands
from ....integrations.discord.errors import DiscordAPIError
from ....integrations.discord.rest import DiscordRestClient


REGISTRATION_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0)


async def _sync_discord_application_commands(
    config: RelayConfig,
    *,
    logger: logging.Logger,
    rest_client_factory: Callable[..., Any] = DiscordRestClient,
    sync_func: Callable[..., Awaitable[int]] = sync_commands,
) -> int:
    discord = config.discord
    if not discord.bot_token:
        raise ConfigError(f"missing bot token env '{discord.bot_token_env}'")
    if not discord.application_id:
        raise ConfigError(f"missing application id env '{discord.app_id_env}'")

    sync = retry_transient(REGISTRATION_RETRY_POLICY, logger=logger)(sync_func)
    async with rest_client_factory(
        bot_token=discord.bot_token, base_url=discord.api_base_url
    ) as rest:
        return await sync(
            rest,
            application_id=discord.application_id,
            registration=discord.command_registration,
            logger=logger,
        )


def register_discord_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Optional[Path]], RelayConfig],
    raise_exit: Callable,
) -> None:
    @app.command("register-commands")
    def discord_register_commands(
        path: Optional[Path] = typer.Option(
            None, "--path", help="Config file or directory holding interactions-relay.yml"
        ),
    ) -> None:
        """Publish the hello and question slash commands to Discord."""
        config = require_config(path)
        logger = setup_logging(config.log)
        try:
            overwritten = asyncio.run(
                _sync_discord_application_commands(
                    config,
                    logger=logger.getChild("discord.commands"),
                )
            )
        except (ConfigError, DiscordAPIError, ValueError) as exc:
            raise_exit(str(exc), cause=exc)

        typer.echo(
            f"Registered {len(build_application_commands())} commands "
            f"({config.discord.command_registration.scope}, {overwritten} target(s))."
        )

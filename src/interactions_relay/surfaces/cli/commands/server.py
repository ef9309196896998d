from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import typer
import uvicorn

from ....core.config import RelayConfig
from ....core.exceptions import ConfigError
from ....core.logging_utils import setup_logging
from ...web.app import create_app


def describe_config(config: RelayConfig) -> list[str]:
    discord = config.discord
    inference = config.inference
    deferred = config.deferred

    def _status(value: Optional[str]) -> str:
        return "set" if value else "missing"

    return [
        f"root: {config.root}",
        f"server: {config.server.host}:{config.server.port}",
        f"discord.public_key ({discord.public_key_env}): {_status(discord.public_key)}",
        f"discord.bot_token ({discord.bot_token_env}): {_status(discord.bot_token)}",
        f"discord.application_id ({discord.app_id_env}): {_status(discord.application_id)}",
        f"discord.command_registration: {discord.command_registration.scope}",
        f"inference.account_id ({inference.account_id_env}): {_status(inference.account_id)}",
        f"inference.api_token ({inference.api_token_env}): {_status(inference.api_token)}",
        f"inference.model: {inference.model} (max_tokens={inference.max_tokens})",
        (
            f"deferred: attempts={deferred.max_attempts} "
            f"base_delay={deferred.base_delay_seconds}s "
            f"multiplier={deferred.backoff_multiplier} "
            f"timeout={deferred.timeout_seconds:.0f}s"
        ),
        f"log: level={config.log.level} path={config.log.path or '-'}",
    ]


def register_server_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Optional[Path]], RelayConfig],
    raise_exit: Callable,
) -> None:
    @app.command("serve")
    def serve(
        path: Optional[Path] = typer.Option(
            None, "--path", help="Config file or directory holding interactions-relay.yml"
        ),
        host: Optional[str] = typer.Option(None, "--host", help="Host to bind"),
        port: Optional[int] = typer.Option(None, "--port", help="Port to bind"),
    ) -> None:
        """Serve the Discord interactions endpoint."""
        config = require_config(path)
        setup_logging(config.log)
        try:
            app_instance = create_app(config)
        except ConfigError as exc:
            raise_exit(str(exc), cause=exc)
        bind_host = host or config.server.host
        bind_port = port or config.server.port
        typer.echo(f"Serving interactions on http://{bind_host}:{bind_port}/interactions")
        uvicorn.run(
            app_instance,
            host=bind_host,
            port=bind_port,
            access_log=config.server.access_log,
        )

    @app.command("check-config")
    def check_config(
        path: Optional[Path] = typer.Option(
            None, "--path", help="Config file or directory holding interactions-relay.yml"
        ),
    ) -> None:
        """Validate configuration and print a summary without secrets."""
        config = require_config(path)
        for line in describe_config(config):
            typer.echo(line)
        try:
            config.require_public_key()
            config.require_inference_credentials()
        except ConfigError as exc:
            raise_exit(str(exc), cause=exc)
        typer.echo("Configuration OK.")

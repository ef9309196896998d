from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from interactions_relay.core.config import RelayConfig
from interactions_relay.core.exceptions import ConfigError
from interactions_relay.integrations.discord.errors import DiscordTransientError
from interactions_relay.surfaces.cli.cli import app
from interactions_relay.surfaces.cli.commands.discord import (
    _sync_discord_application_commands,
)


def test_cli_help_lists_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "serve" in result.stdout
    assert "register-commands" in result.stdout
    assert "check-config" in result.stdout


def test_cli_version() -> None:
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("interactions-relay ")


def test_check_config_reports_without_secrets(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, relay_env: dict[str, str]
) -> None:
    for key, value in relay_env.items():
        monkeypatch.setenv(key, value)

    result = CliRunner().invoke(app, ["check-config", "--path", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Configuration OK." in result.output
    assert "RELAY_CF_API_TOKEN): set" in result.output
    assert "cf-token" not in result.output
    assert "bot-token" not in result.output


def test_check_config_fails_without_credentials(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, relay_env: dict[str, str]
) -> None:
    for key in relay_env:
        monkeypatch.delenv(key, raising=False)

    result = CliRunner().invoke(app, ["check-config", "--path", str(tmp_path)])

    assert result.exit_code == 1
    assert "missing" in result.output


class _FakeRest:
    instances: list["_FakeRest"] = []

    def __init__(self, *, bot_token: str, base_url: str) -> None:
        self.bot_token = bot_token
        self.base_url = base_url
        self.closed = False
        _FakeRest.instances.append(self)

    async def __aenter__(self) -> "_FakeRest":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        self.closed = True


def test_sync_uses_configured_scope(tmp_path: Path, relay_env: dict[str, str]) -> None:
    config = RelayConfig.from_raw(
        root=tmp_path,
        raw={
            "discord": {
                "command_registration": {"scope": "guild", "guild_ids": ["42"]}
            }
        },
        env=relay_env,
    )
    calls: list[dict[str, Any]] = []

    async def fake_sync(rest: Any, **kwargs: Any) -> int:
        calls.append({"rest": rest, **kwargs})
        return 1

    _FakeRest.instances.clear()
    overwritten = asyncio.run(
        _sync_discord_application_commands(
            config,
            logger=logging.getLogger("test"),
            rest_client_factory=_FakeRest,
            sync_func=fake_sync,
        )
    )

    assert overwritten == 1
    [rest] = _FakeRest.instances
    assert rest.bot_token == "bot-token"
    assert rest.closed
    [call] = calls
    assert call["application_id"] == "app-1"
    assert call["registration"].scope == "guild"
    assert call["registration"].guild_ids == ("42",)


def test_sync_requires_bot_token(tmp_path: Path) -> None:
    config = RelayConfig.from_raw(root=tmp_path, raw={}, env={"RELAY_DISCORD_APP_ID": "1"})

    with pytest.raises(ConfigError, match="RELAY_DISCORD_BOT_TOKEN"):
        asyncio.run(
            _sync_discord_application_commands(config, logger=logging.getLogger("test"))
        )


def test_sync_retries_transient_discord_errors(
    tmp_path: Path, relay_env: dict[str, str]
) -> None:
    config = RelayConfig.from_raw(root=tmp_path, raw={}, env=relay_env)
    attempts: list[int] = []

    async def flaky_sync(_rest: Any, **_kwargs: Any) -> int:
        attempts.append(len(attempts) + 1)
        if len(attempts) == 1:
            raise DiscordTransientError("gateway timeout", status_code=504)
        return 1

    asyncio.run(
        _sync_discord_application_commands(
            config,
            logger=logging.getLogger("test"),
            rest_client_factory=_FakeRest,
            sync_func=flaky_sync,
        )
    )

    assert attempts == [1, 2]

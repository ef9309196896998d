from pathlib import Path

import pytest

from interactions_relay.core.config import (
    CONFIG_FILENAME,
    DEFAULT_MODEL,
    RelayConfig,
    load_config,
)
from interactions_relay.core.exceptions import ConfigError


def test_defaults_without_config_file(tmp_path: Path, relay_env: dict[str, str]) -> None:
    config = RelayConfig.from_raw(root=tmp_path, raw=None, env=relay_env)

    assert config.server.host == "127.0.0.1"
    assert config.server.port == 8080
    assert config.inference.model == DEFAULT_MODEL
    assert config.deferred.timeout_seconds == 900
    policy = config.deferred.retry_policy
    assert (policy.max_attempts, policy.base_delay, policy.multiplier) == (5, 0.5, 2.0)
    assert config.discord.application_id == "app-1"
    assert config.require_inference_credentials() == ("account-1", "cf-token")


def test_secrets_are_not_in_repr(relay_config: RelayConfig) -> None:
    rendered = repr(relay_config)
    assert "bot-token" not in rendered
    assert "cf-token" not in rendered


def test_env_var_names_are_configurable(tmp_path: Path) -> None:
    config = RelayConfig.from_raw(
        root=tmp_path,
        raw={"inference": {"account_id_env": "MY_ACCOUNT", "api_token_env": "MY_TOKEN"}},
        env={"MY_ACCOUNT": " acct ", "MY_TOKEN": "tok"},
    )
    assert config.require_inference_credentials() == ("acct", "tok")


def test_missing_credentials_name_the_env_vars(tmp_path: Path) -> None:
    config = RelayConfig.from_raw(root=tmp_path, raw={}, env={})

    with pytest.raises(ConfigError, match="RELAY_CF_API_TOKEN"):
        config.require_inference_credentials()
    with pytest.raises(ConfigError, match="RELAY_DISCORD_PUBLIC_KEY"):
        config.require_public_key()


@pytest.mark.parametrize(
    "raw",
    [
        {"server": {"port": 0}},
        {"server": {"port": "http"}},
        {"server": []},
        {"inference": {"max_tokens": 0}},
        {"deferred": {"max_attempts": 0}},
        {"deferred": {"backoff_multiplier": 0.5}},
        {"deferred": {"timeout_seconds": 60}},
        {"deferred": {"timeout_seconds": 1800}},
        {"log": {"level": "LOUD"}},
        {"discord": {"command_registration": {"scope": "channel"}}},
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, raw: dict) -> None:
    with pytest.raises(ConfigError):
        RelayConfig.from_raw(root=tmp_path, raw=raw, env={})


@pytest.mark.parametrize("public_key", ["not-hex", "ab" * 16])
def test_public_key_must_be_32_byte_hex(tmp_path: Path, public_key: str) -> None:
    with pytest.raises(ConfigError):
        RelayConfig.from_raw(
            root=tmp_path, raw={}, env={"RELAY_DISCORD_PUBLIC_KEY": public_key}
        )


def test_load_config_reads_yaml_from_directory(
    tmp_path: Path, relay_env: dict[str, str]
) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        "\n".join(
            [
                "server:",
                "  port: 9000",
                "inference:",
                "  max_tokens: 256",
                "deferred:",
                "  timeout_seconds: 600",
                "log:",
                "  path: logs/relay.log",
                "discord:",
                "  command_registration:",
                "    scope: guild",
                "    guild_ids: [123, '456']",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(tmp_path, env=relay_env)

    assert config.root == tmp_path.resolve()
    assert config.server.port == 9000
    assert config.inference.max_tokens == 256
    assert config.deferred.timeout_seconds == 600
    assert config.log.path == (tmp_path / "logs" / "relay.log").resolve()
    assert config.discord.command_registration.scope == "guild"
    assert config.discord.command_registration.guild_ids == ("123", "456")


def test_load_config_allows_missing_file_in_directory(
    tmp_path: Path, relay_env: dict[str, str]
) -> None:
    config = load_config(tmp_path, env=relay_env)
    assert config.server.port == 8080


def test_load_config_rejects_missing_named_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yml", env={})


def test_load_config_rejects_non_mapping_yaml(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path, env={})


def test_shutdown_grace_follows_task_timeout(tmp_path: Path) -> None:
    default = RelayConfig.from_raw(root=tmp_path, raw={}, env={})
    assert default.deferred.shutdown_grace_seconds == default.deferred.timeout_seconds

    shorter = RelayConfig.from_raw(
        root=tmp_path, raw={"deferred": {"timeout_seconds": 600}}, env={}
    )
    assert shorter.deferred.shutdown_grace_seconds == 600

    explicit = RelayConfig.from_raw(
        root=tmp_path, raw={"deferred": {"shutdown_grace_seconds": 5}}, env={}
    )
    assert explicit.deferred.shutdown_grace_seconds == 5

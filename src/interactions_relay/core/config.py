from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError
from .retry import RetryPolicy

logger = logging.getLogger("interactions_relay.core.config")

CONFIG_FILENAME = "interactions-relay.yml"

DEFAULT_PUBLIC_KEY_ENV = "RELAY_DISCORD_PUBLIC_KEY"
DEFAULT_BOT_TOKEN_ENV = "RELAY_DISCORD_BOT_TOKEN"
DEFAULT_APP_ID_ENV = "RELAY_DISCORD_APP_ID"
DEFAULT_ACCOUNT_ID_ENV = "RELAY_CF_ACCOUNT_ID"
DEFAULT_API_TOKEN_ENV = "RELAY_CF_API_TOKEN"

DEFAULT_DISCORD_API_BASE_URL = "https://discord.com/api/v10"
DEFAULT_INFERENCE_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_MODEL = "@cf/meta/llama-3.2-1b-instruct"
DEFAULT_MAX_TOKENS = 512

# Discord keeps interaction tokens valid for 15 minutes.
MIN_TASK_TIMEOUT_SECONDS = 600.0
MAX_TASK_TIMEOUT_SECONDS = 900.0

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    access_log: bool = False


@dataclass(frozen=True)
class CommandRegistration:
    scope: str = "global"
    guild_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class DiscordConfig:
    public_key_env: str = DEFAULT_PUBLIC_KEY_ENV
    bot_token_env: str = DEFAULT_BOT_TOKEN_ENV
    app_id_env: str = DEFAULT_APP_ID_ENV
    public_key: Optional[str] = field(default=None, repr=False)
    bot_token: Optional[str] = field(default=None, repr=False)
    application_id: Optional[str] = None
    api_base_url: str = DEFAULT_DISCORD_API_BASE_URL
    command_registration: CommandRegistration = field(
        default_factory=CommandRegistration
    )


@dataclass(frozen=True)
class InferenceConfig:
    account_id_env: str = DEFAULT_ACCOUNT_ID_ENV
    api_token_env: str = DEFAULT_API_TOKEN_ENV
    account_id: Optional[str] = None
    api_token: Optional[str] = field(default=None, repr=False)
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    base_url: str = DEFAULT_INFERENCE_BASE_URL
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class DeferredConfig:
    max_attempts: int = 5
    base_delay_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    max_delay_seconds: float = 30.0
    timeout_seconds: float = MAX_TASK_TIMEOUT_SECONDS
    shutdown_grace_seconds: float = MAX_TASK_TIMEOUT_SECONDS

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay_seconds,
            multiplier=self.backoff_multiplier,
            max_delay=self.max_delay_seconds,
        )


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


@dataclass(frozen=True)
class RelayConfig:
    root: Path
    server: ServerConfig
    discord: DiscordConfig
    inference: InferenceConfig
    deferred: DeferredConfig
    log: LogConfig

    @classmethod
    def from_raw(
        cls,
        *,
        root: Path,
        raw: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "RelayConfig":
        cfg: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        source = env if env is not None else os.environ
        return cls(
            root=root,
            server=_parse_server(_section(cfg, "server")),
            discord=_parse_discord(_section(cfg, "discord"), source),
            inference=_parse_inference(_section(cfg, "inference"), source),
            deferred=_parse_deferred(_section(cfg, "deferred")),
            log=_parse_log(_section(cfg, "log"), root),
        )

    def require_inference_credentials(self) -> tuple[str, str]:
        missing = [
            name
            for name, value in (
                (self.inference.account_id_env, self.inference.account_id),
                (self.inference.api_token_env, self.inference.api_token),
            )
            if not value
        ]
        if missing:
            raise ConfigError(
                "Inference credentials are missing; set env var(s) " + ", ".join(missing)
            )
        return str(self.inference.account_id), str(self.inference.api_token)

    def require_public_key(self) -> str:
        if not self.discord.public_key:
            raise ConfigError(
                f"Discord public key is missing; set env var {self.discord.public_key_env}"
            )
        return self.discord.public_key


def load_config(
    path: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None
) -> RelayConfig:
    """Load config from ``path`` (a file or a directory holding the YAML file).

    A missing config file is not an error; defaults plus environment
    variables are enough to run the server.
    """
    start = Path(path) if path is not None else Path.cwd()
    if start.is_dir():
        root = start.resolve()
        config_path = root / CONFIG_FILENAME
    else:
        config_path = start.resolve()
        root = config_path.parent
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

    if env is None:
        load_dotenv_for_root(root)

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read config {config_path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config {config_path} must be a mapping")
        raw = loaded
    return RelayConfig.from_raw(root=root, raw=raw, env=env)


def load_dotenv_for_root(root: Path) -> None:
    candidate = root / ".env"
    try:
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)
    except OSError as exc:
        logger.debug("Failed to load .env file: %s", exc)


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = cfg.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _env_name(cfg: Mapping[str, Any], key: str, default: str, section: str) -> str:
    value = str(cfg.get(key, default)).strip()
    if not value:
        raise ConfigError(f"{section}.{key} must be non-empty")
    return value


def _env_value(source: Mapping[str, str], name: str) -> Optional[str]:
    value = source.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_server(cfg: Mapping[str, Any]) -> ServerConfig:
    host = str(cfg.get("host", ServerConfig.host)).strip()
    if not host:
        raise ConfigError("server.host must be non-empty")
    port = _parse_int(cfg.get("port"), default=ServerConfig.port, key="server.port")
    if not 0 < port < 65536:
        raise ConfigError("server.port must be between 1 and 65535")
    return ServerConfig(
        host=host,
        port=port,
        access_log=_parse_bool(
            cfg.get("access_log"), default=False, key="server.access_log"
        ),
    )


def _parse_discord(
    cfg: Mapping[str, Any], source: Mapping[str, str]
) -> DiscordConfig:
    public_key_env = _env_name(cfg, "public_key_env", DEFAULT_PUBLIC_KEY_ENV, "discord")
    bot_token_env = _env_name(cfg, "bot_token_env", DEFAULT_BOT_TOKEN_ENV, "discord")
    app_id_env = _env_name(cfg, "app_id_env", DEFAULT_APP_ID_ENV, "discord")

    public_key = _env_value(source, public_key_env)
    if public_key is not None:
        try:
            key_bytes = bytes.fromhex(public_key)
        except ValueError as exc:
            raise ConfigError(f"{public_key_env} must be a hex string") from exc
        if len(key_bytes) != 32:
            raise ConfigError(f"{public_key_env} must encode a 32-byte Ed25519 key")

    registration_raw = cfg.get("command_registration")
    registration_cfg = registration_raw if isinstance(registration_raw, Mapping) else {}
    scope = str(registration_cfg.get("scope", "global")).strip().lower()
    if scope not in {"global", "guild"}:
        raise ConfigError(
            "discord.command_registration.scope must be 'global' or 'guild'"
        )

    api_base_url = str(cfg.get("api_base_url", DEFAULT_DISCORD_API_BASE_URL)).strip()
    if not api_base_url:
        raise ConfigError("discord.api_base_url must be non-empty")

    return DiscordConfig(
        public_key_env=public_key_env,
        bot_token_env=bot_token_env,
        app_id_env=app_id_env,
        public_key=public_key,
        bot_token=_env_value(source, bot_token_env),
        application_id=_env_value(source, app_id_env),
        api_base_url=api_base_url.rstrip("/"),
        command_registration=CommandRegistration(
            scope=scope,
            guild_ids=tuple(_parse_string_ids(registration_cfg.get("guild_ids"))),
        ),
    )


def _parse_inference(
    cfg: Mapping[str, Any], source: Mapping[str, str]
) -> InferenceConfig:
    account_id_env = _env_name(cfg, "account_id_env", DEFAULT_ACCOUNT_ID_ENV, "inference")
    api_token_env = _env_name(cfg, "api_token_env", DEFAULT_API_TOKEN_ENV, "inference")
    model = str(cfg.get("model", DEFAULT_MODEL)).strip()
    if not model:
        raise ConfigError("inference.model must be non-empty")
    base_url = str(cfg.get("base_url", DEFAULT_INFERENCE_BASE_URL)).strip()
    if not base_url:
        raise ConfigError("inference.base_url must be non-empty")
    max_tokens = _parse_int(
        cfg.get("max_tokens"), default=DEFAULT_MAX_TOKENS, key="inference.max_tokens"
    )
    if max_tokens <= 0:
        raise ConfigError("inference.max_tokens must be > 0")
    timeout_seconds = _parse_float(
        cfg.get("timeout_seconds"), default=60.0, key="inference.timeout_seconds"
    )
    if timeout_seconds <= 0:
        raise ConfigError("inference.timeout_seconds must be > 0")
    return InferenceConfig(
        account_id_env=account_id_env,
        api_token_env=api_token_env,
        account_id=_env_value(source, account_id_env),
        api_token=_env_value(source, api_token_env),
        model=model,
        max_tokens=max_tokens,
        base_url=base_url.rstrip("/"),
        timeout_seconds=timeout_seconds,
    )


def _parse_deferred(cfg: Mapping[str, Any]) -> DeferredConfig:
    defaults = DeferredConfig()
    max_attempts = _parse_int(
        cfg.get("max_attempts"),
        default=defaults.max_attempts,
        key="deferred.max_attempts",
    )
    if max_attempts < 1:
        raise ConfigError("deferred.max_attempts must be >= 1")
    base_delay = _parse_float(
        cfg.get("base_delay_seconds"),
        default=defaults.base_delay_seconds,
        key="deferred.base_delay_seconds",
    )
    multiplier = _parse_float(
        cfg.get("backoff_multiplier"),
        default=defaults.backoff_multiplier,
        key="deferred.backoff_multiplier",
    )
    max_delay = _parse_float(
        cfg.get("max_delay_seconds"),
        default=defaults.max_delay_seconds,
        key="deferred.max_delay_seconds",
    )
    if base_delay < 0 or max_delay < 0:
        raise ConfigError("deferred delays must be >= 0")
    if multiplier < 1:
        raise ConfigError("deferred.backoff_multiplier must be >= 1")
    timeout_seconds = _parse_float(
        cfg.get("timeout_seconds"),
        default=defaults.timeout_seconds,
        key="deferred.timeout_seconds",
    )
    if not MIN_TASK_TIMEOUT_SECONDS <= timeout_seconds <= MAX_TASK_TIMEOUT_SECONDS:
        raise ConfigError(
            "deferred.timeout_seconds must be between "
            f"{MIN_TASK_TIMEOUT_SECONDS:.0f} and {MAX_TASK_TIMEOUT_SECONDS:.0f}"
        )
    grace = _parse_float(
        cfg.get("shutdown_grace_seconds"),
        default=timeout_seconds,
        key="deferred.shutdown_grace_seconds",
    )
    if grace < 0:
        raise ConfigError("deferred.shutdown_grace_seconds must be >= 0")
    return DeferredConfig(
        max_attempts=max_attempts,
        base_delay_seconds=base_delay,
        backoff_multiplier=multiplier,
        max_delay_seconds=max_delay,
        timeout_seconds=timeout_seconds,
        shutdown_grace_seconds=grace,
    )


def _parse_log(cfg: Mapping[str, Any], root: Path) -> LogConfig:
    level = str(cfg.get("level", "INFO")).strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"log.level must be one of {sorted(_LOG_LEVELS)}")
    path_value = cfg.get("path")
    log_path: Optional[Path] = None
    if path_value is not None:
        if not isinstance(path_value, str) or not path_value.strip():
            raise ConfigError("log.path must be a string path")
        log_path = (root / path_value.strip()).resolve()
    defaults = LogConfig()
    return LogConfig(
        level=level,
        path=log_path,
        max_bytes=_parse_int(
            cfg.get("max_bytes"), default=defaults.max_bytes, key="log.max_bytes"
        ),
        backup_count=_parse_int(
            cfg.get("backup_count"),
            default=defaults.backup_count,
            key="log.backup_count",
        ),
    )


def _parse_string_ids(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
    parsed: list[str] = []
    for item in items:
        token = str(item).strip()
        if token:
            parsed.append(token)
    return parsed


def _parse_int(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer") from exc


def _parse_float(value: Any, *, default: float, key: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number") from exc


def _parse_bool(value: Any, *, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ConfigError(f"{key} must be a boolean")

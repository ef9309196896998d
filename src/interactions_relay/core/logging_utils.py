from __future__ import annotations

import hashlib
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .config import LogConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_SECRET_FIELDS = frozenset({"token", "interaction_token", "bot_token", "api_token"})


def token_fingerprint(token: Optional[str]) -> str:
    """Short stable digest used in place of single-use tokens in logs."""
    if not token:
        return "-"
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def _is_secret_field(name: str) -> bool:
    return name in _SECRET_FIELDS or name.endswith("_token")


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    try:
        return json.dumps(value, ensure_ascii=False, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return json.dumps(repr(value))


def format_event(event: str, **fields: Any) -> str:
    parts = [event]
    for key, value in fields.items():
        if value is None:
            continue
        if _is_secret_field(key):
            key = f"{key}_fp"
            value = token_fingerprint(str(value))
        parts.append(f"{key}={_format_value(value)}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    if exc is not None:
        fields.setdefault("error", f"{type(exc).__name__}: {exc}")
    logger.log(level, format_event(event, **fields), exc_info=exc)


def setup_logging(config: "LogConfig", *, name: str = "interactions_relay") -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(config.level)
    formatter = logging.Formatter(LOG_FORMAT)

    for handler in list(logger.handlers):
        if getattr(handler, "_relay_handler", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler._relay_handler = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if config.path is not None:
        log_path = Path(config.path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._relay_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "LOG_FORMAT",
    "format_event",
    "log_event",
    "setup_logging",
    "token_fingerprint",
]

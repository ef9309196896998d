from __future__ import annotations

from pathlib import Path
from typing import NoReturn, Optional

import typer

from ....core.config import RelayConfig, load_config
from ....core.exceptions import ConfigError


def get_relay_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("interactions-relay")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(path: Optional[Path]) -> RelayConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        raise_exit(str(exc), cause=exc)

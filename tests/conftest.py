"""Test harness configuration.

This repo uses a `src/` layout. Ensure tests always import the in-repo code
rather than an older installed `interactions_relay`.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """
    Apply a default per-test timeout to non-integration tests.

    This relies on `pytest-timeout` when installed; if it isn't installed, the
    marker is inert but still documents the intent.
    """
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


@dataclass(frozen=True)
class SigningKey:
    public_key: str
    sign: Callable[[bytes, str], str]


@pytest.fixture
def signing_key() -> SigningKey:
    """A fresh Ed25519 keypair standing in for the Discord application key."""
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
    from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

    private_key = Ed25519PrivateKey.generate()
    public_hex = (
        private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()
    )

    def sign(body: bytes, timestamp: str) -> str:
        return private_key.sign(timestamp.encode("utf-8") + body).hex()

    return SigningKey(public_key=public_hex, sign=sign)


@pytest.fixture
def relay_env(signing_key: SigningKey) -> dict[str, str]:
    return {
        "RELAY_DISCORD_PUBLIC_KEY": signing_key.public_key,
        "RELAY_DISCORD_BOT_TOKEN": "bot-token",
        "RELAY_DISCORD_APP_ID": "app-1",
        "RELAY_CF_ACCOUNT_ID": "account-1",
        "RELAY_CF_API_TOKEN": "cf-token",
    }


@pytest.fixture
def relay_config(tmp_path: Path, relay_env: dict[str, str]):
    from interactions_relay.core.config import RelayConfig

    return RelayConfig.from_raw(root=tmp_path, raw={}, env=relay_env)


@pytest.fixture
def anyio_backend() -> str:
    """The code under test is asyncio-based; run anyio-marked tests on asyncio only."""
    return "asyncio"

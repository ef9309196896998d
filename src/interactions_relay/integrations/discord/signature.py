"""Ed25519 verification of inbound interaction requests.

Discord signs ``timestamp + body`` with the application's private key and
sends the hex signature in ``X-Signature-Ed25519``. Verification must run
over the exact bytes received.
"""

from __future__ import annotations

from typing import Callable, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

Verifier = Callable[[bytes, str, str, str], bool]


def load_public_key(public_key_hex: str) -> Ed25519PublicKey:
    """Raises ``ValueError`` for non-hex input or a key of the wrong length."""
    return Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))


def verify_key(
    body: Union[bytes, str],
    signature: str,
    timestamp: str,
    public_key: str,
) -> bool:
    if not signature or not timestamp or not public_key:
        return False
    raw = body.encode("utf-8") if isinstance(body, str) else bytes(body)
    try:
        key = load_public_key(public_key)
        signature_bytes = bytes.fromhex(signature)
    except ValueError:
        return False
    try:
        key.verify(signature_bytes, timestamp.encode("utf-8") + raw)
    except InvalidSignature:
        return False
    return True

# client/transport.py
import base64
import json
import secrets
import time
from typing import Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def encrypt_for_transport(password: str, public_key_pem: str, now: Optional[float] = None) -> str:
    """
    Seal a password for the gateway.

    The envelope carries a random nonce and a millisecond timestamp so the
    gateway can reject replays and stale envelopes.
    """
    public_key = serialization.load_pem_public_key(public_key_pem.encode("ascii"))
    message = json.dumps({
        "password": password,
        "nonce": secrets.token_hex(16),
        "timestamp": int((time.time() if now is None else now) * 1000),
    }).encode("utf-8")

    # OAEP-SHA256 overhead: 2 * 32 + 2 bytes
    limit = public_key.key_size // 8 - 66
    if len(message) > limit:
        raise ValueError("password too long for the transport key")

    return base64.b64encode(public_key.encrypt(message, OAEP)).decode("ascii")

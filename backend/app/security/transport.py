# backend/app/security/transport.py
"""
Hybrid transport encryption for the master password.

The client encrypts {password, nonce, timestamp} to the gateway public key
with RSA-OAEP (SHA-256). The gateway opens the envelope, then requires
the timestamp to be fresh and the nonce to be unseen before the password
is used for anything.

Every failure raises the same TransportError.
"""
import base64
import binascii
import json
import logging
import math
import threading
import time
from functools import lru_cache
from typing import Dict, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from backend.app.core.config import settings
from backend.app.core.errors import TransportError

logger = logging.getLogger(__name__)

OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)

MIN_NONCE_LENGTH = 16
MAX_NONCE_LENGTH = 128


class NonceStore:
    """
    Remembers nonces for the freshness window.

    Entries older than the window can be forgotten: an envelope carrying
    them would already fail the timestamp check.
    """

    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def check_and_add(self, nonce: str, now: Optional[float] = None) -> bool:
        """Record `nonce`. Returns False if it was already seen in the window."""
        now = time.time() if now is None else now
        with self._lock:
            self._purge(now)
            if nonce in self._seen:
                return False
            self._seen[nonce] = now
            return True

    def _purge(self, now: float) -> None:
        cutoff = now - self.window_seconds
        expired = [n for n, seen_at in self._seen.items() if seen_at < cutoff]
        for n in expired:
            del self._seen[n]

    def __len__(self) -> int:
        return len(self._seen)


class TransportCrypto:
    """Gateway side of password transport. The keypair is read-only after init."""

    def __init__(
        self,
        private_key: rsa.RSAPrivateKey,
        max_age_seconds: int = 300,
        max_skew_seconds: int = 30,
        nonce_store: Optional[NonceStore] = None,
    ):
        self._private_key = private_key
        self.max_age_seconds = max_age_seconds
        self.max_skew_seconds = max_skew_seconds
        # nonces must outlive every timestamp that could still be accepted
        self.nonces = nonce_store or NonceStore(max_age_seconds + max_skew_seconds)

    @classmethod
    def generate(cls, key_size: int = 3072, **kwargs) -> "TransportCrypto":
        key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(key, **kwargs)

    @classmethod
    def from_pem(cls, pem: str, **kwargs) -> "TransportCrypto":
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("TRANSPORT_PRIVATE_KEY must be an RSA key")
        return cls(key, **kwargs)

    def public_key_pem(self) -> str:
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def decrypt_from_transport(self, envelope: Optional[str], now: Optional[float] = None) -> str:
        """
        Open an envelope and return the password.

        Raises:
            TransportError: undecryptable, malformed, stale, future-dated or replayed
        """
        if not envelope:
            raise TransportError()

        try:
            ciphertext = base64.b64decode(envelope, validate=True)
            plaintext = self._private_key.decrypt(ciphertext, OAEP)
            message = json.loads(plaintext.decode("utf-8"))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            raise TransportError()

        if not isinstance(message, dict):
            raise TransportError()

        password = message.get("password")
        nonce = message.get("nonce")
        timestamp = message.get("timestamp")

        if not isinstance(password, str) or not password:
            raise TransportError()
        if not isinstance(nonce, str) or not MIN_NONCE_LENGTH <= len(nonce) <= MAX_NONCE_LENGTH:
            raise TransportError()
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)) or not math.isfinite(timestamp):
            raise TransportError()

        now = time.time() if now is None else now
        sent_at = timestamp / 1000.0
        if sent_at < now - self.max_age_seconds or sent_at > now + self.max_skew_seconds:
            logger.info("Rejected stale transport envelope")
            raise TransportError()

        if not self.nonces.check_and_add(nonce, now):
            logger.warning("Rejected replayed transport envelope")
            raise TransportError()

        return password


@lru_cache()
def get_transport() -> TransportCrypto:
    """
    Process-wide transport keypair.

    Loaded from TRANSPORT_PRIVATE_KEY when set; otherwise generated on first
    use. Multi-worker deployments must configure the PEM.
    """
    options = dict(
        max_age_seconds=settings.TRANSPORT_MAX_AGE_SECONDS,
        max_skew_seconds=settings.TRANSPORT_MAX_SKEW_SECONDS,
    )
    if settings.TRANSPORT_PRIVATE_KEY:
        return TransportCrypto.from_pem(settings.TRANSPORT_PRIVATE_KEY, **options)

    logger.info("Generating %d-bit transport keypair", settings.TRANSPORT_KEY_SIZE)
    return TransportCrypto.generate(settings.TRANSPORT_KEY_SIZE, **options)

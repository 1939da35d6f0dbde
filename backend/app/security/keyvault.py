# backend/app/security/keyvault.py
"""
Password-based envelope encryption of wallet key material.

Format (version 1):
- salt:        base64(16 random bytes), one per encryption
- key:         scrypt(password, salt, n=2**15, r=8, p=1) -> 32 bytes
- ciphertext:  base64(version || nonce(12) || AES-256-GCM(ct + tag))

The version byte selects the KDF parameters, so a future format can raise
the cost without breaking records written under an older one.

Decryption with a wrong password fails the GCM tag check. That failure is
the only password verification the service performs: no password hash is
stored anywhere.
"""
import base64
import binascii
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from backend.app.core.errors import DecryptionError

SALT_BYTES = 16
NONCE_BYTES = 12
KEY_BYTES = 32


@dataclass(frozen=True)
class KdfParams:
    n: int
    r: int
    p: int


KDF_VERSIONS: Dict[int, KdfParams] = {
    1: KdfParams(n=2 ** 15, r=8, p=1),
}
CURRENT_VERSION = 1


def _aad(version: int) -> bytes:
    return b"keyward/keyvault/v%d" % version


def derive_key(password: str, salt: bytes, version: int = CURRENT_VERSION) -> bytes:
    """Derive the AES key for `version` from a password and salt."""
    params = KDF_VERSIONS[version]
    kdf = Scrypt(salt=salt, length=KEY_BYTES, n=params.n, r=params.r, p=params.p)
    return kdf.derive(password.encode("utf-8"))


def encrypt(secret_material: bytes, password: str) -> Tuple[str, str]:
    """
    Encrypt secret material under a password.

    Returns:
        (ciphertext, salt), both base64 strings
    """
    salt = os.urandom(SALT_BYTES)
    nonce = os.urandom(NONCE_BYTES)
    key = derive_key(password, salt, CURRENT_VERSION)

    sealed = AESGCM(key).encrypt(nonce, bytes(secret_material), _aad(CURRENT_VERSION))
    blob = bytes([CURRENT_VERSION]) + nonce + sealed

    return (
        base64.b64encode(blob).decode("ascii"),
        base64.b64encode(salt).decode("ascii"),
    )


def decrypt(ciphertext: str, salt: str, password: str) -> bytes:
    """
    Decrypt secret material.

    Raises:
        DecryptionError: wrong password, tampered or malformed ciphertext.
            The cases are deliberately indistinguishable.
    """
    try:
        blob = base64.b64decode(ciphertext, validate=True)
        salt_bytes = base64.b64decode(salt, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise DecryptionError()

    if len(blob) < 1 + NONCE_BYTES + 16 or len(salt_bytes) < SALT_BYTES:
        raise DecryptionError()

    version = blob[0]
    if version not in KDF_VERSIONS:
        raise DecryptionError()

    nonce = blob[1:1 + NONCE_BYTES]
    sealed = blob[1 + NONCE_BYTES:]

    key = derive_key(password, salt_bytes, version)
    try:
        return AESGCM(key).decrypt(nonce, sealed, _aad(version))
    except InvalidTag:
        raise DecryptionError()


@contextmanager
def unlock(ciphertext: str, salt: str, password: str) -> Iterator[bytearray]:
    """
    Yield decrypted secret material in a mutable buffer, zeroed on exit.

    The buffer is cleared on every exit path, including exceptions raised
    by the caller inside the block.
    """
    secret = bytearray(decrypt(ciphertext, salt, password))
    try:
        yield secret
    finally:
        for i in range(len(secret)):
            secret[i] = 0

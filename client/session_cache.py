# client/session_cache.py
"""
Short-lived encrypted cache for the master password.

Two artifacts live in the storage backend: a random AES-256 key and the
password encrypted under it. Both carry their creation time and expire
after `ttl` seconds. Any problem reading them (expiry, bad encoding,
failed authentication) deletes both and reports a miss.
"""
import base64
import binascii
import logging
import os
import threading
import time
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from client.storage import Storage

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 3 * 60 * 60
KEY_ITEM = "session_key"
BLOB_ITEM = "session_password"
IV_BYTES = 12

_CORRUPTION_ERRORS = (InvalidTag, ValueError, KeyError, TypeError, binascii.Error)


class SessionCache:
    def __init__(self, storage: Storage, ttl: float = SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.ttl = ttl
        self.clock = clock
        self._lock = threading.Lock()

    def _fresh(self, entry) -> bool:
        timestamp = entry.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return False
        age = self.clock() - timestamp
        return 0 <= age < self.ttl

    def _current_key(self) -> Optional[bytes]:
        entry = self.storage.get(KEY_ITEM)
        if entry is None or not self._fresh(entry):
            return None
        key = base64.b64decode(entry["key_material"], validate=True)
        if len(key) != 32:
            raise ValueError("session key has wrong length")
        return key

    def _key_for_store(self) -> bytes:
        with self._lock:
            try:
                key = self._current_key()
            except _CORRUPTION_ERRORS:
                key = None
            if key is None:
                # an old blob cannot be opened with a new key
                self.storage.delete(BLOB_ITEM)
                key = AESGCM.generate_key(bit_length=256)
                self.storage.set(KEY_ITEM, {
                    "key_material": base64.b64encode(key).decode("ascii"),
                    "timestamp": self.clock(),
                })
            return key

    def store(self, password: str) -> None:
        key = self._key_for_store()
        iv = os.urandom(IV_BYTES)
        ciphertext = AESGCM(key).encrypt(iv, password.encode("utf-8"), None)
        self.storage.set(BLOB_ITEM, {
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
            "iv": base64.b64encode(iv).decode("ascii"),
            "timestamp": self.clock(),
        })

    def load(self) -> Optional[str]:
        """Return the cached password, or None on miss, expiry or corruption."""
        try:
            key_entry = self.storage.get(KEY_ITEM)
            blob = self.storage.get(BLOB_ITEM)
            if key_entry is None or blob is None:
                if blob is not None:
                    self.clear()
                return None
            if not (self._fresh(key_entry) and self._fresh(blob)):
                logger.debug("Session cache expired")
                self.clear()
                return None

            key = self._current_key()
            iv = base64.b64decode(blob["iv"], validate=True)
            ciphertext = base64.b64decode(blob["ciphertext"], validate=True)
            return AESGCM(key).decrypt(iv, ciphertext, None).decode("utf-8")
        except _CORRUPTION_ERRORS:
            logger.warning("Session cache unreadable, clearing it")
            self.clear()
            return None

    def has_valid_data(self) -> bool:
        return self.load() is not None

    def clear(self) -> None:
        self.storage.delete(BLOB_ITEM)
        self.storage.delete(KEY_ITEM)

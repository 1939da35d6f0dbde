# backend/app/arweave/deep_hash.py
"""Arweave deep hash (SHA-384 over a tagged tree of byte strings)."""
import hashlib
from typing import List, Union

Chunk = Union[bytes, List["Chunk"]]


def _sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()


def deep_hash(data: Chunk) -> bytes:
    if isinstance(data, (list, tuple)):
        acc = _sha384(b"list" + str(len(data)).encode())
        for chunk in data:
            acc = _sha384(acc + deep_hash(chunk))
        return acc

    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("deep_hash accepts bytes or nested lists of bytes")

    tag = _sha384(b"blob" + str(len(data)).encode())
    return _sha384(tag + _sha384(bytes(data)))

# backend/app/arweave/data_item.py
"""
ANS-104 data items signed with an Arweave (RSA-PSS) key.

Binary layout:
    signature type (u16 LE) | signature | owner
    | target flag [+ 32 bytes] | anchor flag [+ 32 bytes]
    | tag count (u64 LE) | tag bytes length (u64 LE) | avro tags | data
"""
import hashlib
from typing import List, Optional

from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.arweave import keys
from backend.app.arweave.deep_hash import deep_hash
from backend.app.arweave.transaction import Tag

SIGNATURE_TYPE_ARWEAVE = 1
MAX_TAGS = 128
MAX_TAG_NAME_BYTES = 1024
MAX_TAG_VALUE_BYTES = 3072


def _avro_long(n: int) -> bytes:
    # zigzag of a non-negative long is n << 1, then base-128 varint
    n = n << 1
    out = bytearray()
    while n & ~0x7F:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def _avro_bytes(data: bytes) -> bytes:
    return _avro_long(len(data)) + data


def encode_tags(tags: List[Tag]) -> bytes:
    """Avro array of {name: bytes, value: bytes}; empty tag list encodes to b""."""
    if not tags:
        return b""
    body = b"".join(
        _avro_bytes(t.name.encode("utf-8")) + _avro_bytes(t.value.encode("utf-8"))
        for t in tags
    )
    return _avro_long(len(tags)) + body + _avro_long(0)


class DataItem(BaseModel):
    """Data item request/result. `data` and `target` are base64url, tags are plain text."""

    model_config = ConfigDict(extra="ignore")

    data: str = ""
    tags: List[Tag] = Field(default_factory=list)
    target: str = ""
    anchor: str = ""
    owner: str = ""
    signature: str = ""
    id: str = ""

    @field_validator("data")
    @classmethod
    def data_is_base64url(cls, v: str) -> str:
        keys.b64url_decode(v)
        return v

    @field_validator("target")
    @classmethod
    def target_is_address(cls, v: str) -> str:
        if v and len(keys.b64url_decode(v)) != 32:
            raise ValueError("target must be a 32 byte address")
        return v

    @field_validator("anchor")
    @classmethod
    def anchor_length(cls, v: str) -> str:
        if v and len(v.encode("utf-8")) != 32:
            raise ValueError("anchor must be exactly 32 bytes")
        return v

    @field_validator("tags")
    @classmethod
    def tag_limits(cls, v: List[Tag]) -> List[Tag]:
        if len(v) > MAX_TAGS:
            raise ValueError(f"at most {MAX_TAGS} tags")
        for tag in v:
            if not tag.name or len(tag.name.encode("utf-8")) > MAX_TAG_NAME_BYTES:
                raise ValueError("invalid tag name")
            if not tag.value or len(tag.value.encode("utf-8")) > MAX_TAG_VALUE_BYTES:
                raise ValueError("invalid tag value")
        return v

    def _target_bytes(self) -> bytes:
        return keys.b64url_decode(self.target) if self.target else b""

    def _anchor_bytes(self) -> bytes:
        return self.anchor.encode("utf-8") if self.anchor else b""

    def signature_data(self) -> bytes:
        return deep_hash([
            b"dataitem",
            b"1",
            str(SIGNATURE_TYPE_ARWEAVE).encode(),
            keys.b64url_decode(self.owner),
            self._target_bytes(),
            self._anchor_bytes(),
            encode_tags(self.tags),
            keys.b64url_decode(self.data),
        ])

    def sign(self, private_key: rsa.RSAPrivateKey, owner: str) -> None:
        self.owner = owner
        raw = keys.sign(private_key, self.signature_data())
        self.signature = keys.b64url_encode(raw)
        self.id = keys.b64url_encode(hashlib.sha256(raw).digest())

    def verify(self) -> bool:
        """Check the signature against the item's own declared owner."""
        if not self.owner or not self.signature:
            return False
        try:
            raw = keys.b64url_decode(self.signature)
        except ValueError:
            return False
        if self.id != keys.b64url_encode(hashlib.sha256(raw).digest()):
            return False
        return keys.verify(self.owner, self.signature_data(), raw)

    def to_bytes(self) -> bytes:
        tag_bytes = encode_tags(self.tags)
        target = self._target_bytes()
        anchor = self._anchor_bytes()
        parts = [
            SIGNATURE_TYPE_ARWEAVE.to_bytes(2, "little"),
            keys.b64url_decode(self.signature),
            keys.b64url_decode(self.owner),
            b"\x01" + target if target else b"\x00",
            b"\x01" + anchor if anchor else b"\x00",
            len(self.tags).to_bytes(8, "little"),
            len(tag_bytes).to_bytes(8, "little"),
            tag_bytes,
            keys.b64url_decode(self.data),
        ]
        return b"".join(parts)

    def raw(self) -> Optional[str]:
        if not self.signature:
            return None
        return keys.b64url_encode(self.to_bytes())

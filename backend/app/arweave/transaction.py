# backend/app/arweave/transaction.py
"""
Arweave format-2 transactions.

Only the fields that enter the signature are modelled. Chunking, data_root
computation and network submission belong to the client.
"""
import hashlib
from typing import List, Tuple

from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.arweave import keys
from backend.app.arweave.deep_hash import deep_hash

NUMERIC = r"^\d+$"


class Tag(BaseModel):
    name: str
    value: str


class Transaction(BaseModel):
    """Transaction JSON as produced by arweave-js. Tag names/values are base64url."""

    model_config = ConfigDict(extra="ignore")

    format: int = 2
    id: str = ""
    last_tx: str = ""
    owner: str = ""
    tags: List[Tag] = Field(default_factory=list)
    target: str = ""
    quantity: str = Field(default="0", pattern=NUMERIC)
    data: str = ""
    data_size: str = Field(default="0", pattern=NUMERIC)
    data_root: str = ""
    reward: str = Field(default="0", pattern=NUMERIC)
    signature: str = ""

    @field_validator("format")
    @classmethod
    def only_format_two(cls, v: int) -> int:
        if v != 2:
            raise ValueError("only format 2 transactions can be signed")
        return v

    @field_validator("last_tx", "target", "data", "data_root")
    @classmethod
    def base64url_field(cls, v: str) -> str:
        keys.b64url_decode(v)
        return v

    def decoded_tags(self) -> List[Tuple[str, str]]:
        """Tag (name, value) pairs as text. Raises ValueError on bad encoding."""
        return [
            (
                keys.b64url_decode(tag.name).decode("utf-8"),
                keys.b64url_decode(tag.value).decode("utf-8"),
            )
            for tag in self.tags
        ]

    def signature_data(self) -> bytes:
        return deep_hash([
            str(self.format).encode(),
            keys.b64url_decode(self.owner),
            keys.b64url_decode(self.target),
            self.quantity.encode(),
            self.reward.encode(),
            keys.b64url_decode(self.last_tx),
            [
                [keys.b64url_decode(tag.name), keys.b64url_decode(tag.value)]
                for tag in self.tags
            ],
            self.data_size.encode(),
            keys.b64url_decode(self.data_root),
        ])

    def sign(self, private_key: rsa.RSAPrivateKey, owner: str) -> None:
        self.owner = owner
        raw = keys.sign(private_key, self.signature_data())
        self.signature = keys.b64url_encode(raw)
        self.id = keys.b64url_encode(hashlib.sha256(raw).digest())

    def verify(self) -> bool:
        if not self.owner or not self.signature:
            return False
        try:
            raw = keys.b64url_decode(self.signature)
        except ValueError:
            return False
        if self.id != keys.b64url_encode(hashlib.sha256(raw).digest()):
            return False
        return keys.verify(self.owner, self.signature_data(), raw)

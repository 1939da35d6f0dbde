# backend/app/schemas/action.py
"""
Wallet action request/response schemas.

Action kinds form a closed set. Reserved kinds are listed explicitly so
the gateway can reject them before any password material is opened.
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.arweave.keys import b64url_decode


class ActionKind(str, Enum):
    SIGN = "sign"
    SIGN_DATA_ITEM = "signDataItem"
    SIGNATURE = "signature"
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    DISPATCH = "dispatch"


IMPLEMENTED_ACTIONS = frozenset({
    ActionKind.SIGN,
    ActionKind.SIGN_DATA_ITEM,
    ActionKind.SIGNATURE,
})
RESERVED_ACTIONS = frozenset(ActionKind) - IMPLEMENTED_ACTIONS

# Actions whose payload tags pass through the consent gate
CONSENT_GATED_ACTIONS = frozenset({ActionKind.SIGN, ActionKind.SIGN_DATA_ITEM})


class WalletActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: ActionKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    encrypted_password: Optional[str] = Field(default=None, alias="encryptedPassword")
    # Out-of-band user confirmation, required for Action=Transfer payloads
    consent: bool = False


class SignaturePayload(BaseModel):
    """Arbitrary bytes to sign, base64url."""
    data: str = Field(..., min_length=1)

    @field_validator("data")
    @classmethod
    def data_is_base64url(cls, v: str) -> str:
        b64url_decode(v)
        return v


class SignatureResponse(BaseModel):
    signature: str


class DataItemResponse(BaseModel):
    id: str
    raw: str
    signature: str
    owner: str

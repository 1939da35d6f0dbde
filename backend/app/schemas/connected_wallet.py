# backend/app/schemas/connected_wallet.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectWalletRequest(BaseModel):
    """
    Ownership proof for an external wallet.

    signature: base64url RSA-PSS signature over SHA-256 of
    {"address": address, "pkey": pkey} serialized canonically.
    """
    address: str = Field(..., min_length=43, max_length=64)
    pkey: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class ConnectWalletResponse(BaseModel):
    success: bool
    id: Optional[int] = None


class ConnectedWalletResponse(BaseModel):
    id: int
    address: str
    public_key: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RemoveConnectedWalletResponse(BaseModel):
    success: bool
    id: int

# backend/app/schemas/wallet.py
"""
Wallet schemas.

encrypted_secret and salt are intentionally absent from every response
model: they never leave the service.
"""
from pydantic import BaseModel, ConfigDict, Field


class WalletResponse(BaseModel):
    address: str
    public_key: str

    model_config = ConfigDict(from_attributes=True)


class PasswordChangeResponse(BaseModel):
    success: bool


class VerifyPasswordResponse(BaseModel):
    valid: bool


class PublicKeyResponse(BaseModel):
    """Gateway transport key, SPKI PEM."""
    public_key: str = Field(..., serialization_alias="publicKey")

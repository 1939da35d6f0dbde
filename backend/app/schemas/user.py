# backend/app/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from backend.app.schemas.wallet import WalletResponse


class TokenPayload(BaseModel):
    """Claims of a bearer token issued by the identity service."""
    sub: str
    email: Optional[str] = None
    provider: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    provider: Optional[str] = None
    created_at: Optional[datetime] = None
    # None until the wallet-creation flow has run
    wallet: Optional[WalletResponse] = None

    model_config = ConfigDict(from_attributes=True)


class ProvidersResponse(BaseModel):
    providers: List[str]


class DeleteAccountResponse(BaseModel):
    success: bool

# backend/app/api/v1/endpoints/gateway.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.action import WalletActionRequest
from backend.app.schemas.wallet import PublicKeyResponse, VerifyPasswordResponse
from backend.app.security.transport import TransportCrypto
from backend.app.services import gateway, wallets

router = APIRouter()


@router.get("/public-key", response_model=PublicKeyResponse)
async def get_public_key(transport: TransportCrypto = Depends(deps.get_transport_crypto)):
    """Transport key the client encrypts master passwords to."""
    return PublicKeyResponse(public_key=transport.public_key_pem())


@router.post("/wallet-action")
async def wallet_action(
        request: WalletActionRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        transport: TransportCrypto = Depends(deps.get_transport_crypto),
) -> Dict[str, Any]:
    wallet = await wallets.require_wallet(db, current_user.id)
    return await gateway.dispatch_action(db, wallet, request, transport)


@router.post("/verify-password", response_model=VerifyPasswordResponse)
async def verify_password(
        encrypted_password: Optional[str] = Header(default=None, alias="encrypted-password"),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        transport: TransportCrypto = Depends(deps.get_transport_crypto),
):
    """Check the master password. Attempt counters are left untouched; refused while locked out."""
    wallet = await wallets.require_wallet(db, current_user.id)
    valid = await wallets.verify_password(db, wallet, transport, encrypted_password)
    return VerifyPasswordResponse(valid=valid)

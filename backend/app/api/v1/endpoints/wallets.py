# backend/app/api/v1/endpoints/wallets.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.wallet import PasswordChangeResponse, WalletResponse
from backend.app.security.transport import TransportCrypto
from backend.app.services import wallets

router = APIRouter()


# 1. CREATE THE USER'S WALLET
@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
async def create_wallet(
        encrypted_password: Optional[str] = Header(default=None, alias="encrypted-password"),
        encrypted_confirm_password: Optional[str] = Header(default=None, alias="encrypted-confirm-password"),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        transport: TransportCrypto = Depends(deps.get_transport_crypto),
):
    return await wallets.create_wallet(
        db, current_user, transport, encrypted_password, encrypted_confirm_password
    )


# 2. READ PUBLIC WALLET INFO
@router.get("/me", response_model=WalletResponse)
async def read_wallet(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await wallets.require_wallet(db, current_user.id)


# 3. RE-ENCRYPT UNDER A NEW PASSWORD
@router.post("/me/password", response_model=PasswordChangeResponse)
async def change_password(
        encrypted_password: Optional[str] = Header(default=None, alias="encrypted-password"),
        encrypted_new_password: Optional[str] = Header(default=None, alias="encrypted-new-password"),
        encrypted_confirm_password: Optional[str] = Header(default=None, alias="encrypted-confirm-password"),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        transport: TransportCrypto = Depends(deps.get_transport_crypto),
):
    wallet = await wallets.require_wallet(db, current_user.id)
    await wallets.change_password(
        db,
        wallet,
        transport,
        encrypted_password,
        encrypted_new_password,
        encrypted_confirm_password,
    )
    return PasswordChangeResponse(success=True)

# backend/app/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.core.config import settings
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.user import DeleteAccountResponse, ProvidersResponse, UserResponse
from backend.app.schemas.wallet import WalletResponse
from backend.app.services import wallets

router = APIRouter()


@router.get("/providers", response_model=ProvidersResponse)
async def get_providers():
    """Identity providers the identity service can exchange tokens for."""
    return ProvidersResponse(providers=settings.identity_providers)


@router.get("/me", response_model=UserResponse)
async def read_current_user(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    wallet = await wallets.get_wallet(db, current_user.id)
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        provider=current_user.provider,
        created_at=current_user.created_at,
        wallet=WalletResponse.model_validate(wallet) if wallet else None,
    )


@router.delete("/me", response_model=DeleteAccountResponse)
async def delete_current_user(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    """Delete the account, its wallet and its connected wallets."""
    await wallets.delete_account(db, current_user)
    return DeleteAccountResponse(success=True)

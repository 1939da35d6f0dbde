# backend/app/api/v1/endpoints/connected_wallets.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.connected_wallet import (
    ConnectedWalletResponse,
    ConnectWalletRequest,
    ConnectWalletResponse,
    RemoveConnectedWalletResponse,
)
from backend.app.services import linker

router = APIRouter()


@router.post("/connect-wallet", response_model=ConnectWalletResponse)
async def connect_wallet(
        request: ConnectWalletRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    connected = await linker.prove_ownership(
        db, current_user, request.address, request.pkey, request.signature
    )
    return ConnectWalletResponse(success=True, id=connected.id)


@router.get("/connected-wallets", response_model=List[ConnectedWalletResponse])
async def read_connected_wallets(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await linker.list_connected(db, current_user)


@router.delete("/connected-wallets/{connected_id}", response_model=RemoveConnectedWalletResponse)
async def remove_connected_wallet(
        connected_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    await linker.remove_connected(db, current_user, connected_id)
    return RemoveConnectedWalletResponse(success=True, id=connected_id)

# backend/app/services/linker.py
"""
External wallet linking.

The user proves control of an Arweave wallet by signing
SHA-256(canonical {"address", "pkey"}) with RSA-PSS (SHA-256, salt 32).
Only a verified proof is persisted, and the unique index on
connected_wallets.address keeps an external wallet bound to one user.
"""
import hashlib
import json
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.arweave import keys
from backend.app.core.errors import (
    ConnectedWalletNotFoundError,
    DuplicateWalletError,
    InvalidSignatureError,
)
from backend.app.models.connected_wallet import ConnectedWallet
from backend.app.models.user import User

logger = logging.getLogger(__name__)


def canonical_payload(address: str, pkey: str) -> bytes:
    return json.dumps({"address": address, "pkey": pkey}, separators=(",", ":")).encode("utf-8")


def verify_ownership(address: str, pkey: str, signature: str) -> bool:
    """Check the proof signature and that `address` belongs to `pkey`."""
    try:
        raw_signature = keys.b64url_decode(signature)
        if keys.owner_to_address(pkey) != address:
            return False
    except ValueError:
        return False

    digest = hashlib.sha256(canonical_payload(address, pkey)).digest()
    return keys.verify(pkey, digest, raw_signature)


async def prove_ownership(db: AsyncSession, user: User, address: str, pkey: str, signature: str) -> ConnectedWallet:
    """
    Link an external wallet to `user`.

    Raises:
        InvalidSignatureError: proof does not verify; nothing persisted
        DuplicateWalletError: address already linked (to any user)
    """
    if not verify_ownership(address, pkey, signature):
        raise InvalidSignatureError()

    connected = ConnectedWallet(user_id=user.id, address=address, public_key=pkey)
    db.add(connected)
    try:
        await db.commit()
    except DBIntegrityError:
        await db.rollback()
        logger.info("User %s tried to link already connected address %s", user.id, address)
        raise DuplicateWalletError()
    await db.refresh(connected)

    logger.info("Linked external wallet %s to user %s", address, user.id)
    return connected


async def list_connected(db: AsyncSession, user: User) -> List[ConnectedWallet]:
    result = await db.execute(
        select(ConnectedWallet)
        .where(ConnectedWallet.user_id == user.id)
        .order_by(ConnectedWallet.id)
    )
    return list(result.scalars().all())


async def remove_connected(db: AsyncSession, user: User, connected_id: int) -> None:
    """Delete one of the caller's links. Other users' rows look like missing rows."""
    result = await db.execute(
        select(ConnectedWallet).where(
            ConnectedWallet.id == connected_id,
            ConnectedWallet.user_id == user.id,
        )
    )
    connected = result.scalars().first()
    if connected is None:
        raise ConnectedWalletNotFoundError()

    await db.delete(connected)
    await db.commit()
    logger.info("Removed connected wallet %s for user %s", connected.address, user.id)

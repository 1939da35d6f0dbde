# backend/app/services/wallets.py
"""
Wallet lifecycle: creation, lookup, re-encryption and removal.

The JWK is generated and encrypted inside a worker thread; the plaintext
key only exists for the duration of that call.
"""
import json
import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.arweave import keys
from backend.app.core.config import settings
from backend.app.core.errors import (
    DecryptionError,
    TransportError,
    WalletExistsError,
    WalletNotFoundError,
)
from backend.app.models.connected_wallet import ConnectedWallet
from backend.app.models.password_attempt import PasswordAttempt
from backend.app.models.user import User
from backend.app.models.wallet import Wallet
from backend.app.security import keyvault
from backend.app.security.passwords import validate_new_password
from backend.app.security.transport import TransportCrypto
from backend.app.services import attempts

logger = logging.getLogger(__name__)


async def get_wallet(db: AsyncSession, user_id: str) -> Optional[Wallet]:
    result = await db.execute(select(Wallet).where(Wallet.user_id == user_id))
    return result.scalars().first()


async def require_wallet(db: AsyncSession, user_id: str) -> Wallet:
    wallet = await get_wallet(db, user_id)
    if wallet is None:
        raise WalletNotFoundError()
    return wallet


def _generate_encrypted_wallet(password: str, key_size: int) -> dict:
    jwk = keys.generate_jwk(key_size)
    secret = bytearray(json.dumps(jwk, separators=(",", ":")).encode("utf-8"))
    try:
        encrypted_secret, salt = keyvault.encrypt(secret, password)
    finally:
        for i in range(len(secret)):
            secret[i] = 0
    return {
        "address": keys.owner_to_address(jwk["n"]),
        "public_key": jwk["n"],
        "encrypted_secret": encrypted_secret,
        "salt": salt,
    }


async def create_wallet(
        db: AsyncSession,
        user: User,
        transport: TransportCrypto,
        encrypted_password: Optional[str],
        encrypted_confirm_password: Optional[str],
) -> Wallet:
    """
    Create the user's custodial wallet.

    Raises:
        TransportError: either envelope invalid
        PasswordMismatchError / WeakPasswordError: password rejected
        WalletExistsError: the user already owns a wallet
    """
    password = transport.decrypt_from_transport(encrypted_password)
    confirm_password = transport.decrypt_from_transport(encrypted_confirm_password)
    validate_new_password(password, confirm_password)

    if await get_wallet(db, user.id) is not None:
        raise WalletExistsError()

    fields = await run_in_threadpool(
        _generate_encrypted_wallet, password, settings.WALLET_KEY_SIZE
    )
    wallet = Wallet(user_id=user.id, **fields)
    db.add(wallet)
    try:
        await db.commit()
    except DBIntegrityError:
        # unique index on wallets.user_id: a concurrent request won
        await db.rollback()
        raise WalletExistsError()
    await db.refresh(wallet)

    logger.info("Created wallet %s for user %s", wallet.address, user.id)
    return wallet


def _reencrypt(encrypted_secret: str, salt: str, password: str, new_password: str):
    with keyvault.unlock(encrypted_secret, salt, password) as secret:
        return keyvault.encrypt(secret, new_password)


async def change_password(
        db: AsyncSession,
        wallet: Wallet,
        transport: TransportCrypto,
        encrypted_password: Optional[str],
        encrypted_new_password: Optional[str],
        encrypted_confirm_password: Optional[str],
) -> None:
    """
    Re-encrypt the wallet secret under a new password and a fresh salt.

    The current password is checked through the same attempt counter as
    signing requests.
    """
    new_password = transport.decrypt_from_transport(encrypted_new_password)
    confirm_password = transport.decrypt_from_transport(encrypted_confirm_password)
    validate_new_password(new_password, confirm_password)

    attempt_number = await attempts.reserve_attempt(db, wallet.user_id)
    try:
        password = transport.decrypt_from_transport(encrypted_password)
        encrypted_secret, salt = await run_in_threadpool(
            _reencrypt, wallet.encrypted_secret, wallet.salt, password, new_password
        )
    except (TransportError, DecryptionError):
        raise attempts.failure(wallet.user_id, attempt_number)

    wallet.encrypted_secret = encrypted_secret
    wallet.salt = salt
    db.add(wallet)
    await db.commit()
    await attempts.record_success(db, wallet.user_id)
    logger.info("Re-encrypted wallet for user %s", wallet.user_id)


async def verify_password(
        db: AsyncSession,
        wallet: Wallet,
        transport: TransportCrypto,
        encrypted_password: Optional[str],
) -> bool:
    """
    Check a password without touching attempt counters.

    Raises:
        TooManyAttemptsError: while the user is locked out
    """
    await attempts.ensure_not_locked(db, wallet.user_id)
    try:
        password = transport.decrypt_from_transport(encrypted_password)
        await run_in_threadpool(keyvault.decrypt, wallet.encrypted_secret, wallet.salt, password)
    except (TransportError, DecryptionError):
        return False
    return True


async def delete_account(db: AsyncSession, user: User) -> None:
    """Remove the user together with everything that references it."""
    await db.execute(delete(ConnectedWallet).where(ConnectedWallet.user_id == user.id))
    await db.execute(delete(PasswordAttempt).where(PasswordAttempt.user_id == user.id))
    await db.execute(delete(Wallet).where(Wallet.user_id == user.id))
    await db.delete(user)
    await db.commit()
    logger.info("Deleted account %s", user.id)

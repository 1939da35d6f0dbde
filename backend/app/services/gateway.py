# backend/app/services/gateway.py
"""
Signing gateway.

Each request walks the same steps:

    AuthCheck -> WalletLookup -> ConsentGate -> PasswordResolution
    -> Decrypt -> Operate -> Respond

AuthCheck happens in the API dependency. Everything the gateway needs from
the user (consent, password) arrives as request input; nothing is held
while waiting for it. The decrypted key exists only inside
`_unlock_and_operate`, which runs in a worker thread and clears the key
buffer on exit.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Tuple, Type

from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.arweave import keys
from backend.app.arweave.data_item import DataItem
from backend.app.arweave.transaction import Transaction
from backend.app.core.errors import (
    ActionNotImplementedError,
    DecryptionError,
    IntegrityError,
    InvalidPayloadError,
    TransportError,
    UserCancelledError,
)
from backend.app.models.wallet import Wallet
from backend.app.schemas.action import (
    CONSENT_GATED_ACTIONS,
    IMPLEMENTED_ACTIONS,
    RESERVED_ACTIONS,
    ActionKind,
    DataItemResponse,
    SignaturePayload,
    SignatureResponse,
    WalletActionRequest,
)
from backend.app.security import keyvault
from backend.app.security.transport import TransportCrypto
from backend.app.services import attempts

logger = logging.getLogger(__name__)

CONSENT_TAG_NAME = "Action"
CONSENT_TAG_VALUE = "Transfer"


def _sign_transaction(key: rsa.RSAPrivateKey, owner: str, tx: Transaction) -> Dict[str, Any]:
    tx.sign(key, owner)
    return tx.model_dump()


def _sign_data_item(key: rsa.RSAPrivateKey, owner: str, item: DataItem) -> Dict[str, Any]:
    item.sign(key, owner)
    if not item.verify():
        logger.error("Signed data item %s failed self-verification", item.id)
        raise IntegrityError()
    return DataItemResponse(
        id=item.id,
        raw=item.raw(),
        signature=item.signature,
        owner=item.owner,
    ).model_dump()


def _sign_bytes(key: rsa.RSAPrivateKey, owner: str, payload: SignaturePayload) -> Dict[str, Any]:
    data = keys.b64url_decode(payload.data)
    return SignatureResponse(signature=keys.b64url_encode(keys.sign(key, data))).model_dump()


Handler = Callable[[rsa.RSAPrivateKey, str, Any], Dict[str, Any]]

HANDLERS: Dict[ActionKind, Tuple[Type[BaseModel], Handler]] = {
    ActionKind.SIGN: (Transaction, _sign_transaction),
    ActionKind.SIGN_DATA_ITEM: (DataItem, _sign_data_item),
    ActionKind.SIGNATURE: (SignaturePayload, _sign_bytes),
}

if set(HANDLERS) != IMPLEMENTED_ACTIONS:
    raise RuntimeError("every implemented action kind needs exactly one handler")


def parse_payload(action: ActionKind, payload: Dict[str, Any]) -> BaseModel:
    model, _ = HANDLERS[action]
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise InvalidPayloadError()


def payload_tags(action: ActionKind, parsed: BaseModel) -> List[Tuple[str, str]]:
    """Tag pairs as text; transaction tags arrive base64url-encoded."""
    if action == ActionKind.SIGN:
        try:
            return parsed.decoded_tags()
        except (ValueError, UnicodeDecodeError):
            raise InvalidPayloadError()
    if action == ActionKind.SIGN_DATA_ITEM:
        return [(t.name, t.value) for t in parsed.tags]
    return []


def requires_consent(action: ActionKind, parsed: BaseModel) -> bool:
    if action not in CONSENT_GATED_ACTIONS:
        return False
    return any(
        name == CONSENT_TAG_NAME and value == CONSENT_TAG_VALUE
        for name, value in payload_tags(action, parsed)
    )


def _unlock_and_operate(wallet_fields: Tuple[str, str, str], password: str, action: ActionKind, parsed: BaseModel) -> Dict[str, Any]:
    encrypted_secret, salt, owner = wallet_fields
    _, handler = HANDLERS[action]

    with keyvault.unlock(encrypted_secret, salt, password) as secret:
        jwk = json.loads(bytes(secret).decode("utf-8"))
        try:
            key = keys.private_key_from_jwk(jwk)
        finally:
            jwk.clear()
        try:
            return handler(key, owner, parsed)
        finally:
            del key


async def dispatch_action(
        db: AsyncSession,
        wallet: Wallet,
        request: WalletActionRequest,
        transport: TransportCrypto,
) -> Dict[str, Any]:
    """
    Run one wallet action for an authenticated user whose wallet was looked up.

    Raises:
        ActionNotImplementedError: reserved action kind
        InvalidPayloadError: payload does not match the action
        UserCancelledError: Action=Transfer without consent
        TooManyAttemptsError: password attempts exhausted
        PasswordError: envelope or password rejected, with attempts remaining
        IntegrityError: signed data item failed self-verification
    """
    action = request.action
    if action in RESERVED_ACTIONS:
        raise ActionNotImplementedError()

    parsed = parse_payload(action, request.payload)

    # ConsentGate: before any password material is touched
    if requires_consent(action, parsed) and not request.consent:
        logger.info("Transfer %s for user %s refused without consent", action.value, wallet.user_id)
        raise UserCancelledError()

    # PasswordResolution: the attempt is counted before the password is tried
    attempt_number = await attempts.reserve_attempt(db, wallet.user_id)
    try:
        password = transport.decrypt_from_transport(request.encrypted_password)
        result = await run_in_threadpool(
            _unlock_and_operate,
            (wallet.encrypted_secret, wallet.salt, wallet.public_key),
            password,
            action,
            parsed,
        )
    except (TransportError, DecryptionError):
        raise attempts.failure(wallet.user_id, attempt_number)
    except Exception:
        # only KeyVault raises DecryptionError, so the password was right
        await attempts.record_success(db, wallet.user_id)
        raise

    await attempts.record_success(db, wallet.user_id)
    logger.info("Completed %s for user %s", action.value, wallet.user_id)
    return result

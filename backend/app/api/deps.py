# backend/app/api/deps.py
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError

from backend.app.core.errors import AuthError
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.user import TokenPayload
from backend.app.security import jwt
from backend.app.security.transport import TransportCrypto, get_transport

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """
    Validate the bearer token and return the caller's user row.

    The identity service owns the account; the first request carrying a
    valid token for an unknown subject mirrors it into `users`.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError()

    payload = jwt.decode_access_token(credentials.credentials)
    try:
        token_data = TokenPayload(**payload)
    except ValidationError:
        raise AuthError()

    result = await db.execute(select(User).where(User.id == token_data.sub))
    user = result.scalars().first()

    if user is None:
        user = User(id=token_data.sub, email=token_data.email, provider=token_data.provider)
        db.add(user)
        try:
            await db.commit()
            await db.refresh(user)
            logger.info("Registered user %s from identity provider %s", user.id, user.provider)
        except DBIntegrityError:
            # a concurrent request registered the same subject first
            await db.rollback()
            result = await db.execute(select(User).where(User.id == token_data.sub))
            user = result.scalars().one()

    return user


def get_transport_crypto() -> TransportCrypto:
    return get_transport()

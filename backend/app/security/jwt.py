# backend/app/security/jwt.py
"""
Bearer token helpers.

Tokens are issued by the identity service after the OAuth exchange and
signed with the shared SECRET_KEY. This service only verifies them;
`create_access_token` is used by that integration and by tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from backend.app.core.config import settings
from backend.app.core.errors import AuthError


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        AuthError: invalid, expired or missing subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthError()

    if not payload.get("sub"):
        raise AuthError()
    return payload

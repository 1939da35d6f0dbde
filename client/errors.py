# client/errors.py
"""
Client-side error types.

Each server error `code` maps to the class with the same name as on the
gateway, so callers can catch e.g. PasswordError without parsing bodies.
"""
from typing import Dict, Optional, Type

import httpx


class GatewayError(Exception):
    code = "gateway_error"

    def __init__(self, detail: str = "Request failed", status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class NotLoggedInError(GatewayError):
    code = "not_logged_in"


class AuthError(GatewayError):
    code = "auth_error"


class TransportError(GatewayError):
    code = "transport_error"


class PasswordError(GatewayError):
    code = "invalid_password"

    def __init__(self, detail: str = "Invalid password", status_code: Optional[int] = None, attempts_remaining: int = 0):
        super().__init__(detail, status_code)
        self.attempts_remaining = attempts_remaining


class TooManyAttemptsError(GatewayError):
    code = "too_many_attempts"


class WeakPasswordError(GatewayError):
    code = "weak_password"


class PasswordMismatchError(GatewayError):
    code = "password_mismatch"


class WalletNotFoundError(GatewayError):
    code = "wallet_not_found"


class WalletExistsError(GatewayError):
    code = "wallet_exists"


class UserCancelledError(GatewayError):
    code = "user_cancelled"


class InvalidSignatureError(GatewayError):
    code = "invalid_signature"


class DuplicateWalletError(GatewayError):
    code = "duplicate_wallet"


class ConnectedWalletNotFoundError(GatewayError):
    code = "connected_wallet_not_found"


class InvalidPayloadError(GatewayError):
    code = "invalid_payload"


class IntegrityError(GatewayError):
    code = "integrity_error"


class ActionNotImplementedError(GatewayError):
    code = "not_implemented"


ERRORS_BY_CODE: Dict[str, Type[GatewayError]] = {
    cls.code: cls
    for cls in (
        AuthError,
        TransportError,
        PasswordError,
        TooManyAttemptsError,
        WeakPasswordError,
        PasswordMismatchError,
        WalletNotFoundError,
        WalletExistsError,
        UserCancelledError,
        InvalidSignatureError,
        DuplicateWalletError,
        ConnectedWalletNotFoundError,
        InvalidPayloadError,
        IntegrityError,
        ActionNotImplementedError,
    )
}


def error_from_response(response: httpx.Response) -> GatewayError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    detail = body.get("detail")
    if not isinstance(detail, str):
        detail = f"HTTP error: {response.status_code}"

    cls = ERRORS_BY_CODE.get(body.get("code"), GatewayError)
    if response.status_code == 401 and cls is GatewayError:
        cls = AuthError

    if cls is PasswordError:
        return PasswordError(detail, response.status_code, int(body.get("attemptsRemaining", 0)))
    return cls(detail, response.status_code)

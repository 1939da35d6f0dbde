# backend/app/core/errors.py
"""
Error taxonomy for the credential vault and signing gateway.

Every error carries a stable, coarse-grained `code` and an HTTP status.
Messages are fixed strings: the underlying exception detail is never
copied into them, so responses cannot be used as an oracle for password
or signature validity.
"""
from typing import Any, Dict

from fastapi import status


class WalletError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "wallet_error"
    message: str = "Request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.detail = message or self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "code": self.code}


class AuthError(WalletError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "auth_error"
    message = "Please log in again"


class TransportError(WalletError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "transport_error"
    message = "Invalid encrypted password"


class DecryptionError(WalletError):
    """KeyVault could not open a ciphertext. Never returned to callers as-is."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "decryption_error"
    message = "Could not decrypt"


class PasswordError(WalletError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "invalid_password"

    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = attempts_remaining
        super().__init__(f"Invalid password, {attempts_remaining} attempts remaining")

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["attemptsRemaining"] = self.attempts_remaining
        return body


class TooManyAttemptsError(WalletError):
    status_code = status.HTTP_423_LOCKED
    code = "too_many_attempts"
    message = "Too many invalid password attempts"


class WeakPasswordError(WalletError):
    code = "weak_password"
    message = "Password must be at least 8 characters and mix upper case, lower case and digits"


class PasswordMismatchError(WalletError):
    code = "password_mismatch"
    message = "Passwords do not match"


class WalletNotFoundError(WalletError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "wallet_not_found"
    message = "No wallet for this user"


class WalletExistsError(WalletError):
    status_code = status.HTTP_409_CONFLICT
    code = "wallet_exists"
    message = "User already has a wallet"


class UserCancelledError(WalletError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "user_cancelled"
    message = "Action requires user confirmation"


class InvalidSignatureError(WalletError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_signature"
    message = "Invalid signature"


class DuplicateWalletError(WalletError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_wallet"
    message = "Wallet already connected"


class ConnectedWalletNotFoundError(WalletError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "connected_wallet_not_found"
    message = "Connected wallet not found"


class InvalidPayloadError(WalletError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_payload"
    message = "Invalid action payload"


class IntegrityError(WalletError):
    """A freshly signed artifact failed its own verification."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "integrity_error"
    message = "Signed artifact failed verification"


class ActionNotImplementedError(WalletError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    code = "not_implemented"
    message = "Action is not implemented"

# backend/app/security/passwords.py
import secrets

from backend.app.core.errors import PasswordMismatchError, WeakPasswordError

MIN_PASSWORD_LENGTH = 8


def is_strong(password: str) -> bool:
    if len(password) < MIN_PASSWORD_LENGTH:
        return False
    return (
        any(c.islower() for c in password)
        and any(c.isupper() for c in password)
        and any(c.isdigit() for c in password)
    )


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings without leaking the position of the first difference."""
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def validate_new_password(password: str, confirm_password: str) -> None:
    """
    Validate a password chosen at wallet creation or password change.

    Raises:
        PasswordMismatchError: confirmation differs
        WeakPasswordError: below the strength rules
    """
    if not constant_time_compare(password, confirm_password):
        raise PasswordMismatchError()
    if not is_strong(password):
        raise WeakPasswordError()

# backend/app/security/lockout.py
"""
Password attempt accounting for signing flows.

A flow allows MAX_PASSWORD_ATTEMPTS consecutive failures. Once the counter
reaches the maximum, every further attempt is refused until
PASSWORD_LOCKOUT_MINUTES have passed since the last failure, after which
the counter starts again from zero.

The counters live in the record store (password_attempts), so the bound
holds across independent requests and process restarts.
"""
from datetime import datetime, timezone
from typing import Optional

from backend.app.core.config import settings


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _elapsed_minutes(last_attempt_at: datetime, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    return (now - _aware(last_attempt_at)).total_seconds() / 60


def lockout_expired(last_attempt_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when the last failure is older than the lockout window."""
    if last_attempt_at is None:
        return True
    return _elapsed_minutes(last_attempt_at, now) >= settings.PASSWORD_LOCKOUT_MINUTES


def is_locked(failed_attempts: int, last_attempt_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check whether further password attempts must be refused.

    Args:
        failed_attempts: consecutive failures recorded so far
        last_attempt_at: time of the most recent failure

    Returns:
        True if locked
    """
    if failed_attempts < settings.MAX_PASSWORD_ATTEMPTS:
        return False
    return not lockout_expired(last_attempt_at, now)


def attempts_remaining(failed_attempts: int) -> int:
    return max(0, settings.MAX_PASSWORD_ATTEMPTS - failed_attempts)


def get_lockout_remaining_minutes(last_attempt_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Remaining lockout minutes, or 0 if not locked."""
    if last_attempt_at is None:
        return 0
    remaining = settings.PASSWORD_LOCKOUT_MINUTES - _elapsed_minutes(last_attempt_at, now)
    return max(0, int(remaining))

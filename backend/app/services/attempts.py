# backend/app/services/attempts.py
"""
Persisted password attempt counters (see security/lockout.py for the rules).

An attempt is counted before the password is checked: `reserve_attempt`
increments the counter in a single conditional UPDATE, so concurrent
requests cannot evaluate more guesses than the budget allows. A password
that opens the vault gives the reservation back through `record_success`.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.errors import PasswordError, TooManyAttemptsError
from backend.app.models.password_attempt import PasswordAttempt
from backend.app.security import lockout

logger = logging.getLogger(__name__)


async def _load(db: AsyncSession, user_id: str) -> Optional[PasswordAttempt]:
    result = await db.execute(select(PasswordAttempt).where(PasswordAttempt.user_id == user_id))
    return result.scalars().first()


def _insert():
    return sqlite_insert if settings.is_sqlite else postgresql_insert


async def ensure_not_locked(db: AsyncSession, user_id: str) -> None:
    """
    Read-only lock check for flows that do not count attempts.

    Raises:
        TooManyAttemptsError: while the user is locked out
    """
    attempt = await _load(db, user_id)
    if attempt is not None and lockout.is_locked(attempt.failed_attempts, attempt.last_attempt_at):
        logger.info(
            "Password check refused for user %s, locked for %d more minutes",
            user_id,
            lockout.get_lockout_remaining_minutes(attempt.last_attempt_at),
        )
        raise TooManyAttemptsError()


async def reserve_attempt(db: AsyncSession, user_id: str) -> int:
    """
    Count one password attempt before the password is evaluated.

    Returns:
        the attempt number within the current budget (1..MAX_PASSWORD_ATTEMPTS)

    Raises:
        TooManyAttemptsError: budget exhausted and the lockout window has not elapsed
    """
    now = datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=settings.PASSWORD_LOCKOUT_MINUTES)

    await db.execute(
        _insert()(PasswordAttempt)
        .values(user_id=user_id, failed_attempts=0)
        .on_conflict_do_nothing(index_elements=["user_id"])
    )

    # lockout window elapsed: the caller restarts with a full budget
    await db.execute(
        update(PasswordAttempt)
        .where(
            PasswordAttempt.user_id == user_id,
            PasswordAttempt.failed_attempts >= settings.MAX_PASSWORD_ATTEMPTS,
            or_(PasswordAttempt.last_attempt_at.is_(None), PasswordAttempt.last_attempt_at <= cutoff),
        )
        .values(failed_attempts=0, last_attempt_at=None)
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        update(PasswordAttempt)
        .where(
            PasswordAttempt.user_id == user_id,
            PasswordAttempt.failed_attempts < settings.MAX_PASSWORD_ATTEMPTS,
        )
        .values(failed_attempts=PasswordAttempt.failed_attempts + 1, last_attempt_at=now)
        .returning(PasswordAttempt.failed_attempts)
        .execution_options(synchronize_session=False)
    )
    attempt_number = result.scalar_one_or_none()
    await db.commit()

    if attempt_number is None:
        logger.info("Password attempt refused for user %s, locked out", user_id)
        raise TooManyAttemptsError()
    return attempt_number


def failure(user_id: str, attempt_number: int) -> PasswordError:
    """Error for a reserved attempt whose password was rejected. The count stays."""
    remaining = lockout.attempts_remaining(attempt_number)
    if remaining == 0:
        logger.warning("User %s reached the password attempt limit", user_id)
    return PasswordError(remaining)


async def record_success(db: AsyncSession, user_id: str) -> None:
    await db.execute(
        update(PasswordAttempt)
        .where(PasswordAttempt.user_id == user_id, PasswordAttempt.failed_attempts != 0)
        .values(failed_attempts=0, last_attempt_at=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

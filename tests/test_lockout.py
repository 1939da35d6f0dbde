from datetime import datetime, timedelta, timezone

from backend.app.security import lockout
from backend.app.security.passwords import is_strong

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_not_locked_below_limit():
    assert not lockout.is_locked(2, NOW, now=NOW)


def test_locked_at_limit_within_window():
    assert lockout.is_locked(3, NOW - timedelta(minutes=5), now=NOW)
    assert lockout.get_lockout_remaining_minutes(NOW - timedelta(minutes=5), now=NOW) == 10


def test_unlocked_after_window():
    assert not lockout.is_locked(3, NOW - timedelta(minutes=15), now=NOW)
    assert lockout.lockout_expired(None)


def test_naive_timestamps_are_utc():
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert lockout.is_locked(3, naive, now=NOW)


def test_attempts_remaining_never_negative():
    assert lockout.attempts_remaining(0) == 3
    assert lockout.attempts_remaining(5) == 0


def test_password_strength_rules():
    assert is_strong("Abc12345!")
    assert not is_strong("Ab1")
    assert not is_strong("abc12345")
    assert not is_strong("ABC12345")
    assert not is_strong("Abcdefgh")

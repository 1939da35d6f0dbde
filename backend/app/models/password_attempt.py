# backend/app/models/password_attempt.py
"""
Failed master-password attempts per user.

Kept apart from the wallet row so the wallet is only ever written by
creation and re-encryption.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime

from backend.app.db.base import Base


class PasswordAttempt(Base):
    __tablename__ = "password_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), unique=True, nullable=False)

    # Consecutive failures since the last success or lockout expiry
    failed_attempts = Column(Integer, default=0, nullable=False)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)

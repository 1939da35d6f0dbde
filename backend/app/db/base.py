# backend/app/db/base.py
"""
Declarative base for the record store models.

Also re-exports the engine and session helpers so models and endpoints
have a single import point.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models (users, wallets, connected_wallets, password_attempts)."""
    pass


from backend.app.db.session import (  # noqa: E402
    engine,
    AsyncSessionLocal,
    get_db,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
]

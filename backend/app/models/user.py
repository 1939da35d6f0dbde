# backend/app/models/user.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class User(Base):
    __tablename__ = "users"

    # Identity assigned by the external identity provider (token "sub")
    id = Column(String(64), primary_key=True, index=True)

    email = Column(String(255), nullable=True)
    provider = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

# backend/app/models/connected_wallet.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class ConnectedWallet(Base):
    """External wallet the user proved control of. An address links to one user at most."""
    __tablename__ = "connected_wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), index=True, nullable=False)

    address = Column(String(64), unique=True, nullable=False)
    public_key = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

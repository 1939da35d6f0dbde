# backend/app/models/wallet.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class Wallet(Base):
    """
    Custodial wallet of a user. Exactly one per user.

    address/public_key are derived when the key is generated and are never
    re-derived from the encrypted blob. encrypted_secret/salt never leave
    the service.
    """
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), unique=True, index=True, nullable=False)

    # Base64url SHA-256 of the modulus
    address = Column(String(64), index=True, nullable=False)

    # Base64url RSA modulus ("owner" in Arweave terms)
    public_key = Column(Text, nullable=False)

    # KeyVault output: base64(version || nonce || AES-GCM ciphertext) of the JWK
    encrypted_secret = Column(Text, nullable=False)

    # KeyVault salt, base64
    salt = Column(String(64), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

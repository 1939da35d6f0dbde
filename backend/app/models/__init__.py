# backend/app/models/__init__.py
from backend.app.models.user import User
from backend.app.models.wallet import Wallet
from backend.app.models.connected_wallet import ConnectedWallet
from backend.app.models.password_attempt import PasswordAttempt

__all__ = ["User", "Wallet", "ConnectedWallet", "PasswordAttempt"]

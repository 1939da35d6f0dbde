# client/__init__.py
from client.api import KeywardClient
from client.confirmation import (
    ActionDescription,
    ConfirmationPort,
    ConfirmationResult,
    ConsolePort,
    PasswordRequest,
)
from client.session import Session
from client.session_cache import SessionCache
from client.storage import FileStorage, MemoryStorage
from client.transport import encrypt_for_transport

__all__ = [
    "ActionDescription",
    "ConfirmationPort",
    "ConfirmationResult",
    "ConsolePort",
    "FileStorage",
    "KeywardClient",
    "MemoryStorage",
    "PasswordRequest",
    "Session",
    "SessionCache",
    "encrypt_for_transport",
]

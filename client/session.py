# client/session.py
from typing import Any, Callable, Dict, List, Optional

from client.session_cache import SessionCache
from client.storage import MemoryStorage

AuthListener = Callable[[Optional[Dict[str, Any]]], None]


class Session:
    """
    Authentication state for one client.

    Listeners get the current auth data (or None after logout) on every
    change, and once immediately on subscribe when logged in.
    """

    def __init__(self, cache: Optional[SessionCache] = None):
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.wallet: Optional[Dict[str, Any]] = None
        self.cache = cache or SessionCache(MemoryStorage())
        self._listeners: List[AuthListener] = []

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None

    def auth_data(self) -> Optional[Dict[str, Any]]:
        if self.token is None:
            return None
        return {"token": self.token, "user": self.user, "wallet": self.wallet}

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self.is_logged_in:
            listener(self.auth_data())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_auth(self, token: str, user: Optional[Dict[str, Any]], wallet: Optional[Dict[str, Any]] = None) -> None:
        self.token = token
        self.user = user
        self.wallet = wallet
        self._notify()

    def set_wallet(self, wallet: Optional[Dict[str, Any]]) -> None:
        self.wallet = wallet
        self._notify()

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.wallet = None
        self.cache.clear()
        self._notify()

    def _notify(self) -> None:
        data = self.auth_data()
        for listener in list(self._listeners):
            listener(data)

# client/api.py
"""
Synchronous SDK for the Keyward signing gateway.

Passwords are only ever sent as transport envelopes. The master password
comes from the session cache when it holds one, otherwise from the
confirmation port; a rejected password clears the cache and the port is
asked again with the remaining attempt count.
"""
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from client.confirmation import (
    ActionDescription,
    ConfirmationPort,
    ConfirmationResult,
    PasswordRequest,
)
from client.errors import (
    ActionNotImplementedError,
    GatewayError,
    NotLoggedInError,
    PasswordError,
    TooManyAttemptsError,
    UserCancelledError,
    WalletNotFoundError,
    error_from_response,
)
from client.session import Session
from client.transport import b64url_decode, b64url_encode, encrypt_for_transport

logger = logging.getLogger(__name__)

PERMISSIONS = ["ACCESS_ADDRESS", "SIGN_TRANSACTION"]
WALLET_NAME = "Keyward"
GATEWAY_CONFIG = {"host": "arweave.net", "port": 443, "protocol": "https"}

CONSENT_GATED_ACTIONS = ("sign", "signDataItem")
RESERVED_ACTIONS = ("encrypt", "decrypt", "dispatch")


def _transaction_tags(payload: Dict[str, Any]) -> List[tuple]:
    tags = []
    for tag in payload.get("tags") or []:
        try:
            tags.append((
                b64url_decode(tag["name"]).decode("utf-8"),
                b64url_decode(tag["value"]).decode("utf-8"),
            ))
        except (KeyError, TypeError, ValueError):
            # the gateway rejects malformed tags itself
            continue
    return tags


def _data_item_tags(payload: Dict[str, Any]) -> List[tuple]:
    return [
        (tag.get("name"), tag.get("value"))
        for tag in payload.get("tags") or []
        if isinstance(tag, dict)
    ]


def is_transfer(tags: List[tuple]) -> bool:
    return any(name == "Action" and value == "Transfer" for name, value in tags)


class KeywardClient:
    def __init__(
            self,
            base_url: Optional[str] = None,
            http_client: Optional[httpx.Client] = None,
            session: Optional[Session] = None,
            port: Optional[ConfirmationPort] = None,
            timeout: float = 30.0,
    ):
        if http_client is None:
            if not base_url:
                raise ValueError("Provide base_url or http_client")
            http_client = httpx.Client(base_url=base_url, timeout=timeout)
        self.http_client = http_client
        self.session = session or Session()
        self.port = port
        self._transport_key: Optional[str] = None

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.http_client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise error_from_response(e.response) from e
        except httpx.RequestError as e:
            raise GatewayError(f"Request error: {e}") from e

    def _auth_headers(self) -> Dict[str, str]:
        if not self.session.is_logged_in:
            raise NotLoggedInError("Not logged in")
        return {"Authorization": f"Bearer {self.session.token}"}

    # 1. Transport
    def get_transport_key(self) -> str:
        if self._transport_key is None:
            response = self._request("GET", "/public-key")
            self._transport_key = response.json()["publicKey"]
        return self._transport_key

    def _envelope(self, password: str) -> str:
        return encrypt_for_transport(password, self.get_transport_key())

    def _ask(self, request: PasswordRequest) -> str:
        if self.port is None:
            raise UserCancelledError("No confirmation port configured")
        result: ConfirmationResult = self.port.request_password(request)
        if not result.proceed or not result.password:
            raise UserCancelledError("Password entry cancelled")
        return result.password

    # 2. Session
    def connect(self, token: str) -> Dict[str, Any]:
        """
        Log in with an identity-service token.

        Creates the wallet through the confirmation port when the account
        has none yet.
        """
        self.session.token = token
        try:
            user = self._request("GET", "/auth/me", headers=self._auth_headers()).json()
        except GatewayError:
            self.session.token = None
            raise
        wallet = user.pop("wallet", None)
        self.session.set_auth(token, user, wallet)

        if wallet is None:
            logger.info("No wallet for user %s, starting creation", user.get("id"))
            self.create_wallet()
        return self.session.auth_data()

    def logout(self) -> None:
        self.session.clear()

    def create_wallet(self) -> Dict[str, str]:
        headers = self._auth_headers()
        password = self._ask(PasswordRequest(reason="create", new_password=True))
        confirm_password = self._ask(PasswordRequest(reason="confirm", new_password=True))
        headers["encrypted-password"] = self._envelope(password)
        headers["encrypted-confirm-password"] = self._envelope(confirm_password)

        wallet = self._request("POST", "/wallets", headers=headers).json()
        self.session.cache.store(password)
        self.session.set_wallet(wallet)
        return wallet

    def get_wallet(self) -> Optional[Dict[str, str]]:
        try:
            return self._request("GET", "/wallets/me", headers=self._auth_headers()).json()
        except WalletNotFoundError:
            return None

    def _active_wallet(self) -> Optional[Dict[str, str]]:
        self._auth_headers()
        if self.session.wallet is None:
            wallet = self.get_wallet()
            if wallet is not None:
                self.session.set_wallet(wallet)
        return self.session.wallet

    def get_active_address(self) -> str:
        wallet = self._active_wallet()
        return wallet["address"] if wallet else ""

    def get_active_public_key(self) -> str:
        wallet = self._active_wallet()
        return wallet["public_key"] if wallet else ""

    def get_permissions(self) -> List[str]:
        return list(PERMISSIONS)

    def get_wallet_names(self) -> Dict[str, str]:
        return {self.get_active_address(): WALLET_NAME}

    def get_gateway_config(self) -> Dict[str, Any]:
        return dict(GATEWAY_CONFIG)

    # 3. Wallet actions
    def _run_action(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if action in RESERVED_ACTIONS:
            raise ActionNotImplementedError(f"{action} is not implemented")
        headers = self._auth_headers()

        password = None
        consent = False
        if action in CONSENT_GATED_ACTIONS:
            tags = _transaction_tags(payload) if action == "sign" else _data_item_tags(payload)
            if is_transfer(tags):
                if self.port is None:
                    raise UserCancelledError("No confirmation port configured")
                result = self.port.confirm_action(ActionDescription(
                    action=action,
                    tags=tags,
                    summary="This request transfers tokens.",
                ))
                if not result.proceed:
                    raise UserCancelledError("Transfer declined")
                consent = True
                password = result.password

        if password is None:
            password = self.session.cache.load()

        attempts_remaining = None
        while True:
            if password is None:
                password = self._ask(PasswordRequest(reason=action, attempts_remaining=attempts_remaining))
            body = {
                "action": action,
                "payload": payload,
                "encryptedPassword": self._envelope(password),
                "consent": consent,
            }
            try:
                response = self._request("POST", "/wallet-action", headers=headers, json=body)
            except PasswordError as e:
                self.session.cache.clear()
                if e.attempts_remaining <= 0:
                    raise TooManyAttemptsError("Too many failed password attempts", e.status_code) from e
                logger.info("Password rejected, %d attempt(s) left", e.attempts_remaining)
                attempts_remaining = e.attempts_remaining
                password = None
                continue

            self.session.cache.store(password)
            return response.json()

    def sign(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        """Sign an Arweave format-2 transaction dict; returns the signed transaction."""
        return self._run_action("sign", transaction)

    def sign_data_item(self, data_item: Dict[str, Any]) -> Dict[str, Any]:
        return self._run_action("signDataItem", data_item)

    def signature(self, data: Union[bytes, str]) -> bytes:
        if isinstance(data, str):
            data = data.encode("utf-8")
        result = self._run_action("signature", {"data": b64url_encode(data)})
        return b64url_decode(result["signature"])

    def encrypt(self, data: bytes):
        return self._run_action("encrypt", {"data": b64url_encode(data)})

    def decrypt(self, data: bytes):
        return self._run_action("decrypt", {"data": b64url_encode(data)})

    def dispatch(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        return self._run_action("dispatch", transaction)

    def verify_password(self, password: str) -> bool:
        headers = self._auth_headers()
        headers["encrypted-password"] = self._envelope(password)
        return self._request("POST", "/verify-password", headers=headers).json()["valid"]

    def change_password(self, password: str, new_password: str, confirm_password: str) -> bool:
        headers = self._auth_headers()
        headers["encrypted-password"] = self._envelope(password)
        headers["encrypted-new-password"] = self._envelope(new_password)
        headers["encrypted-confirm-password"] = self._envelope(confirm_password)
        result = self._request("POST", "/wallets/me/password", headers=headers).json()
        self.session.cache.store(new_password)
        return result["success"]

    # 4. Connected wallets
    def add_connected_wallet(self, address: str, pkey: str, signature: str) -> Dict[str, Any]:
        body = {"address": address, "pkey": pkey, "signature": signature}
        return self._request("POST", "/connect-wallet", headers=self._auth_headers(), json=body).json()

    def get_connected_wallets(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/connected-wallets", headers=self._auth_headers()).json()

    def remove_connected_wallet(self, connected_id: int) -> Dict[str, Any]:
        return self._request(
            "DELETE", f"/connected-wallets/{connected_id}", headers=self._auth_headers()
        ).json()

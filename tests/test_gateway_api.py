from concurrent.futures import ThreadPoolExecutor

import pytest

from backend.app.arweave import keys
from backend.app.arweave.data_item import DataItem
from backend.app.arweave.transaction import Transaction
from backend.app.core.config import settings


def b64(text):
    return keys.b64url_encode(text.encode())


def transaction(*tags):
    return {
        "format": 2,
        "last_tx": "",
        "target": "",
        "quantity": "0",
        "reward": "1000",
        "data": "",
        "data_size": "0",
        "data_root": "",
        "tags": [{"name": b64(name), "value": b64(value)} for name, value in tags],
    }


def action(api, auth_headers, seal, kind, payload, pw, sub="user-1", **extra):
    body = {"action": kind, "payload": payload, "encryptedPassword": seal(pw), **extra}
    return api.post("/wallet-action", headers=auth_headers(sub), json=body)


def test_health(api):
    assert api.get("/").status_code == 200


def test_public_key_is_pem(api):
    response = api.get("/public-key")
    assert response.status_code == 200
    assert response.json()["publicKey"].startswith("-----BEGIN PUBLIC KEY-----")


def test_wallet_action_requires_bearer_token(api):
    response = api.post("/wallet-action", json={"action": "sign", "payload": {}})
    assert response.status_code == 401
    assert response.json()["code"] == "auth_error"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_is_rejected(api):
    response = api.post(
        "/wallet-action",
        headers={"Authorization": "Bearer not-a-token"},
        json={"action": "sign", "payload": {}},
    )
    assert response.status_code == 401


def test_sign_flow_from_new_user(api, auth_headers, seal, password):
    me = api.get("/auth/me", headers=auth_headers())
    assert me.status_code == 200
    assert me.json()["wallet"] is None

    missing = action(api, auth_headers, seal, "sign", transaction(), password)
    assert missing.status_code == 404
    assert missing.json()["code"] == "wallet_not_found"

    created = api.post("/wallets", headers=auth_headers(**{
        "encrypted-password": seal(password),
        "encrypted-confirm-password": seal(password),
    }))
    assert created.status_code == 201
    wallet = created.json()
    assert set(wallet) == {"address", "public_key"}
    assert keys.owner_to_address(wallet["public_key"]) == wallet["address"]

    response = action(api, auth_headers, seal, "sign", transaction(("App-Name", "test")), password)
    assert response.status_code == 200
    signed = Transaction.model_validate(response.json())
    assert signed.owner == wallet["public_key"]
    assert signed.verify()


def test_signature_action(api, auth_headers, seal, password, create_wallet):
    wallet = create_wallet()
    response = action(api, auth_headers, seal, "signature", {"data": b64("hello")}, password)

    assert response.status_code == 200
    signature = keys.b64url_decode(response.json()["signature"])
    assert keys.verify(wallet["public_key"], b"hello", signature)


def test_sign_data_item(api, auth_headers, seal, password, create_wallet):
    wallet = create_wallet()
    payload = {"data": b64("hello"), "tags": [{"name": "Content-Type", "value": "text/plain"}]}
    response = action(api, auth_headers, seal, "signDataItem", payload, password)

    assert response.status_code == 200
    body = response.json()
    assert body["owner"] == wallet["public_key"]
    item = DataItem(**payload, owner=body["owner"], signature=body["signature"], id=body["id"])
    assert item.verify()
    assert item.raw() == body["raw"]


def test_data_item_failing_self_check_is_integrity_error(api, auth_headers, seal, password, create_wallet, monkeypatch):
    create_wallet()
    monkeypatch.setattr(DataItem, "verify", lambda self: False)

    response = action(api, auth_headers, seal, "signDataItem", {"data": b64("hello")}, password)
    assert response.status_code == 500
    assert response.json()["code"] == "integrity_error"


@pytest.mark.parametrize("kind", ["encrypt", "decrypt", "dispatch"])
def test_reserved_actions_are_not_implemented(api, auth_headers, create_wallet, kind):
    create_wallet()
    response = api.post("/wallet-action", headers=auth_headers(), json={"action": kind, "payload": {}})
    assert response.status_code == 501
    assert response.json()["code"] == "not_implemented"


def test_unknown_action_is_rejected(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    response = action(api, auth_headers, seal, "burn", {}, password)
    assert response.status_code == 422


@pytest.mark.parametrize("kind,payload", [
    ("sign", {"format": 1}),
    ("sign", {"quantity": "-5"}),
    ("signature", {}),
    ("signature", {"data": "***"}),
    ("signDataItem", {"anchor": "short"}),
])
def test_invalid_payload_does_not_count_as_attempt(api, auth_headers, seal, password, create_wallet, kind, payload):
    create_wallet()
    response = action(api, auth_headers, seal, kind, payload, "Wrong1234")
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_payload"

    wrong = action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234")
    assert wrong.json()["attemptsRemaining"] == 2


def test_transfer_requires_consent(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    payload = transaction(("Action", "Transfer"), ("Quantity", "100"))

    refused = action(api, auth_headers, seal, "sign", payload, password)
    assert refused.status_code == 400
    assert refused.json()["code"] == "user_cancelled"

    approved = action(api, auth_headers, seal, "sign", payload, password, consent=True)
    assert approved.status_code == 200


def test_data_item_transfer_requires_consent(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    payload = {"data": b64("x"), "tags": [{"name": "Action", "value": "Transfer"}]}

    refused = action(api, auth_headers, seal, "signDataItem", payload, "Wrong1234")
    assert refused.json()["code"] == "user_cancelled"

    # the refused request never reached password resolution
    wrong = action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234")
    assert wrong.json()["attemptsRemaining"] == 2


def test_password_attempts_are_bounded(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    payload = {"data": b64("hello")}

    for remaining in (2, 1, 0):
        response = action(api, auth_headers, seal, "signature", payload, "Wrong1234")
        assert response.status_code == 403
        assert response.json()["code"] == "invalid_password"
        assert response.json()["attemptsRemaining"] == remaining

    locked = action(api, auth_headers, seal, "signature", payload, password)
    assert locked.status_code == 423
    assert locked.json()["code"] == "too_many_attempts"


def test_lockout_expires(api, auth_headers, seal, password, create_wallet, monkeypatch):
    create_wallet()
    monkeypatch.setattr(settings, "PASSWORD_LOCKOUT_MINUTES", 0)
    payload = {"data": b64("hello")}

    for _ in range(3):
        action(api, auth_headers, seal, "signature", payload, "Wrong1234")

    assert action(api, auth_headers, seal, "signature", payload, password).status_code == 200
    # counter restarted from zero
    assert action(api, auth_headers, seal, "signature", payload, "Wrong1234").json()["attemptsRemaining"] == 2


def test_success_resets_counter(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    payload = {"data": b64("hello")}

    action(api, auth_headers, seal, "signature", payload, "Wrong1234")
    action(api, auth_headers, seal, "signature", payload, "Wrong1234")
    assert action(api, auth_headers, seal, "signature", payload, password).status_code == 200

    assert action(api, auth_headers, seal, "signature", payload, "Wrong1234").json()["attemptsRemaining"] == 2


def test_replayed_envelope_counts_as_failed_attempt(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    body = {"action": "signature", "payload": {"data": b64("hello")}, "encryptedPassword": seal(password)}

    assert api.post("/wallet-action", headers=auth_headers(), json=body).status_code == 200
    replay = api.post("/wallet-action", headers=auth_headers(), json=body)
    assert replay.status_code == 403
    assert replay.json()["attemptsRemaining"] == 2


def test_missing_envelope_counts_as_failed_attempt(api, auth_headers, create_wallet):
    create_wallet()
    response = api.post("/wallet-action", headers=auth_headers(), json={
        "action": "signature", "payload": {"data": b64("hello")},
    })
    assert response.status_code == 403


def test_attempts_are_per_user(api, auth_headers, seal, password, create_wallet):
    create_wallet("alice")
    create_wallet("bob")
    for _ in range(3):
        action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234", sub="alice")

    assert action(api, auth_headers, seal, "signature", {"data": b64("x")}, password, sub="bob").status_code == 200


def test_verify_password_has_no_side_effects(api, auth_headers, seal, password, create_wallet):
    create_wallet()

    def verify(pw):
        return api.post("/verify-password", headers=auth_headers(**{"encrypted-password": seal(pw)}))

    assert verify(password).json() == {"valid": True}
    for _ in range(4):
        assert verify("Wrong1234").json() == {"valid": False}

    assert action(api, auth_headers, seal, "signature", {"data": b64("x")}, password).status_code == 200


def test_verify_password_without_wallet(api, auth_headers, seal, password):
    response = api.post("/verify-password", headers=auth_headers(**{"encrypted-password": seal(password)}))
    assert response.status_code == 404


def guess_concurrently(api, auth_headers, seal, pw, count):
    bodies = [
        {"action": "signature", "payload": {"data": b64("x")}, "encryptedPassword": seal(pw)}
        for _ in range(count)
    ]
    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(
            lambda body: api.post("/wallet-action", headers=auth_headers(), json=body),
            bodies,
        ))


def test_concurrent_guesses_stay_within_budget(api, auth_headers, seal, create_wallet):
    create_wallet()
    assert action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234").status_code == 403

    responses = guess_concurrently(api, auth_headers, seal, "Wrong1234", 8)

    assert sorted(r.status_code for r in responses) == [403] * 2 + [423] * 6
    assert sorted(r.json()["attemptsRemaining"] for r in responses if r.status_code == 403) == [0, 1]


def test_concurrent_first_failures_share_one_counter(api, auth_headers, seal, create_wallet):
    create_wallet()

    responses = guess_concurrently(api, auth_headers, seal, "Wrong1234", 8)

    assert sorted(r.status_code for r in responses) == [403] * 3 + [423] * 5
    assert sorted(r.json()["attemptsRemaining"] for r in responses if r.status_code == 403) == [0, 1, 2]


def test_verify_password_refused_while_locked(api, auth_headers, seal, password, create_wallet):
    create_wallet()
    for _ in range(3):
        action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234")

    response = api.post("/verify-password", headers=auth_headers(**{"encrypted-password": seal(password)}))
    assert response.status_code == 423
    assert response.json()["code"] == "too_many_attempts"


def test_operation_fault_after_unlock_resets_counter(api, auth_headers, seal, password, create_wallet, monkeypatch):
    create_wallet()
    for _ in range(2):
        action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234")

    monkeypatch.setattr(DataItem, "verify", lambda self: False)
    failed = action(api, auth_headers, seal, "signDataItem", {"data": b64("x")}, password)
    assert failed.status_code == 500
    monkeypatch.undo()

    wrong = action(api, auth_headers, seal, "signature", {"data": b64("x")}, "Wrong1234")
    assert wrong.json()["attemptsRemaining"] == 2

import pytest


def create(api, auth_headers, seal, pw, confirm, sub="user-1"):
    return api.post("/wallets", headers=auth_headers(sub, **{
        "encrypted-password": seal(pw),
        "encrypted-confirm-password": seal(confirm),
    }))


def test_create_rejects_mismatched_confirmation(api, auth_headers, seal):
    response = create(api, auth_headers, seal, "Abc12345!", "Abc12345?")
    assert response.status_code == 400
    assert response.json()["code"] == "password_mismatch"


@pytest.mark.parametrize("weak", ["Ab1", "abcdefgh1", "ABCDEFGH1", "Abcdefghi"])
def test_create_rejects_weak_password(api, auth_headers, seal, weak):
    response = create(api, auth_headers, seal, weak, weak)
    assert response.status_code == 400
    assert response.json()["code"] == "weak_password"


def test_create_requires_envelopes(api, auth_headers):
    response = api.post("/wallets", headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["code"] == "transport_error"


def test_second_wallet_is_rejected(api, auth_headers, seal, password, create_wallet):
    first = create_wallet()
    response = create(api, auth_headers, seal, password, password)
    assert response.status_code == 409
    assert response.json()["code"] == "wallet_exists"

    assert api.get("/wallets/me", headers=auth_headers()).json() == first


def test_wallet_secrets_never_leave_the_service(api, auth_headers, create_wallet):
    created = create_wallet()
    wallet = api.get("/wallets/me", headers=auth_headers()).json()
    me = api.get("/auth/me", headers=auth_headers()).json()

    assert wallet == created
    assert set(wallet) == {"address", "public_key"}
    assert me["wallet"] == created
    for body in (wallet, me):
        assert "encrypted_secret" not in str(body)
        assert "salt" not in str(body)


def test_wallet_not_found(api, auth_headers):
    response = api.get("/wallets/me", headers=auth_headers())
    assert response.status_code == 404
    assert response.json() == {"detail": "No wallet for this user", "code": "wallet_not_found"}


def test_change_password(api, auth_headers, seal, password, create_wallet):
    wallet = create_wallet()
    response = api.post("/wallets/me/password", headers=auth_headers(**{
        "encrypted-password": seal(password),
        "encrypted-new-password": seal("Xyz98765!"),
        "encrypted-confirm-password": seal("Xyz98765!"),
    }))
    assert response.status_code == 200
    assert response.json() == {"success": True}

    def verify(pw):
        return api.post("/verify-password", headers=auth_headers(**{"encrypted-password": seal(pw)})).json()["valid"]

    assert verify("Xyz98765!")
    assert not verify(password)
    assert api.get("/wallets/me", headers=auth_headers()).json() == wallet


def test_change_password_with_wrong_current_password(api, auth_headers, seal, create_wallet):
    create_wallet()
    response = api.post("/wallets/me/password", headers=auth_headers(**{
        "encrypted-password": seal("Wrong1234"),
        "encrypted-new-password": seal("Xyz98765!"),
        "encrypted-confirm-password": seal("Xyz98765!"),
    }))
    assert response.status_code == 403
    assert response.json()["attemptsRemaining"] == 2


def test_providers(api):
    assert api.get("/auth/providers").json() == {"providers": ["google", "github", "discord"]}


def test_me_registers_user_from_token(api, auth_headers):
    body = api.get("/auth/me", headers=auth_headers("carol")).json()
    assert body["id"] == "carol"
    assert body["email"] == "carol@example.com"
    assert body["provider"] == "google"
    assert body["wallet"] is None


def test_delete_account(api, auth_headers, create_wallet):
    create_wallet()
    response = api.delete("/auth/me", headers=auth_headers())
    assert response.status_code == 200

    # a later token for the same subject starts over
    assert api.get("/auth/me", headers=auth_headers()).json()["wallet"] is None


def test_deleted_account_is_registered_again_from_token(api, auth_headers, seal, create_wallet):
    create_wallet()
    api.post("/wallet-action", headers=auth_headers(), json={
        "action": "signature", "payload": {"data": "eA"}, "encryptedPassword": seal("Wrong1234"),
    })
    api.delete("/auth/me", headers=auth_headers())

    me = api.get("/auth/me", headers=auth_headers())
    assert me.status_code == 200
    assert me.json()["id"] == "user-1"
    assert api.get("/wallets/me", headers=auth_headers()).status_code == 404

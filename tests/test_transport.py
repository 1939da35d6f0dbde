import base64
import json
import time

import pytest
from cryptography.hazmat.primitives import serialization

from backend.app.core.errors import TransportError
from backend.app.security.transport import NonceStore, TransportCrypto
from client.transport import OAEP, encrypt_for_transport


@pytest.fixture(scope="module")
def transport_key():
    return TransportCrypto.generate(2048)._private_key


@pytest.fixture
def transport(transport_key):
    return TransportCrypto(transport_key, max_age_seconds=300, max_skew_seconds=30)


def raw_envelope(transport, message):
    public_key = serialization.load_pem_public_key(transport.public_key_pem().encode())
    return base64.b64encode(public_key.encrypt(json.dumps(message).encode(), OAEP)).decode()


def test_nonce_store_rejects_replay():
    store = NonceStore(window_seconds=60)
    assert store.check_and_add("a" * 32, now=1000)
    assert not store.check_and_add("a" * 32, now=1001)


def test_nonce_store_forgets_after_window():
    store = NonceStore(window_seconds=60)
    store.check_and_add("a" * 32, now=1000)
    store.check_and_add("b" * 32, now=1100)
    assert len(store) == 1


def test_envelope_round_trip(transport):
    envelope = encrypt_for_transport("Abc12345!", transport.public_key_pem())
    assert transport.decrypt_from_transport(envelope) == "Abc12345!"


def test_replayed_envelope_is_rejected(transport):
    envelope = encrypt_for_transport("Abc12345!", transport.public_key_pem())
    transport.decrypt_from_transport(envelope)
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(envelope)


def test_stale_envelope_is_rejected(transport):
    sent = time.time() - 301
    envelope = encrypt_for_transport("Abc12345!", transport.public_key_pem(), now=sent)
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(envelope)


def test_future_envelope_is_rejected(transport):
    sent = time.time() + 60
    envelope = encrypt_for_transport("Abc12345!", transport.public_key_pem(), now=sent)
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(envelope)


def test_small_clock_skew_is_accepted(transport):
    sent = time.time() + 10
    envelope = encrypt_for_transport("Abc12345!", transport.public_key_pem(), now=sent)
    assert transport.decrypt_from_transport(envelope) == "Abc12345!"


@pytest.mark.parametrize("envelope", [None, "", "%%%", base64.b64encode(b"x" * 256).decode()])
def test_garbage_envelope_is_rejected(transport, envelope):
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(envelope)


@pytest.mark.parametrize("message", [
    ["not", "an", "object"],
    {"nonce": "a" * 32, "timestamp": 0},
    {"password": "", "nonce": "b" * 32, "timestamp": 0},
    {"password": "Abc12345!", "nonce": "short", "timestamp": 0},
    {"password": "Abc12345!", "nonce": "c" * 32, "timestamp": True},
    {"password": "Abc12345!", "nonce": "d" * 32, "timestamp": "now"},
])
def test_malformed_message_is_rejected(transport, message):
    if isinstance(message, dict) and message.get("timestamp") == 0:
        message["timestamp"] = int(time.time() * 1000)
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(raw_envelope(transport, message))


def test_envelope_for_other_key_is_rejected(transport):
    other = TransportCrypto.generate(2048)
    envelope = encrypt_for_transport("Abc12345!", other.public_key_pem())
    with pytest.raises(TransportError):
        transport.decrypt_from_transport(envelope)


def test_from_pem_loads_same_key(transport, transport_key):
    pem = transport_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    loaded = TransportCrypto.from_pem(pem)
    assert loaded.public_key_pem() == transport.public_key_pem()


def test_client_refuses_oversized_password(transport):
    with pytest.raises(ValueError):
        encrypt_for_transport("x" * 400, transport.public_key_pem())

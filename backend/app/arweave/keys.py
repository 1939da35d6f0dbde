# backend/app/arweave/keys.py
"""
Arweave wallet keys.

A wallet is an RSA key serialized as a JWK. The public "owner" is the
base64url modulus, the address is base64url(SHA-256(modulus)). Signatures
are RSA-PSS with SHA-256 and a 32-byte salt.
"""
import base64
import hashlib
from typing import Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

PUBLIC_EXPONENT = 65537
PSS_SALT_LENGTH = 32

PSS = padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode unpadded base64url. Raises ValueError on malformed input."""
    if not isinstance(data, str):
        raise ValueError("expected a base64url string")
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (ValueError, TypeError) as exc:
        raise ValueError("invalid base64url") from exc


def _int_to_b64url(value: int) -> str:
    return b64url_encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))


def _b64url_to_int(value: str) -> int:
    return int.from_bytes(b64url_decode(value), "big")


def generate_jwk(key_size: int = 4096) -> Dict[str, str]:
    """Generate a new wallet key as a JWK dict."""
    key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
    numbers = key.private_numbers()
    public = numbers.public_numbers
    return {
        "kty": "RSA",
        "e": _int_to_b64url(public.e),
        "n": _int_to_b64url(public.n),
        "d": _int_to_b64url(numbers.d),
        "p": _int_to_b64url(numbers.p),
        "q": _int_to_b64url(numbers.q),
        "dp": _int_to_b64url(numbers.dmp1),
        "dq": _int_to_b64url(numbers.dmq1),
        "qi": _int_to_b64url(numbers.iqmp),
    }


def private_key_from_jwk(jwk: Dict[str, str]) -> rsa.RSAPrivateKey:
    public = rsa.RSAPublicNumbers(_b64url_to_int(jwk["e"]), _b64url_to_int(jwk["n"]))
    numbers = rsa.RSAPrivateNumbers(
        p=_b64url_to_int(jwk["p"]),
        q=_b64url_to_int(jwk["q"]),
        d=_b64url_to_int(jwk["d"]),
        dmp1=_b64url_to_int(jwk["dp"]),
        dmq1=_b64url_to_int(jwk["dq"]),
        iqmp=_b64url_to_int(jwk["qi"]),
        public_numbers=public,
    )
    return numbers.private_key()


def public_key_from_owner(owner: str) -> rsa.RSAPublicKey:
    """Rebuild a public key from a base64url modulus with the fixed exponent."""
    return rsa.RSAPublicNumbers(PUBLIC_EXPONENT, _b64url_to_int(owner)).public_key()


def owner_to_address(owner: str) -> str:
    return b64url_encode(hashlib.sha256(b64url_decode(owner)).digest())


def sign(private_key: rsa.RSAPrivateKey, message: bytes) -> bytes:
    return private_key.sign(message, PSS, hashes.SHA256())


def verify(owner: str, message: bytes, signature: bytes) -> bool:
    try:
        public_key_from_owner(owner).verify(signature, message, PSS, hashes.SHA256())
    except (InvalidSignature, ValueError):
        return False
    return True

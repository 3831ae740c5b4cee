import base64
import binascii
import os

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

KEY_LEN = 32


def parse_key(value):
    """Decode a base64 WireGuard key, raising ValueError when it is not 32 bytes."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("empty key")
    try:
        raw = base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("not valid base64")
    if len(raw) != KEY_LEN:
        raise ValueError(f"expected {KEY_LEN} bytes, got {len(raw)}")
    return raw


def _encode(raw):
    return base64.b64encode(raw).decode("ascii")


def generate_private_key():
    return _encode(X25519PrivateKey.generate().private_bytes_raw())


def public_key(private_key):
    raw = parse_key(private_key)
    priv = X25519PrivateKey.from_private_bytes(raw)
    return _encode(priv.public_key().public_bytes_raw())


def generate_keypair():
    priv = generate_private_key()
    return priv, public_key(priv)


def generate_preshared_key():
    return _encode(os.urandom(KEY_LEN))

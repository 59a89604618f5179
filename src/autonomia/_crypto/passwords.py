"""Salted password hashing.

Hashes are encoded as ``scrypt$<n>$<r>$<p>$<salt b64>$<digest b64>`` so
the cost parameters travel with each stored hash.
"""

from __future__ import annotations

import base64
import secrets

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_SCHEME = "scrypt"
_SALT_BYTES = 16
_KEY_LENGTH = 32
_R = 8
_P = 1


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def hash_password(password: str, *, n: int = 2**14) -> str:
    """Derive an encoded salted scrypt hash for *password*."""
    salt = secrets.token_bytes(_SALT_BYTES)
    kdf = Scrypt(salt=salt, length=_KEY_LENGTH, n=n, r=_R, p=_P)
    digest = kdf.derive(password.encode("utf-8"))
    return "$".join((_SCHEME, str(n), str(_R), str(_P), _b64(salt), _b64(digest)))


def verify_password(password: str, encoded: str) -> bool:
    """Return ``True`` when *password* matches *encoded*.

    Malformed hashes verify as ``False``.
    """
    parts = encoded.split("$")
    if len(parts) != 6 or parts[0] != _SCHEME:
        return False
    try:
        n, r, p = int(parts[1]), int(parts[2]), int(parts[3])
        salt = _unb64(parts[4])
        expected = _unb64(parts[5])
        kdf = Scrypt(salt=salt, length=len(expected), n=n, r=r, p=p)
    except ValueError:
        return False
    try:
        kdf.verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True

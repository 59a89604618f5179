"""Cryptographic helpers."""

from autonomia._crypto.passwords import hash_password, verify_password

__all__ = ["hash_password", "verify_password"]

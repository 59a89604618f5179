"""User account model."""

from __future__ import annotations

from pydantic import Field, field_validator

from autonomia.models._base import AutonomiaBaseModel, new_id


class User(AutonomiaBaseModel):
    """A registered account.

    ``password_hash`` holds an encoded salted scrypt hash produced by
    :func:`autonomia._crypto.passwords.hash_password`; plaintext passwords
    are never stored.
    """

    id: str = Field(default_factory=new_id)
    full_name: str
    username: str
    email: str
    password_hash: str = Field(repr=False)
    confirmed: bool = False

    @field_validator("full_name", "username", "email")
    @classmethod
    def _strip(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    @property
    def username_key(self) -> str:
        """Case-insensitive lookup key for the username."""
        return username_key(self.username)


def username_key(username: str) -> str:
    return username.strip().casefold()

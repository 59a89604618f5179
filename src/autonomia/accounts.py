"""Account registration and login against the store."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from autonomia._crypto.passwords import hash_password, verify_password
from autonomia._redact import redact_for_log
from autonomia.config import AutonomiaConfig
from autonomia.exceptions import AuthenticationError, AutonomiaValidationError, DuplicateUsernameError
from autonomia.models.user import User
from autonomia.state.store import AutonomiaStore

_logger = logging.getLogger(__name__)

# Verified against when the username is unknown so both rejection paths cost the same.
_DUMMY_HASH: str | None = None


def _dummy_hash(n: int) -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password("autonomia-dummy-password", n=n)
    return _DUMMY_HASH


class AccountService:
    """Registration, confirmation and session handling.

    Usage::

        accounts = AccountService(store)
        user = accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret", "s3cret")
        accounts.login("ANA", "s3cret")
    """

    def __init__(self, store: AutonomiaStore, config: AutonomiaConfig | None = None) -> None:
        self._store = store
        self._config = config or AutonomiaConfig()

    def register(
        self,
        full_name: str,
        username: str,
        email: str,
        password: str,
        confirm_password: str | None = None,
    ) -> User:
        """Create an unconfirmed account.

        Raises
        ------
        AutonomiaValidationError
            A field is empty or the passwords differ.
        DuplicateUsernameError
            The username is taken, ignoring case.
        """
        fields = {"full_name": full_name, "username": username, "email": email, "password": password}
        for field, value in fields.items():
            if not value or not value.strip():
                raise AutonomiaValidationError(f"{field} is required", field=field)
        if confirm_password is not None and password != confirm_password:
            raise AutonomiaValidationError("passwords do not match", field="confirm_password")
        if self._store.find_user(username) is not None:
            _logger.warning("Registration rejected: username %r already taken", username)
            raise DuplicateUsernameError(username)

        try:
            user = User(
                full_name=full_name,
                username=username,
                email=email,
                password_hash=hash_password(password, n=self._config.scrypt_n),
            )
        except ValidationError as exc:
            raise AutonomiaValidationError(f"invalid user: {exc}") from exc

        self._store.put_user(user)
        self._store.save()
        _logger.info("Registered user %s (%s)", user.id, user.username)
        _logger.debug("Registration payload: %s", redact_for_log(fields))
        return user

    def confirm(self, user_id: str) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise AutonomiaValidationError(f"unknown user id {user_id!r}", field="user_id")
        confirmed = user.model_copy(update={"confirmed": True})
        self._store.put_user(confirmed)
        self._store.save()
        return confirmed

    def login(self, username: str, password: str) -> User:
        """Authenticate and make the user current.

        Raises :class:`AuthenticationError` for an unknown username or a
        wrong password alike.
        """
        if not username or not password:
            raise AuthenticationError("username and password are required")
        user = self._store.find_user(username)
        if user is None:
            verify_password(password, _dummy_hash(self._config.scrypt_n))
            _logger.warning("Login rejected for %r", username)
            raise AuthenticationError("incorrect username or password")
        if not verify_password(password, user.password_hash):
            _logger.warning("Login rejected for %r", username)
            raise AuthenticationError("incorrect username or password")

        self._store.current_user_id = user.id
        self._store.save()
        _logger.info("User %s logged in", user.username)
        return user

    def logout(self) -> None:
        self._store.current_user_id = None
        self._store.save()

    def current_user(self) -> User | None:
        user_id = self._store.current_user_id
        if user_id is None:
            return None
        return self._store.get_user(user_id)

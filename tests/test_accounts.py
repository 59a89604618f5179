from __future__ import annotations

# pylint: disable=redefined-outer-name

import pytest

from autonomia._crypto.passwords import hash_password, verify_password
from autonomia.accounts import AccountService
from autonomia.config import AutonomiaConfig
from autonomia.exceptions import AuthenticationError, AutonomiaValidationError, DuplicateUsernameError
from autonomia.state.backends import MemoryBackend
from autonomia.state.store import USERS_KEY, AutonomiaStore

# Cheap scrypt cost keeps the suite fast.
FAST = AutonomiaConfig(scrypt_n=2**4)


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def accounts(backend: MemoryBackend) -> AccountService:
    store = AutonomiaStore(backend)
    store.load()
    return AccountService(store, FAST)


def test_register_stores_salted_hash_not_password(accounts: AccountService, backend: MemoryBackend) -> None:
    user = accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret", "s3cret")

    assert user.confirmed is False
    assert user.password_hash.startswith("scrypt$")
    assert "s3cret" not in user.password_hash
    stored = backend.read()[USERS_KEY][0]
    assert stored["passwordHash"] == user.password_hash
    assert "password" not in stored
    assert "s3cret" not in repr(user)


def test_duplicate_username_is_case_insensitive(accounts: AccountService) -> None:
    accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret")

    with pytest.raises(DuplicateUsernameError):
        accounts.register("Outra Ana", "ANA", "other@example.com", "pw")


@pytest.mark.parametrize(
    ("full_name", "username", "email", "password", "confirm", "field"),
    [
        ("", "ana", "ana@example.com", "pw", None, "full_name"),
        ("Ana", " ", "ana@example.com", "pw", None, "username"),
        ("Ana", "ana", "", "pw", None, "email"),
        ("Ana", "ana", "ana@example.com", "", None, "password"),
        ("Ana", "ana", "ana@example.com", "pw", "different", "confirm_password"),
    ],
)
def test_register_validation(
    accounts: AccountService,
    backend: MemoryBackend,
    full_name: str,
    username: str,
    email: str,
    password: str,
    confirm: str | None,
    field: str,
) -> None:
    with pytest.raises(AutonomiaValidationError) as excinfo:
        accounts.register(full_name, username, email, password, confirm)
    assert excinfo.value.field == field
    assert backend.writes == 0


def test_login_sets_current_user(accounts: AccountService) -> None:
    user = accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret")

    assert accounts.current_user() is None
    assert accounts.login("Ana", "s3cret") == user
    assert accounts.current_user() == user

    accounts.logout()
    assert accounts.current_user() is None


@pytest.mark.parametrize(("username", "password"), [("ana", "wrong"), ("nobody", "s3cret"), ("", "s3cret")])
def test_login_rejected(accounts: AccountService, username: str, password: str) -> None:
    accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret")

    with pytest.raises(AuthenticationError):
        accounts.login(username, password)
    assert accounts.current_user() is None


def test_confirm(accounts: AccountService) -> None:
    user = accounts.register("Ana Souza", "ana", "ana@example.com", "s3cret")

    assert accounts.confirm(user.id).confirmed is True
    with pytest.raises(AutonomiaValidationError):
        accounts.confirm("ghost")


class TestPasswordHashing:
    def test_verify(self) -> None:
        encoded = hash_password("pw", n=2**4)
        assert verify_password("pw", encoded) is True
        assert verify_password("PW", encoded) is False

    def test_salted(self) -> None:
        assert hash_password("pw", n=2**4) != hash_password("pw", n=2**4)

    @pytest.mark.parametrize("encoded", ["", "pw", "md5$abc", "scrypt$x$8$1$AAAA$AAAA", "scrypt$3$8$1$AAAA$AAAA"])
    def test_malformed_hash_does_not_verify(self, encoded: str) -> None:
        assert verify_password("pw", encoded) is False

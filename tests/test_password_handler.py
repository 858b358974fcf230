import pytest

from auth import password_handler
from auth.password_handler import MAX_PASSWORD_BYTES, hash_password, verify_password


@pytest.fixture(autouse=True)
def cheap_rounds(monkeypatch):
    monkeypatch.setattr(password_handler, "BCRYPT_ROUNDS", 4)


def test_hash_and_verify():
    hashed = hash_password("s3cret-pass")
    assert hashed.startswith("$2b$04$")
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("s3cret-pasS", hashed) is False


def test_each_hash_gets_its_own_salt():
    assert hash_password("s3cret-pass") != hash_password("s3cret-pass")


def test_accounts_without_a_usable_hash_never_match():
    assert verify_password("s3cret-pass", None) is False
    assert verify_password("s3cret-pass", "") is False
    assert verify_password("s3cret-pass", "not-a-bcrypt-hash") is False


def test_passwords_longer_than_bcrypt_reads_are_refused():
    # 36 characters, 72 bytes
    fits = "é" * 36
    assert verify_password(fits, hash_password(fits)) is True

    with pytest.raises(ValueError):
        hash_password("é" * 37)
    assert verify_password("x" * (MAX_PASSWORD_BYTES + 1), hash_password("x" * MAX_PASSWORD_BYTES)) is False

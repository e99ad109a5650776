"""Unit tests for password hashing."""

from clientportal.infrastructure.auth.password_hasher import (
    dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)


def test_hash_is_argon2id():
    hashed = hash_password("Str0ng!Passw0rd")
    assert hashed.startswith("$argon2id$")
    assert "Str0ng!Passw0rd" not in hashed


def test_hash_is_salted():
    assert hash_password("Str0ng!Passw0rd") != hash_password("Str0ng!Passw0rd")


def test_verify_password():
    hashed = hash_password("Str0ng!Passw0rd")
    assert verify_password("Str0ng!Passw0rd", hashed) is True
    assert verify_password("Wr0ng!Passw0rd", hashed) is False


def test_verify_against_invalid_hash():
    assert verify_password("anything", "not-a-hash") is False


def test_dummy_hash_never_matches_real_passwords():
    assert verify_password("Str0ng!Passw0rd", dummy_password_hash()) is False


def test_fresh_hash_needs_no_rehash():
    assert needs_rehash(hash_password("Str0ng!Passw0rd")) is False

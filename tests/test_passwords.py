"""Unit tests for auth/passwords.py -- bcrypt hashing, verification, and login check.

Covers:
- hash_password() salts every call and embeds the configured cost
- verify_password() accepts the original and rejects single-character mutations
- malformed stored hashes raise CredentialFormatError, never a bare ValueError
- authenticate() maps unknown user / wrong password / malformed hash to None
"""

import pytest

from auth.errors import CredentialFormatError
from auth.passwords import MAX_PASSWORD_BYTES, authenticate, hash_password, verify_password


def test_hash_is_not_plaintext_and_is_salted():
    first = hash_password("correct horse")
    second = hash_password("correct horse")
    assert "correct horse" not in first
    assert first != second
    assert verify_password("correct horse", first)
    assert verify_password("correct horse", second)


def test_hash_uses_requested_cost_factor():
    assert hash_password("pw", rounds=5).startswith("$2b$05$")


def test_hash_uses_configured_cost_factor_by_default():
    # conftest sets BCRYPT_ROUNDS=4
    assert hash_password("pw").startswith("$2b$04$")


@pytest.mark.parametrize("mutated", ["Correct", "correcT", "corect", "correctt", "xorrect", "correct "])
def test_single_character_mutations_fail(mutated):
    hashed = hash_password("correct")
    assert verify_password(mutated, hashed) is False


def test_unicode_password_round_trips():
    hashed = hash_password("pässwörd-日本")
    assert verify_password("pässwörd-日本", hashed)
    assert not verify_password("passwort-日本", hashed)


def test_hash_rejects_password_over_72_bytes():
    with pytest.raises(ValueError):
        hash_password("é" * 37)  # 74 bytes


def test_verify_over_72_bytes_returns_false():
    hashed = hash_password("a" * MAX_PASSWORD_BYTES)
    assert verify_password("a" * MAX_PASSWORD_BYTES, hashed)
    assert verify_password("a" * (MAX_PASSWORD_BYTES + 1), hashed) is False


@pytest.mark.parametrize("bad_hash", ["", "not-a-hash", "$2b$04$tooshort", "plaintext-password"])
def test_malformed_hash_raises_credential_format_error(bad_hash):
    with pytest.raises(CredentialFormatError) as excinfo:
        verify_password("whatever", bad_hash)
    if bad_hash:
        assert bad_hash not in str(excinfo.value)


class TestAuthenticate:
    @pytest.fixture
    def store(self, user_store):
        user_store.insert_user("alice", "alice@example.com", hash_password("correct"))
        user_store.insert_user("broken", None, "this-is-not-bcrypt")
        return user_store

    def test_valid_credentials_return_user(self, store):
        user = authenticate(store, "alice", "correct")
        assert user is not None
        assert user.username == "alice"

    def test_wrong_password_returns_none(self, store):
        assert authenticate(store, "alice", "wrong") is None

    def test_unknown_user_returns_none(self, store):
        assert authenticate(store, "mallory", "correct") is None

    def test_malformed_stored_hash_treated_as_wrong_password(self, store):
        assert authenticate(store, "broken", "anything") is None

"""
Tests for bcrypt password hashing.
"""

import pytest

from auth.password import hash_password, verify_password


class TestPasswordHashing:
    def test_hash_then_verify(self):
        hashed = hash_password("s3cret-pass", rounds=4)
        assert verify_password("s3cret-pass", hashed)

    def test_wrong_password_rejected(self):
        hashed = hash_password("s3cret-pass", rounds=4)
        assert not verify_password("s3cret-pasS", hashed)
        assert not verify_password("", hashed)

    def test_fresh_salt_per_call(self):
        first = hash_password("same-input", rounds=4)
        second = hash_password("same-input", rounds=4)
        assert first != second
        assert verify_password("same-input", first)
        assert verify_password("same-input", second)

    def test_hash_never_contains_plaintext(self):
        assert "plaintext-value" not in hash_password("plaintext-value", rounds=4)

    def test_default_rounds_come_from_config(self):
        # BCRYPT_ROUNDS=4 is set by conftest
        assert hash_password("x").startswith("$2b$04$")

    @pytest.mark.parametrize("bad_hash", ["", "not-a-hash", "$2b$04$short", "éé"])
    def test_malformed_hash_returns_false(self, bad_hash):
        assert verify_password("anything", bad_hash) is False

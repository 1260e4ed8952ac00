"""
Unit tests for credential hashing and dual-mode verification.
"""

import pytest

from sitedb.users.credentials import CredentialHasher, CredentialMatch, is_digest


class TestCredentialHasher:
    """Tests for CredentialHasher."""

    def test_hash_is_digest(self, hasher):
        """Hashes are bcrypt digests, salted per call."""
        first = hasher.hash("secret1")
        second = hasher.hash("secret1")

        assert is_digest(first)
        assert first != second
        assert first.startswith("$2b$04$")

    def test_verify_digest(self, hasher):
        """Digest accepts the original password only."""
        stored = hasher.hash("secret1")

        assert hasher.verify("secret1", stored) is CredentialMatch.DIGEST
        assert hasher.verify("secret2", stored) is CredentialMatch.NONE
        assert hasher.verify("", stored) is CredentialMatch.NONE

    def test_verify_legacy_plaintext(self, hasher):
        """Plaintext rows accept the exact password only."""
        assert hasher.verify("admin123", "admin123") is CredentialMatch.LEGACY_PLAINTEXT
        assert hasher.verify("Admin123", "admin123") is CredentialMatch.NONE
        assert hasher.verify("admin1234", "admin123") is CredentialMatch.NONE

    def test_stored_digest_is_not_a_password(self, hasher):
        """Supplying the stored digest itself does not authenticate."""
        stored = hasher.hash("secret1")
        assert hasher.verify(stored, stored) is CredentialMatch.NONE

    def test_empty_stored_credential_never_matches(self, hasher):
        assert hasher.verify("", "") is CredentialMatch.NONE
        assert hasher.verify("anything", "") is CredentialMatch.NONE

    def test_long_passwords_are_not_truncated(self, hasher):
        """Passwords differing after byte 72 are distinct."""
        base = "x" * 80
        stored = hasher.hash(base + "a")
        assert not hasher.verify(base + "b", stored)
        assert hasher.verify(base + "a", stored)

    def test_match_truthiness(self):
        assert not CredentialMatch.NONE
        assert CredentialMatch.DIGEST
        assert CredentialMatch.LEGACY_PLAINTEXT

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rounds_out_of_range(self, rounds):
        with pytest.raises(ValueError):
            CredentialHasher(rounds=rounds)


class TestIsDigest:
    """Tests for digest detection."""

    @pytest.mark.parametrize(
        "value",
        ["", "password123", "$2b$12$short", "5e884898da28047151d0e56f8dc6292773603d0d6aabbdd62a11ef721d1542d8"],
    )
    def test_not_digest(self, value):
        assert not is_digest(value)

    def test_digest(self, hasher):
        assert is_digest(hasher.hash("pw"))

"""
Tests for Argon2id password hashing.
"""

import pytest

from sessionguard.core.auth.argon2_auth import (
    Argon2Hasher,
    HashResult,
    InvalidInput,
    hash_password,
    verify_password,
)

from conftest import legacy_scrypt_hash


class TestHashing:
    """Test hash generation."""

    def test_hash_is_self_describing(self, hasher):
        """Encoded hash carries algorithm and parameters."""
        result = hasher.hash("correct horse battery")
        assert isinstance(result, HashResult)
        assert result.encoded.startswith("$argon2id$v=19$m=19456,t=2,p=1$")
        assert len(result.salt) == 16
        assert len(result.hash) == 32

    def test_same_password_different_hashes(self, hasher):
        """Fresh salt per call makes hashes differ."""
        first = hasher.hash("password123")
        second = hasher.hash("password123")
        assert first.encoded != second.encoded
        assert first.salt != second.salt

    def test_hash_never_contains_password(self, hasher):
        """The plaintext does not appear in the output."""
        encoded = hasher.hash("VerySecretValue").encoded
        assert "VerySecretValue" not in encoded

    def test_empty_password_rejected(self, hasher):
        """Empty input raises InvalidInput."""
        with pytest.raises(InvalidInput):
            hasher.hash("")

    def test_unencodable_password_rejected(self, hasher):
        """A lone surrogate cannot be encoded and raises InvalidInput."""
        with pytest.raises(InvalidInput):
            hasher.hash("Passw0rd\ud800")

    def test_invalid_input_is_value_error(self):
        assert issubclass(InvalidInput, ValueError)

    def test_repr_hides_hash(self, hasher):
        result = hasher.hash("password123")
        assert result.encoded not in repr(result)


class TestParameters:
    """Test parameter validation."""

    @pytest.mark.parametrize("kwargs", [
        {"memory_cost": 1024},
        {"time_cost": 1},
        {"parallelism": 0},
        {"hash_length": 8},
        {"salt_length": 8},
    ])
    def test_weak_parameters_rejected(self, kwargs):
        """Parameters below the floor raise ValueError."""
        params = {"memory_cost": 19456, "time_cost": 2, "parallelism": 1}
        params.update(kwargs)
        with pytest.raises(ValueError):
            Argon2Hasher(**params)

    def test_parameters_reported(self, hasher):
        assert hasher.parameters == {
            "memory_cost": 19456,
            "time_cost": 2,
            "parallelism": 1,
            "hash_length": 32,
            "salt_length": 16,
        }


class TestVerification:
    """Test password verification."""

    def test_verify_roundtrip(self, hasher):
        """A hash verifies against its own password."""
        encoded = hasher.hash("Passw0rd!").encoded
        assert hasher.verify("Passw0rd!", encoded) is True

    @pytest.mark.parametrize("other", ["Passw0rd", "passw0rd!", "Passw0rd! ", "x"])
    def test_verify_rejects_other_passwords(self, hasher, other):
        """Any other password fails."""
        encoded = hasher.hash("Passw0rd!").encoded
        assert hasher.verify(other, encoded) is False

    @pytest.mark.parametrize("malformed", [
        "",
        "not-a-hash",
        "$argon2id$v=19$m=19456,t=2,p=1$garbage",
        "$argon2id$",
        "$bcrypt$2b$12$abcdefghijklmnopqrstuv",
        "salt:nothex",
        "salt:abcd",
        ":",
        "$argon2id$v=19$m=19456,t=2,p=1$c2FsdHNhbHQ$é",
    ])
    def test_malformed_hash_fails_closed(self, hasher, malformed):
        """Malformed stored hashes verify as False without raising."""
        assert hasher.verify("Passw0rd!", malformed) is False

    def test_empty_password_never_verifies(self, hasher):
        encoded = hasher.hash("Passw0rd!").encoded
        assert hasher.verify("", encoded) is False

    def test_unencodable_password_never_verifies(self, hasher):
        encoded = hasher.hash("Passw0rd!").encoded
        assert hasher.verify("Passw0rd!\ud800", encoded) is False
        assert hasher.verify("CorrectPass1\ud800", legacy_scrypt_hash("CorrectPass1")) is False

    def test_verifies_hash_made_with_other_parameters(self, hasher):
        """Parameters are read from the stored hash, not the hasher."""
        stronger = Argon2Hasher(memory_cost=24576, time_cost=3, parallelism=1)
        encoded = stronger.hash("Passw0rd!").encoded
        assert hasher.verify("Passw0rd!", encoded) is True


class TestLegacyScrypt:
    """Test verification of legacy salt:key scrypt hashes."""

    def test_legacy_hash_verifies(self, hasher):
        encoded = legacy_scrypt_hash("CorrectPass1")
        assert hasher.verify("CorrectPass1", encoded) is True

    def test_legacy_hash_rejects_wrong_password(self, hasher):
        encoded = legacy_scrypt_hash("CorrectPass1")
        assert hasher.verify("WrongPass", encoded) is False

    def test_legacy_hash_needs_rehash(self, hasher):
        assert hasher.needs_rehash(legacy_scrypt_hash("CorrectPass1")) is True


class TestNeedsRehash:
    """Test rehash detection."""

    def test_current_hash_is_fine(self, hasher):
        encoded = hasher.hash("Passw0rd!").encoded
        assert hasher.needs_rehash(encoded) is False

    def test_other_parameters_need_rehash(self, hasher):
        weaker = Argon2Hasher(memory_cost=19456, time_cost=2, parallelism=1)
        stronger = Argon2Hasher(memory_cost=24576, time_cost=2, parallelism=1)
        assert stronger.needs_rehash(weaker.hash("Passw0rd!").encoded) is True

    @pytest.mark.parametrize("value", ["", "garbage", "$argon2id$broken"])
    def test_unparsable_needs_rehash(self, hasher, value):
        assert hasher.needs_rehash(value) is True


class TestDummyHash:
    """Test the decoy hash used for unknown accounts."""

    def test_dummy_hash_is_stable_per_hasher(self, hasher):
        assert hasher.dummy_hash() == hasher.dummy_hash()

    def test_dummy_hash_is_real_argon2(self, hasher):
        dummy = hasher.dummy_hash()
        assert dummy.startswith("$argon2id$")
        assert hasher.verify("anything", dummy) is False


class TestModuleHelpers:
    """Test the default-parameter convenience functions."""

    def test_hash_and_verify_password(self):
        encoded = hash_password("Passw0rd!")
        assert encoded.startswith("$argon2id$v=19$m=102400,t=2,p=4$")
        assert verify_password("Passw0rd!", encoded) is True
        assert verify_password("Passw0rd?", encoded) is False

"""
Argon2id Password Hashing
=========================

Implements secure password hashing using Argon2id.

Security Properties:
- Memory-hard (resistant to GPU/ASIC attacks)
- Time-hard (configurable iterations)
- Fresh 128-bit salt per hash
- Self-describing PHC encoding (parameters travel with the hash)
- Constant-time verification
- Fail-closed: malformed hashes verify as False, never raise

Parameters (OWASP 2023 recommendations):
- memory_cost: 102400 KiB (100 MB)
- time_cost: 2 iterations
- parallelism: 4 threads

Legacy Format:
    Hashes of the form ``<salt>:<derived key hex>`` were produced with
    scrypt (N=16384, r=8, p=1, salt taken as its UTF-8 text). They are
    still accepted by ``verify`` and always reported by ``needs_rehash``.

References:
- RFC 9106: Argon2 Memory-Hard Function
- RFC 7914: The scrypt Password-Based Key Derivation Function
- OWASP Password Storage Cheat Sheet
"""

from __future__ import annotations

import base64
import binascii
import secrets
import threading
from dataclasses import dataclass
from typing import Final, Optional

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import hash_secret
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from sessionguard.core.config import HashingConfig


# Argon2id parameters (OWASP 2023 recommended)
ARGON2_MEMORY_COST: Final[int] = 102400  # 100 MB in KiB
ARGON2_TIME_COST: Final[int] = 2  # iterations
ARGON2_PARALLELISM: Final[int] = 4  # threads
ARGON2_HASH_LENGTH: Final[int] = 32  # 256 bits
ARGON2_SALT_LENGTH: Final[int] = 16  # 128 bits

# Floors (OWASP minimum configuration: m=19 MiB, t=2, p=1)
ARGON2_MIN_MEMORY_COST: Final[int] = 19456
ARGON2_MIN_TIME_COST: Final[int] = 2

# Legacy scrypt parameters
SCRYPT_N: Final[int] = 2 ** 14
SCRYPT_R: Final[int] = 8
SCRYPT_P: Final[int] = 1


class InvalidInput(ValueError):
    """Raised when asked to hash an empty password."""
    pass


@dataclass(frozen=True, slots=True)
class HashResult:
    """
    Immutable result of password hashing.

    Attributes:
        hash: The derived key bytes
        salt: Random salt used
        encoded: Full PHC string for storage
    """
    hash: bytes
    salt: bytes
    encoded: str

    def __repr__(self) -> str:
        """Safe representation without exposing hash."""
        return f"HashResult(encoded_len={len(self.encoded)})"


class Argon2Hasher:
    """
    Argon2id password hasher with secure defaults.

    Usage:
        hasher = Argon2Hasher()

        # Hash a password
        encoded = hasher.hash("user_password").encoded
        store(encoded)

        # Verify a password
        is_valid = hasher.verify("user_password", encoded)

        # Upgrade old hashes after a successful login
        if hasher.needs_rehash(encoded):
            store(hasher.hash("user_password").encoded)

    The KDF is deliberately slow (hundreds of milliseconds at default
    cost). Call it from worker threads, not from an event loop.
    """

    __slots__ = (
        "_memory_cost", "_time_cost", "_parallelism",
        "_hash_length", "_salt_length", "_verifier",
        "_dummy", "_dummy_lock",
    )

    def __init__(
        self,
        memory_cost: int = ARGON2_MEMORY_COST,
        time_cost: int = ARGON2_TIME_COST,
        parallelism: int = ARGON2_PARALLELISM,
        hash_length: int = ARGON2_HASH_LENGTH,
        salt_length: int = ARGON2_SALT_LENGTH,
    ) -> None:
        """
        Initialize the Argon2id hasher.

        Args:
            memory_cost: Memory usage in KiB (default: 102400 = 100MB)
            time_cost: Number of iterations (default: 2)
            parallelism: Degree of parallelism (default: 4)
            hash_length: Output hash length in bytes (default: 32)
            salt_length: Salt length in bytes (default: 16)
        """
        if memory_cost < ARGON2_MIN_MEMORY_COST:
            raise ValueError(f"memory_cost must be at least {ARGON2_MIN_MEMORY_COST} KiB")
        if time_cost < ARGON2_MIN_TIME_COST:
            raise ValueError(f"time_cost must be at least {ARGON2_MIN_TIME_COST}")
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        if hash_length < 16:
            raise ValueError("hash_length must be at least 16 bytes")
        if salt_length < 16:
            raise ValueError("salt_length must be at least 16 bytes")

        self._memory_cost = memory_cost
        self._time_cost = time_cost
        self._parallelism = parallelism
        self._hash_length = hash_length
        self._salt_length = salt_length
        # Only used for verification and parameter checks; it reads the
        # actual parameters from each encoded hash.
        self._verifier = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_length,
            salt_len=salt_length,
            type=Type.ID,
        )
        self._dummy: Optional[str] = None
        self._dummy_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: HashingConfig) -> Argon2Hasher:
        """Build a hasher from a HashingConfig."""
        return cls(
            memory_cost=config.memory_cost,
            time_cost=config.time_cost,
            parallelism=config.parallelism,
            hash_length=config.hash_length,
            salt_length=config.salt_length,
        )

    @property
    def parameters(self) -> dict[str, int]:
        """Get current hashing parameters."""
        return {
            "memory_cost": self._memory_cost,
            "time_cost": self._time_cost,
            "parallelism": self._parallelism,
            "hash_length": self._hash_length,
            "salt_length": self._salt_length,
        }

    def hash(self, password: str) -> HashResult:
        """
        Hash a password using Argon2id.

        Args:
            password: The password to hash

        Returns:
            HashResult with hash, salt, and encoded string

        Raises:
            InvalidInput: If the password is empty or not encodable as UTF-8
        """
        if not password:
            raise InvalidInput("Password cannot be empty")

        try:
            secret = password.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidInput("Password is not valid UTF-8 text") from e

        salt = secrets.token_bytes(self._salt_length)
        encoded = hash_secret(
            secret=secret,
            salt=salt,
            time_cost=self._time_cost,
            memory_cost=self._memory_cost,
            parallelism=self._parallelism,
            hash_len=self._hash_length,
            type=Type.ID,
        ).decode("ascii")

        # Format: $argon2id$v=19$m=MEMORY,t=TIME,p=PARALLEL$SALT$HASH
        hash_b64 = encoded.rsplit("$", 1)[-1]
        return HashResult(
            hash=base64.b64decode(hash_b64 + "=" * (-len(hash_b64) % 4)),
            salt=salt,
            encoded=encoded,
        )

    def verify(self, password: str, encoded: str) -> bool:
        """
        Verify a password against an encoded hash.

        Args:
            password: The password to verify
            encoded: The encoded hash string from storage

        Returns:
            True if password matches, False otherwise (including when
            the stored hash is malformed or uses an unknown scheme)
        """
        if not password or not encoded:
            return False

        if encoded.startswith("$argon2"):
            try:
                return self._verifier.verify(encoded, password)
            except (VerificationError, InvalidHashError, ValueError):
                # ValueError covers non-ASCII hashes and unencodable passwords
                return False

        return self._verify_legacy(password, encoded)

    @staticmethod
    def _verify_legacy(password: str, encoded: str) -> bool:
        """Verify a legacy ``salt:keyhex`` scrypt hash."""
        salt, sep, key_hex = encoded.partition(":")
        if not sep or not salt or not key_hex:
            return False

        try:
            expected = binascii.unhexlify(key_hex)
        except (binascii.Error, ValueError):
            return False

        if len(expected) < 16:
            return False

        try:
            secret = password.encode("utf-8")
            salt_bytes = salt.encode("utf-8")
        except UnicodeEncodeError:
            return False

        kdf = Scrypt(
            salt=salt_bytes,
            length=len(expected),
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
        )
        try:
            kdf.verify(secret, expected)
            return True
        except InvalidKey:
            return False

    def needs_rehash(self, encoded: str) -> bool:
        """
        Check if a hash should be replaced with one using current parameters.

        Returns True for legacy scrypt hashes, Argon2 hashes with other
        parameters, and anything that cannot be parsed.
        """
        if not encoded or not encoded.startswith("$argon2id$"):
            return True
        try:
            return self._verifier.check_needs_rehash(encoded)
        except (InvalidHashError, ValueError):
            return True

    def dummy_hash(self) -> str:
        """
        Hash of a random secret nobody knows.

        Verifying against it costs the same as a real verification, so a
        login for an unknown account takes as long as a wrong password.
        """
        if self._dummy is None:
            with self._dummy_lock:
                if self._dummy is None:
                    self._dummy = self.hash(secrets.token_urlsafe(32)).encoded
        return self._dummy


# Convenience functions
_default_hasher: Optional[Argon2Hasher] = None


def _get_hasher() -> Argon2Hasher:
    """Get or create default hasher instance."""
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = Argon2Hasher()
    return _default_hasher


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id with secure defaults.

    Args:
        password: The password to hash

    Returns:
        Encoded hash string for storage
    """
    return _get_hasher().hash(password).encoded


def verify_password(password: str, encoded: str) -> bool:
    """
    Verify a password against a stored hash.

    Args:
        password: The password to verify
        encoded: The stored encoded hash

    Returns:
        True if password matches, False otherwise
    """
    return _get_hasher().verify(password, encoded)

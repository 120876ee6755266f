"""Shared fixtures for the sessionguard test suite."""

from __future__ import annotations

from datetime import datetime

import pytest
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from sessionguard.core.auth import Argon2Hasher, Authenticator, CookieFactory, SessionManager
from sessionguard.core.config import AppConfig, AuthConfig, HashingConfig
from sessionguard.core.errors import DuplicateKeyError, StoreUnavailable
from sessionguard.db import (
    InMemorySessionStore,
    InMemoryUserDirectory,
    SQLiteSessionStore,
    SQLiteUserDirectory,
)


# OWASP minimum Argon2id profile: fast enough for a test suite
CHEAP_HASHING = HashingConfig(memory_cost=19456, time_cost=2, parallelism=1)


def legacy_scrypt_hash(password: str, salt: str = "5f3c1a9e0b7d24c68e1f0a3b5c7d9e21") -> str:
    """Build a hash in the old salt:keyhex scrypt format."""
    key = Scrypt(salt=salt.encode("utf-8"), length=64, n=2 ** 14, r=8, p=1).derive(
        password.encode("utf-8")
    )
    return f"{salt}:{key.hex()}"


@pytest.fixture()
def config() -> AuthConfig:
    return AuthConfig(hashing=CHEAP_HASHING, app=AppConfig(environment="production"))


@pytest.fixture()
def hasher() -> Argon2Hasher:
    return Argon2Hasher.from_config(CHEAP_HASHING)


@pytest.fixture()
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture()
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def manager(session_store, users, config) -> SessionManager:
    return SessionManager(session_store, users, config.session, CookieFactory.from_config(config))


@pytest.fixture()
def auth(users, session_store, config, hasher) -> Authenticator:
    return Authenticator(users, session_store, config=config, hasher=hasher)


@pytest.fixture()
def sqlite_path(tmp_path):
    return tmp_path / "data" / "auth.db"


@pytest.fixture()
def sqlite_users(sqlite_path) -> SQLiteUserDirectory:
    return SQLiteUserDirectory(sqlite_path)


@pytest.fixture()
def sqlite_sessions(sqlite_path) -> SQLiteSessionStore:
    return SQLiteSessionStore(sqlite_path)


class UnreachableSessionStore:
    """SessionStore whose backend is down."""

    def put(self, session_id: str, user_id: str, expires_at: datetime, *, deadline=None) -> None:
        raise StoreUnavailable()

    def get(self, session_id: str, *, deadline=None):
        raise StoreUnavailable()

    def delete(self, session_id: str, *, deadline=None) -> None:
        raise StoreUnavailable()

    def update_expiry(self, session_id: str, expires_at: datetime, *, deadline=None) -> None:
        raise StoreUnavailable()

    def delete_for_user(self, user_id: str, *, deadline=None) -> int:
        raise StoreUnavailable()

    def delete_expired(self, now: datetime, *, deadline=None) -> int:
        raise StoreUnavailable()


class UnreachableUserDirectory:
    """UserDirectory whose backend is down."""

    def find_by_email(self, email: str, *, deadline=None):
        raise StoreUnavailable()

    def find_by_id(self, user_id: str, *, deadline=None):
        raise StoreUnavailable()

    def insert(self, email: str, password_hash: str, *, deadline=None) -> str:
        raise StoreUnavailable()

    def update_password_hash(self, user_id: str, password_hash: str, *, deadline=None) -> None:
        raise StoreUnavailable()

    def delete(self, user_id: str, *, deadline=None) -> None:
        raise StoreUnavailable()


class CollidingSessionStore(InMemorySessionStore):
    """Rejects the first ``collisions`` inserts as duplicates."""

    __slots__ = ("collisions", "attempts")

    def __init__(self, collisions: int) -> None:
        super().__init__()
        self.collisions = collisions
        self.attempts = 0

    def put(self, session_id, user_id, expires_at, *, deadline=None) -> None:
        self.attempts += 1
        if self.attempts <= self.collisions:
            raise DuplicateKeyError("session_id")
        super().put(session_id, user_id, expires_at, deadline=deadline)

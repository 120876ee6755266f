"""
Tests for the authentication facade.
"""

import threading

import pytest

from sessionguard.core.auth import (
    Argon2Hasher,
    AuthenticationError,
    Authenticator,
    LoginThrottle,
    LoginThrottled,
    ValidationError,
)
from sessionguard.core.deadline import Deadline
from sessionguard.core.errors import DeadlineExceeded, StoreUnavailable
from sessionguard.db import InMemoryUserDirectory

from conftest import UnreachableSessionStore, UnreachableUserDirectory, legacy_scrypt_hash


class TestRegister:
    """Test account registration."""

    def test_register_and_verify(self, auth):
        """Registration logs the user in with a usable cookie."""
        result = auth.register("alice@example.com", "Passw0rd!")

        assert result.ok
        assert result.error is None
        assert result.session.fresh is True
        assert result.cookie.value == result.session.id

        check = auth.verify_request(result.cookie.value)
        assert check.authenticated
        assert check.user.id == result.user_id
        assert check.user.email == "alice@example.com"

    def test_email_is_normalized(self, auth, users):
        result = auth.register("  Alice@Example.COM ", "Passw0rd!")
        assert result.ok
        assert users.find_by_id(result.user_id).email == "alice@example.com"

    def test_password_is_hashed(self, auth, users):
        result = auth.register("alice@example.com", "Passw0rd!")
        stored = users.find_by_id(result.user_id).password_hash
        assert stored != "Passw0rd!"
        assert stored.startswith("$argon2id$")

    def test_all_problems_reported(self, auth, users, session_store):
        """Invalid email and short password are reported together."""
        result = auth.register("not-an-email", "short")

        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert result.error.fields() == {"email", "password"}
        assert result.error.messages_for("password") == ["must be at least 8 characters"]
        assert len(users) == 0
        assert len(session_store) == 0

    def test_missing_fields(self, auth):
        result = auth.register("", "")
        assert result.error.messages_for("email") == ["is required"]
        assert result.error.messages_for("password") == ["is required"]

    def test_duplicate_email(self, auth, users):
        """A taken address is a validation error, case-insensitively."""
        assert auth.register("alice@example.com", "Passw0rd!").ok

        result = auth.register("ALICE@example.com", "OtherPass1")

        assert isinstance(result.error, ValidationError)
        assert result.error.messages_for("email") == ["already in use"]
        assert len(users) == 1

    def test_validation_error_serializes(self, auth):
        result = auth.register("bad", "Passw0rd!")
        assert result.error.to_dict() == {
            "error": "validation",
            "fields": [{"field": "email", "message": "must be a valid e-mail address"}],
        }

    def test_store_failure_raises(self, config, hasher, session_store):
        auth = Authenticator(UnreachableUserDirectory(), session_store, config=config, hasher=hasher)
        with pytest.raises(StoreUnavailable):
            auth.register("alice@example.com", "Passw0rd!")

    def test_expired_deadline_creates_nothing(self, auth, users):
        deadline = Deadline.after(0)
        with pytest.raises(DeadlineExceeded):
            auth.register("alice@example.com", "Passw0rd!", deadline=deadline)
        assert len(users) == 0

    def test_session_failure_rolls_back_user(self, config, hasher, users, session_store):
        """A failed session insert leaves no account, so the e-mail can register again."""
        broken = Authenticator(users, UnreachableSessionStore(), config=config, hasher=hasher)
        with pytest.raises(StoreUnavailable):
            broken.register("alice@example.com", "Passw0rd!")
        assert len(users) == 0

        working = Authenticator(users, session_store, config=config, hasher=hasher)
        result = working.register("alice@example.com", "Passw0rd!")
        assert result.ok
        assert working.verify_request(result.cookie.value).user.id == result.user_id

    def test_session_failure_rolls_back_sqlite_user(self, config, hasher, sqlite_users, sqlite_sessions):
        broken = Authenticator(sqlite_users, UnreachableSessionStore(), config=config, hasher=hasher)
        with pytest.raises(StoreUnavailable):
            broken.register("alice@example.com", "Passw0rd!")
        assert sqlite_users.find_by_email("alice@example.com") is None

        working = Authenticator(sqlite_users, sqlite_sessions, config=config, hasher=hasher)
        assert working.register("alice@example.com", "Passw0rd!").ok

    def test_failed_rollback_keeps_original_error(self, config, hasher, users):
        class UndeletableUsers(InMemoryUserDirectory):
            def delete(self, user_id, *, deadline=None):
                raise StoreUnavailable()

        directory = UndeletableUsers()
        broken = Authenticator(directory, UnreachableSessionStore(), config=config, hasher=hasher)
        with pytest.raises(StoreUnavailable):
            broken.register("alice@example.com", "Passw0rd!")
        assert len(directory) == 1

    def test_unencodable_password_is_validation_error(self, auth, users):
        result = auth.register("alice@example.com", "Passw0rd\ud800")

        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert result.error.messages_for("password") == ["contains invalid characters"]
        assert len(users) == 0


class TestAuthenticate:
    """Test login."""

    def test_login_success(self, auth):
        registered = auth.register("alice@example.com", "Passw0rd!")

        result = auth.authenticate("alice@example.com", "Passw0rd!")

        assert result.ok
        assert result.user_id == registered.user_id
        assert result.session.id != registered.session.id
        assert auth.verify_request(result.cookie.value).user.id == registered.user_id

    def test_login_is_case_insensitive_on_email(self, auth):
        auth.register("alice@example.com", "Passw0rd!")
        assert auth.authenticate(" ALICE@EXAMPLE.com", "Passw0rd!").ok

    def test_enumeration_resistance(self, auth):
        """Unknown email and wrong password are indistinguishable."""
        auth.register("alice@example.com", "Passw0rd!")

        wrong_password = auth.authenticate("alice@example.com", "WrongPass1")
        unknown_email = auth.authenticate("nobody@example.com", "Passw0rd!")

        assert isinstance(wrong_password.error, AuthenticationError)
        assert wrong_password.error == unknown_email.error
        assert wrong_password.error.to_dict() == unknown_email.error.to_dict()
        assert wrong_password.cookie is None and unknown_email.cookie is None

    def test_unknown_email_still_hashes(self, auth, monkeypatch):
        """An unknown account costs one verification like a real one."""
        calls = []
        original = Argon2Hasher.verify

        def counting_verify(self, password, encoded):
            calls.append(encoded)
            return original(self, password, encoded)

        monkeypatch.setattr(Argon2Hasher, "verify", counting_verify)

        auth.authenticate("nobody@example.com", "Passw0rd!")

        assert len(calls) == 1
        assert calls[0] == auth.hasher.dummy_hash()

    def test_failed_login_creates_no_session(self, auth, session_store):
        auth.register("alice@example.com", "Passw0rd!")
        before = len(session_store)

        auth.authenticate("alice@example.com", "WrongPass1")
        auth.authenticate("", "")

        assert len(session_store) == before

    def test_concurrent_logins_get_distinct_sessions(self, auth):
        auth.register("alice@example.com", "Passw0rd!")
        results = []

        def login():
            results.append(auth.authenticate("alice@example.com", "Passw0rd!"))

        threads = [threading.Thread(target=login) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r.ok for r in results)
        ids = {r.session.id for r in results}
        assert len(ids) == 4
        for sid in ids:
            assert auth.verify_request(sid).authenticated

    def test_legacy_hash_upgraded_on_login(self, auth, users):
        """A scrypt hash is replaced with Argon2id after a good login."""
        user_id = users.insert("legacy@example.com", legacy_scrypt_hash("OldPassw0rd"))

        result = auth.authenticate("legacy@example.com", "OldPassw0rd")

        assert result.ok
        upgraded = users.find_by_id(user_id).password_hash
        assert upgraded.startswith("$argon2id$")
        assert auth.authenticate("legacy@example.com", "OldPassw0rd").ok

    def test_corrupt_stored_hash_is_authentication_error(self, auth, users, session_store):
        """A non-ASCII stored hash fails like a wrong password instead of raising."""
        users.insert("alice@example.com", "$argon2id$v=19$m=19456,t=2,p=1$c2FsdHNhbHQ$é")

        result = auth.authenticate("alice@example.com", "Passw0rd!")

        assert isinstance(result.error, AuthenticationError)
        assert len(session_store) == 0

    def test_unencodable_password_is_authentication_error(self, auth):
        auth.register("alice@example.com", "Passw0rd!")
        result = auth.authenticate("alice@example.com", "Passw0rd!\ud800")
        assert isinstance(result.error, AuthenticationError)

    def test_current_hash_not_rewritten(self, auth, users):
        registered = auth.register("alice@example.com", "Passw0rd!")
        before = users.find_by_id(registered.user_id).password_hash

        auth.authenticate("alice@example.com", "Passw0rd!")

        assert users.find_by_id(registered.user_id).password_hash == before

    def test_store_failure_raises(self, config, hasher, users):
        auth = Authenticator(users, UnreachableSessionStore(), config=config, hasher=hasher)
        users.insert("alice@example.com", hasher.hash("Passw0rd!").encoded)
        with pytest.raises(StoreUnavailable):
            auth.authenticate("alice@example.com", "Passw0rd!")


class TestThrottling:
    """Test login throttling through the facade."""

    @pytest.fixture()
    def throttled(self, users, session_store, config, hasher):
        throttle = LoginThrottle(max_attempts=2, lockout_seconds=60)
        return Authenticator(users, session_store, config=config, hasher=hasher, throttle=throttle)

    def test_lockout_after_failures(self, throttled):
        throttled.register("alice@example.com", "Passw0rd!")

        for _ in range(2):
            assert isinstance(
                throttled.authenticate("alice@example.com", "WrongPass1").error,
                AuthenticationError,
            )

        result = throttled.authenticate("alice@example.com", "Passw0rd!")
        assert isinstance(result.error, LoginThrottled)
        assert 0 < result.error.retry_after <= 60
        assert result.cookie is None

    def test_unknown_accounts_throttled_too(self, throttled):
        throttled.authenticate("ghost@example.com", "WrongPass1")
        throttled.authenticate("GHOST@example.com", "WrongPass1")
        result = throttled.authenticate("ghost@example.com", "WrongPass1")
        assert isinstance(result.error, LoginThrottled)

    def test_success_resets_counter(self, throttled):
        throttled.register("alice@example.com", "Passw0rd!")
        throttled.authenticate("alice@example.com", "WrongPass1")
        assert throttled.authenticate("alice@example.com", "Passw0rd!").ok
        throttled.authenticate("alice@example.com", "WrongPass1")
        assert throttled.authenticate("alice@example.com", "Passw0rd!").ok

    def test_disabled_by_default(self, auth):
        auth.register("alice@example.com", "Passw0rd!")
        for _ in range(10):
            auth.authenticate("alice@example.com", "WrongPass1")
        assert auth.authenticate("alice@example.com", "Passw0rd!").ok


class TestVerifyRequestAndLogout:
    """Test the route guard and logout."""

    def test_tampered_cookie(self, auth):
        result = auth.register("alice@example.com", "Passw0rd!")
        tampered = result.cookie.value[:-1] + ("A" if result.cookie.value[-1] != "A" else "B")

        check = auth.verify_request(tampered)

        assert not check.authenticated
        assert check.cookie.is_blank

    def test_no_cookie(self, auth):
        check = auth.verify_request(None)
        assert not check.authenticated
        assert check.cookie is None

    def test_logout(self, auth):
        result = auth.register("alice@example.com", "Passw0rd!")

        cookie = auth.logout(result.cookie.value)

        assert cookie.is_blank
        assert not auth.verify_request(result.cookie.value).authenticated

    @pytest.mark.parametrize("raw", [None, "", "unknown-session"])
    def test_logout_without_session(self, auth, raw):
        assert auth.logout(raw).is_blank

    def test_logout_everywhere(self, auth):
        first = auth.register("alice@example.com", "Passw0rd!")
        second = auth.authenticate("alice@example.com", "Passw0rd!")

        cookie = auth.logout_everywhere(first.user_id)

        assert cookie.is_blank
        assert not auth.verify_request(first.cookie.value).authenticated
        assert not auth.verify_request(second.cookie.value).authenticated

    def test_verify_request_store_failure(self, config, hasher, users):
        auth = Authenticator(users, UnreachableSessionStore(), config=config, hasher=hasher)
        with pytest.raises(StoreUnavailable):
            auth.verify_request("some-session-id")

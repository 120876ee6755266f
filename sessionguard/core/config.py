"""
Secure Configuration Module
===========================

Provides immutable, environment-aware configuration with security-first defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values
- Type-safe configuration access
- Cookies are Secure everywhere except local development
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional


# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt"
})

ENVIRONMENTS: Final[frozenset[str]] = frozenset({"production", "staging", "development"})

_DAY: Final[int] = 24 * 60 * 60


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "sessionguard" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "sessionguard"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "sessionguard" / "logs"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Immutable session and cookie configuration."""

    ttl_seconds: int = 30 * _DAY
    renewal_window_seconds: int = 10 * _DAY  # last third of the TTL
    persistent: bool = True  # False -> browser-session cookie (no Max-Age)
    cookie_name: str = "auth_session"
    cookie_domain: Optional[str] = None
    cookie_secure: Optional[bool] = None  # None -> derived from environment
    max_create_attempts: int = 3

    def __post_init__(self) -> None:
        """Validate session settings."""
        if self.ttl_seconds < 60:
            raise ValueError("Session TTL must be at least 60 seconds")
        if not 0 < self.renewal_window_seconds <= self.ttl_seconds:
            raise ValueError("Renewal window must be positive and no longer than the TTL")
        if not self.cookie_name or any(c in self.cookie_name for c in " ;,=\t\r\n"):
            raise ValueError(f"Invalid cookie name: {self.cookie_name!r}")
        if self.max_create_attempts < 1:
            raise ValueError("max_create_attempts must be at least 1")


@dataclass(frozen=True, slots=True)
class HashingConfig:
    """Immutable Argon2id parameters."""

    memory_cost: int = 102400  # KiB
    time_cost: int = 2
    parallelism: int = 4
    hash_length: int = 32
    salt_length: int = 16

    def __post_init__(self) -> None:
        """Validate hashing settings."""
        if self.memory_cost < 19456:
            raise ValueError("memory_cost must be at least 19456 KiB")
        if self.time_cost < 2:
            raise ValueError("time_cost must be at least 2")
        if self.salt_length < 16:
            raise ValueError("Salt length must be at least 16 bytes")


@dataclass(frozen=True, slots=True)
class PasswordPolicy:
    """Password length limits applied at registration."""

    min_length: int = 8
    max_length: int = 128

    def __post_init__(self) -> None:
        if self.min_length < 1:
            raise ValueError("min_length must be at least 1")
        if self.max_length < self.min_length:
            raise ValueError("max_length must not be below min_length")


@dataclass(frozen=True, slots=True)
class ThrottleConfig:
    """Failed-login throttling."""

    enabled: bool = False
    max_attempts: int = 5
    lockout_seconds: int = 300  # 5 minutes

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.lockout_seconds < 1:
            raise ValueError("lockout_seconds must be at least 1")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_console: bool = True
    enable_file: bool = False
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application configuration."""

    app_name: str = "sessionguard"
    environment: str = "production"

    def __post_init__(self) -> None:
        if self.environment not in ENVIRONMENTS:
            raise ValueError(f"Unknown environment: {self.environment}")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


class AuthConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = AuthConfig.load()
        ttl = config.session.ttl_seconds
        secure = config.cookie_secure
    """

    __slots__ = (
        "_session", "_hashing", "_password", "_throttle",
        "_logging", "_app", "_frozen", "_config_hash",
    )

    _instance: Optional[AuthConfig] = None

    def __init__(
        self,
        session: Optional[SessionConfig] = None,
        hashing: Optional[HashingConfig] = None,
        password: Optional[PasswordPolicy] = None,
        throttle: Optional[ThrottleConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        """Initialize configuration. Use AuthConfig.load() for standard initialization."""
        # Use object.__setattr__ to bypass our immutability check during init
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_session", session or SessionConfig())
        object.__setattr__(self, "_hashing", hashing or HashingConfig())
        object.__setattr__(self, "_password", password or PasswordPolicy())
        object.__setattr__(self, "_throttle", throttle or ThrottleConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = (
            f"{self._session}|{self._hashing}|{self._password}|"
            f"{self._throttle}|{self._logging}|{self._app}"
        )
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def session(self) -> SessionConfig:
        return self._session

    @property
    def hashing(self) -> HashingConfig:
        return self._hashing

    @property
    def password(self) -> PasswordPolicy:
        return self._password

    @property
    def throttle(self) -> ThrottleConfig:
        return self._throttle

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @property
    def cookie_secure(self) -> bool:
        """Whether session cookies carry the Secure flag."""
        if self._session.cookie_secure is not None:
            return self._session.cookie_secure
        return not self._app.is_development

    @classmethod
    def load(cls, env_prefix: str = "SESSIONGUARD") -> AuthConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables are prefixed with SESSIONGUARD_ and use
        double underscores between section and field.

        Examples:
            SESSIONGUARD_APP__ENVIRONMENT=development
            SESSIONGUARD_SESSION__TTL_SECONDS=3600
            SESSIONGUARD_THROTTLE__ENABLED=true
            SESSIONGUARD_LOGGING__LEVEL=DEBUG

        Args:
            env_prefix: Prefix for environment variables (default: SESSIONGUARD)

        Returns:
            Configured AuthConfig instance
        """
        env = cls._parse_env_overrides(env_prefix)

        session_kwargs: dict[str, Any] = {}
        for name in ("ttl_seconds", "renewal_window_seconds", "max_create_attempts"):
            if f"session.{name}" in env:
                session_kwargs[name] = int(env[f"session.{name}"])
        if "session.persistent" in env:
            session_kwargs["persistent"] = _parse_bool(env["session.persistent"])
        if "session.cookie_name" in env:
            session_kwargs["cookie_name"] = env["session.cookie_name"]
        if "session.cookie_domain" in env:
            session_kwargs["cookie_domain"] = env["session.cookie_domain"] or None
        if "session.cookie_secure" in env:
            session_kwargs["cookie_secure"] = _parse_bool(env["session.cookie_secure"])

        hashing_kwargs: dict[str, Any] = {}
        for name in ("memory_cost", "time_cost", "parallelism"):
            if f"hashing.{name}" in env:
                hashing_kwargs[name] = int(env[f"hashing.{name}"])

        password_kwargs: dict[str, Any] = {}
        if "password.min_length" in env:
            password_kwargs["min_length"] = int(env["password.min_length"])

        throttle_kwargs: dict[str, Any] = {}
        if "throttle.enabled" in env:
            throttle_kwargs["enabled"] = _parse_bool(env["throttle.enabled"])
        for name in ("max_attempts", "lockout_seconds"):
            if f"throttle.{name}" in env:
                throttle_kwargs[name] = int(env[f"throttle.{name}"])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env:
            logging_kwargs["level"] = env["logging.level"].upper()
        if "logging.enable_console" in env:
            logging_kwargs["enable_console"] = _parse_bool(env["logging.enable_console"])
        if "logging.enable_file" in env:
            logging_kwargs["enable_file"] = _parse_bool(env["logging.enable_file"])
        if "logging.log_dir" in env:
            logging_kwargs["log_dir"] = Path(env["logging.log_dir"])

        app_kwargs: dict[str, Any] = {}
        if "app.environment" in env:
            app_kwargs["environment"] = env["app.environment"].lower()

        return cls(
            session=SessionConfig(**session_kwargs) if session_kwargs else None,
            hashing=HashingConfig(**hashing_kwargs) if hashing_kwargs else None,
            password=PasswordPolicy(**password_kwargs) if password_kwargs else None,
            throttle=ThrottleConfig(**throttle_kwargs) if throttle_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
            app=AppConfig(**app_kwargs) if app_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # Convert SESSIONGUARD_SECTION__KEY to section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: Skip sensitive keys from environment
                if _is_sensitive_key(config_key.rpartition(".")[2]):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> AuthConfig:
        """Get or create the process-wide configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return (
            f"AuthConfig(hash={self._config_hash}, app={self._app.app_name}, "
            f"environment={self._app.environment})"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("AuthConfig is immutable after initialization")
        super().__setattr__(name, value)

"""
Core module - Contains configuration, logging, errors and the auth core.
"""

from sessionguard.core.config import AuthConfig
from sessionguard.core.deadline import Deadline
from sessionguard.core.errors import DeadlineExceeded, StoreUnavailable
from sessionguard.core.logging import SecureLogFilter, configure_logging, get_secure_logger

__all__ = [
    "AuthConfig",
    "Deadline",
    "DeadlineExceeded",
    "StoreUnavailable",
    "SecureLogFilter",
    "configure_logging",
    "get_secure_logger",
]

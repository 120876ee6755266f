"""
sessionguard - Cookie-Based Session Authentication
==================================================

Credential registration, login verification, session lifecycle and
route guarding for request handlers that speak in cookie strings.

Security Notice:
- No secrets are logged
- Fail-closed design pattern
- Only infrastructure failures are raised
"""

from sessionguard.core.config import AuthConfig
from sessionguard.core.logging import configure_logging, get_secure_logger

__version__ = "0.1.0"

__all__ = ["AuthConfig", "configure_logging", "get_secure_logger", "__version__"]

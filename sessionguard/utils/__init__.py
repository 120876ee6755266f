"""
Utils module - Utility functions and helpers.

This module contains utility functions used throughout sessionguard.
"""

from sessionguard.utils.validators import (
    FieldError,
    normalize_email,
    validate_email,
    validate_password,
    validate_registration,
)

__all__ = [
    "FieldError",
    "normalize_email",
    "validate_email",
    "validate_password",
    "validate_registration",
]

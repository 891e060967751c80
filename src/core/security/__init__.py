"""
Security helpers for gateway URLs.

Provides:
    - validate_gateway_url(): Reject base URLs that cannot be joined onto
    - sanitize_url(): Remove auth tokens from logged URLs
"""

from core.security.url_validation import (
    ALLOWED_SCHEMES,
    REDACTED,
    sanitize_url,
    validate_gateway_url,
)

__all__ = [
    "validate_gateway_url",
    "sanitize_url",
    "ALLOWED_SCHEMES",
    "REDACTED",
]

"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    PipelineError,
    AuthError,
    TransientError,
    PermanentError,
    # Permanent errors
    ValidationError,
    ConfigurationError,
    # Domain errors
    GatewayError,
    StoreError,
    # Classification utilities
    classify_gateway_status,
    classify_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "AuthError",
    "TransientError",
    "PermanentError",
    # Permanent errors
    "ValidationError",
    "ConfigurationError",
    # Domain errors
    "GatewayError",
    "StoreError",
    # Classification utilities
    "classify_gateway_status",
    "classify_exception",
]

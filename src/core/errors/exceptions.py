"""
Exception types and error classification for the backfill pipeline.

Provides:
- ErrorCategory enum for reporting decisions
- Typed exception hierarchy for pipeline errors
- Error classification utilities
"""

import asyncio
from enum import Enum
from typing import Optional

import aiohttp
import asyncpg


class ErrorCategory(Enum):
    """
    Classification of error types.

    The backfill makes a single pass, so categories drive logging, metrics and
    the run summary rather than retries. An operator re-running the pass can
    expect TRANSIENT failures to clear up and PERMANENT ones to stay.

    Categories:
        TRANSIENT: Temporary failures (timeouts, 429, 5xx, gateway 524)
        AUTH: Gateway rejected our credentials (401, 403)
        PERMANENT: Will not succeed on re-run (404, malformed data)
        UNKNOWN: Unclassified
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
        category: Optional[ErrorCategory] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        if category is not None:
            self.category = category
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether a later re-run could succeed."""
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause is not None and str(self.cause):
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class AuthError(PipelineError):
    """Base class for authentication errors."""

    category = ErrorCategory.AUTH


class TransientError(PipelineError):
    """Base class for transient errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(PipelineError):
    """Base class for permanent errors."""

    category = ErrorCategory.PERMANENT


class ValidationError(PermanentError):
    """Data failed validation (bad hash length, malformed row)."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass


# =============================================================================
# Domain Errors
# =============================================================================


class GatewayError(PipelineError):
    """
    IPFS gateway fetch failed.

    Raised for every non-200 response as well as transport failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        cause: Optional[Exception] = None,
        category: Optional[ErrorCategory] = None,
    ):
        self.status_code = status_code
        self.body = body
        if category is None:
            if status_code is not None:
                category = classify_gateway_status(status_code)
            elif cause is not None:
                category = classify_exception(cause)
        super().__init__(
            message,
            cause=cause,
            context={"status_code": status_code} if status_code else None,
            category=category,
        )


class StoreError(PipelineError):
    """Postgres query or insert failed."""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        category: Optional[ErrorCategory] = None,
    ):
        if category is None and cause is not None:
            category = classify_exception(cause)
        super().__init__(message, cause=cause, category=category)


# =============================================================================
# Classification Utilities
# =============================================================================


def classify_gateway_status(status: int) -> ErrorCategory:
    """
    Classify a non-200 gateway status code.

    Gateways disagree on how to report a CID they cannot find: ipfs.io
    answers 504 after two minutes, cloudflare answers 524 after twenty
    seconds, Pinata answers 404. The 5xx forms are treated as transient
    since the content may simply not have propagated yet.

    Args:
        status: HTTP status code

    Returns:
        ErrorCategory for the status
    """
    if status in (401, 403):
        return ErrorCategory.AUTH
    if status in (408, 429):
        return ErrorCategory.TRANSIENT
    if 400 <= status < 500:
        return ErrorCategory.PERMANENT
    if 500 <= status < 600:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCategory:
    """
    Classify an arbitrary exception into an ErrorCategory.

    Args:
        exc: Exception to classify

    Returns:
        ErrorCategory
    """
    if isinstance(exc, PipelineError):
        return exc.category

    # Timeouts and dropped connections
    if isinstance(exc, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return ErrorCategory.TRANSIENT
    if isinstance(exc, aiohttp.ClientResponseError):
        return classify_gateway_status(exc.status)
    if isinstance(exc, aiohttp.ClientError):
        return ErrorCategory.TRANSIENT

    # Postgres
    if isinstance(exc, asyncpg.exceptions.ClientConfigurationError):
        return ErrorCategory.PERMANENT
    if isinstance(exc, asyncpg.InvalidPasswordError):
        return ErrorCategory.AUTH
    if isinstance(
        exc,
        (
            asyncpg.PostgresConnectionError,
            asyncpg.CannotConnectNowError,
            asyncpg.InterfaceError,
            asyncpg.TooManyConnectionsError,
        ),
    ):
        return ErrorCategory.TRANSIENT
    if isinstance(exc, asyncpg.PostgresError):
        return ErrorCategory.PERMANENT

    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN

"""
URL validation and sanitization for gateway requests.

The gateway base URL must be usable as a base for path joins, and the
configured query string usually carries an access token, so every query
value is redacted before a URL reaches a log line.
"""

from typing import Set, Tuple
from urllib.parse import urlsplit, urlunsplit


# Allowed schemes for gateway base URLs
ALLOWED_SCHEMES: Set[str] = {"https", "http"}

REDACTED = "[REDACTED]"


def validate_gateway_url(url: str) -> Tuple[bool, str]:
    """
    Validate that a URL can serve as a gateway base.

    Args:
        url: Base URL to validate

    Returns:
        (is_valid, error_message)
        - (True, "") if valid
        - (False, "error description") if invalid

    Examples:
        >>> validate_gateway_url("https://ipfs.io")
        (True, '')

        >>> validate_gateway_url("mailto:ops@example.com")
        (False, 'Unsupported scheme: mailto')
    """
    if not url:
        return False, "Empty URL"

    try:
        parsed = urlsplit(url)
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False, f"Unsupported scheme: {parsed.scheme or '(none)'}"

    if not parsed.hostname:
        return False, "No hostname in URL"

    if parsed.query or parsed.fragment:
        return False, "Base URL must not carry a query or fragment"

    return True, ""


def sanitize_url(url: str) -> str:
    """
    Replace every query parameter value with [REDACTED].

    Args:
        url: URL that may contain a gateway token

    Returns:
        URL safe to log
    """
    if not url:
        return url

    try:
        parsed = urlsplit(url)
    except ValueError:
        return url

    if not parsed.query:
        return url

    sanitized_params = []
    for param in parsed.query.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            sanitized_params.append(f"{key}={REDACTED}")
        else:
            sanitized_params.append(REDACTED)

    return urlunsplit(parsed._replace(query="&".join(sanitized_params)))

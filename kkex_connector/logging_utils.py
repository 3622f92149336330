"""
KKEX Connector - Secure Logging Utilities.

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys or secrets
2. Mask the request signature
3. Sanitize form-encoded bodies before they reach a log line

============================================================
"""

import re
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode


# Parameter names that should be masked
SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "secret",
    "secret_key",
    "sign",
    "signature",
}

# Header names that should be masked
SENSITIVE_HEADERS = {
    "authorization",
    "api-key",
    "x-api-key",
}

# Long opaque tokens: API keys and MD5 signatures are 32 chars
_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9]{32,}")


def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Mask sensitive headers."""
    if not headers:
        return {}
    return {
        key: mask_value(str(value)) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Mask sensitive parameters.

    Args:
        params: Request parameters

    Returns:
        Parameters with sensitive values masked
    """
    if not params:
        return {}

    masked: Dict[str, Any] = {}
    for key, value in params.items():
        if key.lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        elif isinstance(value, str) and _TOKEN_PATTERN.search(value):
            masked[key] = _TOKEN_PATTERN.sub("***KEY***", value)
        else:
            masked[key] = value
    return masked


def mask_body(body: Optional[str]) -> Optional[str]:
    """Mask sensitive fields of a form-encoded body."""
    if not body:
        return body
    pairs = parse_qsl(body, keep_blank_values=True)
    return urlencode(list(mask_params(dict(pairs)).items()))


def mask_url(url: str) -> str:
    """Mask sensitive query parameters in a URL."""
    if not url:
        return url
    for param in SENSITIVE_PARAMS:
        pattern = re.compile(f"({param}=)([^&]+)", re.IGNORECASE)
        url = pattern.sub(lambda m: f"{m.group(1)}***", url)
    return url

"""Input validation for quotesync.

``ValidationMixin`` checks what the user types into :class:`~quotesync.core.QuoteSync`.
The module-level helpers are shared with the importer (record content),
the config layer (intervals, timeouts) and the gateway (backend URL).
"""

import logging
import math
import re
from typing import Any, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Content limits for a single record
MAX_TEXT_LENGTH = 2000
MAX_CATEGORY_LENGTH = 200

# Hosts a backend may be reached on over plain http
LOCAL_HOSTS = {"localhost", "127.0.0.1"}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_string(
    value: Any, field_name: str, max_length: int = 1000, required: bool = True
) -> str:
    """Return ``value`` trimmed and free of control characters.

    Newlines and tabs survive, since quotes may span lines. Raises
    ValueError for non-strings, blank required values and overlong input.
    """
    if value is None and not required:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string, got {type(value).__name__}")
    if required and not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters, got {len(value)})")
    return _CONTROL_CHARS.sub("", value).strip()


def sanitize_number(
    value: Any,
    field_name: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    default: Optional[float] = None,
) -> float:
    """Coerce a config value to a finite float within bounds.

    Env vars and CLI flags arrive as strings, so numeric strings are parsed.
    """
    if value is None:
        if default is not None:
            return default
        raise ValueError(f"{field_name} is required")
    # bool is an int subclass; "true" seconds makes no sense
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got bool")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError(f"{field_name} must be a number, got {value!r}")
    if not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number, got {type(value).__name__}")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise ValueError(f"{field_name} must be a finite number, got {value}")
    if min_val is not None and value < min_val:
        raise ValueError(f"{field_name} must be >= {min_val}, got {value}")
    if max_val is not None and value > max_val:
        raise ValueError(f"{field_name} must be <= {max_val}, got {value}")
    return float(value)


def validate_backend_url(url: str) -> "str | None":
    """Normalize the quote server URL, or return None if it is unusable.

    https is required except for a server on this machine. The trailing
    slash is dropped so ``/quotes`` can be appended directly.
    """
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme not in {"https", "http"} or not parsed.netloc:
        logger.warning(f"Ignoring backend URL {url!r}: expected http(s)://host")
        return None
    if parsed.scheme == "http" and (parsed.hostname or "") not in LOCAL_HOSTS:
        logger.warning(f"Ignoring backend URL {url!r}: plain http is only allowed for localhost")
        return None
    return url.rstrip("/")


class ValidationMixin:
    """Input validation operations for QuoteSync."""

    def _validate_content(self, text: Any, category: Any) -> tuple[str, str]:
        """Validate the content fields of a new record."""
        return (
            sanitize_string(text, "text", MAX_TEXT_LENGTH),
            sanitize_string(category, "category", MAX_CATEGORY_LENGTH),
        )

    def _validate_keyword(self, keyword: Optional[str]) -> Optional[str]:
        """Validate a filter keyword. Blank means no filter."""
        if keyword is None:
            return None
        return sanitize_string(keyword, "keyword", 200, required=False) or None

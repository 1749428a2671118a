"""
Request hygiene helpers: body size limits and free-text query sanitisation.
"""

from __future__ import annotations

import html
import logging
import re

logger = logging.getLogger(__name__)

MAX_SEARCH_LENGTH = 100

# AQL and script fragments that have no place in a search box
QUERY_INJECTION_PATTERNS = [
    r"(\b(FOR|FILTER|RETURN|REMOVE|UPSERT|INSERT|UPDATE|REPLACE)\b\s+\w+\s+\b(IN|WITH)\b)",
    r"(\b(script|javascript|onerror|onload)\s*=)",
    r"(<\s*script)",
]

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_html(text: str) -> str:
    """Escape HTML entities in user supplied text."""
    if not isinstance(text, str):
        return text
    return html.escape(text, quote=True)


def detect_query_injection(text: str) -> bool:
    if not isinstance(text, str):
        return False
    for pattern in QUERY_INJECTION_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            logger.warning(f"Potential query injection detected: {pattern}")
            return True
    return False


def sanitize_search_term(term: str | None) -> str | None:
    """Trim, strip control characters and cap a search term. Raises ValueError on injection attempts."""
    if term is None:
        return None
    cleaned = _CONTROL_CHARS.sub("", term).strip()[:MAX_SEARCH_LENGTH]
    if not cleaned:
        return None
    if detect_query_injection(cleaned):
        raise ValueError("Invalid search term")
    return cleaned


def validate_request_size(content_length: int | None, max_size_mb: int) -> None:
    """Validate request body size."""
    if content_length is None:
        return
    max_size_bytes = max_size_mb * 1024 * 1024
    if content_length > max_size_bytes:
        raise ValueError(f"Request body too large. Maximum size: {max_size_mb}MB")

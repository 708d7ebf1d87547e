"""Shared API error classification helpers.

Maps HTTP failures from chat-completion providers onto semantic categories
so clients can decide which errors are worth retrying.
"""

from typing import Literal, NoReturn

import httpx

ErrorCategory = Literal["rate_limit", "transient", "auth", "model_not_found"]

TRANSIENT_STATUS_CODES = frozenset({500, 502, 503, 504})


def classify_status(status_code: int, error_text: str = "") -> ErrorCategory | None:
    """Classify an HTTP error status (and body text) into an error category.

    Example:
        >>> classify_status(429)
        'rate_limit'
        >>> classify_status(503)
        'transient'
        >>> classify_status(401)
        'auth'
        >>> classify_status(404)
        'model_not_found'
        >>> classify_status(418) is None
        True
    """
    text = error_text.lower()

    if status_code == 429 or "rate limit" in text:
        return "rate_limit"
    if status_code in TRANSIENT_STATUS_CODES:
        return "transient"
    if status_code in (401, 403) or "unauthorized" in text or "invalid api key" in text:
        return "auth"
    if status_code == 404 or ("model" in text and "not found" in text):
        return "model_not_found"
    return None


def raise_for_httpx_status_error(
    exc: httpx.HTTPStatusError,
    error_map: dict[ErrorCategory, type[Exception]],
    base_error: type[Exception],
    model_context: str = "",
) -> NoReturn:
    """Classify an httpx HTTPStatusError and raise the mapped exception.

    Args:
        exc: The httpx HTTPStatusError to classify
        error_map: Mapping of error categories to exception types
        base_error: Fallback exception type for unclassified errors
        model_context: Optional model ID for richer error messages
    """
    status_code = exc.response.status_code
    category = classify_status(status_code, exc.response.text or "")

    if category is not None and category in error_map:
        if category == "model_not_found" and model_context:
            message = f"Invalid model ID '{model_context}': {exc}"
        else:
            message = f"{category.replace('_', ' ').capitalize()} ({status_code}): {exc}"
        raise error_map[category](message) from exc

    raise base_error(f"API error ({status_code}): {exc}") from exc

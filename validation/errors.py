"""
Centralized error classification for remote fetch failures.

A failed fetch from the vendor ESL platform is never reported as drift. The
classification here only labels the failure so operators can tell a blip
(transient, will clear on the next run) from a configuration or data problem
(permanent, needs attention).
"""

import logging
from typing import Type


class TransientError(Exception):
    """Retry-able errors (network, timeout, 5xx)"""
    pass


class PermanentError(Exception):
    """Non-retry-able errors (4xx except 429, validation)"""
    pass


# HTTP status codes that indicate transient (retry-able) errors
# 429: Rate limited - retry after backoff
# 5xx: Server errors - usually temporary
TRANSIENT_CODES = frozenset({429, 500, 502, 503, 504})

# HTTP status codes that indicate permanent (non-retry-able) errors
# 400: Bad request - data issue
# 401: Unauthorized - credentials issue
# 403: Forbidden - permission issue
# 404: Not found - store unknown to the vendor platform
# 422: Unprocessable entity - validation failure
PERMANENT_CODES = frozenset({400, 401, 403, 404, 405, 410, 422})

# Module logger
logger = logging.getLogger(__name__)


def classify_http_error(status_code: int) -> Type[Exception]:
    """
    Classify an HTTP status code as transient or permanent error.

    Args:
        status_code: HTTP response status code

    Returns:
        TransientError class for retry-able errors
        PermanentError class for non-retry-able errors
    """
    if status_code in TRANSIENT_CODES:
        logger.debug(f"HTTP {status_code} classified as transient")
        return TransientError

    if status_code in PERMANENT_CODES:
        logger.debug(f"HTTP {status_code} classified as permanent")
        return PermanentError

    if 400 <= status_code < 500:
        # Unknown 4xx = permanent (client error, unlikely to change)
        return PermanentError

    # Unknown 5xx and anything unexpected = transient
    return TransientError


def classify_exception(exc: Exception) -> Type[Exception]:
    """
    Classify an exception as transient or permanent error.

    Handles various exception types:
    - Already classified: Return same type
    - HTTP responses (httpx): Extract status code
    - Network errors: Transient (ConnectionError, TimeoutError, OSError)
    - Validation errors: Permanent (ValueError, TypeError, KeyError, AttributeError)
    - Unknown: Transient

    Args:
        exc: The exception to classify

    Returns:
        TransientError class for retry-able errors
        PermanentError class for non-retry-able errors
    """
    if isinstance(exc, TransientError):
        return TransientError

    if isinstance(exc, PermanentError):
        return PermanentError

    # Check for HTTP response (httpx.HTTPStatusError or client errors carrying one)
    response = getattr(exc, 'response', None)
    if response is not None:
        status_code = getattr(response, 'status_code', None)
        if status_code is not None:
            logger.debug(f"Exception has HTTP response with status {status_code}")
            return classify_http_error(status_code)

    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        logger.debug(f"Network error classified as transient: {type(exc).__name__}")
        return TransientError

    if isinstance(exc, (ValueError, TypeError, KeyError, AttributeError)):
        logger.debug(f"Validation error classified as permanent: {type(exc).__name__}")
        return PermanentError

    logger.debug(f"Unknown exception classified as transient: {type(exc).__name__}")
    return TransientError


def error_kind(exc: Exception) -> str:
    """Return "transient" or "permanent" for an exception."""
    return "permanent" if classify_exception(exc) is PermanentError else "transient"

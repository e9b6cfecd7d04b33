"""
Utility functions for logging upstream failures with enough context to
diagnose them (exception type, upstream URL, attempt number).
"""

import logging
from typing import Optional

import httpx

from minimirror.utils import redact_url


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ might fail.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object, falling back to safe alternatives
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _request_url(exception: Exception) -> Optional[str]:
    # httpx.RequestError.request raises RuntimeError when no request is attached
    if not isinstance(exception, httpx.RequestError):
        return None
    try:
        return redact_url(str(exception.request.url))
    except RuntimeError:
        return None


def format_exception_message(exception: Optional[BaseException]) -> str:
    """
    Format an exception as ``Type: message``, appending the upstream URL for
    httpx request errors. Empty messages (common for httpx timeouts) fall
    back to the exception type alone.
    """
    if exception is None:
        return "None"
    name = type(exception).__name__
    message = _safe_str(exception)
    text = f"{name}: {message}" if message else name
    url = _request_url(exception)
    if url:
        text = f"{text} (url={url})"
    return text


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Optional[BaseException],
    level: int = logging.ERROR,
    include_traceback: bool = False,
) -> None:
    """
    Log an exception with its type and upstream context.

    Transport errors are expected in a proxy and are logged without a
    traceback unless ``include_traceback`` is set.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Fetch]", "[Retry]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
        include_traceback: Attach ``exc_info`` to the record
    """
    message = f"{prefix} {format_exception_message(exception)}"
    if include_traceback and exception is not None:
        logger.log(level, message, exc_info=exception)
    else:
        logger.log(level, message)

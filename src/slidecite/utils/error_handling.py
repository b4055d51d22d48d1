"""Error types and error handling utilities."""
import logging
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SlideCiteError(Exception):
    """Base exception for slide citation errors."""


class StoreIOError(SlideCiteError):
    """Raised when the citation block or a slide tag cannot be read or written."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class MalformedTemplateConfig(SlideCiteError, ValueError):
    """Raised when a citation format fails shape validation."""


class ZoteroAPIError(SlideCiteError):
    """Raised when the Zotero Web API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (Status: {self.status_code})"
        return self.message


def store_io_handler(action: str) -> Callable:
    """
    Decorator for document persistence calls.

    Any exception raised by the wrapped function is re-raised as a
    StoreIOError carrying the original exception. Errors that are already
    StoreIOError pass through unchanged.

    Args:
        action: Short description used in the error message, e.g. "add citation"
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except StoreIOError:
                raise
            except Exception as e:
                logger.error(f"Store error in {func.__name__}: {str(e)}")
                raise StoreIOError(f"Failed to {action}", e) from e
        return wrapper
    return decorator

"""API utilities with retry and error handling."""
import logging
import time
from functools import wraps
from typing import Any, Callable, TypeVar, Optional, List, cast

import requests
from requests import Response
from requests.exceptions import RequestException

from .error_handling import ZoteroAPIError

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def retry(
    max_retries: int = 3,
    backoff_factor: float = 0.5,
    status_codes: Optional[List[int]] = None,
) -> Callable[[F], F]:
    """
    Retry decorator with exponential backoff.

    Network errors are always retried. API errors are retried only when their
    status code is one of ``status_codes``.

    Args:
        max_retries: Maximum number of retries
        backoff_factor: Backoff multiplier (e.g., 0.5 = 0.5, 1, 2, 4, ... seconds)
        status_codes: HTTP status codes to retry on. Defaults to [429, 500, 502, 503, 504]
    """
    if status_codes is None:
        status_codes = [429, 500, 502, 503, 504]

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            retries = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except (RequestException, ZoteroAPIError) as e:
                    if isinstance(e, ZoteroAPIError) and e.status_code not in status_codes:
                        raise
                    retries += 1
                    if retries > max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func.__name__}: {str(e)}"
                        )
                        raise

                    wait_time = backoff_factor * (2 ** (retries - 1))
                    logger.warning(
                        f"Retry {retries}/{max_retries} for {func.__name__} "
                        f"after error: {str(e)}. Waiting {wait_time:.2f} seconds..."
                    )
                    time.sleep(wait_time)

        return cast(F, wrapper)
    return decorator


def handle_api_response(response: Response, api_name: str = "API") -> Any:
    """
    Handle API response and raise appropriate exceptions.

    Args:
        response: The response object from requests
        api_name: Name of the API for error messages

    Returns:
        Parsed JSON response

    Raises:
        ZoteroAPIError: If the response indicates an error
    """
    try:
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else response.status_code
        error_msg = f"{api_name} request failed"
        logger.error(f"{error_msg} (Status: {status_code}): {str(e)}")
        raise ZoteroAPIError(error_msg, status_code) from e
    except ValueError as e:
        error_msg = f"{api_name} returned invalid JSON"
        logger.error(f"{error_msg}: {response.text[:200]}...")
        raise ZoteroAPIError(error_msg, response.status_code) from e

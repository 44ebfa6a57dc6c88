"""Retry decorator with exponential backoff for outbound network calls.

hh.ru and the text-generation APIs answer with 429 or 5xx when they are
busy.  Raise those through ``raise_for_transient`` inside the decorated call
and pass ``should_retry=is_transient`` so they get another attempt while
4xx replies fail at once.
"""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import requests

logger = logging.getLogger(__name__)

TRANSIENT_STATUS = frozenset({429, 500, 502, 503, 504})


def is_transient(exc: BaseException) -> bool:
    """Connection trouble, timeouts and 429/5xx replies."""
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    response = getattr(exc, "response", None)
    return response is not None and response.status_code in TRANSIENT_STATUS


def raise_for_transient(response: requests.Response) -> requests.Response:
    """Raise ``HTTPError`` for a busy reply; any other response is returned."""
    if response.status_code in TRANSIENT_STATUS:
        raise requests.HTTPError(
            f"HTTP {response.status_code} from {getattr(response, 'url', '?')}",
            response=response,
        )
    return response


def _delay(attempt: int, base: float, factor: float, cap: float, jitter: bool) -> float:
    delay = min(base * (factor ** (attempt - 1)), cap)
    return delay * (0.5 + random.random()) if jitter else delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
) -> Callable:
    """Decorator: retries the wrapped function with exponential backoff.

    An exception gets another attempt only if it is one of ``retryable`` and
    ``should_retry`` (when given) accepts it.  Anything else propagates
    immediately, and the last failure is re-raised unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if should_retry is not None and not should_retry(exc):
                        raise
                    if attempt >= max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__, max_attempts, exc,
                        )
                        raise
                    delay = _delay(attempt, base_delay, backoff_factor, max_delay, jitter)
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator

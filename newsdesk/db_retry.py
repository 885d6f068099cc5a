"""
Store retry utilities for handling transient connection errors.

Provides a decorator for retrying durable-store operations when the database
or Redis connection drops, and for surfacing everything else as
StorageFailure.
"""

import logging
import time
import functools
from typing import TypeVar, Callable

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError, DBAPIError
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from newsdesk.news.errors import StorageFailure

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY = 1


def is_connection_error(exc: Exception) -> bool:
    """Check if exception is a transient connection error worth retrying."""
    if isinstance(exc, (RedisConnectionError, RedisTimeoutError)):
        return True
    error_msg = str(exc).lower()
    connection_indicators = [
        'ssl connection has been closed',
        'connection reset',
        'connection refused',
        'connection timed out',
        'server closed the connection',
        'lost connection',
        'could not connect',
        'network error',
        'broken pipe',
        'database is locked',
    ]
    return any(indicator in error_msg for indicator in connection_indicators)


def _retry_settings(max_attempts, delay):
    if has_app_context():
        attempts = max_attempts or current_app.config.get('DB_RETRY_ATTEMPTS', DEFAULT_ATTEMPTS)
        base_delay = current_app.config.get('DB_RETRY_DELAY', DEFAULT_DELAY) if delay is None else delay
    else:
        attempts = max_attempts or DEFAULT_ATTEMPTS
        base_delay = DEFAULT_DELAY if delay is None else delay
    return attempts, base_delay


def with_store_retry(max_attempts: int = None, delay: float = None, on_error: Callable = None):
    """
    Decorator for retrying store operations on transient connection errors.

    Transient errors are retried with linear backoff. Non-transient backend
    errors, and transient ones that outlast the attempts, are raised as
    StorageFailure. StorageFailure raised by the operation itself passes
    through unchanged (after on_error) and is never retried.

    Args:
        max_attempts: Maximum attempts (default DB_RETRY_ATTEMPTS from config)
        delay: Base delay between retries in seconds (default DB_RETRY_DELAY)
        on_error: Optional cleanup hook called with the store instance after
                  a failed attempt (e.g. rolling back a session)

    Usage:
        @with_store_retry()
        def get(self, key):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            attempts, base_delay = _retry_settings(max_attempts, delay)

            for attempt in range(1, attempts + 1):
                try:
                    return func(self, *args, **kwargs)

                except StorageFailure:
                    if on_error:
                        on_error(self)
                    raise

                except (OperationalError, DBAPIError, RedisConnectionError, RedisTimeoutError) as e:
                    if on_error:
                        on_error(self)

                    if not is_connection_error(e) or attempt == attempts:
                        logger.error(
                            f"Store error in {func.__name__} (attempt {attempt}/{attempts}): {e}"
                        )
                        raise StorageFailure(f"{func.__name__} failed: {e}") from e

                    logger.warning(
                        f"Transient store error in {func.__name__} (attempt {attempt}/{attempts}): {e}. "
                        f"Retrying in {base_delay * attempt}s..."
                    )
                    time.sleep(base_delay * attempt)

                except Exception as e:
                    if on_error:
                        on_error(self)
                    logger.error(f"Unexpected store error in {func.__name__}: {e}", exc_info=True)
                    raise StorageFailure(f"{func.__name__} failed: {e}") from e

        return wrapper
    return decorator

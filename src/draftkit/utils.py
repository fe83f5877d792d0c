"""Utility functions for draftkit"""

import logging
import time
from functools import wraps
from pathlib import Path
from typing import Iterator, Literal, Tuple, Type

logger = logging.getLogger(__name__)


BackoffStrategy = Literal["exponential", "fixed"]


def canonicalify(p: Path | str) -> Path:
    return Path(p).expanduser().resolve()


def ensure_path(p: Path | str) -> Path:
    path = canonicalify(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_parent(p: Path | str) -> Path:
    """Returns the canonical form of file path ``p`` after creating its directory."""
    path = canonicalify(p)
    if not path.parent.exists():
        ensure_path(path.parent)
        logger.info(f"Created directory: {path.parent}")
    return path


def backoff_delays(
    attempts: int, initial_delay: float, backoff: BackoffStrategy = "exponential"
) -> Iterator[float]:
    """Yields the sleep before each retry, i.e. ``attempts - 1`` values."""
    delay = initial_delay
    for _ in range(attempts - 1):
        yield delay
        if backoff == "exponential":
            delay *= 2


def retry(
    times: int,
    initial_delay: float = 1,
    backoff: BackoffStrategy = "exponential",
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
):
    """Calls the decorated function up to ``times`` times while it raises ``exceptions``.

    Used around store writes that can hit a locked SQLite database. The last
    failure is re-raised unchanged.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt, delay in enumerate(backoff_delays(times, initial_delay, backoff), 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    logger.warning(
                        f"{func.__qualname__} failed (attempt {attempt}/{times}), "
                        f"retrying in {delay}s: {str(e)[:100]}"
                    )
                time.sleep(delay)

            try:
                return func(*args, **kwargs)
            except exceptions:
                logger.error(f"{func.__qualname__} failed, giving up after {times} attempt(s)")
                raise

        return wrapper

    return decorator


def sanitize(sensitive: str | None, keep_chars: int = 2) -> str:
    """Mask a user identity for logging.

    Email addresses keep the first ``keep_chars`` characters of the local
    part and the domain; anything else keeps ``keep_chars`` characters at
    each end.

    Examples:
        >>> sanitize("editor@example.com")
        'ed***@example.com'
        >>> sanitize("service-account-42")
        'se***42'
        >>> sanitize(None)
        '***'
    """
    if not sensitive:
        return "***"

    local, at, domain = sensitive.partition("@")
    if at and domain:
        return f"{local[:keep_chars]}***@{domain}"

    if len(sensitive) <= keep_chars * 2:
        return "***"
    return f"{sensitive[:keep_chars]}***{sensitive[-keep_chars:]}"

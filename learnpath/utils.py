"""
Utility helpers for the learning-path engine.

Provides:
- Structured logging configuration with timestamps.
- Elapsed-time logging for CLI steps.
- Retry with exponential back-off.
- Device-local calendar date helpers.
"""

import contextlib
import logging
import time
from datetime import date, datetime
from typing import Any, Callable, Generator, Optional, TypeVar, Union

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(
    level: int = logging.INFO,
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt: str = "%Y-%m-%dT%H:%M:%S%z",
) -> None:
    """Configure the root logger with timestamped structured output."""
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=True)


@contextlib.contextmanager
def timed(label: str) -> Generator[None, None, None]:
    """Context manager that logs elapsed wall-clock time for *label*."""
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    logger.info("%s completed in %.2fs.", label, elapsed)


# ---------------------------------------------------------------------------
# Retry with exponential back-off
# ---------------------------------------------------------------------------


def retry_with_backoff(
    fn: Callable[..., T],
    *args: Any,
    max_retries: int = 3,
    base_delay: float = 0.5,
    retry_on: tuple = (Exception,),
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> T:
    """Call *fn* with retry and exponential back-off on *retry_on* errors.

    Exceptions outside *retry_on* propagate immediately.
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    last_exc: BaseException = RuntimeError("unreachable")
    for attempt in range(1, max_retries + 1):
        try:
            return fn(*args, **kwargs)
        except retry_on as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Attempt %d/%d failed for %s: %s, retrying in %.1fs",
                attempt,
                max_retries,
                getattr(fn, "__name__", repr(fn)),
                exc,
                delay,
            )
            time.sleep(delay)

    raise last_exc


# ---------------------------------------------------------------------------
# Calendar dates
# ---------------------------------------------------------------------------


def local_now() -> datetime:
    """Return the current device-local time (naive)."""
    return datetime.now()


def to_local_date(value: Union[datetime, date, str]) -> str:
    """Return the ISO calendar date (``YYYY-MM-DD``) for *value*.

    Timezone-aware datetimes are converted to device-local time first;
    naive datetimes are taken as already local.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date().isoformat()
    return value.isoformat()

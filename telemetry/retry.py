from __future__ import annotations

import random
import time
from typing import Callable, Iterable, Type, TypeVar

from telemetry.logging_utils import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def _compute_backoff(attempt: int, base_delay: float, factor: float, jitter: float) -> float:
    delay = base_delay * (factor ** attempt)
    if jitter:
        delay += random.uniform(0, jitter)
    return delay


def retry_with_backoff(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    base_delay: float = 0.25,
    factor: float = 2.0,
    jitter: float = 0.05,
    retry_exceptions: Iterable[Type[BaseException]] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn``; on a listed exception wait and try again, re-raising after the last attempt."""
    exceptions = tuple(retry_exceptions)
    for attempt in range(retries):
        try:
            return fn()
        except exceptions as exc:
            if attempt >= retries - 1:
                raise
            delay = _compute_backoff(attempt, base_delay, factor, jitter)
            logger.warning(
                "backend_call_retry",
                extra={"attempt": attempt + 1, "delay_s": round(delay, 3), "error": type(exc).__name__},
            )
            sleep(delay)
    return fn()

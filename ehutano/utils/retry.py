# FILE: ehutano/utils/retry.py
from __future__ import annotations

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_backoff(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    factor: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception, ),
    sleep: Callable[[float], None] = time.sleep,
    context: str = "",
) -> T:
    """
    Call fn, retrying on `retry_on` with exponential backoff
    (base_delay, base_delay*factor, ...). The last error is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt == attempts:
                raise
            delay = base_delay * (factor**(attempt - 1))
            logger.warning("%s failed (attempt %d/%d): %s. Retrying in %.1fs",
                           context or "operation", attempt, attempts, e, delay)
            sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover

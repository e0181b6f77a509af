from __future__ import annotations

import logging
import time
from typing import Callable

from tuition_desk.config import settings


logger = logging.getLogger('tuition_desk.metrics')


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        threshold_value = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms

        def wrapper(*args: object, **kwargs: object):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= threshold_value:
                    logger.info('service_timer label=%s duration_ms=%.2f event=service', label, duration_ms)

        wrapper.__name__ = getattr(func, '__name__', label)
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def poll_until(
    condition: Callable[[], Optional[T]],
    timeout: float,
    interval: float = 2.0,
    backoff: float = 1.0,
    max_interval: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[T]:
    """Call ``condition`` until it returns something other than None.

    Sleeps ``interval`` seconds between attempts, multiplying the interval by
    ``backoff`` after each miss (capped at ``max_interval``). Returns the first
    non-None value, or None once ``timeout`` seconds have elapsed. The last
    sleep is shortened so the deadline is never overshot.
    """
    if timeout < 0:
        raise ValueError("timeout must be non-negative")
    if interval <= 0:
        raise ValueError("interval must be positive")

    deadline = clock() + timeout
    delay = interval
    while True:
        result = condition()
        if result is not None:
            return result
        remaining = deadline - clock()
        if remaining <= 0:
            return None
        sleep(min(delay, remaining))
        delay *= backoff
        if max_interval is not None:
            delay = min(delay, max_interval)

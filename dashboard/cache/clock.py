import time
from typing import Callable

# Every timestamp in the cache layer is an integer count of epoch milliseconds.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)

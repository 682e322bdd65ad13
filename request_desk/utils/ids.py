"""Collision-free identifier generation"""

import threading
import time


class IdGenerator:
    """
    Time-based ids with a monotonic tie-breaker.

    Ids look like ``req-1718000000000-000042``. The counter never resets,
    so two ids minted within the same millisecond still differ.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = 0

    def next_id(self, prefix: str) -> str:
        with self._lock:
            self._counter += 1
            counter = self._counter
        return f"{prefix}-{int(time.time() * 1000)}-{counter:06d}"


id_generator = IdGenerator()


def new_id(prefix: str) -> str:
    return id_generator.next_id(prefix)

"""Attempt sequence counter used to build unique per-attempt transaction ids."""

import threading


class AttemptSequence:
    """
    Strictly increasing counter, safe to share between threads.

    Under asyncio alone increment-then-read is already atomic; the lock keeps
    values unique when a host drives processors from several threads.
    """

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        return self._value

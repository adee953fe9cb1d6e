from __future__ import annotations

import threading
from typing import Optional


class WorkGroup:
    """
    Counter of outstanding units of work with a blocking wait barrier.

    add() before starting a unit, done() when it ends, wait() blocks until zero.
    """

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._count += n

    def done(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("WorkGroup.done() called more times than add()")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._count

from __future__ import annotations

import threading
from typing import BinaryIO, Optional

from .errors import ProxyOpenError


class OutputSink:
    """
    Append-only writer shared by all dispatch threads.

    The lock covers exactly one write+flush, so one response is never split
    by another. Write order follows completion order, not request order.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        try:
            # "ab" creates the file if needed and never truncates
            self._file: Optional[BinaryIO] = open(path, "ab")
        except OSError as e:
            raise ProxyOpenError(f"open output file {path}: {e}") from e

    def write(self, data: bytes) -> None:
        with self._lock:
            if self._file is None:
                raise ValueError(f"output file {self.path} is closed")
            self._file.write(data)
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is None:
                return
            f, self._file = self._file, None
        f.close()

    @property
    def closed(self) -> bool:
        return self._file is None

from __future__ import annotations

import logging
import os
import queue
import threading
from typing import BinaryIO

from ..errors import InputWatchError
from .base import LineSource

logger = logging.getLogger(__name__)


class PollingLineSource(LineSource):
    """Stats the input path every `interval` seconds and scans when its size changes."""

    name = "poll"

    def __init__(self, path: str, handle: BinaryIO, interval: float, event_logger=None):
        super().__init__(path, handle, event_logger=event_logger)
        self.interval = interval

    def run(self, lines: "queue.Queue[str]", stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                size = os.stat(self.path).st_size
            except OSError as e:
                raise InputWatchError(f"os stat input: {e}") from e

            if size == self._size:
                if stop.wait(self.interval):
                    return
                continue

            self._check_size(size)
            self._emit(lines)

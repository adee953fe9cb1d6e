"""
Line source base and shared scanning.
File: src/fsproxy/watchers/base.py
"""
from __future__ import annotations

import logging
import os
import queue
import threading
from abc import ABC, abstractmethod
from typing import BinaryIO, List

from ..errors import InputWatchError
from ..logger import NullEventLogger

logger = logging.getLogger(__name__)


class LineReader:
    """
    Turns newly appended bytes into complete lines.

    The cursor only ever moves past a line terminator, so an unterminated
    tail fragment is re-read on the next scan instead of being emitted.
    """

    def __init__(self, handle: BinaryIO, offset: int = 0):
        self._handle = handle
        self.offset = offset

    def scan(self) -> List[str]:
        try:
            self._handle.seek(self.offset, os.SEEK_SET)
            data = self._handle.read()
        except (OSError, ValueError) as e:
            raise InputWatchError(f"read input at offset {self.offset}: {e}") from e

        end = data.rfind(b"\n")
        if end < 0:
            return []

        complete = data[:end]
        self.offset += end + 1

        lines = []
        for raw in complete.split(b"\n"):
            if raw.endswith(b"\r"):
                raw = raw[:-1]
            lines.append(raw.decode("utf-8", errors="replace"))
        return lines

    def reset(self, offset: int = 0) -> None:
        self.offset = offset


class LineSource(ABC):
    """
    Produces lines appended to the input file, in file order.

    Subclasses implement run(); they put each line on `lines`, return when
    `stop` is set or their notification stream ends, and raise
    InputWatchError when the input can no longer be observed.
    """

    name = "base"

    def __init__(self, path: str, handle: BinaryIO, event_logger=None):
        self.path = path
        self.event_logger = event_logger or NullEventLogger()
        try:
            origin = os.fstat(handle.fileno()).st_size
        except OSError as e:
            raise InputWatchError(f"stat input {path}: {e}") from e
        self._handle = handle
        # Skip old lines: anything already in the file is never replayed
        self.reader = LineReader(handle, offset=origin)
        # size at the last check, used to spot truncation
        self._size = origin

    @abstractmethod
    def run(self, lines: "queue.Queue[str]", stop: threading.Event) -> None:
        ...

    def close(self) -> None:
        """Release the change subscription, if any. Idempotent."""
        return None

    def _check_size(self, size: int) -> None:
        """Restart from offset 0 when the input got smaller since the last check."""
        if size < self._size or size < self.reader.offset:
            logger.warning(
                "Input %s shrank from %d to %d bytes, reading from the start",
                self.path, self._size, size,
            )
            self.event_logger.log("source", "truncated", {"from": self._size, "to": size})
            self.reader.reset(0)
        self._size = size

    def _emit(self, lines: "queue.Queue[str]") -> int:
        batch = self.reader.scan()
        for line in batch:
            lines.put(line)
            logger.info("Got new line: %s", line)
            self.event_logger.log("source", "line", {"line": line, "offset": self.reader.offset})
        return len(batch)

"""
Event-driven line source built on watchdog observers.
File: src/fsproxy/watchers/events.py
"""
from __future__ import annotations

import logging
import os
import queue
import threading
from typing import BinaryIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import InputWatchError, ProxyOpenError
from .base import LineSource

logger = logging.getLogger(__name__)

# Events that never mean new bytes
_IGNORED_EVENTS = {"opened", "closed_no_write", "deleted"}


class _InputChangeHandler(FileSystemEventHandler):
    """Turns watchdog events for one file into scan signals."""

    def __init__(self, path: str, signals: "queue.Queue[str]"):
        self._path = os.path.realpath(path)
        self._signals = signals

    def _matches(self, raw) -> bool:
        if not raw:
            return False
        return os.path.realpath(os.fsdecode(raw)) == self._path

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in _IGNORED_EVENTS:
            return
        if self._matches(event.src_path) or self._matches(getattr(event, "dest_path", "")):
            self._signals.put(event.event_type)


class EventLineSource(LineSource):
    """
    Scans the input file whenever the OS reports it changed.

    While `<input>.lock` exists the scan is postponed; the wait polls every
    `lock_poll_interval` seconds and gives up as soon as `stop` is set.
    """

    name = "events"

    def __init__(
        self,
        path: str,
        handle: BinaryIO,
        lock_path: str,
        lock_poll_interval: float = 0.1,
        event_logger=None,
    ):
        super().__init__(path, handle, event_logger=event_logger)
        self.lock_path = lock_path
        self.lock_poll_interval = lock_poll_interval
        self._signals: "queue.Queue[str]" = queue.Queue()
        self._closed = False

        # Subscribe up front so writes made before run() still produce a signal
        watch_dir = os.path.dirname(os.path.abspath(path))
        self._observer = Observer()
        self._observer.daemon = True
        try:
            self._observer.schedule(_InputChangeHandler(path, self._signals), watch_dir, recursive=False)
            self._observer.start()
        except OSError as e:
            raise ProxyOpenError(f"watcher add {watch_dir}: {e}") from e

    def run(self, lines: "queue.Queue[str]", stop: threading.Event) -> None:
        while not stop.is_set():
            if self._closed:
                return
            if not self._watching():
                if self._closed:
                    return
                raise InputWatchError(f"watcher for {self.path} stopped unexpectedly")

            try:
                event_type = self._signals.get(timeout=self.lock_poll_interval)
            except queue.Empty:
                continue
            coalesced = 1 + self._drain_signals()
            logger.debug("Input %s changed (%s, %d events)", self.path, event_type, coalesced)

            if not self._wait_for_lock(stop):
                return
            try:
                size = os.fstat(self._handle.fileno()).st_size
            except (OSError, ValueError) as e:
                if self._closed:
                    return
                raise InputWatchError(f"stat input {self.path}: {e}") from e
            self._check_size(size)
            self._emit(lines)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()

    def _watching(self) -> bool:
        if not self._observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in self._observer.emitters)

    def _drain_signals(self) -> int:
        n = 0
        while True:
            try:
                self._signals.get_nowait()
            except queue.Empty:
                return n
            n += 1

    def _wait_for_lock(self, stop: threading.Event) -> bool:
        """Block while the lock marker exists. False means stop fired first."""
        waited = False
        while os.path.exists(self.lock_path):
            if not waited:
                logger.debug("Lock marker %s present, waiting", self.lock_path)
                self.event_logger.log("source", "lock_wait", {"lock_path": self.lock_path})
                waited = True
            if stop.wait(self.lock_poll_interval):
                return False
        return True

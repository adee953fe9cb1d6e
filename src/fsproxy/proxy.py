from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Iterable, Optional

from .config import ProxyConfig
from .errors import FSProxyError, InvokeError, ProxyOpenError, ProxyStateError
from .logger import make_event_logger
from .rpc import RemoteInvoker
from .schemas import RunState, RunStats
from .sink import OutputSink
from .utils.workgroup import WorkGroup
from .watchers import make_line_source

logger = logging.getLogger(__name__)

# End-of-stream marker on the line queue
_CLOSED = object()

# How often a blocked intake re-checks cancellation while waiting for a free slot
_SLOT_WAIT = 0.1


def _open_input(path: str):
    try:
        # create if absent, never truncate
        open(path, "ab").close()
        return open(path, "rb")
    except OSError as e:
        raise ProxyOpenError(f"open input file {path}: {e}") from e


class FSProxy:
    """
    Tail-and-forward engine.

    Lifecycle:
      idle -> running -> draining -> stopped
      running|draining -> failed (first fatal error, raised from run())

    Threads per run:
      1) line source: watches the input file, queues complete lines
      2) intake: one dispatch thread per line (bounded by max_in_flight if set)
      3) drain waiter: reports when every thread above has finished

    Drain completion and fatal errors post to the same outcome queue;
    whichever arrives first decides what run() does.
    """

    def __init__(self, cfg: ProxyConfig, event_logger=None, invoker=None):
        self.cfg = cfg
        self.event_logger = event_logger or make_event_logger(cfg.event_log)
        self.invoker = invoker or RemoteInvoker(cfg.rpc_url, timeout=cfg.request_timeout)

        self.state = RunState.IDLE
        self._state_lock = threading.Lock()
        self._stats = RunStats()
        self._stats_lock = threading.Lock()
        self._work = WorkGroup()
        self._slots = threading.BoundedSemaphore(cfg.max_in_flight) if cfg.max_in_flight else None
        self._closed = False
        # per-line requests still running, source and intake threads excluded
        self._lines_active = 0
        self._stop: Optional[threading.Event] = None
        self._source_thread: Optional[threading.Thread] = None

        self._input = _open_input(cfg.input_path)
        self._sink: Optional[OutputSink] = None
        try:
            self._sink = OutputSink(cfg.output_path)
            self._source = make_line_source(cfg, self._input, event_logger=self.event_logger)
        except Exception:
            self._input.close()
            if self._sink is not None:
                self._sink.close()
            raise

    # ---------- public API ----------

    def run(self, stop: Optional[threading.Event] = None) -> RunStats:
        """
        Forward lines until `stop` is set and in-flight requests drain.

        Returns the run's counters. Raises the first fatal error (e.g.
        InputWatchError) without waiting for in-flight requests.
        """
        if self._closed:
            raise ProxyStateError("proxy is closed")
        if self.state is not RunState.IDLE:
            raise ProxyStateError(f"run() already called (state={self.state.value})")

        stop = stop if stop is not None else threading.Event()
        self._stop = stop
        lines: "queue.Queue[Any]" = queue.Queue()
        outcome: "queue.Queue[Optional[BaseException]]" = queue.Queue()

        self.event_logger.log("proxy", "start", {
            "watch_mode": self._source.name,
            "config": self.cfg.model_dump(),
        })
        self._set_state(RunState.RUNNING)

        self._work.add(2)
        self._source_thread = self._spawn("fsproxy-source", self._watch_input, lines, stop, outcome)
        self._spawn("fsproxy-intake", self._dispatch_lines, lines, stop)
        self._spawn("fsproxy-drain", self._wait_drained, outcome)

        result = outcome.get()
        if result is None:
            self._set_state(RunState.STOPPED)
            stats = self.stats
            self.event_logger.log("proxy", "done", stats.model_dump())
            return stats

        stop.set()
        self._set_state(RunState.FAILED)
        self.event_logger.log("proxy", "fail", {"error": str(result), "type": type(result).__name__})
        raise result

    def close(self) -> None:
        """
        Release watcher and file handles. Safe to call more than once.

        During a run, stop is set and the line source is joined before any
        handle is released, so the run ends stopped instead of failed.
        Requests still in flight may then fail to write their response.
        """
        if self._closed:
            return
        self._closed = True

        if self._stop is not None and self.state in (RunState.RUNNING, RunState.DRAINING):
            self._stop.set()
        source_thread = self._source_thread
        if source_thread is not None and source_thread is not threading.current_thread():
            source_thread.join()

        problems = []
        for what, release in (
            ("watcher", self._source.close),
            ("input file", self._input.close),
            ("output file", self._sink.close),
        ):
            try:
                release()
            except Exception as e:
                problems.append(f"close {what}: {e}")
        if problems:
            raise FSProxyError("; ".join(problems))

    @property
    def stats(self) -> RunStats:
        with self._stats_lock:
            return self._stats.model_copy()

    @property
    def in_flight(self) -> int:
        with self._stats_lock:
            return self._lines_active

    def __enter__(self) -> "FSProxy":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- background tasks ----------

    def _watch_input(self, lines: "queue.Queue[Any]", stop: threading.Event, outcome: "queue.Queue") -> None:
        try:
            self._source.run(lines, stop)
        except Exception as e:
            logger.debug("Line source failed: %s", e)
            # error goes first so it beats the drain triggered by closing the stream
            outcome.put(e)
        finally:
            lines.put(_CLOSED)
            self._work.done()

    def _dispatch_lines(self, lines: "queue.Queue[Any]", stop: threading.Event) -> None:
        try:
            while not stop.is_set():
                line = lines.get()
                if line is _CLOSED or stop.is_set():
                    break
                if not self._acquire_slot(stop):
                    break
                with self._stats_lock:
                    self._stats.lines_received += 1
                    self._lines_active += 1
                self._work.add()
                self._spawn("fsproxy-line", self._process_line, line, daemon=True)
        finally:
            self._set_state(RunState.DRAINING, only_from=(RunState.RUNNING,))
            self._work.done()

    def _process_line(self, line: str) -> None:
        try:
            try:
                body = self.invoker.invoke(line)
            except InvokeError as e:
                logger.error("Failed to send request for line %r: %s", line, e)
                self._count("requests_failed")
                self.event_logger.log("dispatch", "fail", {"line": line, "error": str(e), "status": e.status})
                return

            logger.info("Got response (%d bytes)", len(body))
            logger.debug("Response body: %s", body.decode("utf-8", errors="replace"))

            try:
                self._sink.write(body)
            except (OSError, ValueError) as e:
                logger.error("Failed to write response: %s", e)
                self._count("write_failures")
                self.event_logger.log("sink", "fail", {"error": str(e), "bytes": len(body)})
                return

            self._count("responses_written")
            self.event_logger.log("sink", "written", {"bytes": len(body)})
        finally:
            with self._stats_lock:
                self._lines_active -= 1
            if self._slots is not None:
                self._slots.release()
            self._work.done()

    def _wait_drained(self, outcome: "queue.Queue") -> None:
        self._work.wait()
        outcome.put(None)

    # ---------- helpers ----------

    def _acquire_slot(self, stop: threading.Event) -> bool:
        if self._slots is None:
            return True
        while not self._slots.acquire(timeout=_SLOT_WAIT):
            if stop.is_set():
                return False
        return True

    def _count(self, field: str) -> None:
        with self._stats_lock:
            setattr(self._stats, field, getattr(self._stats, field) + 1)

    def _set_state(self, state: RunState, only_from: Optional[Iterable[RunState]] = None) -> None:
        with self._state_lock:
            if only_from is not None and self.state not in only_from:
                return
            self.state = state
        logger.debug("Proxy state -> %s", state.value)
        self.event_logger.log("proxy", "state", {"state": state.value})

    @staticmethod
    def _spawn(name: str, target, *args: Any, daemon: bool = True) -> threading.Thread:
        t = threading.Thread(target=target, args=args, name=name, daemon=daemon)
        t.start()
        return t

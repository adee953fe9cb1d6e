# tests/_helpers.py

import threading
import time


def wait_for(predicate, timeout=5.0, interval=0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def append(path, text):
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)
        f.flush()


class RunInThread:
    """Runs proxy.run(stop) in a background thread and keeps its outcome."""

    def __init__(self, proxy):
        self.proxy = proxy
        self.stop = threading.Event()
        self.result = None
        self.error = None
        self._thread = threading.Thread(target=self._target, daemon=True)

    def _target(self):
        try:
            self.result = self.proxy.run(self.stop)
        except Exception as e:
            self.error = e

    def start(self):
        self._thread.start()
        return self

    def join(self, timeout=5.0):
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self):
        return self._thread.is_alive()

    def shutdown(self, timeout=5.0):
        self.stop.set()
        return self.join(timeout)

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class EventLogger:
    """
    Appends one JSON record per proxy event: {ts, stage, event, meta}.

    Stages are proxy (start, state, done, fail), source (line, truncated,
    lock_wait), dispatch (fail) and sink (written, fail).
    """
    log_path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def log(self, stage: str, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        record = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime()),
            "stage": stage,
            "event": event,
            "meta": meta or {},
        }
        line = json.dumps(record, ensure_ascii=False) + "\n"
        with self._lock:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line)


class NullEventLogger:
    """Drop-in used when no event log is configured."""

    def log(self, stage: str, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        return None


def make_event_logger(path: Optional[str]):
    if not path:
        return NullEventLogger()
    return EventLogger(log_path=Path(path))

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
    FAILED = "failed"


class RunStats(BaseModel):
    """Counters for one run. Updated by worker threads under the proxy's stats lock."""
    lines_received: int = 0
    requests_failed: int = 0
    responses_written: int = 0
    write_failures: int = 0

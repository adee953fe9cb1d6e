from __future__ import annotations

from typing import BinaryIO

from ..config import ProxyConfig
from .base import LineReader, LineSource
from .events import EventLineSource
from .polling import PollingLineSource


def make_line_source(cfg: ProxyConfig, handle: BinaryIO, event_logger=None) -> LineSource:
    """Build the line source selected by cfg.watch_mode."""
    if cfg.watch_mode == "poll":
        return PollingLineSource(cfg.input_path, handle, interval=cfg.poll_interval, event_logger=event_logger)
    return EventLineSource(
        cfg.input_path,
        handle,
        lock_path=cfg.lock_path,
        lock_poll_interval=cfg.lock_poll_interval,
        event_logger=event_logger,
    )


__all__ = [
    "LineReader",
    "LineSource",
    "EventLineSource",
    "PollingLineSource",
    "make_line_source",
]

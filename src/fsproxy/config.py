from __future__ import annotations

import logging
import os
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


WatchMode = Literal["events", "poll"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


class ProxyConfig(BaseModel):
    """
    Configuration for one proxy instance.

    Notes:
    - Every field falls back to an FSPROXY_* environment variable.
    - Defaults are the conventional request.pipe/response.pipe pair on a local node.
    - Keep config serializable (JSON) so it can be written to the event log.
    """
    model_config = ConfigDict(validate_default=True)

    rpc_url: str = Field(default_factory=lambda: os.getenv("FSPROXY_RPC_URL", "http://127.0.0.1:8080/rpc"))
    input_path: str = Field(default_factory=lambda: os.getenv("FSPROXY_INPUT", "request.pipe"))
    output_path: str = Field(default_factory=lambda: os.getenv("FSPROXY_OUTPUT", "response.pipe"))

    # line source
    watch_mode: WatchMode = Field(default_factory=lambda: os.getenv("FSPROXY_WATCH_MODE", "events"))
    poll_interval: float = Field(default_factory=lambda: os.getenv("FSPROXY_POLL_INTERVAL", "0.5"))
    lock_poll_interval: float = Field(default_factory=lambda: os.getenv("FSPROXY_LOCK_POLL_INTERVAL", "0.1"))

    # dispatch
    max_in_flight: Optional[int] = Field(default_factory=lambda: _env_optional("FSPROXY_MAX_IN_FLIGHT"))
    request_timeout: Optional[float] = Field(default_factory=lambda: _env_optional("FSPROXY_REQUEST_TIMEOUT"))

    # logging
    event_log: Optional[str] = Field(default_factory=lambda: _env_optional("FSPROXY_EVENT_LOG"))
    log_level: str = Field(default_factory=lambda: os.getenv("FSPROXY_LOG_LEVEL", "INFO"))

    @field_validator("rpc_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"rpc_url must be an http(s) URL with a host, got {v!r}")
        return v

    @field_validator("input_path", "output_path")
    @classmethod
    def _check_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("path must not be empty")
        return v

    @field_validator("watch_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("poll_interval", "lock_poll_interval")
    @classmethod
    def _check_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("interval must be positive")
        return v

    @field_validator("max_in_flight")
    @classmethod
    def _check_max_in_flight(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("max_in_flight must be at least 1")
        return v

    @field_validator("request_timeout")
    @classmethod
    def _check_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("request_timeout must be positive")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_level(cls, v):
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {v!r}")
        return level

    @property
    def lock_path(self) -> str:
        return self.input_path + ".lock"

    @property
    def log_level_no(self) -> int:
        return logging.getLevelName(self.log_level)

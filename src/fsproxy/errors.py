from __future__ import annotations

from typing import Optional


class FSProxyError(Exception):
    """Base class for every error raised by the proxy."""


class ProxyOpenError(FSProxyError):
    """Input/output file or watch subscription could not be set up."""


class InputWatchError(FSProxyError):
    """The line source can no longer observe the input file. Fatal for a run."""


class ProxyStateError(FSProxyError):
    """Operation not allowed in the proxy's current lifecycle state."""


class InvokeError(FSProxyError):
    """
    A single remote call failed.

    Recoverable: the offending line is logged and dropped, the run goes on.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

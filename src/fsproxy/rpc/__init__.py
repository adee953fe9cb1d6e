from __future__ import annotations

from .invoker import RemoteInvoker

__all__ = ["RemoteInvoker"]

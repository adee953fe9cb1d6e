"""
jsonrpc-fsproxy package.

Tail-and-forward bridge between files and a JSON-RPC endpoint:
- lines appended to the input file become HTTP POST bodies
- response bodies are appended to the output file
- structured event logs (JSONL) with stage attribution
"""
from __future__ import annotations

__version__ = "0.1.0"

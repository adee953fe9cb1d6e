from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

# ---- Environment bootstrap (MUST be first) ----
from dotenv import load_dotenv

# Load .env once at process start
load_dotenv()

import typer
from pydantic import ValidationError

from .config import ProxyConfig
from .errors import FSProxyError
from .proxy import FSProxy
from .utils.ui import print_header, setup_logging

logger = logging.getLogger("fsproxy")

app = typer.Typer(add_completion=False, help="Forward lines appended to a file to a JSON-RPC endpoint.")


def _build_config(**overrides) -> ProxyConfig:
    # unset CLI values fall back to FSPROXY_* env vars
    return ProxyConfig(**{k: v for k, v in overrides.items() if v is not None})


@app.command()
def main(
    input_path: Optional[str] = typer.Argument(None, metavar="INPUT_FILE_PATH", help="File to tail for requests"),
    output_path: Optional[str] = typer.Argument(None, metavar="OUTPUT_FILE_PATH", help="File to append responses to"),
    rpc_url: Optional[str] = typer.Argument(None, metavar="RPC_URL", help="Endpoint receiving each line as a POST body"),
    watch: Optional[str] = typer.Option(None, "--watch", help="Change detection: events or poll"),
    poll_interval: Optional[float] = typer.Option(None, help="Seconds between size checks in poll mode"),
    lock_poll_interval: Optional[float] = typer.Option(None, help="Seconds between lock marker checks"),
    max_in_flight: Optional[int] = typer.Option(None, help="Cap on concurrent requests (default: unbounded)"),
    timeout: Optional[float] = typer.Option(None, help="Per-request timeout in seconds"),
    event_log: Optional[str] = typer.Option(None, help="Append JSONL lifecycle events to this file"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING or ERROR"),
):
    """
    jsonrpc-fsproxy
    """
    try:
        cfg = _build_config(
            input_path=input_path,
            output_path=output_path,
            rpc_url=rpc_url,
            watch_mode=watch,
            poll_interval=poll_interval,
            lock_poll_interval=lock_poll_interval,
            max_in_flight=max_in_flight,
            request_timeout=timeout,
            event_log=event_log,
            log_level=log_level,
        )
    except ValidationError as e:
        typer.echo(f"[ERR] invalid configuration:\n{e}", err=True)
        raise typer.Exit(code=2)

    setup_logging(cfg.log_level_no)
    print_header("jsonrpc-fsproxy", f"{cfg.input_path} -> {cfg.rpc_url} -> {cfg.output_path} ({cfg.watch_mode})")

    try:
        proxy = FSProxy(cfg)
    except FSProxyError as e:
        logger.error("Failed to create proxy: %s", e)
        raise typer.Exit(code=1)

    stop = threading.Event()

    def _on_signal(signum, frame):
        logger.info("Received %s, draining in-flight requests", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        stats = proxy.run(stop)
    except FSProxyError as e:
        logger.error("Failed to run proxy: %s", e)
        raise typer.Exit(code=1)
    finally:
        try:
            proxy.close()
        except FSProxyError as e:
            logger.warning("Failed to close proxy: %s", e)

    typer.echo(
        f"[OK] lines={stats.lines_received} written={stats.responses_written} "
        f"failed={stats.requests_failed + stats.write_failures}"
    )


if __name__ == "__main__":
    app()

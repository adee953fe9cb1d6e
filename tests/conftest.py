# tests/conftest.py
"""
Shared fixtures: a threaded local HTTP endpoint and polling helpers.

Endpoint routes:
    /rpc    echo the request body with status 200
    /fail   status 500
    /empty  status 204, no body
    /gate   echo, but only after `server.gate` is set
"""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        return

    def do_POST(self):
        length = int(self.headers.get("Content-Length", "0"))
        body = self.rfile.read(length)
        server = self.server
        with server.lock:
            server.requests.append({
                "path": self.path,
                "body": body,
                "content_type": self.headers.get("Content-Type"),
            })

        if self.path == "/fail":
            self._reply(500, b"boom")
            return
        if self.path == "/empty":
            self.send_response(204)
            self.end_headers()
            return
        if self.path == "/gate":
            server.gate.wait(timeout=10)
        self._reply(200, body)

    def _reply(self, status, body):
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class EchoServer:
    def __init__(self):
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        self.httpd.daemon_threads = True
        self.httpd.requests = []
        self.httpd.lock = threading.Lock()
        self.httpd.gate = threading.Event()
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def base_url(self):
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}"

    def url(self, path="/rpc"):
        return self.base_url + path

    @property
    def requests(self):
        with self.httpd.lock:
            return list(self.httpd.requests)

    @property
    def gate(self):
        return self.httpd.gate

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self.httpd.gate.set()
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def echo_server():
    server = EchoServer().start()
    yield server
    server.stop()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "FSPROXY_RPC_URL",
        "FSPROXY_INPUT",
        "FSPROXY_OUTPUT",
        "FSPROXY_WATCH_MODE",
        "FSPROXY_POLL_INTERVAL",
        "FSPROXY_LOCK_POLL_INTERVAL",
        "FSPROXY_MAX_IN_FLIGHT",
        "FSPROXY_REQUEST_TIMEOUT",
        "FSPROXY_EVENT_LOG",
        "FSPROXY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# tests/test_sink.py

import re
import threading

import pytest

from fsproxy.errors import ProxyOpenError
from fsproxy.sink import OutputSink


def test_appends_to_existing_file(tmp_path):
    path = tmp_path / "response.pipe"
    path.write_bytes(b"kept")
    sink = OutputSink(str(path))
    sink.write(b"-more")
    sink.close()
    assert path.read_bytes() == b"kept-more"


def test_creates_missing_file(tmp_path):
    path = tmp_path / "response.pipe"
    sink = OutputSink(str(path))
    sink.close()
    assert path.exists()


def test_missing_directory_is_open_error(tmp_path):
    with pytest.raises(ProxyOpenError):
        OutputSink(str(tmp_path / "nope" / "response.pipe"))


def test_concurrent_writes_never_splice(tmp_path):
    path = tmp_path / "response.pipe"
    sink = OutputSink(str(path))
    n = 32
    bodies = [f"<{i:03d}:".encode() + b"x" * 65536 + b">" for i in range(n)]
    barrier = threading.Barrier(n)

    def worker(body):
        barrier.wait()
        sink.write(body)

    threads = [threading.Thread(target=worker, args=(b,)) for b in bodies]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    sink.close()

    content = path.read_bytes()
    assert len(content) == sum(len(b) for b in bodies)
    chunks = re.findall(rb"<\d{3}:x{65536}>", content)
    assert b"".join(chunks) == content
    assert sorted(chunks) == sorted(bodies)


def test_write_after_close_fails_and_close_is_idempotent(tmp_path):
    sink = OutputSink(str(tmp_path / "response.pipe"))
    sink.close()
    sink.close()
    assert sink.closed
    with pytest.raises(ValueError):
        sink.write(b"late")

# tests/test_workgroup.py

import json
import threading
import time

import pytest

from fsproxy.logger import EventLogger, NullEventLogger, make_event_logger
from fsproxy.utils.workgroup import WorkGroup


def test_wait_returns_immediately_when_empty():
    assert WorkGroup().wait(timeout=0.1)


def test_wait_blocks_until_all_done():
    group = WorkGroup()
    group.add(3)
    release = threading.Event()

    def worker():
        release.wait()
        group.done()

    for _ in range(3):
        threading.Thread(target=worker).start()

    assert not group.wait(timeout=0.1)
    assert group.pending == 3
    release.set()
    assert group.wait(timeout=5)
    assert group.pending == 0


def test_done_without_add_is_an_error():
    with pytest.raises(RuntimeError):
        WorkGroup().done()


def test_event_logger_lines_stay_whole_under_threads(tmp_path):
    log = EventLogger(log_path=tmp_path / "nested" / "events.jsonl")

    def worker(i):
        for j in range(50):
            log.log("dispatch", "tick", {"worker": i, "n": j, "pad": "x" * 512})

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    records = [json.loads(line) for line in (tmp_path / "nested" / "events.jsonl").read_text(encoding="utf-8").splitlines()]
    assert len(records) == 400
    assert {r["stage"] for r in records} == {"dispatch"}
    time.strptime(records[0]["ts"], "%Y-%m-%dT%H:%M:%S")


def test_make_event_logger_without_path_is_silent():
    logger = make_event_logger(None)
    assert isinstance(logger, NullEventLogger)
    assert logger.log("proxy", "start") is None

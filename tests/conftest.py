"""
Shared fakes for the runner tests
"""

import queue
import threading
import time

import pytest

from gorunner.errors import notifier_error


class RecordingLogger:
    """RunnerLogger stand-in that keeps every message"""

    def __init__(self):
        self.records = []
        self._lock = threading.Lock()

    def _record(self, level, message):
        with self._lock:
            self.records.append((level, message))

    def info(self, message):
        self._record("info", message)

    def warn(self, message):
        self._record("warn", message)

    def error(self, message):
        self._record("error", message)

    def messages(self, level=None):
        with self._lock:
            return [m for lvl, m in self.records if level is None or lvl == level]


class FakeNotifier:
    """In-memory change notifier; tests push events with emit()"""

    def __init__(self, fail_paths=()):
        self.watched = set()
        self.added = []
        self.removed = []
        self.fail_paths = set(fail_paths)
        self.closed = False
        self._queue = queue.Queue()

    def add_watch(self, path):
        if path in self.fail_paths:
            raise notifier_error(f"Cannot watch '{path}'", path=path)
        self.watched.add(path)
        self.added.append(path)

    def remove_watch(self, path):
        if path not in self.watched:
            raise notifier_error(f"Can't remove non-existent watch: {path}", path=path)
        self.watched.discard(path)
        self.removed.append(path)

    def emit(self, item):
        self._queue.put(item)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is None:
                return
            yield item

    def close(self):
        if not self.closed:
            self.closed = True
            self._queue.put(None)


class FakeProcess:
    """ProcessSupervisor stand-in that counts builds and live children"""

    def __init__(self, build_ok=True, launch_ok=True):
        self.build_ok = build_ok
        self.launch_ok = launch_ok
        self.builds = 0
        self.launches = 0
        self.terminations = 0
        self.live = 0
        self.max_live = 0
        self.binary_exists = False
        self.binary_removed = False
        self._lock = threading.Lock()

    def build(self):
        with self._lock:
            self.builds += 1
            self.binary_exists = self.build_ok
            return self.build_ok

    def launch(self):
        with self._lock:
            self.launches += 1
            if not self.launch_ok:
                return False
            self.live += 1
            self.max_live = max(self.max_live, self.live)
            return True

    def terminate(self):
        with self._lock:
            if self.live:
                self.terminations += 1
            self.live = 0

    def remove_binary(self):
        with self._lock:
            self.binary_exists = False
            self.binary_removed = True
            return True


def wait_for(predicate, timeout=5.0, interval=0.01):
    """Poll ``predicate`` until it is true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


@pytest.fixture
def fake_process():
    return FakeProcess()

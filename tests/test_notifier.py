#!/usr/bin/env python3
"""
Tests for the watchdog-backed ChangeNotifier
"""

import queue
import threading
import time

import pytest

from gorunner.errors import UserError
from gorunner.notifier import ChangeNotifier, FileEvent, Op, _QueueingHandler
from watchdog.events import DirCreatedEvent, DirMovedEvent, FileDeletedEvent, FileModifiedEvent


@pytest.fixture
def notifier():
    n = ChangeNotifier()
    yield n
    n.close()


def collect_until(notifier, predicate, timeout=5.0):
    """Drain notifications until one satisfies ``predicate``."""
    deadline = time.monotonic() + timeout
    seen = []
    while time.monotonic() < deadline:
        try:
            item = notifier.next(timeout=0.1)
        except queue.Empty:
            continue
        if item is None:
            break
        seen.append(item)
        if predicate(item):
            return item, seen
    return None, seen


def test_translates_watchdog_events(notifier):
    """Test watchdog events become FileEvents"""
    handler = _QueueingHandler(notifier)

    handler.dispatch(FileModifiedEvent("/src/main.go"))
    handler.dispatch(FileDeletedEvent("/src/old.go"))
    handler.dispatch(DirCreatedEvent("/src/pkg"))
    handler.dispatch(DirMovedEvent("/src/a", "/src/b"))

    items = [notifier.next(timeout=1) for _ in range(5)]
    assert items == [
        FileEvent("/src/main.go", Op.WRITE, False),
        FileEvent("/src/old.go", Op.REMOVE, False),
        FileEvent("/src/pkg", Op.CREATE, True),
        FileEvent("/src/a", Op.RENAME, True),
        FileEvent("/src/b", Op.CREATE, True),
    ]


def test_reports_real_file_writes(notifier, tmp_path):
    """Test a write in a watched directory is reported"""
    notifier.add_watch(str(tmp_path))
    target = tmp_path / "main.go"

    target.write_text("package main\n")

    found, _ = collect_until(notifier, lambda e: isinstance(e, FileEvent) and e.path == str(target))
    assert found is not None


def test_add_watch_missing_directory_raises(notifier, tmp_path):
    """Test watching a missing directory is a UserError"""
    with pytest.raises(UserError):
        notifier.add_watch(str(tmp_path / "missing"))


def test_remove_unknown_watch_raises(notifier, tmp_path):
    """Test removing a path that isn't watched is a UserError"""
    with pytest.raises(UserError):
        notifier.remove_watch(str(tmp_path))


def test_add_and_remove_watch(notifier, tmp_path):
    """Test watches are tracked by path"""
    notifier.add_watch(str(tmp_path))
    notifier.add_watch(str(tmp_path))
    assert list(notifier.watched) == [str(tmp_path)]

    notifier.remove_watch(str(tmp_path))
    assert notifier.watched == {}


def test_close_ends_iteration():
    """Test close() terminates a blocked iterator and is idempotent"""
    n = ChangeNotifier()
    seen = []
    t = threading.Thread(target=lambda: seen.extend(n))
    t.start()

    n.close()
    n.close()
    t.join(timeout=5)

    assert not t.is_alive()
    assert seen == []

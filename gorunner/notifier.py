#!/usr/bin/env python3
"""
Change Notifier: per-directory file system events on top of watchdog

Every watched directory is scheduled non-recursively on a single watchdog
Observer, so the caller decides exactly which directories are in the watch
set. Watchdog callbacks run on observer threads; they are translated into
FileEvent values and queued, and the consumer iterates the queue until the
notifier is closed.
"""

import logging
import os
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from gorunner.errors import UserError, notifier_error

logger = logging.getLogger(__name__)


class Op(Enum):
    """File system operations reported by the notifier"""
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True)
class FileEvent:
    """A single path-level change"""
    path: str
    op: Op
    is_directory: bool = False


Notification = Union[FileEvent, UserError]

_CLOSED = object()

_OPS = {
    "created": Op.CREATE,
    "modified": Op.WRITE,
    "deleted": Op.REMOVE,
}


class _QueueingHandler(FileSystemEventHandler):
    """Translate watchdog events into queued FileEvents"""

    def __init__(self, notifier: "ChangeNotifier"):
        super().__init__()
        self.notifier = notifier

    def on_any_event(self, event: FileSystemEvent):
        try:
            src_path = os.fsdecode(event.src_path)
            if event.event_type == "moved":
                self.notifier.put(FileEvent(src_path, Op.RENAME, event.is_directory))
                dest_path = os.fsdecode(event.dest_path)
                if dest_path:
                    self.notifier.put(FileEvent(dest_path, Op.CREATE, event.is_directory))
                return

            op = _OPS.get(event.event_type)
            if op is not None:
                self.notifier.put(FileEvent(src_path, op, event.is_directory))
        except Exception as e:
            self.notifier.put(notifier_error(f"Failed to translate event {event!r}: {e}", cause=e))


class ChangeNotifier:
    """
    Watch individual directories and expose their changes as an iterator.

    Iterating yields FileEvent and UserError values until close() is called.
    """

    def __init__(self):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._handler = _QueueingHandler(self)
        self._watches: Dict[str, ObservedWatch] = {}
        self._closed = False
        self._observer = Observer()
        self._observer.start()

    def put(self, notification: Notification) -> None:
        if not self._closed:
            self._queue.put(notification)

    def add_watch(self, path: str) -> None:
        """
        Start watching ``path`` (not its subdirectories).

        Raises:
            UserError: if the directory cannot be watched
        """
        if path in self._watches:
            return
        try:
            self._watches[path] = self._observer.schedule(self._handler, path, recursive=False)
        except OSError as e:
            raise notifier_error(f"Cannot watch '{path}': {e}", path=path, cause=e) from e

    def remove_watch(self, path: str) -> None:
        """
        Stop watching ``path``.

        Raises:
            UserError: if ``path`` is not being watched
        """
        watch = self._watches.pop(path, None)
        if watch is None:
            raise notifier_error(f"Can't remove non-existent watch: {path}", path=path)
        try:
            self._observer.unschedule(watch)
        except KeyError as e:
            raise notifier_error(f"Can't remove watch '{path}': {e}", path=path, cause=e) from e

    @property
    def watched(self) -> Dict[str, ObservedWatch]:
        return dict(self._watches)

    def next(self, timeout: Optional[float] = None) -> Optional[Notification]:
        """
        Return the next notification, or None once the notifier is closed.

        Raises:
            queue.Empty: if ``timeout`` expires first
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # keep the sentinel for any other consumer
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[Notification]:
        while True:
            item = self.next()
            if item is None:
                return
            yield item

    def close(self) -> None:
        """Stop the observer and end iteration. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self._observer.stop()
            self._observer.join(timeout=5)
        finally:
            self._watches.clear()
            self._queue.put(_CLOSED)
        logger.debug("Change notifier closed")

#!/usr/bin/env python3
"""
Directory Tracker: keeps the notifier's watch set in step with the tree

Walks the watch roots once at startup, then follows directory creation and
removal as events arrive. Changes to trigger files are turned into a
(coalesced) rebuild request. The tracker is the only writer of the watch
set and runs on the event worker thread.
"""

import os
from typing import Iterable, List, Optional, Set

from gorunner.errors import UserError
from gorunner.log import RunnerLogger
from gorunner.notifier import FileEvent, Op
from gorunner.path_filter import is_excluded_dir, is_trigger_file, starts_with_any
from gorunner.signals import RebuildSignal, ShutdownToken


class DirectoryTracker:
    """Maintain the set of watched directories and forward trigger events"""

    def __init__(
        self,
        notifier,
        rebuild: RebuildSignal,
        exclude_dirs: Optional[List[str]] = None,
        log: Optional[RunnerLogger] = None
    ):
        """
        Args:
            notifier: Change notifier (add_watch/remove_watch, iterable of events)
            rebuild: Signal offered when a trigger file changes
            exclude_dirs: Absolute directory prefixes that are never watched
            log: Logging capability
        """
        self.notifier = notifier
        self.rebuild = rebuild
        self.exclude_dirs = list(exclude_dirs or [])
        self.log = log or RunnerLogger()
        self.watch_set: Set[str] = set()

    def _add(self, path: str) -> None:
        try:
            self.notifier.add_watch(path)
        except UserError as e:
            self.log.warn(f"Failed to add directory '{path}' to the watcher: {e}")
            return
        self.watch_set.add(path)

    def _remove(self, path: str) -> None:
        self.watch_set.discard(path)
        try:
            self.notifier.remove_watch(path)
        except UserError as e:
            self.log.warn(f"Failed to remove directory '{path}' from the watcher: {e}")

    def _add_tree(self, top: str) -> None:
        for dirpath, dirnames, _ in os.walk(top):
            kept = []
            for name in sorted(dirnames):
                path = os.path.join(dirpath, name)
                if path in self.watch_set or is_excluded_dir(path, self.exclude_dirs):
                    continue
                self._add(path)
                kept.append(name)
            # prune excluded subtrees
            dirnames[:] = kept

    def enlist(self, roots: Iterable[str]) -> None:
        """Register every root and each non-excluded directory below it."""
        for root in roots:
            self.log.info(f"Adding directory to watch list: {root}")
            self._add(root)
            self._add_tree(root)

    def handle(self, event: FileEvent) -> bool:
        """
        Apply a single event.

        Returns:
            True if the event produced a new pending rebuild
        """
        path = event.path
        if event.is_directory or os.path.isdir(path):
            if event.op in (Op.REMOVE, Op.RENAME):
                if starts_with_any(self.exclude_dirs, path):
                    return False
                nested = [p for p in self.watch_set if p.startswith(path + os.sep)]
                for watched in [path] + sorted(nested, reverse=True):
                    if watched in self.watch_set:
                        self._remove(watched)
            elif os.path.isdir(path) and path not in self.watch_set \
                    and not is_excluded_dir(path, self.exclude_dirs):
                self._add(path)
                # directories created together with their parent get no events
                self._add_tree(path)
            return False

        if not is_trigger_file(path):
            return False

        if self.rebuild.offer():
            self.log.info(f"File '{path}' changed, recompile...")
            return True
        return False

    def run(self, shutdown: ShutdownToken) -> None:
        """Consume notifier events until it is closed or shutdown fires."""
        for item in self.notifier:
            if shutdown.fired:
                break
            if isinstance(item, FileEvent):
                self.handle(item)
            else:
                self.log.error(f"Error while watching files: {item}")

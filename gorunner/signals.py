#!/usr/bin/env python3
"""
Coordination primitives shared by the event worker and the supervisor worker.

RebuildSignal is a single-slot mailbox: any number of writers may offer a
rebuild, at most one is ever pending, and extra offers are dropped until the
single reader drains the slot. ShutdownToken is a one-shot broadcast; firing
it also wakes a reader blocked in RebuildSignal.receive().
"""

import threading
from typing import List


class ShutdownToken:
    """One-shot shutdown broadcast observed by every worker."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._conditions: List[threading.Condition] = []

    def fire(self) -> bool:
        """
        Fire the token.

        Returns:
            True on the first call, False if it had already fired
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            conditions = list(self._conditions)

        for condition in conditions:
            with condition:
                condition.notify_all()
        return True

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout=None) -> bool:
        return self._event.wait(timeout)

    def _subscribe(self, condition: threading.Condition) -> None:
        with self._lock:
            if condition not in self._conditions:
                self._conditions.append(condition)


class RebuildSignal:
    """Capacity-one, coalescing rebuild mailbox."""

    def __init__(self):
        self._condition = threading.Condition()
        self._pending = False

    def offer(self) -> bool:
        """
        Record a pending rebuild without blocking.

        Returns:
            True if the rebuild was recorded, False if one was already pending
        """
        with self._condition:
            if self._pending:
                return False
            self._pending = True
            self._condition.notify()
            return True

    def poll(self) -> bool:
        """Drain a pending rebuild if there is one, without blocking."""
        with self._condition:
            pending = self._pending
            self._pending = False
            return pending

    @property
    def pending(self) -> bool:
        with self._condition:
            return self._pending

    def receive(self, shutdown: ShutdownToken) -> bool:
        """
        Block until a rebuild is pending or ``shutdown`` fires.

        Shutdown wins if both are ready, and a pending rebuild is left in the
        slot in that case.

        Returns:
            True if a rebuild was drained, False on shutdown
        """
        shutdown._subscribe(self._condition)
        with self._condition:
            while True:
                if shutdown.fired:
                    return False
                if self._pending:
                    self._pending = False
                    return True
                self._condition.wait()

#!/usr/bin/env python3
"""
Runner: the watch -> test -> build -> run supervisor

A watch session runs two threads. The event worker feeds file system events
through the DirectoryTracker, which offers rebuilds on the RebuildSignal.
The supervisor worker drives the state machine below and owns the child
process. The two only share the RebuildSignal and the ShutdownToken.

    IDLE -> TESTING -> BUILDING -> RUNNING -> WAITING -> {IDLE | STOPPED}

A rebuild that arrives while a cycle is in flight stays in the signal's
single slot until the supervisor reaches WAITING (or polls it between test
directories), so it is never lost and bursts collapse into one cycle.
"""

import threading
from enum import Enum
from typing import Callable, Optional

from gorunner.config_schema import RunnerConfig
from gorunner.errors import UserError, already_watching_error, ensure_user_error, ErrorCategory
from gorunner.gate import GateResult, TestGate
from gorunner.log import RunnerLogger
from gorunner.notifier import ChangeNotifier
from gorunner.process import ProcessSupervisor
from gorunner.signals import RebuildSignal, ShutdownToken
from gorunner.tracker import DirectoryTracker


class State(Enum):
    """Supervisor loop states"""
    IDLE = "idle"
    TESTING = "testing"
    BUILDING = "building"
    RUNNING = "running"
    WAITING = "waiting"
    STOPPED = "stopped"


class Runner:
    """
    Watch Go sources and rebuild/restart the program on every change.

    Args:
        config: Validated runner configuration
        log: Logging capability (defaults to the ``gorunner`` logger)
        notifier_factory: Creates the change notifier for a session
        process: Process supervisor (built from ``config`` by default)
        gate: Test gate (built from ``config`` by default)
    """

    def __init__(
        self,
        config: RunnerConfig,
        log: Optional[RunnerLogger] = None,
        notifier_factory: Callable[[], object] = ChangeNotifier,
        process: Optional[ProcessSupervisor] = None,
        gate: Optional[TestGate] = None
    ):
        self.config = config
        self.log = log or RunnerLogger()
        self.notifier_factory = notifier_factory
        self.process = process or ProcessSupervisor(config, self.log)
        self.gate = gate or TestGate(config, self.log)

        self.notifier = None
        self.tracker: Optional[DirectoryTracker] = None
        self.rebuild = RebuildSignal()
        self.shutdown: Optional[ShutdownToken] = None
        self.fatal_error: Optional[UserError] = None
        self._failed = threading.Event()
        self._state = State.STOPPED
        self._state_lock = threading.Lock()
        self._workers = []

    @property
    def state(self) -> State:
        with self._state_lock:
            return self._state

    def _set_state(self, state: State) -> None:
        with self._state_lock:
            self._state = state

    @property
    def watching(self) -> bool:
        return self.notifier is not None

    def watch(self) -> None:
        """
        Start a watch session.

        Raises:
            UserError: if a session is already active or the notifier
                cannot be created
        """
        if self.notifier is not None:
            raise already_watching_error()

        try:
            notifier = self.notifier_factory()
        except OSError as e:
            raise ensure_user_error(e, "Failed to create the change notifier", ErrorCategory.WATCHER) from e

        self.notifier = notifier
        self.rebuild = RebuildSignal()
        self.shutdown = ShutdownToken()
        self.fatal_error = None
        self._failed.clear()

        self.tracker = DirectoryTracker(notifier, self.rebuild, self.config.exclude_dirs, self.log)
        self.tracker.enlist(self.config.watch_dirs)

        self._set_state(State.IDLE)
        self._workers = [
            threading.Thread(target=self.tracker.run, args=(self.shutdown,),
                             name="gorunner-events", daemon=True),
            threading.Thread(target=self._supervisor_worker, name="gorunner-supervisor", daemon=True),
        ]
        for worker in self._workers:
            worker.start()

    def stop(self) -> Optional[Exception]:
        """
        Stop watching, kill the program and remove the temporary binary.

        Does nothing when no session is active.

        Returns:
            The error raised while closing the notifier, if any
        """
        if self.notifier is None:
            return None

        self.log.info("Stop looking for file changes")
        self.shutdown.fire()

        error = None
        try:
            self.notifier.close()
        except OSError as e:
            error = e

        # both workers must be gone before their resources are released
        for worker in self._workers:
            worker.join()
        self._workers = []

        self.process.terminate()
        self.process.remove_binary()
        self.notifier = None
        self.tracker = None
        return error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the session fails with a fatal error.

        Returns:
            True if a fatal error stopped the supervisor
        """
        return self._failed.wait(timeout)

    def _supervisor_worker(self) -> None:
        try:
            self._loop()
        except Exception as e:
            # any error escaping the loop ends the session; wait() reports it
            error = ensure_user_error(e, "Supervisor failed", ErrorCategory.INTERNAL, recoverable=False)
            self.log.error(str(error))
            self.fatal_error = error
            self.shutdown.fire()
            try:
                self.notifier.close()
            except OSError as close_error:
                self.log.warn(f"Failed to close the change notifier: {close_error}")
            self.process.terminate()
            self._set_state(State.STOPPED)
            self._failed.set()
        finally:
            self._set_state(State.STOPPED)

    def _loop(self) -> None:
        while True:
            # IDLE
            self._set_state(State.IDLE)
            if self.shutdown.fired:
                return

            if self.config.run_tests:
                self._set_state(State.TESTING)
                result = self.gate.run(self.rebuild, self.shutdown)
                if result is GateResult.SHUTDOWN:
                    return
                if result is GateResult.RESTART:
                    continue

            self._set_state(State.BUILDING)
            if self.process.build():
                if self.shutdown.fired:
                    return
                self._set_state(State.RUNNING)
                self.process.launch()

            self._set_state(State.WAITING)
            rebuild = self.rebuild.receive(self.shutdown)
            self.process.terminate()
            if not rebuild:
                return

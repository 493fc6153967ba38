#!/usr/bin/env python3
"""
Test Gate: runs ``go test`` in each configured directory before a build

Test failures are advisory: they are logged and the build still happens.
Between directories the gate checks for shutdown and for a newer rebuild
request, so a stale test pass is abandoned as soon as possible.
"""

import subprocess
from enum import Enum
from typing import List, Optional

from gorunner.config_schema import RunnerConfig
from gorunner.log import RunnerLogger
from gorunner.process import find_tool
from gorunner.signals import RebuildSignal, ShutdownToken


class GateResult(Enum):
    """Outcome of one pass through the test directories"""
    COMPLETED = "completed"
    RESTART = "restart"
    SHUTDOWN = "shutdown"


class TestGate:
    """Run the configured test directories in order"""

    # not a pytest test class
    __test__ = False

    def __init__(self, config: RunnerConfig, log: Optional[RunnerLogger] = None):
        self.config = config
        self.log = log or RunnerLogger()

    def test_args(self) -> List[str]:
        args = ["go", "test"]
        if self.config.recursive_tests:
            args.append("./...")
        return args

    def run_test(self, path: str) -> None:
        """
        Run the tests of a single directory.

        Raises:
            subprocess.CalledProcessError: if the tests fail
            OSError: if ``go`` cannot be executed
        """
        args = self.test_args()
        subprocess.run([find_tool("go")] + args[1:], cwd=path, check=True)

    def run(self, rebuild: RebuildSignal, shutdown: ShutdownToken) -> GateResult:
        """
        Run every test directory unless interrupted.

        Returns:
            COMPLETED, or RESTART when a rebuild request arrived in between,
            or SHUTDOWN when the runner is stopping
        """
        self.log.info("Running tests...")
        for path in self.config.test_directories:
            if shutdown.fired:
                return GateResult.SHUTDOWN
            if rebuild.poll():
                return GateResult.RESTART

            try:
                self.run_test(path)
            except (OSError, subprocess.CalledProcessError) as e:
                self.log.error(f"Test run for '{path}' failed: {e}")
                continue
            self.log.info(f"Test run for '{path}' successful")
        return GateResult.COMPLETED

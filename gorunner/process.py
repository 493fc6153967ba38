#!/usr/bin/env python3
"""
Process Supervisor: builds the target binary and owns its single child process

Only the supervisor worker calls into this class. A new child is started only
after the previous one has been killed and reaped, so at most one child ever
runs at a time.
"""

import os
import re
import shutil
import subprocess
import sys
from typing import List, Optional, Tuple

from gorunner.config_schema import RunnerConfig
from gorunner.errors import tool_not_found_error
from gorunner.log import RunnerLogger

BIN_NAME = "gr-tmp-bin"
DLV_VERSION_RE = re.compile(r"[Vv]ersion:\s+v?(\d+)\.(\d+)\.(\d+)")
# first delve release that supports --continue with --accept-multiclient
DLV_CONTINUE_VERSION = (1, 3, 0)


def find_tool(name: str) -> str:
    """
    Locate a toolchain binary on PATH.

    Raises:
        UserError: non-recoverable, if the binary is missing
    """
    path = shutil.which(name)
    if path is None:
        raise tool_not_found_error(name)
    return path


def parse_dlv_version(output: str) -> Optional[Tuple[int, int, int]]:
    """Extract (major, minor, patch) from ``dlv version`` output."""
    match = DLV_VERSION_RE.search(output)
    if not match:
        return None
    return tuple(int(part) for part in match.groups())


def can_use_continue(dlv_path: str) -> bool:
    """True if the installed delve supports ``--continue --accept-multiclient``."""
    try:
        result = subprocess.run([dlv_path, "version"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return False

    version = parse_dlv_version(result.stdout)
    return version is not None and version >= DLV_CONTINUE_VERSION


class ProcessSupervisor:
    """Build, launch and terminate the program under development"""

    def __init__(self, config: RunnerConfig, log: Optional[RunnerLogger] = None):
        self.config = config
        self.log = log or RunnerLogger()
        self.process: Optional[subprocess.Popen] = None
        self._go_bin: Optional[str] = None

    @property
    def bin_path(self) -> str:
        path = os.path.join(self.config.working_directory, BIN_NAME)
        if sys.platform == "win32":
            path += ".exe"
        return path

    @property
    def go_bin(self) -> str:
        if self._go_bin is None:
            self._go_bin = find_tool("go")
        return self._go_bin

    def build_args(self) -> List[str]:
        args = ["go", "build", "-o", self.bin_path]
        if self.config.tags:
            args += ["-tags", " ".join(self.config.tags)]
        if self.config.race_detector:
            args.append("-race")
        if self.config.gcflags:
            args += ["-gcflags", self.config.gcflags]
        if self.config.ldflags:
            args += ["-ldflags", self.config.ldflags]
        return args

    def remove_binary(self) -> bool:
        """
        Delete the temporary binary.

        Returns:
            False if a binary is still in the way; the failure is logged
        """
        try:
            os.remove(self.bin_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.log.error(f"Failed to remove binary '{self.bin_path}': {e}")
            return False
        return True

    def build(self) -> bool:
        """
        Compile the main package into the temporary binary.

        Returns:
            True on success; failures are logged
        """
        args = self.build_args()
        go_bin = self.go_bin
        if not self.remove_binary():
            return False

        self.log.info(f"Building binary with cmd: '{' '.join(args)}'")
        try:
            subprocess.run([go_bin] + args[1:], cwd=self.config.working_directory, check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            self.log.error(f"Failed to build binary: {e}")
            return False
        return True

    def command(self) -> Tuple[str, List[str]]:
        """
        Executable and argv used to start the freshly built binary.

        argv[0] is the program name (``gr-tmp-bin`` or ``dlv``), not its path.
        """
        delve = self.config.delve
        if not delve.enabled:
            return self.bin_path, [BIN_NAME] + list(self.config.command_args)

        dlv_path = find_tool("dlv")
        args = ["dlv", "--headless", "--api-version", str(delve.api_version),
                "-l", delve.listen_address, "exec", self.bin_path]
        if can_use_continue(dlv_path):
            args += ["--continue", "--accept-multiclient"]
        args.append("--")
        return dlv_path, args + list(self.config.command_args)

    def launch(self) -> bool:
        """
        Start the built program, replacing any running child.

        Returns:
            True if the child was started; failures are logged
        """
        self.terminate()
        executable, args = self.command()
        try:
            self.process = subprocess.Popen(args, executable=executable, cwd=self.config.working_directory)
        except OSError as e:
            self.log.error(f"Failed to start process: {e}")
            return False
        self.log.info(f"Started process with pid {self.process.pid}")
        return True

    def terminate(self) -> None:
        """Kill and reap the child, if there is one."""
        process = self.process
        if process is None:
            return
        self.process = None

        try:
            process.kill()
        except OSError as e:
            self.log.error(f"Failed to kill process with pid '{process.pid}': {e}")

        try:
            process.wait()
        except OSError as e:
            self.log.warn(f"Failed to wait for process: {e}")

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

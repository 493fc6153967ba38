#!/usr/bin/env python3
"""
Tests for TestGate
"""

import subprocess

import pytest

from conftest import RecordingLogger
from gorunner import gate as gate_module
from gorunner.config_schema import RunnerConfig
from gorunner.gate import GateResult, TestGate
from gorunner.signals import RebuildSignal, ShutdownToken


class ScriptedGate(TestGate):
    """TestGate whose go test runs are scripted per directory"""

    def __init__(self, config, failures=(), on_run=None):
        super().__init__(config, RecordingLogger())
        self.failures = set(failures)
        self.on_run = on_run
        self.ran = []

    def run_test(self, path):
        self.ran.append(path)
        if self.on_run:
            self.on_run(path)
        if path in self.failures:
            raise subprocess.CalledProcessError(1, ["go", "test"])


@pytest.fixture
def dirs(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()
    return str(a), str(b)


def make_config(tmp_path, test_dirs, **overrides):
    return RunnerConfig(working_directory=str(tmp_path), watch_dirs=[str(tmp_path)],
                        test_directories=list(test_dirs), **overrides)


def test_failing_directory_does_not_stop_the_pass(tmp_path, dirs):
    """Test a failure in ./a is logged and ./b still runs"""
    a, b = dirs
    gate = ScriptedGate(make_config(tmp_path, [a, b]), failures={a})

    result = gate.run(RebuildSignal(), ShutdownToken())

    assert result is GateResult.COMPLETED
    assert gate.ran == [a, b]
    assert any(a in m and "failed" in m for m in gate.log.messages("error"))
    assert any(b in m and "successful" in m for m in gate.log.messages("info"))


def test_rebuild_between_directories_restarts(tmp_path, dirs):
    """Test a rebuild request during ./a abandons ./b"""
    a, b = dirs
    rebuild = RebuildSignal()
    gate = ScriptedGate(make_config(tmp_path, [a, b]), on_run=lambda path: rebuild.offer())

    result = gate.run(rebuild, ShutdownToken())

    assert result is GateResult.RESTART
    assert gate.ran == [a]
    assert rebuild.pending is False


def test_shutdown_between_directories(tmp_path, dirs):
    """Test shutdown during ./a abandons the remaining directories"""
    a, b = dirs
    shutdown = ShutdownToken()
    gate = ScriptedGate(make_config(tmp_path, [a, b]), on_run=lambda path: shutdown.fire())

    assert gate.run(RebuildSignal(), shutdown) is GateResult.SHUTDOWN
    assert gate.ran == [a]


def test_test_args_recursive(tmp_path):
    """Test recursive tests use ./..."""
    gate = TestGate(make_config(tmp_path, [str(tmp_path)]))
    assert gate.test_args() == ["go", "test", "./..."]

    gate = TestGate(make_config(tmp_path, [str(tmp_path)], recursive_tests=False))
    assert gate.test_args() == ["go", "test"]


def test_run_test_invokes_go_in_directory(tmp_path, monkeypatch):
    """Test go test runs in the test directory with check=True"""
    calls = []
    monkeypatch.setattr(gate_module, "find_tool", lambda name: f"/opt/go/bin/{name}")
    monkeypatch.setattr(gate_module.subprocess, "run",
                        lambda args, **kwargs: calls.append((args, kwargs)))

    gate = TestGate(make_config(tmp_path, [str(tmp_path)]))
    gate.run_test(str(tmp_path))

    assert calls == [(["/opt/go/bin/go", "test", "./..."], {"cwd": str(tmp_path), "check": True})]

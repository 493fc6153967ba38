#!/usr/bin/env python3
"""
Tests for the error helpers
"""

from gorunner.errors import (
    ErrorCategory,
    ErrorLevel,
    UserError,
    already_watching_error,
    config_error,
    ensure_user_error,
    format_error_for_display,
    tool_not_found_error,
)


def test_user_error_formatting():
    """Test format_for_user includes category, suggestions, context and cause"""
    error = UserError(
        "Build failed",
        category=ErrorCategory.BUILD,
        suggestions=["Fix the compile errors"],
        context={"dir": "/src/app"},
        cause=OSError("boom"),
    )

    text = error.format_for_user()

    assert text.startswith("Error: Build failed")
    assert "Category: build" in text
    assert "  - Fix the compile errors" in text
    assert "dir: /src/app" in text
    assert "Original error: OSError: boom" in text
    assert str(error) == "Build failed"
    assert "recoverable=True" in repr(error)


def test_config_error_is_fatal():
    """Test configuration errors can't be recovered from"""
    error = config_error("bad path", config_path=".gorunner.json")

    assert error.recoverable is False
    assert error.level == ErrorLevel.FATAL
    assert error.category == ErrorCategory.CONFIG
    assert error.context == {"config_path": ".gorunner.json"}


def test_tool_not_found_error_suggestions():
    """Test missing tools get tool-specific suggestions"""
    dlv = tool_not_found_error("dlv")
    go = tool_not_found_error("go")
    other = tool_not_found_error("gopls")

    assert dlv.recoverable is False
    assert any("delve" in s for s in dlv.suggestions)
    assert any("go.dev" in s for s in go.suggestions)
    assert other.suggestions == ["Make sure 'gopls' is on your PATH"]


def test_already_watching_error_is_recoverable():
    """Test a double watch is an ordinary error"""
    error = already_watching_error()
    assert error.recoverable is True
    assert error.code == "already_watching"


def test_ensure_user_error_wraps_exceptions():
    """Test plain exceptions are converted and UserErrors passed through"""
    original = OSError("too many open files")
    wrapped = ensure_user_error(original, category=ErrorCategory.WATCHER)

    assert wrapped.cause is original
    assert wrapped.category == ErrorCategory.WATCHER
    assert ensure_user_error(wrapped) is wrapped


def test_format_error_for_display():
    """Test display formatting of both error kinds"""
    assert format_error_for_display(ValueError("x")) == "System error: x"
    assert format_error_for_display(config_error("y")).startswith("Error: Configuration error: y")


def test_creating_errors_does_not_log(caplog):
    """Test errors are only reported by whoever handles them"""
    with caplog.at_level("DEBUG"):
        config_error("bad path")
        tool_not_found_error("go")
        already_watching_error()

    assert caplog.records == []

#!/usr/bin/env python3
"""
Runner errors

Fatal conditions (bad configuration, a missing toolchain binary) are raised as
non-recoverable UserErrors. Transient failures of a single test, build or
process start are logged by the caller and never raised past the supervisor
loop. Creating an error never logs; whoever handles it reports it through the
runner's logger.
"""

from enum import Enum
from typing import Optional, List, Dict, Any
import json


class ErrorCategory(Enum):
    """Error categories for classification"""
    CONFIG = "config"
    TOOLCHAIN = "toolchain"
    BUILD = "build"
    TEST = "test"
    PROCESS = "process"
    WATCHER = "watcher"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


class ErrorLevel(Enum):
    """Error severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class UserError(Exception):
    """
    Runner error with a category, hints for the user and a recoverable flag.

    Args:
        message: Error message
        category: Error category
        level: Error severity level
        suggestions: Things the user can try
        recoverable: False if the runner has to exit
        context: Extra values shown with the error
        code: Optional error code for programmatic handling
        cause: Exception that caused this error
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        level: ErrorLevel = ErrorLevel.ERROR,
        suggestions: Optional[List[str]] = None,
        recoverable: bool = True,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.level = level
        self.suggestions = suggestions or []
        self.recoverable = recoverable
        self.context = context or {}
        self.code = code
        self.cause = cause

    def format_for_user(self) -> str:
        lines = [f"Error: {self.message}"]
        if self.category != ErrorCategory.UNKNOWN:
            lines.append(f"Category: {self.category.value}")

        if self.suggestions:
            lines.append("\nSuggestions:")
            lines.extend(f"  - {suggestion}" for suggestion in self.suggestions)

        if self.context:
            lines.append("\nContext:")
            for key, value in self.context.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, indent=2)
                lines.append(f"  {key}: {value}")

        if self.cause:
            lines.append(f"\nOriginal error: {type(self.cause).__name__}: {self.cause}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"UserError(message={self.message!r}, category={self.category.value}, "
            f"level={self.level.value}, recoverable={self.recoverable})"
        )


def format_error_for_display(error: Exception) -> str:
    if isinstance(error, UserError):
        return error.format_for_user()
    return f"System error: {error}"


def ensure_user_error(
    error: Exception,
    default_message: str = "An unexpected error occurred",
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    recoverable: bool = True
) -> UserError:
    """Wrap ``error`` in a UserError unless it already is one."""
    if isinstance(error, UserError):
        return error
    return UserError(str(error) or default_message, category=category,
                     recoverable=recoverable, cause=error)


def config_error(message: str, config_path: Optional[str] = None) -> UserError:
    """Bad configuration; the runner can't start"""
    return UserError(
        f"Configuration error: {message}",
        category=ErrorCategory.CONFIG,
        level=ErrorLevel.FATAL,
        suggestions=[
            "Check that every configured directory exists",
            "Check your .gorunner.json file for syntax errors",
            "Run 'gorunner --help' for the list of options",
        ],
        recoverable=False,
        context={"config_path": config_path} if config_path else {}
    )


_TOOL_HINTS = {
    "go": [
        "Install the Go toolchain from https://go.dev/dl/",
        "Make sure the 'go' binary is on your PATH",
    ],
    "dlv": [
        "Install delve with 'go install github.com/go-delve/delve/cmd/dlv@latest'",
        "Make sure $GOPATH/bin is on your PATH",
        "Run without --use-dlv",
    ],
}


def tool_not_found_error(tool: str, cause: Optional[Exception] = None) -> UserError:
    """A toolchain binary is missing from PATH; fatal"""
    return UserError(
        f"Couldn't find {tool} on PATH",
        category=ErrorCategory.TOOLCHAIN,
        level=ErrorLevel.FATAL,
        suggestions=_TOOL_HINTS.get(tool, [f"Make sure '{tool}' is on your PATH"]),
        recoverable=False,
        context={"tool": tool},
        cause=cause
    )


def already_watching_error() -> UserError:
    return UserError(
        "Runner already watching for file changes",
        category=ErrorCategory.WATCHER,
        suggestions=["Call stop() before starting a new watch session"],
        code="already_watching"
    )


def notifier_error(message: str, path: Optional[str] = None, cause: Optional[Exception] = None) -> UserError:
    return UserError(
        message,
        category=ErrorCategory.WATCHER,
        level=ErrorLevel.WARNING,
        context={"path": path} if path else {},
        cause=cause
    )

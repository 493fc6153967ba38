#!/usr/bin/env python3
"""
Configuration Schema

Defines the runner configuration and its validation rules with Pydantic.
A RunnerConfig is built once, is immutable afterwards, and only ever holds
absolute, de-duplicated paths.
"""

import os
from ipaddress import IPv4Address, IPv6Address
from typing import List, Optional

from pydantic import BaseModel, Field, IPvAnyAddress, field_validator


def sanitize_paths(paths: List[str]) -> List[str]:
    """
    Make every path absolute and drop duplicates, keeping the first position.

    An empty list yields the current working directory and an empty entry
    stands for "./".
    """
    if not paths:
        return [os.getcwd()]

    dirs: List[str] = []
    for path in paths:
        absolute = os.path.abspath(path or "./")
        if absolute not in dirs:
            dirs.append(absolute)
    return dirs


def _require_directories(paths: List[str], label: str) -> List[str]:
    for path in paths:
        if not os.path.isdir(path):
            raise ValueError(f"{label} '{path}' is not a directory")
    return paths


class DelveConfig(BaseModel):
    """Debugger-attach settings"""
    enabled: bool = Field(
        default=False,
        description="Run the built binary under a headless delve server"
    )
    api_version: int = Field(
        default=2,
        ge=1,
        le=2,
        description="API version of the delve server"
    )
    port: int = Field(
        default=2345,
        ge=1,
        le=65535,
        description="Listen port for delve"
    )
    address: IPvAnyAddress = Field(
        default=IPv4Address("0.0.0.0"),
        description="Listen address for delve"
    )

    class Config:
        frozen = True

    @property
    def listen_address(self) -> str:
        if isinstance(self.address, IPv6Address):
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


class RunnerConfig(BaseModel):
    """Main runner configuration schema"""
    working_directory: str = Field(
        default="./",
        description="Directory containing the main package to build and run"
    )
    test_directories: List[str] = Field(
        default_factory=lambda: ["./"],
        description="Directories in which 'go test' is executed, in order"
    )
    run_tests: bool = Field(
        default=True,
        description="Run tests before every build"
    )
    recursive_tests: bool = Field(
        default=True,
        description="Run 'go test ./...' instead of 'go test'"
    )
    watch_dirs: List[str] = Field(
        default_factory=lambda: ["./"],
        description="Directories watched recursively for *.go, go.mod and go.sum changes"
    )
    exclude_dirs: List[str] = Field(
        default_factory=list,
        description="Directory prefixes that are never watched"
    )
    command_args: List[str] = Field(
        default_factory=list,
        description="Arguments passed through to the built program"
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Build tags for 'go build -tags'"
    )
    ldflags: Optional[str] = Field(
        default=None,
        description="Value for 'go build -ldflags'"
    )
    gcflags: Optional[str] = Field(
        default=None,
        description="Value for 'go build -gcflags'"
    )
    race_detector: bool = Field(
        default=False,
        description="Build with the race detector enabled"
    )
    delve: DelveConfig = Field(
        default_factory=DelveConfig,
        description="Debugger-attach settings"
    )

    class Config:
        frozen = True
        extra = "forbid"
        validate_default = True
        json_schema_extra = {
            "example": {
                "working_directory": "./cmd/server",
                "test_directories": ["./"],
                "watch_dirs": ["./"],
                "exclude_dirs": ["./vendor"],
                "command_args": ["-c", "config.json"],
                "delve": {"enabled": True, "port": 2345}
            }
        }

    @field_validator("working_directory", mode="before")
    @classmethod
    def _absolute_working_directory(cls, value: Optional[str]) -> str:
        path = os.path.abspath(value or "./")
        if not os.path.isdir(path):
            raise ValueError(f"working directory '{path}' is not a directory")
        return path

    @field_validator("test_directories")
    @classmethod
    def _absolute_test_directories(cls, value: List[str]) -> List[str]:
        return _require_directories(sanitize_paths(value), "test directory")

    @field_validator("watch_dirs")
    @classmethod
    def _absolute_watch_dirs(cls, value: List[str]) -> List[str]:
        return _require_directories(sanitize_paths(value), "watch directory")

    @field_validator("exclude_dirs")
    @classmethod
    def _absolute_exclude_dirs(cls, value: List[str]) -> List[str]:
        # unlike the other lists, no excludes means no excludes
        if not value:
            return []
        return sanitize_paths(value)

    @field_validator("tags")
    @classmethod
    def _strip_tags(cls, value: List[str]) -> List[str]:
        return [tag.strip() for tag in value if tag.strip()]

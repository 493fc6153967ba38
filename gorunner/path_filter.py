"""Predicates deciding which paths the runner reacts to."""

import os
from typing import Iterable

SOURCE_SUFFIX = ".go"
MANIFEST_NAMES = frozenset({"go.mod", "go.sum"})


def starts_with_any(prefixes: Iterable[str], path: str) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def is_excluded_dir(path: str, exclude_dirs: Iterable[str]) -> bool:
    """
    True if a directory must not be watched (or descended into).

    A directory is excluded when its path starts with one of the exclude
    prefixes or when its basename starts with a dot.
    """
    return starts_with_any(exclude_dirs, path) or os.path.basename(path).startswith(".")


def is_trigger_file(path: str) -> bool:
    """True for *.go sources and the go.mod/go.sum manifests."""
    return path.endswith(SOURCE_SUFFIX) or os.path.basename(path) in MANIFEST_NAMES

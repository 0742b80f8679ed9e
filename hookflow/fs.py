"""Filesystem helpers for job discovery."""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Iterable, Set

# Directory and file patterns never treated as job modules
DEFAULT_IGNORE_PATTERNS: Set[str] = {
    "__pycache__/",
    ".*/",
    "*.egg-info/",
    "__init__.py",
    "_*.py",
    "test_*.py",
}


def _should_ignore_path(path: Path, base_path: Path, patterns: Set[str]) -> bool:
    """Check if ``path`` matches one of ``patterns`` relative to ``base_path``."""
    relative_path = path.relative_to(base_path)
    directories = relative_path.parts[:-1]

    for pattern in patterns:
        if pattern.endswith("/"):
            pattern_no_slash = pattern[:-1]
            if any(fnmatch.fnmatch(part, pattern_no_slash) for part in directories):
                return True
        elif fnmatch.fnmatch(path.name, pattern):
            return True
    return False


def iter_python_files(
    search_path: Path, ignore: Iterable[str] = DEFAULT_IGNORE_PATTERNS
) -> Iterable[Path]:
    """Yield Python files below ``search_path`` in a stable order."""

    patterns = set(ignore)
    for py_file in sorted(search_path.rglob("*.py")):
        if _should_ignore_path(py_file, search_path, patterns):
            continue
        if py_file.is_file():
            yield py_file

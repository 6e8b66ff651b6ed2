"""Discovery of source files and of the headers they include."""

from __future__ import annotations

import fnmatch
import glob
import os
import re
import stat
from collections.abc import Iterable, Iterator

_SYSTEM_INCLUDE_RE = re.compile(r"#include\s*<([^>]+)>")
_LOCAL_INCLUDE_RE = re.compile(r'#include\s*"([^"]+)"')


def _join(directory: str, name: str) -> str:
    """Join like a path cleaner: an absolute ``name`` stays under ``directory``."""
    if not directory:
        return os.path.normpath(name) if name else ""
    return os.path.normpath(f"{directory}{os.sep}{name}")


def _exists(path: str) -> bool:
    """False only when the path is definitely missing."""
    try:
        os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError:
        return True
    return True


class DependencyScanner:
    """Follows ``#include`` directives to collect the headers a file uses."""

    def __init__(self, include_dirs: Iterable[str] | None = None) -> None:
        self.include_dirs = list(include_dirs or [])
        self._visited: set[str] = set()

    def scan(self, source_file: str) -> list[str]:
        """Return every header reachable from ``source_file`` that can be found.

        Headers that cannot be resolved (such as standard library headers) are
        skipped silently.
        """
        self._visited = set()
        dependencies: dict[str, None] = {}
        self._scan(source_file, dependencies)
        return list(dependencies)

    def _find_in_include_dirs(self, name: str) -> str | None:
        for directory in self.include_dirs:
            candidate = _join(directory, name)
            if os.path.exists(candidate):
                return candidate
        return None

    def _scan(self, source_file: str, dependencies: dict[str, None]) -> None:
        if source_file in self._visited:
            return
        self._visited.add(source_file)

        source_dir = os.path.dirname(source_file)
        with open(source_file, encoding="utf-8", errors="replace") as handle:
            lines = handle.read().splitlines()

        for line in lines:
            local = _LOCAL_INCLUDE_RE.search(line)
            if local:
                name = local.group(1)
                resolved: str | None = _join(source_dir, name)
                if not _exists(resolved):
                    resolved = self._find_in_include_dirs(name)
                    if resolved is None:
                        continue
                dependencies[resolved] = None
                self._scan(resolved, dependencies)

            system = _SYSTEM_INCLUDE_RE.search(line)
            if system:
                found = self._find_in_include_dirs(system.group(1))
                if found is not None:
                    dependencies[found] = None
                    self._scan(found, dependencies)


def _walk(root: str) -> Iterator[str]:
    """Yield ``root`` and, for directories, everything below it in lexical order."""
    info = os.lstat(root)
    yield root
    if stat.S_ISDIR(info.st_mode):
        for name in sorted(os.listdir(root)):
            yield from _walk(os.path.join(root, name))


def _glob(pattern: str) -> list[str]:
    return sorted(glob.glob(pattern, include_hidden=True))


def _expand(pattern: str) -> list[str]:
    if os.path.isabs(pattern) or os.sep in pattern:
        return _glob(pattern)
    if "**" in pattern:
        parts = pattern.split("**")
        if len(parts) != 2:
            raise ValueError(f"invalid recursive pattern: {pattern}")
        base_dir, suffix = parts
        return [
            path
            for path in _walk(base_dir)
            if not os.path.isdir(path) and path.endswith(suffix)
        ]
    return _glob(pattern)


def _excluded(path: str, exclude_patterns: list[str]) -> bool:
    base = os.path.basename(path)
    return any(
        fnmatch.fnmatchcase(base, pattern) or pattern in path
        for pattern in exclude_patterns
    )


def find_source_files(
    patterns: Iterable[str], exclude_patterns: Iterable[str] | None = None
) -> list[str]:
    """Expand source patterns, drop excluded files and remove duplicates.

    A pattern without a path separator that contains ``**`` is split into a
    base directory and a suffix, and the directory is searched recursively.
    """
    excludes = list(exclude_patterns or [])
    found: dict[str, None] = {}
    for pattern in patterns:
        for path in _expand(pattern):
            if excludes and _excluded(path, excludes):
                continue
            found[path] = None
    return list(found)
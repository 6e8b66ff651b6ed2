"""Persistent record of build outputs, used to skip up-to-date work."""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

CACHE_VERSION = "1.0"
_NANOSECONDS = 1_000_000_000


class CacheError(Exception):
    """Raised when the cache cannot be read, written or checked."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def file_hash(path: str | Path) -> str:
    """Return the SHA-256 hex digest of a file's contents."""
    hasher = hashlib.sha256()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(65536), b""):
                hasher.update(chunk)
    except OSError as exc:
        raise CacheError(f"failed to hash file: {exc}") from exc
    return hasher.hexdigest()


def command_hash(command: str, args: Iterable[str]) -> str:
    """Return the SHA-256 hex digest of a command followed by its arguments."""
    hasher = hashlib.sha256(command.encode())
    for arg in args:
        hasher.update(arg.encode())
    return hasher.hexdigest()


def _mtime_seconds(info: os.stat_result) -> int:
    return info.st_mtime_ns // _NANOSECONDS


@dataclass
class CacheEntry:
    """What was known about an output file when it was last built."""

    path: str
    hash: str = ""
    timestamp: int = 0
    dependencies: list[str] = field(default_factory=list)
    command_hash: str = ""
    object_file: str = ""
    compilation_time: float = 0.0

    def to_json(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "hash": self.hash,
            "timestamp": self.timestamp,
            "dependencies": list(self.dependencies),
            "command_hash": self.command_hash,
            "object_file": self.object_file,
            "compilation_time": round(self.compilation_time * _NANOSECONDS),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            path=str(data.get("path", "")),
            hash=str(data.get("hash", "")),
            timestamp=int(data.get("timestamp", 0)),
            dependencies=[str(d) for d in data.get("dependencies") or []],
            command_hash=str(data.get("command_hash", "")),
            object_file=str(data.get("object_file", "")),
            compilation_time=int(data.get("compilation_time", 0)) / _NANOSECONDS,
        )


@dataclass
class BuildCache:
    """All cache entries, keyed by output path."""

    version: str = CACHE_VERSION
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    last_build_time: datetime = field(default_factory=_now)

    def to_json(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "entries": {key: entry.to_json() for key, entry in self.entries.items()},
            "last_build_time": self.last_build_time.isoformat(),
        }

    @classmethod
    def from_json(cls, data: Any) -> BuildCache:
        if not isinstance(data, dict):
            raise ValueError("cache document is not an object")
        entries = data.get("entries") or {}
        if not isinstance(entries, dict):
            raise ValueError("cache entries are not an object")
        last = data.get("last_build_time")
        return cls(
            version=str(data.get("version", "")),
            entries={key: CacheEntry.from_json(value) for key, value in entries.items()},
            last_build_time=datetime.fromisoformat(last) if last else _now(),
        )


class Cache:
    """Loads, queries, updates and saves a :class:`BuildCache` file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.build_cache: BuildCache | None = None
        self.hash_algorithm = "sha256"

    def load(self) -> None:
        """Read the cache file, starting a fresh cache when none exists."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"failed to create cache directory: {exc}") from exc
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            self.build_cache = BuildCache()
            return
        except OSError as exc:
            raise CacheError(f"failed to read cache file: {exc}") from exc
        try:
            self.build_cache = BuildCache.from_json(json.loads(text))
        except (ValueError, TypeError, AttributeError) as exc:
            raise CacheError(f"failed to parse cache file: {exc}") from exc

    def save(self) -> None:
        """Stamp the build time and write the cache as indented JSON."""
        if self.build_cache is None:
            self.build_cache = BuildCache()
        self.build_cache.last_build_time = _now()
        data = json.dumps(self.build_cache.to_json(), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(data)
        except OSError as exc:
            raise CacheError(f"failed to write cache file: {exc}") from exc

    def get_entry(self, path: str) -> CacheEntry | None:
        if self.build_cache is None:
            return None
        return self.build_cache.entries.get(path)

    def put_entry(self, entry: CacheEntry) -> None:
        if self.build_cache is None:
            self.build_cache = BuildCache()
        self.build_cache.entries[entry.path] = entry

    def remove_entry(self, path: str) -> None:
        if self.build_cache is not None:
            self.build_cache.entries.pop(path, None)

    def needs_rebuild(
        self, path: str, dependencies: Iterable[str], command_hash: str
    ) -> bool:
        """Tell whether ``path`` is stale relative to its entry and dependencies."""
        entry = self.get_entry(path)
        if entry is None:
            return True
        try:
            info = os.stat(path)
        except FileNotFoundError:
            return True
        except OSError as exc:
            raise CacheError(f"failed to stat file: {exc}") from exc

        if _mtime_seconds(info) != entry.timestamp:
            return True
        try:
            current = file_hash(path)
        except CacheError as exc:
            raise CacheError(f"failed to calculate hash: {exc}") from exc
        if current != entry.hash or command_hash != entry.command_hash:
            return True

        for dependency in dependencies:
            try:
                dep_info = os.stat(dependency)
            except OSError:
                return True
            if self.needs_rebuild(dependency, [], ""):
                return True
            if _mtime_seconds(dep_info) > entry.timestamp:
                return True
        return False

    def update_entry(
        self,
        path: str,
        dependencies: Iterable[str],
        command_hash: str,
        object_file: str,
        compilation_time: float,
    ) -> None:
        """Record ``path`` as freshly built; ``compilation_time`` is in seconds."""
        try:
            info = os.stat(path)
        except OSError as exc:
            raise CacheError(f"failed to stat file: {exc}") from exc
        try:
            digest = file_hash(path)
        except CacheError as exc:
            raise CacheError(f"failed to calculate hash: {exc}") from exc
        self.put_entry(
            CacheEntry(
                path=path,
                hash=digest,
                timestamp=_mtime_seconds(info),
                dependencies=list(dependencies),
                command_hash=command_hash,
                object_file=object_file,
                compilation_time=compilation_time,
            )
        )

    def clean(self) -> None:
        """Forget entries whose files no longer exist."""
        if self.build_cache is None:
            return
        for path in list(self.build_cache.entries):
            if not os.path.lexists(path):
                self.remove_entry(path)
"""Detection of the host operating system and its file-naming conventions."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass


class Platform(enum.IntEnum):
    """Operating systems the build tool knows about."""

    UNKNOWN = 0
    WINDOWS = 1
    LINUX = 2
    MACOS = 3


@dataclass(frozen=True)
class PlatformInfo:
    """File extensions and separators used on a platform."""

    platform: Platform
    name: str
    obj_extension: str
    exe_extension: str
    static_lib_extension: str
    shared_lib_extension: str
    path_separator: str


_PLATFORM_INFO = {
    Platform.WINDOWS: PlatformInfo(
        platform=Platform.WINDOWS,
        name="windows",
        obj_extension=".obj",
        exe_extension=".exe",
        static_lib_extension=".lib",
        shared_lib_extension=".dll",
        path_separator="\\",
    ),
    Platform.LINUX: PlatformInfo(
        platform=Platform.LINUX,
        name="linux",
        obj_extension=".o",
        exe_extension="",
        static_lib_extension=".a",
        shared_lib_extension=".so",
        path_separator="/",
    ),
    Platform.MACOS: PlatformInfo(
        platform=Platform.MACOS,
        name="macos",
        obj_extension=".o",
        exe_extension="",
        static_lib_extension=".a",
        shared_lib_extension=".dylib",
        path_separator="/",
    ),
    Platform.UNKNOWN: PlatformInfo(
        platform=Platform.UNKNOWN,
        name="unknown",
        obj_extension=".o",
        exe_extension="",
        static_lib_extension=".a",
        shared_lib_extension=".so",
        path_separator="/",
    ),
}


def detect_platform() -> Platform:
    """Return the platform the interpreter is running on."""
    system = sys.platform
    if system in ("win32", "cygwin"):
        return Platform.WINDOWS
    if system.startswith("linux"):
        return Platform.LINUX
    if system == "darwin":
        return Platform.MACOS
    return Platform.UNKNOWN


def get_platform_info() -> PlatformInfo:
    """Return conventions for the current platform, Unix-like when unknown."""
    return _PLATFORM_INFO[detect_platform()]


def is_unix_like(platform: Platform) -> bool:
    """Tell whether the platform is Linux or macOS."""
    return platform in (Platform.LINUX, Platform.MACOS)
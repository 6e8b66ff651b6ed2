import sys

import pytest

from styx.osinfo import (
    Platform,
    PlatformInfo,
    detect_platform,
    get_platform_info,
    is_unix_like,
)


@pytest.mark.parametrize(
    ("system", "expected"),
    [
        ("linux", Platform.LINUX),
        ("darwin", Platform.MACOS),
        ("win32", Platform.WINDOWS),
        ("freebsd13", Platform.UNKNOWN),
    ],
)
def test_detect_platform(monkeypatch, system, expected):
    monkeypatch.setattr(sys, "platform", system)
    assert detect_platform() is expected


def test_windows_info(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    info = get_platform_info()
    assert info.name == "windows"
    assert info.exe_extension == ".exe"
    assert info.obj_extension == ".obj"
    assert info.static_lib_extension == ".lib"
    assert info.shared_lib_extension == ".dll"


def test_linux_info(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    info = get_platform_info()
    assert info.platform is Platform.LINUX
    assert info.exe_extension == ""
    assert info.shared_lib_extension == ".so"
    assert info.path_separator == "/"


def test_macos_info(monkeypatch):
    monkeypatch.setattr(sys, "platform", "darwin")
    info = get_platform_info()
    assert info.name == "macos"
    assert info.shared_lib_extension == ".dylib"


def test_unknown_falls_back_to_unix_conventions(monkeypatch):
    monkeypatch.setattr(sys, "platform", "sunos5")
    info = get_platform_info()
    assert info.name == "unknown"
    assert info.obj_extension == ".o"
    assert info.static_lib_extension == ".a"


def test_info_matches_detected_platform():
    info = get_platform_info()
    assert isinstance(info, PlatformInfo)
    assert info.platform is detect_platform()


@pytest.mark.parametrize(
    ("platform", "expected"),
    [
        (Platform.LINUX, True),
        (Platform.MACOS, True),
        (Platform.WINDOWS, False),
        (Platform.UNKNOWN, False),
    ],
)
def test_is_unix_like(platform, expected):
    assert is_unix_like(platform) is expected
"""GCC and Clang drivers, and a registry of the compilers found on the system."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import ClassVar

from styx.osinfo import Platform, detect_platform

_PROBE_PROGRAM = b"int main() { return 0; }"
_PREFERENCE = ("clang", "gcc", "msvc")


class CompilerError(Exception):
    """Raised when a compiler or archiver is missing or a command fails."""


def get_compiler_version(path: str, version_flag: str = "--version") -> str:
    """Return the first line of the compiler's version output, or ``unknown``."""
    try:
        completed = subprocess.run(
            [path, version_flag],
            stdin=subprocess.DEVNULL,
            capture_output=True,
        )
    except OSError:
        return "unknown"
    if completed.returncode != 0:
        return "unknown"
    return completed.stdout.decode(errors="replace").split("\n")[0].strip()


def _run(argv: Sequence[str], action: str) -> None:
    try:
        completed = subprocess.run(list(argv))
    except OSError as exc:
        raise CompilerError(f"{action} failed: {exc}") from exc
    if completed.returncode != 0:
        raise CompilerError(f"{action} failed: exit status {completed.returncode}")


@dataclass
class Compiler:
    """A C/C++ compiler driver found at ``path``."""

    name: ClassVar[str] = ""
    executable: ClassVar[str] = ""
    cxx_compiler_name: ClassVar[str] = ""
    archivers: ClassVar[tuple[str, ...]] = ("ar",)

    path: str
    version: str = "unknown"
    platform: Platform = field(default_factory=detect_platform)
    target_triple: str = ""

    @classmethod
    def _locate(cls, path: str, target_triple: str) -> Compiler:
        if not path:
            found = shutil.which(cls.executable)
            if found is None:
                raise CompilerError(f"{cls.executable} not found")
            path = found
        return cls(
            path=path,
            version=get_compiler_version(path, "--version"),
            target_triple=target_triple,
        )

    @property
    def object_extension(self) -> str:
        return ".o"

    @property
    def executable_extension(self) -> str:
        return ".exe" if self.platform == Platform.WINDOWS else ""

    @property
    def static_library_extension(self) -> str:
        return ".a"

    @property
    def shared_library_extension(self) -> str:
        if self.platform == Platform.WINDOWS:
            return ".dll"
        if self.platform == Platform.MACOS:
            return ".dylib"
        return ".so"

    def _target_args(self) -> list[str]:
        return []

    def _probe_args(self, flag: str) -> list[str]:
        return ["-Werror", "-fsyntax-only", "-xc", "-", flag]

    def _find_archiver(self) -> str:
        for name in self.archivers:
            found = shutil.which(name)
            if found is not None:
                return found
        raise CompilerError("ar not found")

    def compile(self, source: str, output: str, flags: Iterable[str] = ()) -> str:
        """Compile one source file into an object file; return the object path."""
        args = [*self._target_args(), "-c", source, "-o", output, *flags]
        _run([self.path, *args], f"compiling {source}")
        return output

    def link(self, objects: Iterable[str], output: str, flags: Iterable[str] = ()) -> str:
        """Link object files into an executable; return its path."""
        args = [*self._target_args(), *objects, "-o", output, *flags]
        _run([self.path, *args], f"linking {output}")
        return output

    def archive(
        self, objects: Iterable[str], output: str, flags: Iterable[str] = ()
    ) -> str:
        """Bundle object files into a static library with ``ar``; return its path."""
        archiver = self._find_archiver()
        args = [*flags, "rcs", output, *objects]
        _run([archiver, *args], f"archiving {output}")
        return output

    def supports_flag(self, flag: str) -> bool:
        """Tell whether a trivial program compiles cleanly with ``flag``."""
        try:
            completed = subprocess.run(
                [self.path, *self._probe_args(flag)],
                input=_PROBE_PROGRAM,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            return False
        return completed.returncode == 0

    def supports_language(self, language: str) -> bool:
        return language.lower() in ("c", "c++", "objective-c")


@dataclass
class GCCCompiler(Compiler):
    """The GNU compiler collection."""

    name: ClassVar[str] = "GCC"
    executable: ClassVar[str] = "gcc"
    cxx_compiler_name: ClassVar[str] = "g++"
    archivers: ClassVar[tuple[str, ...]] = ("ar",)

    @classmethod
    def find(cls, path: str = "", target_triple: str = "") -> GCCCompiler:
        """Create a driver for ``path``, or for the gcc found on PATH."""
        return cls._locate(path, target_triple)

    def _probe_args(self, flag: str) -> list[str]:
        return ["-Werror", "-fsyntax-only", "-c", "-", "-o", os.devnull, flag]

    def supports_language(self, language: str) -> bool:
        language = language.lower()
        if language == "c":
            return True
        if language == "c++":
            return shutil.which("g++") is not None
        if language == "objective-c":
            return self.supports_flag("-ObjC")
        return False


@dataclass
class ClangCompiler(Compiler):
    """The LLVM C-family front end."""

    name: ClassVar[str] = "Clang"
    executable: ClassVar[str] = "clang"
    cxx_compiler_name: ClassVar[str] = "clang++"
    archivers: ClassVar[tuple[str, ...]] = ("llvm-ar", "ar")

    @classmethod
    def find(cls, path: str = "", target_triple: str = "") -> ClangCompiler:
        """Create a driver for ``path``, or for the clang found on PATH."""
        return cls._locate(path, target_triple)

    def _target_args(self) -> list[str]:
        return ["-target", self.target_triple] if self.target_triple else []


_registry: dict[str, Compiler] = {}


def register_compiler(compiler: Compiler) -> None:
    """Make ``compiler`` available by its case-insensitive name."""
    _registry[compiler.name.lower()] = compiler


def get_compiler(name: str) -> Compiler:
    """Return the registered compiler called ``name``."""
    try:
        return _registry[name.lower()]
    except KeyError:
        raise CompilerError(f"compiler not found: {name}") from None


def detect_compilers() -> list[Compiler]:
    """Find GCC and Clang on PATH, register them and return them."""
    found: list[Compiler] = []
    for cls in (GCCCompiler, ClangCompiler):
        path = shutil.which(cls.executable)
        if path is None:
            continue
        compiler = cls(path=path, version=get_compiler_version(path, "--version"))
        found.append(compiler)
        register_compiler(compiler)
    return found


def get_default_compiler(preferred_type: str = "") -> Compiler:
    """Return the preferred compiler if registered, else the best one detected."""
    if preferred_type and preferred_type != "auto":
        try:
            return get_compiler(preferred_type)
        except CompilerError:
            pass
    found = detect_compilers()
    if not found:
        raise CompilerError("no compilers found on the system")
    for kind in _PREFERENCE:
        for compiler in found:
            if kind in compiler.name.lower():
                return compiler
    return found[0]
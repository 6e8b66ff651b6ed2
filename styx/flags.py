"""Command lines, output paths and staleness checks used by the builder."""

from __future__ import annotations

import os
from collections.abc import Sequence

from styx.cache import Cache, CacheError
from styx.compilers import Compiler
from styx.config import Config

_CPP_EXTENSIONS = (".cpp", ".cc", ".cxx", ".C")


def is_cpp_source(path: str) -> bool:
    """Tell whether ``path`` has a C++ source extension."""
    return os.path.splitext(path)[1] in _CPP_EXTENSIONS


def compiler_command(compiler_name: str, is_cpp: bool) -> str:
    """Return the command to run, switching to the C++ driver for C++ work."""
    if is_cpp:
        if "clang" in compiler_name:
            return "clang++"
        if "gcc" in compiler_name:
            return "g++"
    return compiler_name


def compilation_flags(config: Config, target: str) -> list[str]:
    """Language flags, standard, include directories, then target flags."""
    language = config.project.language
    flags: list[str] = []
    if language == "c":
        flags.extend(config.toolchain.c_flags)
    elif language == "c++":
        flags.extend(config.toolchain.cxx_flags)

    if config.project.standard and language in ("c", "c++"):
        flags.append("-std=" + config.project.standard)

    flags.extend("-I" + directory for directory in config.build.include_dirs)

    target_config = config.targets.get(target)
    if target_config is not None:
        if language == "c":
            flags.extend(target_config.c_flags)
        elif language == "c++":
            flags.extend(target_config.cxx_flags)
    return flags


def linking_flags(config: Config, target: str, has_cpp: bool) -> list[str]:
    """Global linker flags, target linker flags and the C++ runtime if needed."""
    flags = list(config.toolchain.linker_flags)
    target_config = config.targets.get(target)
    if target_config is not None:
        flags.extend(target_config.linker_flags)
    if has_cpp:
        flags.append("-lstdc++")
    return flags


def archiver_flags(config: Config) -> list[str]:
    return list(config.toolchain.archiver_flags)


def object_file_path(source_file: str, output_dir: str, object_extension: str) -> str:
    """Mirror the source's relative directory under ``output_dir``.

    Sources in absolute directories are placed directly in ``output_dir``.
    """
    stem = os.path.splitext(os.path.basename(source_file))[0]
    name = stem + object_extension
    directory = os.path.dirname(source_file) or "."
    if os.path.isabs(directory):
        return os.path.normpath(os.path.join(output_dir, name))
    return os.path.normpath(os.path.join(output_dir, directory, name))


def output_path(config: Config, output_dir: str, compiler: Compiler) -> str:
    """Path of the final executable or library."""
    name = config.build.output_name
    output_type = config.build.output_type
    if output_type == "static_lib":
        filename = "lib" + name + compiler.static_library_extension
    elif output_type == "shared_lib":
        filename = "lib" + name + compiler.shared_library_extension
    else:
        filename = name + compiler.executable_extension
    return os.path.join(output_dir, filename)


def needs_rebuild(
    cache: Cache, object_file: str, dependencies: Sequence[str], command_hash: str
) -> tuple[bool, str]:
    """Decide whether ``object_file`` must be rebuilt, with the reason.

    ``dependencies[0]`` is the source file; the rest are headers.
    """
    try:
        if cache.needs_rebuild(object_file, dependencies, command_hash):
            return True, "cache indicates rebuild needed"
    except CacheError:
        pass

    try:
        object_mtime = os.stat(object_file).st_mtime_ns
    except OSError:
        return True, "object file doesn't exist"

    try:
        source_mtime = os.stat(dependencies[0]).st_mtime_ns
    except (OSError, IndexError):
        return True, "cannot stat source file"
    if source_mtime > object_mtime:
        return True, "source file modified"

    for dependency in dependencies[1:]:
        try:
            dep_mtime = os.stat(dependency).st_mtime_ns
        except OSError:
            return True, "cannot stat dependency"
        if dep_mtime > object_mtime:
            return True, f"dependency {os.path.basename(dependency)} modified"
    return False, "up to date"
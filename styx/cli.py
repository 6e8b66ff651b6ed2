"""Command-line interface: build, clean, run, init and compiler commands."""

from __future__ import annotations

import argparse
import io
import os
import subprocess
import sys
import time
from collections.abc import Sequence
from pathlib import Path

from styx.builder import DEFAULT_OUTPUT_DIR, DEFAULT_TARGET, Builder, BuildError
from styx.compilers import detect_compilers
from styx.config import Config, ConfigError, load_config, parse_file
from styx.console import Logger
from styx.osinfo import Platform, detect_platform
from styx.script_config import load_script_config

VERSION = "0.1.0"
CONFIG_FILE = "styx.toml"
PROJECT_DIRS = ("src", "include", "build")

_DESCRIPTION = (
    "Styx is a modern, lightweight build system for C and C++ projects.\n"
    "it provides simple configuration, fast incremental builds, and\n"
    "supports specialized environments like OSDev and embedded systems."
)

_CONFIG_TEMPLATE = """[project]
name = "{name}"
version = "0.1.0"
language = "c++"
standard = "c++23"

[build]
output_type = "executable"
output_name = "{name}"
sources = [ "src/*.cpp", "src/**/*.cpp" ]
include_dirs = [ "include" ]

[toolchain]
compiler = "auto"
c_flags = [ "-Wall", "-Wextra" ]
cxx_flags = [ "-Wall", "-Wextra" ]
linker_flags = []

[targets.debug]
c_flags = ["-g", "-O0"]
cxx_flags = ["-g", "-O0"]

[targets.release]
c_flags = ["-O2", "-DNDEBUG"]
cxx_flags = ["-O2", "-DNDEBUG"]
"""

_MAIN_TEMPLATE = """#include <iostream>

int main(int argc, char* argv[])
{
    std::cout << "Hello from " << argv[0] << "!" << std::endl;
    return 0;
}
"""


def _silent_logger() -> Logger:
    return Logger(False, io.StringIO())


def _add_global_options(parser: argparse.ArgumentParser, suppress: bool) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=argparse.SUPPRESS if suppress else None,
        help="path to configuration file (default: styx.toml in current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="enable verbose output",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``styx`` command."""
    parser = argparse.ArgumentParser(
        prog="styx",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"styx {VERSION}")
    _add_global_options(parser, suppress=False)

    shared = argparse.ArgumentParser(add_help=False)
    _add_global_options(shared, suppress=True)

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    build = commands.add_parser(
        "build", parents=[shared], help="build the project",
        description="build the project according to the configuration file.",
    )
    build.add_argument("-t", "--target", default="", help="build target (e.g., debug, release)")
    build.add_argument("-o", "--output-dir", default="", help="output directory")
    build.add_argument(
        "-j", "--jobs", type=int, default=os.cpu_count() or 1,
        help="number of parallel jobs",
    )

    clean = commands.add_parser(
        "clean", parents=[shared], help="clean build artifacts",
        description="remove build artifacts and clear build cache.",
    )
    clean.add_argument("-t", "--target", default="", help="clean specific target (default: all)")

    run = commands.add_parser(
        "run", parents=[shared], help="build and run the project",
        description="build and then execute the resulting binary.",
    )
    run.add_argument("-t", "--target", default="", help="build target (e.g., debug, release)")
    run.add_argument("args", nargs=argparse.REMAINDER, help="arguments for the program")

    commands.add_parser(
        "init", parents=[shared], help="initialize a new project",
        description="create a new Styx project in the current directory.",
    )
    commands.add_parser(
        "compiler", parents=[shared], help="show compiler information",
        description="display information about available compilers.",
    )
    return parser


def _load(config_path: str | None, log: Logger) -> Config:
    if config_path:
        log.info("using configuration file: %s", config_path)
        return parse_file(config_path)

    log.info("searching for configuration file...")
    try:
        config = load_config(None)
    except ConfigError:
        log.info("no TOML configuration found, trying script configuration...")
        try:
            config = load_script_config(None)
        except ConfigError:
            raise ConfigError("no configuration file found") from None
        log.success("found script configuration")
    else:
        log.success("found TOML configuration")
    return config


def load_project_config(config_path: str | None = None) -> Config:
    """Load the given file, or find ``styx.toml`` or ``styx.script`` in the working directory."""
    return _load(config_path, _silent_logger())


def _init_project(directory: str | Path, log: Logger) -> str:
    root = Path(directory)
    config_file = root / CONFIG_FILE
    if config_file.exists():
        raise FileExistsError("project already initialized; styx.toml exists")

    log.info("creating project directories...")
    for name in PROJECT_DIRS:
        log.info("creating directory: %s", name)
        try:
            (root / name).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OSError(f"failed to create directory {name}: {exc}") from exc

    project_name = root.resolve().name
    log.info("project name: %s", project_name)

    log.info("creating configuration file...")
    try:
        config_file.write_text(_CONFIG_TEMPLATE.format(name=project_name))
    except OSError as exc:
        raise OSError(f"failed to write configuration file: {exc}") from exc
    log.success("created styx.toml")

    log.info("creating main.cpp...")
    try:
        (root / "src" / "main.cpp").write_text(_MAIN_TEMPLATE)
    except OSError as exc:
        raise OSError(f"failed to write main.cpp: {exc}") from exc
    log.success("created src/main.cpp")

    log.success("project %s initialized successfully", project_name)
    log.note("run 'styx build' to build the project")
    log.note("run 'styx run' to build and run the project")
    return project_name


def init_project(directory: str | Path = ".") -> str:
    """Create a new project skeleton in ``directory`` and return its name."""
    return _init_project(directory, _silent_logger())


def _load_or_report(args: argparse.Namespace, log: Logger) -> Config | None:
    log.info("loading project configuration...")
    try:
        return _load(args.config, log)
    except ConfigError as exc:
        log.error("failed to load configuration: %s", exc)
        return None


def _make_builder(config: Config, target: str, log: Logger) -> Builder | None:
    log.info("creating builder...")
    try:
        builder = Builder(config)
    except BuildError as exc:
        log.error("failed to create builder: %s", exc)
        return None
    if target:
        log.info("setting target: %s", target)
        try:
            builder.set_target(target)
        except BuildError as exc:
            log.error("invalid target: %s", exc)
            return None
    return builder


def _cmd_build(args: argparse.Namespace, log: Logger) -> int:
    config = _load_or_report(args, log)
    if config is None:
        return 1
    builder = _make_builder(config, args.target, log)
    if builder is None:
        return 1
    output_dir = getattr(args, "output_dir", "")
    if output_dir:
        log.info("setting output directory: %s", output_dir)
        try:
            builder.set_output_dir(output_dir)
        except BuildError as exc:
            log.error("invalid output directory: %s", exc)
            return 1
    builder.set_verbose(args.verbose)

    start = time.monotonic()
    try:
        builder.build()
    except (BuildError, OSError) as exc:
        log.error("build failed: %s", exc)
        return 1
    log.success("build completed in %.2f seconds", time.monotonic() - start)
    return 0


def _cmd_clean(args: argparse.Namespace, log: Logger) -> int:
    config = _load_or_report(args, log)
    if config is None:
        return 1
    builder = _make_builder(config, args.target, log)
    if builder is None:
        return 1
    try:
        builder.clean()
    except (BuildError, OSError) as exc:
        log.error("clean failed: %s", exc)
        return 1
    log.success("clean completed successfully")
    return 0


def _cmd_run(args: argparse.Namespace, log: Logger) -> int:
    status = _cmd_build(args, log)
    if status != 0:
        return status

    config = _load_or_report(args, log)
    if config is None:
        return 1
    if config.build.output_type != "executable":
        log.error("cannot run non-executable output")
        return 1

    target_dir = os.path.join(
        getattr(args, "output_dir", "") or DEFAULT_OUTPUT_DIR,
        args.target or DEFAULT_TARGET,
    )
    output_name = config.build.output_name or config.project.name
    extension = ".exe" if detect_platform() == Platform.WINDOWS else ""
    exe_path = os.path.join(target_dir, output_name + extension)
    if not os.path.exists(exe_path):
        log.error("executable not found: %s", exe_path)
        return 1

    try:
        completed = subprocess.run([exe_path, *args.args])
    except OSError as exc:
        log.error("execution failed: %s", exc)
        return 1
    if completed.returncode != 0:
        log.error("execution failed: exit status %d", completed.returncode)
        return 1
    return 0


def _cmd_init(args: argparse.Namespace, log: Logger) -> int:
    try:
        _init_project(".", log)
    except OSError as exc:
        log.error("%s", exc)
        return 1
    return 0


def _cmd_compiler(args: argparse.Namespace, log: Logger) -> int:
    log.info("detecting available compilers...")
    compilers = detect_compilers()
    if not compilers:
        log.error("no compilers found")
        return 1
    log.success("found %d compiler(s)", len(compilers))
    for number, compiler in enumerate(compilers, start=1):
        log.info("compiler #%d: %s", number, compiler.name)
        log.note("  version: %s", compiler.version)
        log.note("  object extension: %s", compiler.object_extension)
        log.note("  executable extension: %s", compiler.executable_extension)
        log.note("  static library extension: %s", compiler.static_library_extension)
        log.note("  shared library extension: %s", compiler.shared_library_extension)
    return 0


_COMMANDS = {
    "build": _cmd_build,
    "clean": _cmd_clean,
    "run": _cmd_run,
    "init": _cmd_init,
    "compiler": _cmd_compiler,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the ``styx`` command and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    log = Logger(args.verbose, sys.stderr)
    return _COMMANDS[args.command](args, log)


if __name__ == "__main__":
    sys.exit(main())
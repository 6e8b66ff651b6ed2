"""Project configuration read from ``styx.toml``."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

VALID_OUTPUT_TYPES = ("executable", "static_lib", "shared_lib")
CONFIG_FILE_NAMES = ("styx.toml", "Styx.toml")


class ConfigError(Exception):
    """Raised when a configuration is missing, unreadable or invalid."""


@dataclass
class ProjectConfig:
    name: str = ""
    version: str = ""
    language: str = ""
    standard: str = ""


@dataclass
class BuildConfig:
    output_type: str = ""
    output_name: str = ""
    sources: list[str] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    pre_build_cmds: list[str] = field(default_factory=list)
    post_build_cmds: list[str] = field(default_factory=list)


@dataclass
class ToolchainConfig:
    compiler: str = ""
    c_flags: list[str] = field(default_factory=list)
    cxx_flags: list[str] = field(default_factory=list)
    linker_flags: list[str] = field(default_factory=list)
    archiver_flags: list[str] = field(default_factory=list)


@dataclass
class TargetConfig:
    c_flags: list[str] = field(default_factory=list)
    cxx_flags: list[str] = field(default_factory=list)
    linker_flags: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class DependencyConfig:
    version: str = ""
    url: str = ""
    local: str = ""


@dataclass
class EnvironmentConfig:
    toolchain: str = ""
    output_dir: str = ""
    build_flags: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    pre_build_cmds: list[str] = field(default_factory=list)
    post_build_cmds: list[str] = field(default_factory=list)


@dataclass
class Config:
    project: ProjectConfig = field(default_factory=ProjectConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    targets: dict[str, TargetConfig] = field(default_factory=dict)
    dependencies: dict[str, DependencyConfig] = field(default_factory=dict)
    environment: dict[str, EnvironmentConfig] = field(default_factory=dict)


def _table(data: dict[str, Any], key: str, where: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"{where}{key}: expected a table")
    return value


def _string(data: dict[str, Any], key: str, where: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise ConfigError(f"{where}{key}: expected a string")
    return value


def _strings(data: dict[str, Any], key: str, where: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}{key}: expected a list of strings")
    return list(value)


def _string_map(data: dict[str, Any], key: str, where: str) -> dict[str, str]:
    value = _table(data, key, where)
    if not all(isinstance(v, str) for v in value.values()):
        raise ConfigError(f"{where}{key}: expected string values")
    return dict(value)


def _target(data: dict[str, Any], where: str) -> TargetConfig:
    return TargetConfig(
        c_flags=_strings(data, "c_flags", where),
        cxx_flags=_strings(data, "cxx_flags", where),
        linker_flags=_strings(data, "linker_flags", where),
        env=_string_map(data, "env", where),
    )


def _dependency(data: dict[str, Any], where: str) -> DependencyConfig:
    return DependencyConfig(
        version=_string(data, "version", where),
        url=_string(data, "url", where),
        local=_string(data, "local", where),
    )


def _environment(data: dict[str, Any], where: str) -> EnvironmentConfig:
    return EnvironmentConfig(
        toolchain=_string(data, "toolchain", where),
        output_dir=_string(data, "output_dir", where),
        build_flags=_strings(data, "build_flags", where),
        env=_string_map(data, "env", where),
        pre_build_cmds=_strings(data, "pre_build_cmds", where),
        post_build_cmds=_strings(data, "post_build_cmds", where),
    )


def _named_tables(data: dict[str, Any], key: str, build) -> dict:
    tables = _table(data, key, "")
    result = {}
    for name, value in tables.items():
        if not isinstance(value, dict):
            raise ConfigError(f"{key}.{name}: expected a table")
        result[name] = build(value, f"{key}.{name}.")
    return result


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a configuration from decoded TOML data; unknown keys are ignored."""
    project = _table(data, "project", "")
    build = _table(data, "build", "")
    toolchain = _table(data, "toolchain", "")
    return Config(
        project=ProjectConfig(
            name=_string(project, "name", "project."),
            version=_string(project, "version", "project."),
            language=_string(project, "language", "project."),
            standard=_string(project, "standard", "project."),
        ),
        build=BuildConfig(
            output_type=_string(build, "output_type", "build."),
            output_name=_string(build, "output_name", "build."),
            sources=_strings(build, "sources", "build."),
            include_dirs=_strings(build, "include_dirs", "build."),
            exclude=_strings(build, "exclude", "build."),
            pre_build_cmds=_strings(build, "pre_build_cmds", "build."),
            post_build_cmds=_strings(build, "post_build_cmds", "build."),
        ),
        toolchain=ToolchainConfig(
            compiler=_string(toolchain, "compiler", "toolchain."),
            c_flags=_strings(toolchain, "c_flags", "toolchain."),
            cxx_flags=_strings(toolchain, "cxx_flags", "toolchain."),
            linker_flags=_strings(toolchain, "linker_flags", "toolchain."),
            archiver_flags=_strings(toolchain, "archiver_flags", "toolchain."),
        ),
        targets=_named_tables(data, "targets", _target),
        dependencies=_named_tables(data, "dependencies", _dependency),
        environment=_named_tables(data, "environment", _environment),
    )


def validate_config(config: Config) -> None:
    """Check required fields; default the output name to the project name."""
    if not config.project.name:
        raise ConfigError("project name is required")
    if not config.build.output_type:
        raise ConfigError("build output type is required")
    if config.build.output_type not in VALID_OUTPUT_TYPES:
        raise ConfigError(
            f"invalid output type: {config.build.output_type} "
            "(must be executable, static_lib, or shared_lib)"
        )
    if not config.build.output_name:
        config.build.output_name = config.project.name


def parse_file(path: str | Path) -> Config:
    """Read, decode and validate a TOML configuration file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"configuration file not found: {path}")
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
        config = config_from_dict(data)
    except (tomllib.TOMLDecodeError, OSError, ConfigError) as exc:
        raise ConfigError(f"failed to parse configuration: {exc}") from exc
    try:
        validate_config(config)
    except ConfigError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
    return config


def load_config(directory: str | Path | None = None) -> Config:
    """Find and parse a configuration in ``directory`` or the working directory.

    ``directory`` may also name a ``.toml`` file directly.
    """
    if directory:
        directory = Path(directory)
        if directory.suffix == ".toml":
            return parse_file(directory)
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.exists():
                return parse_file(candidate)
    for name in CONFIG_FILE_NAMES:
        candidate = Path(name)
        if candidate.exists():
            return parse_file(candidate)
    raise ConfigError("no configuration file found")
"""Project configuration written in the line-oriented ``styx.script`` language."""

from __future__ import annotations

import re
from pathlib import Path

from styx.config import Config, ConfigError, TargetConfig, validate_config

SCRIPT_FILE_NAMES = ("styx.script", "Styx.script")

_PROJECT_RE = re.compile(r'Project\s*\(\s*"([^"]+)"\s*,\s*"([^"]+)"\s*\)')
_LANGUAGE_RE = re.compile(r'Language\s*\(\s*"([^"]+)"(?:\s*,\s*"([^"]+)")?\s*\)')
_OUTPUT_RES = {
    output_type: re.compile(
        rf'{keyword}\s*\(\s*"([^"]+)"\s*,\s*\[\s*(.*?)\s*\]\s*\)'
    )
    for keyword, output_type in (
        ("Executable", "executable"),
        ("StaticLib", "static_lib"),
        ("SharedLib", "shared_lib"),
    )
}
_COMPILER_RE = re.compile(r'Compiler\s*\(\s*"([^"]+)"\s*\)')
_FLAGS_RE = re.compile(r"Flags\s*\(\s*(.*?)\s*\)")
_TARGET_RE = re.compile(r'Target\s*\(\s*"([^"]+)"\s*,\s*\[\s*(.*?)\s*\]\s*\)')
_SOURCES_RE = re.compile(r"Sources\s*\(\s*(.*?)\s*\)")
_EXCLUDE_RE = re.compile(r"Exclude\s*\(\s*(.*?)\s*\)")
_INCLUDE_DIRS_RE = re.compile(r"IncludeDirs\s*\(\s*(.*?)\s*\)")
_QUOTED_RE = re.compile(r'"([^"]+)"')


def parse_string_list(content: str) -> list[str]:
    """Return the contents of every non-empty double-quoted string in ``content``."""
    return _QUOTED_RE.findall(content)


def extract_block_items(content: str) -> list[str]:
    """Split a block on top-level commas, leaving nested brackets intact."""
    items: list[str] = []
    current: list[str] = []
    depth = 0
    for char in content:
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        elif char == "," and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if current:
        items.append("".join(current).strip())
    return items


class ScriptParser:
    """Turns script text into a :class:`Config`, one statement per line."""

    def __init__(self, content: str) -> None:
        self.content = content
        self.config = Config()

    def parse(self) -> Config:
        """Parse every statement and return the resulting configuration."""
        for number, raw in enumerate(self.content.split("\n"), start=1):
            line = raw.strip()
            if not line or line.startswith("//"):
                continue
            try:
                self._parse_line(line)
            except ConfigError as exc:
                raise ConfigError(f"line {number}: {exc}") from exc
        return self.config

    def _parse_line(self, line: str) -> None:
        config = self.config

        if match := _PROJECT_RE.search(line):
            config.project.name, config.project.version = match.group(1, 2)
            return

        if match := _LANGUAGE_RE.search(line):
            config.project.language = match.group(1)
            if match.group(2):
                config.project.standard = match.group(2)
            return

        for output_type, pattern in _OUTPUT_RES.items():
            if match := pattern.search(line):
                config.build.output_name = match.group(1)
                config.build.output_type = output_type
                self._parse_build_block(match.group(2))
                return

        if match := _COMPILER_RE.search(line):
            config.toolchain.compiler = match.group(1)
            return

        if match := _FLAGS_RE.search(line):
            flags = parse_string_list(match.group(1))
            config.toolchain.c_flags.extend(flags)
            config.toolchain.cxx_flags.extend(flags)
            return

        if match := _TARGET_RE.search(line):
            target = TargetConfig()
            self._parse_target_block(match.group(2), target)
            config.targets[match.group(1)] = target
            return

        raise ConfigError(f"unrecognized statement: {line}")

    def _parse_build_block(self, content: str) -> None:
        build = self.config.build
        for item in extract_block_items(content):
            if match := _SOURCES_RE.search(item):
                build.sources.extend(parse_string_list(match.group(1)))
            elif match := _EXCLUDE_RE.search(item):
                build.exclude.extend(parse_string_list(match.group(1)))
            elif match := _INCLUDE_DIRS_RE.search(item):
                build.include_dirs.extend(parse_string_list(match.group(1)))
            else:
                raise ConfigError(f"unrecognized build item: {item}")

    @staticmethod
    def _parse_target_block(content: str, target: TargetConfig) -> None:
        for item in extract_block_items(content):
            match = _FLAGS_RE.search(item)
            if match is None:
                raise ConfigError(f"unrecognized target item: {item}")
            flags = parse_string_list(match.group(1))
            target.c_flags.extend(flags)
            target.cxx_flags.extend(flags)


def parse_script(path: str | Path) -> Config:
    """Read, parse and validate a script configuration file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"script file not found: {path}")
    try:
        content = path.read_text()
    except OSError as exc:
        raise ConfigError(f"failed to read script file: {exc}") from exc
    config = ScriptParser(content).parse()
    try:
        validate_config(config)
    except ConfigError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
    return config


def load_script_config(directory: str | Path | None = None) -> Config:
    """Find and parse a script in ``directory`` or the working directory.

    ``directory`` may also name a ``.script`` file directly.
    """
    if directory:
        directory = Path(directory)
        if directory.suffix == ".script":
            return parse_script(directory)
        for name in SCRIPT_FILE_NAMES:
            candidate = directory / name
            if candidate.exists():
                return parse_script(candidate)
    for name in SCRIPT_FILE_NAMES:
        candidate = Path(name)
        if candidate.exists():
            return parse_script(candidate)
    raise ConfigError("no script configuration file found")
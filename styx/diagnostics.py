"""Turning GCC/Clang diagnostic output into structured build events."""

from __future__ import annotations

import re

from styx.console import BuildEvent, Logger, MessageType

_LOCATION_RE = re.compile(
    r"(.*?):(\d+):(?:(\d+):)?\s+(warning|error|note|fatal error):\s+(.*)"
)

_KINDS = {
    "warning": MessageType.WARNING,
    "error": MessageType.ERROR,
    "fatal error": MessageType.ERROR,
    "note": MessageType.NOTE,
}


class ErrorParser:
    """Parses compiler output and reports it through a :class:`Logger`."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def parse_gcc_output(self, output: str, source_file: str = "") -> list[BuildEvent]:
        """Group diagnostic lines into events, attaching notes and context lines."""
        events: list[BuildEvent] = []
        current: BuildEvent | None = None
        for raw in output.split("\n"):
            line = raw.removesuffix("\r")
            match = _LOCATION_RE.fullmatch(line)
            if match:
                file, line_num, col_num, kind, message = match.groups()
                if kind == "note" and current is not None:
                    current.suggestions.append(message)
                    continue
                current = BuildEvent(
                    type=_KINDS.get(kind, MessageType.INFO),
                    message=message,
                    source=file,
                    line=int(line_num),
                    column=int(col_num) if col_num else 0,
                )
                events.append(current)
            elif line.strip() and current is not None:
                if line[0] in " \t":
                    current.code = line.strip()
                else:
                    current.suggestions.append(line)
        return events

    def report(self, output: str, source_file: str = "") -> None:
        """Parse ``output`` and log every resulting event."""
        for event in self.parse_gcc_output(output, source_file):
            self.logger.report_build_event(event)
"""Colourised console messages, a progress spinner and compiler diagnostics."""

from __future__ import annotations

import enum
import os
import sys
import threading
from dataclasses import dataclass, field
from typing import TextIO


class MessageType(enum.IntEnum):
    """Kinds of message, each with its own label and colour."""

    SUCCESS = 0
    INFO = 1
    NOTE = 2
    WARNING = 3
    ERROR = 4


_LABELS = {
    MessageType.SUCCESS: "[SUCCESS]",
    MessageType.INFO: "[INFO]",
    MessageType.NOTE: "[NOTE]",
    MessageType.WARNING: "[WARNING]",
    MessageType.ERROR: "[ERROR]",
}

_STYLES = {
    MessageType.SUCCESS: "32;1",
    MessageType.INFO: "34",
    MessageType.NOTE: "37",
    MessageType.WARNING: "33",
    MessageType.ERROR: "31;1",
}

_CYAN = "36"
_SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


@dataclass
class BuildEvent:
    """A diagnostic produced while building, usually from a compiler."""

    type: MessageType
    message: str
    source: str = ""
    line: int = 0
    column: int = 0
    code: str = ""
    suggestions: list[str] = field(default_factory=list)

    @property
    def location(self) -> str:
        """The ``file:line:col:`` prefix, or an empty string without a source."""
        if not self.source:
            return ""
        if self.line > 0:
            if self.column > 0:
                return f"{self.source}:{self.line}:{self.column}:"
            return f"{self.source}:{self.line}:"
        return f"{self.source}:"


@dataclass
class _Progress:
    total: int
    message: str
    current: int = 0
    spin: int = 0
    last_line: str = ""
    active: bool = True


def _supports_color(stream: TextIO) -> bool:
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Logger:
    """Writes labelled messages and a single-line progress indicator."""

    def __init__(self, verbose: bool = False, output: TextIO | None = None) -> None:
        self.verbose = verbose
        self.output = output if output is not None else sys.stderr
        self._color = _supports_color(self.output)
        self._lock = threading.Lock()
        self._progress: _Progress | None = None

    def _paint(self, style: str, text: str) -> str:
        if not self._color:
            return text
        return f"\033[{style}m{text}\033[0m"

    def _prefix(self, msg_type: MessageType) -> str:
        return self._paint(_STYLES[msg_type], _LABELS[msg_type])

    @property
    def _progress_active(self) -> bool:
        return self._progress is not None and self._progress.active

    def _clear_line(self) -> str:
        assert self._progress is not None
        return "\r" + " " * len(self._progress.last_line) + "\r"

    def log(self, msg_type: MessageType, message: str, *args: object) -> None:
        """Write one message; ``args`` are %-formatted into ``message``."""
        text = message % args if args else message
        with self._lock:
            if self._progress_active:
                self.output.write(self._clear_line() + "\n")
            self.output.write(f"{self._prefix(msg_type)} {text}\n")
            if self._progress_active:
                self._draw_progress()

    def success(self, message: str, *args: object) -> None:
        self.log(MessageType.SUCCESS, message, *args)

    def info(self, message: str, *args: object) -> None:
        self.log(MessageType.INFO, message, *args)

    def note(self, message: str, *args: object) -> None:
        self.log(MessageType.NOTE, message, *args)

    def warning(self, message: str, *args: object) -> None:
        self.log(MessageType.WARNING, message, *args)

    def error(self, message: str, *args: object) -> None:
        self.log(MessageType.ERROR, message, *args)

    def start_progress(self, total: int, message: str) -> None:
        """Begin a new progress indicator and draw it."""
        with self._lock:
            self._progress = _Progress(total=total, message=message)
            self._draw_progress()

    def update_progress(self, current: int, message: str = "") -> None:
        """Move the indicator on; an empty message keeps the previous one."""
        with self._lock:
            if self._progress is None:
                return
            self._progress.current = current
            if message:
                self._progress.message = message
            self._draw_progress()

    def stop_progress(self) -> None:
        """Clear the indicator line and stop redrawing it."""
        with self._lock:
            if self._progress is None:
                return
            self.output.write(self._clear_line())
            self._progress.active = False

    def _draw_progress(self) -> None:
        bar = self._progress
        if bar is None:
            return
        spin_char = _SPINNER[bar.spin]
        bar.spin = (bar.spin + 1) % len(_SPINNER)
        percentage = bar.current * 100 // bar.total if bar.total > 0 else 0
        label = self._paint(_STYLES[MessageType.INFO], "[PROGRESS]")
        text = f"{label} {spin_char} [{percentage}%] {bar.message}"
        bar.last_line = text
        self.output.write("\r" + text + "\n")

    def report_build_event(self, event: BuildEvent) -> None:
        """Write a diagnostic with its location, code line and suggestions."""
        with self._lock:
            if self._progress_active:
                self.output.write(self._clear_line())
            location = event.location
            if location:
                self.output.write(self._paint(_CYAN, location) + " ")
            self.output.write(f"{self._prefix(event.type)} {event.message}\n")
            if event.code and self.verbose:
                self.output.write(f"    {event.code}\n")
            for suggestion in event.suggestions:
                self.output.write(f"    {suggestion}\n")
            if self._progress_active:
                self._draw_progress()
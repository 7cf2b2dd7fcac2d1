from __future__ import annotations

import os
import select
import sys
import termios
import tty
from dataclasses import dataclass
from typing import Any, TextIO

from rich.console import Console, RenderableType

ESCAPE_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
    "[H": "home",
    "[F": "end",
    "OH": "home",
    "OF": "end",
    "[1~": "home",
    "[4~": "end",
    "[7~": "home",
    "[8~": "end",
    "[2~": "insert",
    "[3~": "del",
    "[5~": "pgup",
    "[6~": "pgdn",
    "[Z": "shift-tab",
}

CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\b": "backspace",
    "\x03": "ctrl-c",
}


@dataclass(frozen=True)
class KeyEvent:
    key: str


@dataclass(frozen=True)
class ResizeEvent:
    columns: int
    rows: int


def utf8_length(first_byte: int) -> int:
    if first_byte >= 0xF0:
        return 4
    if first_byte >= 0xE0:
        return 3
    if first_byte >= 0xC0:
        return 2
    return 1


class Terminal:
    """Owns the controlling terminal for the lifetime of the UI thread."""

    def __init__(self, console: Console | None = None, stdin: TextIO | None = None) -> None:
        self.console = console or Console()
        self._stdin = stdin or sys.stdin
        self._fd = self._stdin.fileno()
        self._saved_attrs: list[Any] | None = None
        self._last_size: tuple[int, int] | None = None
        self._alt_screen = False
        self._cursor_hidden = False

    def enter(self) -> None:
        # restore undoes whichever of these steps completed
        self.console.set_alt_screen(True)
        self._alt_screen = True
        self._saved_attrs = termios.tcgetattr(self._fd)
        tty.setraw(self._fd)
        self.console.show_cursor(False)
        self._cursor_hidden = True
        self._last_size = self.size()

    def restore(self) -> None:
        if self._cursor_hidden:
            self._cursor_hidden = False
            self.console.show_cursor(True)
        if self._saved_attrs is not None:
            saved, self._saved_attrs = self._saved_attrs, None
            termios.tcsetattr(self._fd, termios.TCSADRAIN, saved)
        if self._alt_screen:
            self._alt_screen = False
            self.console.set_alt_screen(False)

    def size(self) -> tuple[int, int]:
        size = os.get_terminal_size(self.console.file.fileno())
        return size.columns, size.lines

    def poll_event(self) -> KeyEvent | ResizeEvent | None:
        current = self.size()
        if current != self._last_size:
            self._last_size = current
            return ResizeEvent(columns=current[0], rows=current[1])
        if not self._readable(0):
            return None
        return KeyEvent(self._read_key())

    def read_key(self) -> str:
        while True:
            if self._readable(None):
                return self._read_key()

    def draw(self, renderable: RenderableType) -> None:
        self.console.update_screen(renderable)

    def _readable(self, timeout: float | None) -> bool:
        ready, _, _ = select.select([self._fd], [], [], timeout)
        return bool(ready)

    def _read_byte(self) -> int | None:
        data = os.read(self._fd, 1)
        if not data:
            return None
        return data[0]

    def _read_key(self) -> str:
        first = self._read_byte()
        if first is None:
            return ""
        raw = bytes([first])
        for _ in range(utf8_length(first) - 1):
            if not self._readable(0.01):
                break
            following = self._read_byte()
            if following is None:
                break
            raw += bytes([following])
        key = raw.decode("utf-8", errors="ignore")
        if key in CONTROL_KEYS:
            return CONTROL_KEYS[key]
        if key == "\x1b":
            return self._read_escape()
        return key

    def _read_escape(self) -> str:
        sequence = ""
        while self._readable(0.001):
            byte = self._read_byte()
            if byte is None:
                break
            sequence += chr(byte)
            if len(sequence) > 1 and (sequence[-1].isalpha() or sequence.endswith("~")):
                break
            if len(sequence) >= 6:
                break
        if not sequence:
            return "esc"
        return ESCAPE_SEQUENCES.get(sequence, "esc")

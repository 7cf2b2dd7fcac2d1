from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol

from rich.text import Text

from .colors import AppColors

CANCEL_KEYS = frozenset({"esc", "ctrl-c"})


class KeySource(Protocol):
    def read_key(self) -> str: ...


@dataclass
class Notification:
    message: str
    error: bool
    duration: float | None = None
    expiry: float | None = None


class NotifWin:
    """Single status line at the bottom of the screen.

    Timed notifications queue up and are shown one at a time, each timer
    starting when it is shown. A persistent notification fills the line
    whenever no timed one is active.
    """

    def __init__(
        self,
        colors: AppColors,
        n_row: int,
        n_col: int,
        keys: KeySource,
        redraw: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.colors = colors
        self.n_row = n_row
        self.n_col = n_col
        self._keys = keys
        self._redraw = redraw
        self._clock = clock
        self._timed: deque[Notification] = deque()
        self.current: Notification | None = None
        self.persistent: Notification | None = None
        self._input: tuple[str, str] | None = None

    def check_notifs(self) -> bool:
        changed = False
        now = self._clock()
        if self.current is not None and self.current.expiry is not None and now >= self.current.expiry:
            self.current = None
            changed = True
        if self.current is None and self._timed:
            self.current = self._timed.popleft()
            self.current.expiry = now + (self.current.duration or 0.0)
            changed = True
        return changed

    def timed_notif(self, message: str, duration: int, error: bool = False) -> None:
        # duration is given in milliseconds
        self._timed.append(Notification(message, error, duration=duration / 1000.0))
        self.check_notifs()

    def persistent_notif(self, message: str, error: bool = False) -> None:
        self.persistent = Notification(message, error)

    def clear_persistent_notif(self) -> None:
        self.persistent = None

    def input_notif(self, prefix: str) -> str:
        buffer = ""
        self._input = (prefix, buffer)
        self._redraw()
        try:
            while True:
                key = self._keys.read_key()
                if key == "enter":
                    return buffer
                if key in CANCEL_KEYS:
                    return ""
                if key == "backspace":
                    buffer = buffer[:-1]
                elif len(key) == 1 and key.isprintable():
                    buffer += key
                else:
                    continue
                self._input = (prefix, buffer)
                self._redraw()
        finally:
            self._input = None
            self._redraw()

    def resize(self, n_row: int, n_col: int) -> None:
        self.n_row = n_row
        self.n_col = n_col

    def render(self) -> Text:
        if self._input is not None:
            prefix, buffer = self._input
            line = Text(prefix, style=self.colors.bold)
            line.append(buffer, style=self.colors.normal)
            line.append("█", style=self.colors.normal)
            return line
        shown = self.current or self.persistent
        if shown is None:
            return Text("")
        style = self.colors.error if shown.error else self.colors.normal
        return Text(shown.message, style=style, no_wrap=True, overflow="ellipsis")

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from datetime import datetime

from rich.panel import Panel
from rich.text import Text

from .colors import AppColors
from .geometry import Scroll


@dataclass(frozen=True)
class Details:
    pod_title: str | None = None
    ep_title: str | None = None
    pubdate: datetime | None = None
    duration: str | None = None
    explicit: bool | None = None
    description: str | None = None


class DetailsPanel:
    def __init__(
        self,
        title: str,
        colors: AppColors,
        n_row: int,
        n_col: int,
        start_x: int,
    ) -> None:
        self.title = title
        self.colors = colors
        self.n_row = n_row
        self.n_col = n_col
        self.start_x = start_x
        self.details: Details | None = None
        self.top_row = 0
        self.active = False
        self._lines: list[tuple[str, str]] = []

    def change_details(self, details: Details) -> None:
        self.details = details
        self.top_row = 0
        self.redraw()

    def clear_details(self) -> None:
        self.details = None
        self.top_row = 0
        self.redraw()

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def resize(self, n_row: int, n_col: int, start_x: int) -> None:
        self.n_row = n_row
        self.n_col = n_col
        self.start_x = start_x
        self.redraw()

    def scroll(self, scroll: Scroll) -> None:
        self.top_row = scroll.apply(self.top_row, self._max_top_row())

    def redraw(self) -> None:
        self._lines = self._layout_lines()
        self.top_row = min(self.top_row, self._max_top_row())

    def visible_rows(self) -> int:
        return max(self.n_row - 2, 1)

    def _max_top_row(self) -> int:
        return max(len(self._lines) - self.visible_rows(), 0)

    def _layout_lines(self) -> list[tuple[str, str]]:
        if self.details is None:
            return []
        width = max(self.n_col - 4, 10)
        det = self.details
        lines: list[tuple[str, str]] = []

        def add_wrapped(text: str, style: str) -> None:
            wrapped = textwrap.wrap(text, width=width) or [""]
            lines.extend((piece, style) for piece in wrapped)

        if det.pod_title:
            add_wrapped(det.pod_title, self.colors.bold)
        if det.ep_title:
            add_wrapped(det.ep_title, self.colors.bold)
        lines.append(("", self.colors.normal))
        if det.pubdate is not None:
            published = f"{det.pubdate:%b} {det.pubdate.day}, {det.pubdate.year}"
            add_wrapped(f"Published: {published}", self.colors.normal)
        if det.duration:
            add_wrapped(f"Duration: {det.duration}", self.colors.normal)
        if det.explicit is not None:
            add_wrapped(f"Explicit: {'Yes' if det.explicit else 'No'}", self.colors.normal)
        lines.append(("", self.colors.normal))
        if det.description:
            add_wrapped("Description:", self.colors.bold)
            for paragraph in det.description.splitlines():
                add_wrapped(paragraph, self.colors.normal)
        else:
            add_wrapped("No description.", self.colors.played)
        return lines

    def render(self) -> Panel:
        visible = self._lines[self.top_row : self.top_row + self.visible_rows()]
        body = Text(no_wrap=True, overflow="ellipsis")
        for idx, (line, style) in enumerate(visible):
            if idx:
                body.append("\n")
            body.append(line, style=style)
        border = self.colors.border_active if self.active else self.colors.border
        return Panel(body, title=self.title, border_style=border, height=self.n_row, padding=(0, 1))

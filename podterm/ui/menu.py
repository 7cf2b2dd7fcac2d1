from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from rich.panel import Panel
from rich.text import Text

from ..types import Episode, LockVec, Podcast
from .colors import AppColors
from .geometry import Scroll

T = TypeVar("T")


@dataclass(frozen=True)
class MenuLine:
    text: str
    dim: bool = False
    suffix: str = ""


class Menu(Generic[T]):
    """Scrollable list over a `LockVec`.

    `selected` is the row within the viewport and `top_row` the index of the
    first visible item, so the highlighted item is `items[top_row + selected]`
    in filtered order.
    """

    def __init__(
        self,
        title: str,
        colors: AppColors,
        n_row: int,
        n_col: int,
        start_x: int,
        items: LockVec[T],
        label: Callable[[T], MenuLine],
    ) -> None:
        self.title = title
        self.colors = colors
        self.n_row = n_row
        self.n_col = n_col
        self.start_x = start_x
        self.items = items
        self.label = label
        self.selected = 0
        self.top_row = 0
        self.active = False
        self.muted = False

    def visible_rows(self) -> int:
        return max(self.n_row - 2, 1)

    def current_index(self) -> int:
        return self.top_row + self.selected

    def activate(self) -> None:
        self.active = True
        self.muted = False

    def deactivate(self, keep_highlighted: bool = False) -> None:
        self.active = False
        self.muted = keep_highlighted

    def scroll(self, scroll: Scroll) -> None:
        n_items = self.items.len()
        if n_items == 0:
            self.selected = 0
            self.top_row = 0
            return
        self._select(scroll.apply(self.current_index(), n_items - 1))

    def resize(self, n_row: int, n_col: int, start_x: int) -> None:
        self.n_row = n_row
        self.n_col = n_col
        self.start_x = start_x
        self.redraw()

    def redraw(self) -> None:
        n_items = self.items.len()
        if n_items == 0:
            self.selected = 0
            self.top_row = 0
            return
        self.top_row = min(self.top_row, max(n_items - self.visible_rows(), 0))
        self._select(min(self.current_index(), n_items - 1))

    def highlight_selected(self) -> None:
        self.redraw()

    def reset(self, items: LockVec[T]) -> None:
        self.items = items
        self.top_row = 0
        self.selected = 0
        self.redraw()

    def _select(self, index: int) -> None:
        visible = self.visible_rows()
        if index < self.top_row:
            self.top_row = index
        elif index >= self.top_row + visible:
            self.top_row = index - visible + 1
        self.selected = index - self.top_row

    def render(self) -> Panel:
        visible = self.items.map(self.label)[self.top_row : self.top_row + self.visible_rows()]
        body = Text(no_wrap=True, overflow="ellipsis")
        width = max(self.n_col - 2, 1)
        for row, line in enumerate(visible):
            if row:
                body.append("\n")
            style = self.colors.played if line.dim else self.colors.normal
            if row == self.selected and (self.active or self.muted):
                style = self.colors.highlighted_active if self.active else self.colors.highlighted
            text = line.text
            if line.suffix:
                room = max(width - len(line.suffix) - 1, 1)
                text = f"{truncate(text, room):<{room}} {line.suffix}"
            body.append(f"{text:<{width}}", style=style)
        border = self.colors.border_active if self.active else self.colors.border
        return Panel(body, title=self.title, border_style=border, height=self.n_row, padding=(0, 0))


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    if width <= 1:
        return value[:width]
    return f"{value[: width - 1]}…"


def podcast_line(podcast: Podcast) -> MenuLine:
    total = podcast.episodes.len(filtered=False) - sum(
        podcast.episodes.map(lambda ep: ep.hidden, filtered=False)
    )
    return MenuLine(
        text=podcast.title or podcast.url,
        dim=podcast.is_played(),
        suffix=f"({podcast.num_unplayed()}/{total})",
    )


def episode_line(episode: Episode) -> MenuLine:
    marker = "[D]" if episode.is_downloaded() else ""
    return MenuLine(text=episode.title or episode.url, dim=episode.is_played(), suffix=marker)

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..keymap import ACTION_DESCRIPTIONS, Keybindings, UserAction
from ..messages import NOOP, DownloadMulti, NewEpisode, UiMsg
from .colors import AppColors
from .geometry import SCROLL_MAX, Scroll, big_scroll_amount, page_amount

CLOSE_KEYS = frozenset({"esc", "ctrl-c"})


class WelcomeWin:
    def render(self, keymap: Keybindings, colors: AppColors) -> RenderableType:
        add_key = keymap.first_key(UserAction.ADD_FEED) or "?"
        help_key = keymap.first_key(UserAction.HELP) or "?"
        quit_key = keymap.first_key(UserAction.QUIT) or "?"
        body = Text(justify="center")
        body.append("Welcome to podterm!\n\n", style=colors.bold)
        body.append("Your podcast list is currently empty.\n\n", style=colors.normal)
        body.append(
            f"Press \"{add_key}\" to add a new podcast feed, \"{help_key}\" to see all "
            f"available commands, or \"{quit_key}\" to quit.",
            style=colors.normal,
        )
        return Panel(Align.center(body, vertical="middle"), title="Welcome", border_style=colors.border_active)


class HelpWin:
    def handle_input(self, key: str, keymap: Keybindings) -> tuple[UiMsg, bool]:
        return NOOP, True

    def render(self, keymap: Keybindings, colors: AppColors) -> RenderableType:
        table = Table(expand=True, show_edge=False, box=None)
        table.add_column("Action", style=colors.bold)
        table.add_column("Keys", style=colors.normal)
        table.add_column("Action", style=colors.bold)
        table.add_column("Keys", style=colors.normal)
        actions = list(UserAction)
        half = (len(actions) + 1) // 2
        for left, right in zip(actions[:half], actions[half:] + [None]):
            row = [ACTION_DESCRIPTIONS[left], ", ".join(keymap.keys_for_action(left))]
            if right is None:
                row.extend(["", ""])
            else:
                row.extend([ACTION_DESCRIPTIONS[right], ", ".join(keymap.keys_for_action(right))])
            table.add_row(*row)
        return Panel(
            table,
            title="Available keybindings",
            subtitle="Press any key to close",
            border_style=colors.border_active,
        )


class DownloadWin:
    def __init__(self, episodes: Sequence[NewEpisode], preselected: Sequence[int], n_row: int) -> None:
        self.episodes = list(episodes)
        self.checked: set[int] = {idx for idx in preselected if 0 <= idx < len(self.episodes)}
        self.n_row = n_row
        self.selected = 0
        self.top_row = 0

    def visible_rows(self) -> int:
        return max(self.n_row - 6, 1)

    def handle_input(self, key: str, keymap: Keybindings) -> tuple[UiMsg, bool]:
        if key in CLOSE_KEYS:
            return NOOP, True
        if key == "enter":
            chosen = tuple(
                (ep.pod_id, ep.ep_id) for idx, ep in enumerate(self.episodes) if idx in self.checked
            )
            if not chosen:
                return NOOP, True
            return DownloadMulti(chosen), True
        if key == " ":
            index = self.top_row + self.selected
            if index in self.checked:
                self.checked.discard(index)
            elif index < len(self.episodes):
                self.checked.add(index)
            return NOOP, False
        if key == "a":
            if len(self.checked) == len(self.episodes):
                self.checked.clear()
            else:
                self.checked = set(range(len(self.episodes)))
            return NOOP, False

        action = keymap.get_from_input(key)
        if action is UserAction.QUIT:
            return NOOP, True
        scroll = self._scroll_for(action)
        if scroll is not None:
            self._scroll(scroll)
        return NOOP, False

    def _scroll_for(self, action: UserAction | None) -> Scroll | None:
        if action is UserAction.UP:
            return Scroll.up(1)
        if action is UserAction.DOWN:
            return Scroll.down(1)
        if action is UserAction.PAGE_UP:
            return Scroll.up(page_amount(self.n_row))
        if action is UserAction.PAGE_DOWN:
            return Scroll.down(page_amount(self.n_row))
        if action is UserAction.BIG_UP:
            return Scroll.up(big_scroll_amount(self.n_row))
        if action is UserAction.BIG_DOWN:
            return Scroll.down(big_scroll_amount(self.n_row))
        if action is UserAction.GO_TOP:
            return Scroll.up(SCROLL_MAX)
        if action is UserAction.GO_BOT:
            return Scroll.down(SCROLL_MAX)
        return None

    def _scroll(self, scroll: Scroll) -> None:
        if not self.episodes:
            return
        index = scroll.apply(self.top_row + self.selected, len(self.episodes) - 1)
        visible = self.visible_rows()
        if index < self.top_row:
            self.top_row = index
        elif index >= self.top_row + visible:
            self.top_row = index - visible + 1
        self.selected = index - self.top_row

    def render(self, keymap: Keybindings, colors: AppColors) -> RenderableType:
        body = Text(no_wrap=True, overflow="ellipsis")
        body.append("Select which episodes to download with space, or \"a\" for all.\n", style=colors.bold)
        body.append("Press enter to download, esc to cancel.\n\n", style=colors.normal)
        shown = self.episodes[self.top_row : self.top_row + self.visible_rows()]
        for row, episode in enumerate(shown):
            index = self.top_row + row
            mark = "[x]" if index in self.checked else "[ ]"
            style = colors.highlighted_active if row == self.selected else colors.normal
            if row:
                body.append("\n")
            body.append(f"{mark} {episode.pod_title}: {episode.title}", style=style)
        return Panel(body, title="New episodes", border_style=colors.border_active)


class PopupWin:
    """Stack of modal overlays.

    The welcome overlay is its own variant in the stack and takes no input;
    keys go to the topmost popup that does.
    """

    def __init__(self, keymap: Keybindings, colors: AppColors, n_row: int, n_col: int) -> None:
        self.keymap = keymap
        self.colors = colors
        self.n_row = n_row
        self.n_col = n_col
        self.popups: list[WelcomeWin | HelpWin | DownloadWin] = []

    @property
    def welcome_win(self) -> bool:
        return any(isinstance(popup, WelcomeWin) for popup in self.popups)

    def is_popup_active(self) -> bool:
        return bool(self.popups)

    def is_non_welcome_popup_active(self) -> bool:
        return any(not isinstance(popup, WelcomeWin) for popup in self.popups)

    def spawn_welcome_win(self) -> None:
        if not self.welcome_win:
            self.popups.insert(0, WelcomeWin())

    def turn_off_welcome_win(self) -> None:
        self.popups = [popup for popup in self.popups if not isinstance(popup, WelcomeWin)]

    def spawn_help_win(self) -> None:
        if self.popups and isinstance(self.popups[-1], HelpWin):
            return
        self.popups.append(HelpWin())

    def spawn_download_win(self, episodes: Sequence[NewEpisode], preselected: Sequence[int]) -> None:
        self.popups.append(DownloadWin(episodes, sorted(preselected), self.n_row))

    def handle_input(self, key: str) -> UiMsg:
        for position in range(len(self.popups) - 1, -1, -1):
            popup = self.popups[position]
            if isinstance(popup, WelcomeWin):
                continue
            msg, close = popup.handle_input(key, self.keymap)
            if close:
                del self.popups[position]
            return msg
        return NOOP

    def resize(self, n_row: int, n_col: int) -> None:
        self.n_row = n_row
        self.n_col = n_col
        for popup in self.popups:
            if isinstance(popup, DownloadWin):
                popup.n_row = n_row
                popup._scroll(Scroll.down(0))

    def render(self) -> RenderableType | None:
        if not self.popups:
            return None
        return self.popups[-1].render(self.keymap, self.colors)

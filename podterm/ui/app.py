from __future__ import annotations

import logging
import queue
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol

from rich.console import RenderableType
from rich.layout import Layout

from ..keymap import NAVIGATION_ACTIONS, UserAction
from ..messages import (
    NOOP,
    AddFeed,
    ClearPersistentNotification,
    Delete,
    DeleteAll,
    Download,
    DownloadAll,
    FilterChange,
    MainMessage,
    MarkAllPlayed,
    MarkPlayed,
    Message,
    Noop,
    Play,
    Quit,
    RefreshMenus,
    RemoveAllEpisodes,
    RemoveEpisode,
    RemovePodcast,
    SpawnDownloadSelectionPopup,
    SpawnPersistentNotification,
    SpawnTimedNotification,
    Sync,
    SyncAll,
    TearDown,
    UiMessage,
    UiMsg,
    UnmarkDownloaded,
)
from ..types import Episode, FilterType, LockVec, Podcast
from .details_panel import DetailsPanel
from .formatting import build_details
from .geometry import SCROLL_MAX, Scroll, big_scroll_amount, calculate_sizes, page_amount
from .menu import Menu, episode_line, podcast_line
from .notification import NotifWin
from .popup import PopupWin
from .terminal import KeyEvent, ResizeEvent, Terminal

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)

# seconds between ticks of the event loop
TICK_RATE = 0.02


class ActivePanel(Enum):
    PODCAST_MENU = "podcasts"
    EPISODE_MENU = "episodes"
    DETAILS_PANEL = "details"


class TerminalIO(Protocol):
    def enter(self) -> None: ...

    def restore(self) -> None: ...

    def size(self) -> tuple[int, int]: ...

    def poll_event(self) -> KeyEvent | ResizeEvent | None: ...

    def read_key(self) -> str: ...

    def draw(self, renderable: RenderableType) -> None: ...


class Ui:
    """Every interface element of the TUI plus the screen geometry.

    Input handling produces at most one `UiMsg` per key; anything that only
    concerns the interface (scrolling, focus, popups) is handled here and
    yields `NOOP`.
    """

    def __init__(self, config: AppConfig, items: LockVec[Podcast], terminal: TerminalIO) -> None:
        self.terminal = terminal
        self.keymap = config.keybindings
        self.colors = config.colors
        self.details_threshold = config.details_threshold
        self.big_scroll_divisor = config.big_scroll_divisor
        self.torn_down = False
        self._dirty = True

        terminal.enter()
        n_col, n_row = terminal.size()
        self.n_col = n_col
        self.n_row = n_row
        pod_col, ep_col, det_col = calculate_sizes(n_col, self.details_threshold)

        self.podcast_menu: Menu[Podcast] = Menu(
            "Podcasts", self.colors, n_row - 1, pod_col, 0, items, podcast_line
        )
        self.episode_menu: Menu[Episode] = Menu(
            "Episodes", self.colors, n_row - 1, ep_col, pod_col - 1, LockVec(), episode_line
        )
        self.episode_menu.items = self.current_episodes()
        self.details_panel: DetailsPanel | None = None
        if det_col > 0:
            self.details_panel = self._new_details_panel(det_col, pod_col, ep_col)
        self.active_panel = ActivePanel.PODCAST_MENU
        self.notif_win = NotifWin(self.colors, n_row, n_col, terminal, self.draw)
        self.popup_win = PopupWin(self.keymap, self.colors, n_row, n_col)

    def _new_details_panel(self, det_col: int, pod_col: int, ep_col: int) -> DetailsPanel:
        return DetailsPanel("Details", self.colors, self.n_row - 1, det_col, pod_col + ep_col - 2)

    def init(self) -> None:
        self.podcast_menu.redraw()
        self.episode_menu.redraw()
        self.podcast_menu.activate()
        self.update_details_panel()

        # welcome screen if the user does not have any podcasts yet
        if self.podcast_menu.items.is_empty():
            self.popup_win.spawn_welcome_win()
        self.draw()

    def getch(self) -> UiMsg:
        event = self.terminal.poll_event()
        if event is None:
            return NOOP
        self._dirty = True
        if isinstance(event, ResizeEvent):
            self.resize(event.columns, event.rows)
            return NOOP
        return self.handle_key(event.key)

    def handle_key(self, key: str) -> UiMsg:
        curr_pod_id, curr_ep_id = self.get_current_ids()

        # the welcome window goes away once the podcast list has something in it
        if self.popup_win.welcome_win and not self.podcast_menu.items.is_empty():
            self.popup_win.turn_off_welcome_win()

        if self.popup_win.is_non_welcome_popup_active():
            popup_msg = self.popup_win.handle_input(key)
            # handling the key may have closed the last popup
            if not self.popup_win.is_popup_active():
                self.update_menus()
                if self.details_panel is not None:
                    self.update_details_panel()
            return popup_msg

        action = self.keymap.get_from_input(key)
        if action is None:
            return NOOP
        return self.dispatch(action, curr_pod_id, curr_ep_id)

    def dispatch(self, action: UserAction, curr_pod_id: int | None, curr_ep_id: int | None) -> UiMsg:
        if action in NAVIGATION_ACTIONS:
            self.move_cursor(action, curr_pod_id, curr_ep_id)
            return NOOP

        if action is UserAction.ADD_FEED:
            url = self.spawn_input_notif("Feed URL: ").strip()
            if url:
                return AddFeed(url)
            return NOOP

        if action is UserAction.SYNC:
            if curr_pod_id is not None:
                return Sync(curr_pod_id)
            return NOOP
        if action is UserAction.SYNC_ALL:
            if not self.podcast_menu.items.is_empty():
                return SyncAll()
            return NOOP

        if action is UserAction.PLAY:
            if curr_pod_id is not None and curr_ep_id is not None:
                return Play(curr_pod_id, curr_ep_id)
            return NOOP
        if action is UserAction.MARK_PLAYED:
            if self.active_panel is ActivePanel.EPISODE_MENU:
                return self.mark_played(curr_pod_id, curr_ep_id)
            return NOOP
        if action is UserAction.MARK_ALL_PLAYED:
            return self.mark_all_played(curr_pod_id)

        if action is UserAction.DOWNLOAD:
            if curr_pod_id is not None and curr_ep_id is not None:
                return Download(curr_pod_id, curr_ep_id)
            return NOOP
        if action is UserAction.DOWNLOAD_ALL:
            if curr_pod_id is not None:
                return DownloadAll(curr_pod_id)
            return NOOP

        if action is UserAction.DELETE:
            if self.active_panel is ActivePanel.EPISODE_MENU:
                return self.delete_episode(curr_pod_id, curr_ep_id)
            return NOOP
        if action is UserAction.DELETE_ALL:
            if curr_pod_id is not None:
                return DeleteAll(curr_pod_id)
            return NOOP
        if action is UserAction.UNMARK_DOWNLOADED:
            if (
                self.active_panel is ActivePanel.EPISODE_MENU
                and curr_pod_id is not None
                and curr_ep_id is not None
            ):
                return UnmarkDownloaded(curr_pod_id, curr_ep_id)
            return NOOP

        if action is UserAction.REMOVE:
            if self.active_panel is ActivePanel.PODCAST_MENU:
                return self.remove_podcast(curr_pod_id)
            if self.active_panel is ActivePanel.EPISODE_MENU:
                return self.remove_episode(curr_pod_id, curr_ep_id)
            return NOOP
        if action is UserAction.REMOVE_ALL:
            if self.active_panel is ActivePanel.PODCAST_MENU:
                return self.remove_podcast(curr_pod_id)
            if self.active_panel is ActivePanel.EPISODE_MENU:
                return self.remove_all_episodes(curr_pod_id)
            return NOOP

        if action is UserAction.FILTER_PLAYED:
            return FilterChange(FilterType.PLAYED)
        if action is UserAction.FILTER_DOWNLOADED:
            return FilterChange(FilterType.DOWNLOADED)

        if action is UserAction.HELP:
            self.popup_win.spawn_help_win()
            return NOOP
        if action is UserAction.QUIT:
            return Quit()

        raise AssertionError(f"Unhandled user action: {action!r}")

    def resize(self, n_col: int, n_row: int) -> None:
        logger.debug("terminal resized to %sx%s", n_col, n_row)
        self.n_row = n_row
        self.n_col = n_col

        pod_col, ep_col, det_col = calculate_sizes(n_col, self.details_threshold)

        self.podcast_menu.resize(n_row - 1, pod_col, 0)
        self.episode_menu.resize(n_row - 1, ep_col, pod_col - 1)
        self.highlight_items()

        if self.details_panel is not None:
            if det_col > 0:
                self.details_panel.resize(n_row - 1, det_col, pod_col + ep_col - 2)
                # resizing the menus may change which item is selected
                self.update_details_panel()
            else:
                self.details_panel = None
                if self.active_panel is ActivePanel.DETAILS_PANEL:
                    self.active_panel = ActivePanel.EPISODE_MENU
                    self.episode_menu.activate()
        elif det_col > 0:
            self.details_panel = self._new_details_panel(det_col, pod_col, ep_col)
            self.update_details_panel()

        self.popup_win.resize(n_row, n_col)
        self.notif_win.resize(n_row, n_col)

    def move_cursor(self, action: UserAction, curr_pod_id: int | None, curr_ep_id: int | None) -> None:
        if action is UserAction.DOWN:
            self.scroll_current_window(curr_pod_id, Scroll.down(1))
        elif action is UserAction.UP:
            self.scroll_current_window(curr_pod_id, Scroll.up(1))
        elif action is UserAction.LEFT:
            self.move_left(curr_pod_id)
        elif action is UserAction.RIGHT:
            self.move_right(curr_pod_id, curr_ep_id)
        elif action is UserAction.PAGE_UP:
            self.scroll_current_window(curr_pod_id, Scroll.up(page_amount(self.n_row)))
        elif action is UserAction.PAGE_DOWN:
            self.scroll_current_window(curr_pod_id, Scroll.down(page_amount(self.n_row)))
        elif action is UserAction.BIG_UP:
            amount = big_scroll_amount(self.n_row, self.big_scroll_divisor)
            self.scroll_current_window(curr_pod_id, Scroll.up(amount))
        elif action is UserAction.BIG_DOWN:
            amount = big_scroll_amount(self.n_row, self.big_scroll_divisor)
            self.scroll_current_window(curr_pod_id, Scroll.down(amount))
        elif action is UserAction.GO_TOP:
            self.scroll_current_window(curr_pod_id, Scroll.up(SCROLL_MAX))
        elif action is UserAction.GO_BOT:
            self.scroll_current_window(curr_pod_id, Scroll.down(SCROLL_MAX))

    def move_left(self, curr_pod_id: int | None) -> None:
        if curr_pod_id is None:
            return
        if self.active_panel is ActivePanel.EPISODE_MENU:
            self.active_panel = ActivePanel.PODCAST_MENU
            self.podcast_menu.activate()
            self.episode_menu.deactivate(False)
        elif self.active_panel is ActivePanel.DETAILS_PANEL:
            self.active_panel = ActivePanel.EPISODE_MENU
            self.episode_menu.activate()
            if self.details_panel is not None:
                self.details_panel.deactivate()

    def move_right(self, curr_pod_id: int | None, curr_ep_id: int | None) -> None:
        if curr_pod_id is None:
            return
        if self.active_panel is ActivePanel.PODCAST_MENU:
            self.active_panel = ActivePanel.EPISODE_MENU
            self.podcast_menu.deactivate(True)
            self.episode_menu.activate()
        elif self.active_panel is ActivePanel.EPISODE_MENU:
            if curr_ep_id is None or self.details_panel is None:
                return
            self.active_panel = ActivePanel.DETAILS_PANEL
            # details reflect the episode selection, so keep it visible
            self.episode_menu.deactivate(True)
            self.details_panel.activate()

    def scroll_current_window(self, pod_id: int | None, scroll: Scroll) -> None:
        if self.active_panel is ActivePanel.PODCAST_MENU:
            if pod_id is not None:
                self.podcast_menu.scroll(scroll)
                self.episode_menu.reset(self.current_episodes())
                self.update_details_panel()
        elif self.active_panel is ActivePanel.EPISODE_MENU:
            if pod_id is not None:
                self.episode_menu.scroll(scroll)
                self.update_details_panel()
        elif self.details_panel is not None:
            self.details_panel.scroll(scroll)

    def mark_played(self, curr_pod_id: int | None, curr_ep_id: int | None) -> UiMsg:
        if curr_pod_id is None or curr_ep_id is None:
            return NOOP
        played = self.episode_menu.items.map_single(curr_ep_id, lambda ep: ep.is_played())
        if played is None:
            return NOOP
        return MarkPlayed(curr_pod_id, curr_ep_id, not played)

    def mark_all_played(self, curr_pod_id: int | None) -> UiMsg:
        # Any unplayed episode makes the target "played"; only a fully played
        # podcast flips everything back to unplayed.
        if curr_pod_id is None:
            return NOOP
        played = self.podcast_menu.items.map_single(curr_pod_id, lambda pod: pod.is_played())
        if played is None:
            return NOOP
        return MarkAllPlayed(curr_pod_id, not played)

    def delete_episode(self, curr_pod_id: int | None, curr_ep_id: int | None) -> UiMsg:
        if curr_pod_id is None or curr_ep_id is None:
            return NOOP
        if not self.ask_for_confirmation("Are you sure you want to delete the downloaded file?"):
            return NOOP
        return Delete(curr_pod_id, curr_ep_id)

    def remove_podcast(self, curr_pod_id: int | None) -> UiMsg:
        if curr_pod_id is None:
            return NOOP
        if not self.ask_for_confirmation("Are you sure you want to remove the podcast?"):
            return NOOP
        delete = False
        if self.check_for_local_files(curr_pod_id):
            delete = self.spawn_yes_no_notif("Delete local files too?") is True
        return RemovePodcast(curr_pod_id, delete)

    def remove_episode(self, curr_pod_id: int | None, curr_ep_id: int | None) -> UiMsg:
        if curr_pod_id is None or curr_ep_id is None:
            return NOOP
        if not self.ask_for_confirmation("Are you sure you want to remove the episode?"):
            return NOOP
        delete = False
        is_downloaded = self.episode_menu.items.map_single(curr_ep_id, lambda ep: ep.is_downloaded())
        if is_downloaded:
            delete = self.spawn_yes_no_notif("Delete local file too?") is True
        return RemoveEpisode(curr_pod_id, curr_ep_id, delete)

    def remove_all_episodes(self, curr_pod_id: int | None) -> UiMsg:
        if curr_pod_id is None:
            return NOOP
        if not self.ask_for_confirmation("Are you sure you want to remove all episodes?"):
            return NOOP
        delete = False
        if self.check_for_local_files(curr_pod_id):
            delete = self.spawn_yes_no_notif("Delete local files too?") is True
        return RemoveAllEpisodes(curr_pod_id, delete)

    def get_current_ids(self) -> tuple[int | None, int | None]:
        pod_id = self.podcast_menu.items.id_at(self.podcast_menu.current_index())
        ep_id = self.episode_menu.items.id_at(self.episode_menu.current_index())
        return pod_id, ep_id

    def current_episodes(self) -> LockVec[Episode]:
        pod_id = self.podcast_menu.items.id_at(self.podcast_menu.current_index())
        if pod_id is None:
            return LockVec()
        episodes = self.podcast_menu.items.map_single(pod_id, lambda pod: pod.episodes)
        if episodes is None:
            return LockVec()
        return episodes

    def check_for_local_files(self, pod_id: int) -> bool:
        return bool(self.podcast_menu.items.map_single(pod_id, lambda pod: pod.any_downloaded()))

    def ask_for_confirmation(self, message: str) -> bool:
        return self.spawn_yes_no_notif(message) is True

    def spawn_input_notif(self, prefix: str) -> str:
        return self.notif_win.input_notif(prefix)

    def spawn_yes_no_notif(self, prefix: str) -> bool | None:
        answer = self.notif_win.input_notif(f"{prefix} (y/n) ").strip()
        if not answer:
            return None
        first = answer[0].lower()
        if first == "y":
            return True
        if first == "n":
            return False
        return None

    def timed_notif(self, message: str, duration: int, error: bool = False) -> None:
        self.notif_win.timed_notif(message, duration, error)

    def persistent_notif(self, message: str, error: bool = False) -> None:
        self.notif_win.persistent_notif(message, error)

    def clear_persistent_notif(self) -> None:
        self.notif_win.clear_persistent_notif()

    def update_menus(self) -> None:
        self.podcast_menu.redraw()
        episodes = self.current_episodes()
        if episodes is self.episode_menu.items:
            self.episode_menu.redraw()
        else:
            # a different podcast ended up selected
            self.episode_menu.reset(episodes)
        self.highlight_items()

    def highlight_items(self) -> None:
        if self.active_panel is ActivePanel.PODCAST_MENU:
            self.podcast_menu.highlight_selected()
        elif self.active_panel is ActivePanel.EPISODE_MENU:
            self.podcast_menu.highlight_selected()
            self.episode_menu.highlight_selected()

    def update_details_panel(self) -> None:
        if self.details_panel is None:
            return
        curr_pod_id, curr_ep_id = self.get_current_ids()
        if curr_pod_id is None or curr_ep_id is None:
            # no episode selected, nothing from another podcast may stay on screen
            self.details_panel.clear_details()
            return
        podcast = self.podcast_menu.items.get(curr_pod_id)
        episode = self.episode_menu.items.get(curr_ep_id)
        # the controller may have removed it since the ids were resolved
        if episode is None:
            return
        self.details_panel.change_details(build_details(podcast, episode))

    def apply(self, message: MainMessage) -> bool:
        self._dirty = True
        if isinstance(message, RefreshMenus):
            self.update_menus()
            self.update_details_panel()
        elif isinstance(message, SpawnTimedNotification):
            self.timed_notif(message.text, message.duration, message.is_error)
        elif isinstance(message, SpawnPersistentNotification):
            self.persistent_notif(message.text, message.is_error)
        elif isinstance(message, ClearPersistentNotification):
            self.clear_persistent_notif()
        elif isinstance(message, SpawnDownloadSelectionPopup):
            self.popup_win.spawn_download_win(message.episodes, sorted(message.preselected))
        elif isinstance(message, TearDown):
            self.tear_down()
            return False
        return True

    def mark_dirty(self) -> None:
        self._dirty = True

    def render(self) -> Layout:
        pod_col, ep_col, _ = calculate_sizes(self.n_col, self.details_threshold)
        root = Layout(name="root")
        body = Layout(name="body", ratio=1)
        root.split_column(body, Layout(self.notif_win.render(), name="notif", size=1))

        popup = self.popup_win.render()
        if popup is not None:
            body.update(popup)
            return root

        columns = [Layout(self.podcast_menu.render(), name="podcasts", size=pod_col)]
        if self.details_panel is None:
            columns.append(Layout(self.episode_menu.render(), name="episodes", ratio=1))
        else:
            columns.append(Layout(self.episode_menu.render(), name="episodes", size=ep_col))
            columns.append(Layout(self.details_panel.render(), name="details", ratio=1))
        body.split_row(*columns)
        return root

    def draw(self) -> None:
        self.terminal.draw(self.render())
        self._dirty = False

    def flush(self) -> None:
        if self._dirty and not self.torn_down:
            self.draw()

    def tear_down(self) -> None:
        if self.torn_down:
            return
        self.torn_down = True
        self.terminal.restore()
        logger.info("ui torn down")


def run_ui(
    config: AppConfig,
    items: LockVec[Podcast],
    rx_from_main: queue.Queue[MainMessage],
    tx_to_main: queue.Queue[Message],
    terminal: TerminalIO | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    terminal = terminal or Terminal()
    ui: Ui | None = None
    try:
        ui = Ui(config, items, terminal)
        ui.init()
        while True:
            if ui.notif_win.check_notifs():
                ui.mark_dirty()

            msg = ui.getch()
            if not isinstance(msg, Noop):
                logger.debug("ui intent %r", msg)
                tx_to_main.put(UiMessage(msg))

            try:
                message = rx_from_main.get_nowait()
            except queue.Empty:
                message = None
            if message is not None and not ui.apply(message):
                return

            ui.flush()
            sleep(TICK_RATE)
    finally:
        if ui is None or not ui.torn_down:
            terminal.restore()


def spawn_ui(
    config: AppConfig,
    items: LockVec[Podcast],
    rx_from_main: queue.Queue[MainMessage],
    tx_to_main: queue.Queue[Message],
) -> threading.Thread:
    thread = threading.Thread(
        target=run_ui,
        args=(config, items, rx_from_main, tx_to_main),
        name="podterm-ui",
    )
    thread.start()
    return thread

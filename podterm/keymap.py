from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence


class UserAction(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    BIG_UP = "big_up"
    BIG_DOWN = "big_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    GO_TOP = "go_top"
    GO_BOT = "go_bot"
    ADD_FEED = "add_feed"
    SYNC = "sync"
    SYNC_ALL = "sync_all"
    PLAY = "play"
    MARK_PLAYED = "mark_played"
    MARK_ALL_PLAYED = "mark_all_played"
    DOWNLOAD = "download"
    DOWNLOAD_ALL = "download_all"
    DELETE = "delete"
    DELETE_ALL = "delete_all"
    UNMARK_DOWNLOADED = "unmark_downloaded"
    REMOVE = "remove"
    REMOVE_ALL = "remove_all"
    FILTER_PLAYED = "filter_played"
    FILTER_DOWNLOADED = "filter_downloaded"
    HELP = "help"
    QUIT = "quit"


NAVIGATION_ACTIONS = frozenset(
    {
        UserAction.LEFT,
        UserAction.RIGHT,
        UserAction.UP,
        UserAction.DOWN,
        UserAction.BIG_UP,
        UserAction.BIG_DOWN,
        UserAction.PAGE_UP,
        UserAction.PAGE_DOWN,
        UserAction.GO_TOP,
        UserAction.GO_BOT,
    }
)

DEFAULT_BINDINGS: dict[UserAction, tuple[str, ...]] = {
    UserAction.LEFT: ("left", "h"),
    UserAction.RIGHT: ("right", "l"),
    UserAction.UP: ("up", "k"),
    UserAction.DOWN: ("down", "j"),
    UserAction.BIG_UP: ("K",),
    UserAction.BIG_DOWN: ("J",),
    UserAction.PAGE_UP: ("pgup",),
    UserAction.PAGE_DOWN: ("pgdn",),
    UserAction.GO_TOP: ("home", "g"),
    UserAction.GO_BOT: ("end", "G"),
    UserAction.ADD_FEED: ("a",),
    UserAction.SYNC: ("s",),
    UserAction.SYNC_ALL: ("S",),
    UserAction.PLAY: ("enter", "p"),
    UserAction.MARK_PLAYED: ("m",),
    UserAction.MARK_ALL_PLAYED: ("M",),
    UserAction.DOWNLOAD: ("d",),
    UserAction.DOWNLOAD_ALL: ("D",),
    UserAction.DELETE: ("x",),
    UserAction.DELETE_ALL: ("X",),
    UserAction.UNMARK_DOWNLOADED: ("u",),
    UserAction.REMOVE: ("r",),
    UserAction.REMOVE_ALL: ("R",),
    UserAction.FILTER_PLAYED: ("1",),
    UserAction.FILTER_DOWNLOADED: ("2",),
    UserAction.HELP: ("?",),
    UserAction.QUIT: ("q", "ctrl-c"),
}

ACTION_DESCRIPTIONS: dict[UserAction, str] = {
    UserAction.LEFT: "Move left",
    UserAction.RIGHT: "Move right",
    UserAction.UP: "Move up",
    UserAction.DOWN: "Move down",
    UserAction.BIG_UP: "Big scroll up",
    UserAction.BIG_DOWN: "Big scroll down",
    UserAction.PAGE_UP: "Page up",
    UserAction.PAGE_DOWN: "Page down",
    UserAction.GO_TOP: "Go to top",
    UserAction.GO_BOT: "Go to bottom",
    UserAction.ADD_FEED: "Add feed",
    UserAction.SYNC: "Sync",
    UserAction.SYNC_ALL: "Sync all",
    UserAction.PLAY: "Play",
    UserAction.MARK_PLAYED: "Mark as played",
    UserAction.MARK_ALL_PLAYED: "Mark all as played",
    UserAction.DOWNLOAD: "Download",
    UserAction.DOWNLOAD_ALL: "Download all",
    UserAction.DELETE: "Delete file",
    UserAction.DELETE_ALL: "Delete all files",
    UserAction.UNMARK_DOWNLOADED: "Unmark downloaded",
    UserAction.REMOVE: "Remove from list",
    UserAction.REMOVE_ALL: "Remove all from list",
    UserAction.FILTER_PLAYED: "Filter played",
    UserAction.FILTER_DOWNLOADED: "Filter downloaded",
    UserAction.HELP: "Help",
    UserAction.QUIT: "Quit",
}


def parse_action(raw: str) -> UserAction:
    key = raw.strip().lower().replace("-", "_")
    for action in UserAction:
        if action.value == key or action.name.lower() == key:
            return action
    valid = ", ".join(action.value for action in UserAction)
    raise ValueError(f"Unknown action '{raw}'. Valid actions: {valid}")


class Keybindings:
    def __init__(self, bindings: Mapping[UserAction, Sequence[str]] | None = None) -> None:
        self._by_action: dict[UserAction, tuple[str, ...]] = {
            action: tuple(keys) for action, keys in (bindings or DEFAULT_BINDINGS).items()
        }
        self._by_key: dict[str, UserAction] = {}
        for action, keys in self._by_action.items():
            for key in keys:
                self._by_key[key] = action

    @classmethod
    def default(cls) -> Keybindings:
        return cls(DEFAULT_BINDINGS)

    def with_overrides(self, overrides: Mapping[str, Sequence[str] | str]) -> Keybindings:
        overridden: dict[UserAction, tuple[str, ...]] = {}
        for raw_action, raw_keys in overrides.items():
            action = parse_action(raw_action)
            keys = [raw_keys] if isinstance(raw_keys, str) else list(raw_keys)
            clean = tuple(key for key in keys if isinstance(key, str) and key)
            if not clean:
                raise ValueError(f"No keys given for action '{raw_action}'")
            overridden[action] = clean

        # a key rebound to a new action is dropped from whatever held it before
        taken = {key for keys in overridden.values() for key in keys}
        merged: dict[UserAction, tuple[str, ...]] = {}
        for action, keys in self._by_action.items():
            if action in overridden:
                merged[action] = overridden[action]
            else:
                merged[action] = tuple(key for key in keys if key not in taken)
        return Keybindings(merged)

    def get_from_input(self, key: str) -> UserAction | None:
        return self._by_key.get(key)

    def keys_for_action(self, action: UserAction) -> tuple[str, ...]:
        return self._by_action.get(action, ())

    def first_key(self, action: UserAction) -> str:
        keys = self.keys_for_action(action)
        return keys[0] if keys else ""

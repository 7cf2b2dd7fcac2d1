from __future__ import annotations

import pytest

from podterm.keymap import ACTION_DESCRIPTIONS, DEFAULT_BINDINGS, Keybindings, UserAction, parse_action


def test_default_bindings_cover_every_action() -> None:
    assert set(DEFAULT_BINDINGS) == set(UserAction)
    assert set(ACTION_DESCRIPTIONS) == set(UserAction)


def test_default_lookup() -> None:
    keymap = Keybindings.default()
    assert keymap.get_from_input("a") is UserAction.ADD_FEED
    assert keymap.get_from_input("down") is UserAction.DOWN
    assert keymap.get_from_input("ctrl-c") is UserAction.QUIT
    assert keymap.get_from_input("Z") is None


def test_overrides_take_keys_from_previous_owner() -> None:
    keymap = Keybindings.default().with_overrides({"sync": ["j", "s"]})
    assert keymap.get_from_input("j") is UserAction.SYNC
    assert keymap.keys_for_action(UserAction.DOWN) == ("down",)
    assert keymap.first_key(UserAction.SYNC) == "j"


def test_override_accepts_single_string() -> None:
    keymap = Keybindings.default().with_overrides({"add-feed": "n"})
    assert keymap.get_from_input("n") is UserAction.ADD_FEED
    assert keymap.get_from_input("a") is None


def test_override_rejects_unknown_action() -> None:
    with pytest.raises(ValueError, match="Unknown action"):
        Keybindings.default().with_overrides({"launch_rockets": ["x"]})


def test_override_rejects_empty_keys() -> None:
    with pytest.raises(ValueError):
        Keybindings.default().with_overrides({"quit": []})


def test_parse_action_accepts_names_and_values() -> None:
    assert parse_action("MARK_ALL_PLAYED") is UserAction.MARK_ALL_PLAYED
    assert parse_action("mark-played") is UserAction.MARK_PLAYED

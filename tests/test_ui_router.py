from __future__ import annotations

from podterm.keymap import UserAction
from podterm.messages import (
    NOOP,
    AddFeed,
    DeleteAll,
    Download,
    DownloadAll,
    FilterChange,
    MarkAllPlayed,
    MarkPlayed,
    NewEpisode,
    Play,
    Quit,
    SpawnDownloadSelectionPopup,
    Sync,
    SyncAll,
    UiMsg,
    UnmarkDownloaded,
)
from podterm.types import FilterType

from helpers import make_episode, make_podcast, make_store, make_ui, sample_store


def press(ui, terminal, key):
    terminal.press(key)
    return ui.getch()


def test_add_feed_end_to_end(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    terminal.type_line("http://example.com/feed")
    assert press(ui, terminal, "a") == AddFeed("http://example.com/feed")
    assert not terminal.keys


def test_add_feed_cancelled_or_empty(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert press(ui, terminal, "a") == NOOP

    terminal.answer("h", "t", "esc")
    assert press(ui, terminal, "a") == NOOP

    terminal.answer("enter")
    assert press(ui, terminal, "a") == NOOP


def test_no_event_and_unmapped_key_are_noop(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert ui.getch() == NOOP
    assert press(ui, terminal, "Z") == NOOP


def test_sync_intents(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert press(ui, terminal, "s") == Sync(1)
    assert press(ui, terminal, "S") == SyncAll()

    empty = make_ui(config, make_store(), terminal)
    assert press(empty, terminal, "s") == NOOP
    assert press(empty, terminal, "S") == NOOP


def test_play_download_and_bulk_intents(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert press(ui, terminal, "p") == Play(1, 11)
    assert press(ui, terminal, "enter") == Play(1, 11)
    assert press(ui, terminal, "d") == Download(1, 11)
    assert press(ui, terminal, "D") == DownloadAll(1)
    assert press(ui, terminal, "X") == DeleteAll(1)
    assert press(ui, terminal, "1") == FilterChange(FilterType.PLAYED)
    assert press(ui, terminal, "2") == FilterChange(FilterType.DOWNLOADED)


def test_episode_intents_need_an_episode(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    press(ui, terminal, "G")
    assert press(ui, terminal, "p") == NOOP
    assert press(ui, terminal, "d") == NOOP
    assert press(ui, terminal, "D") == DownloadAll(3)


def test_mark_played_toggles_in_episode_list(config, terminal) -> None:
    store = make_store(make_podcast(1, [make_episode(11), make_episode(12, played=True)]))
    ui = make_ui(config, store, terminal)
    assert press(ui, terminal, "m") == NOOP
    press(ui, terminal, "l")
    assert press(ui, terminal, "m") == MarkPlayed(1, 11, True)
    press(ui, terminal, "j")
    assert press(ui, terminal, "m") == MarkPlayed(1, 12, False)


def test_unmark_downloaded_only_in_episode_list(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert press(ui, terminal, "u") == NOOP
    press(ui, terminal, "l")
    assert press(ui, terminal, "u") == UnmarkDownloaded(1, 11)


def test_mark_all_played_direction(config, terminal) -> None:
    store = make_store(
        make_podcast(1, [make_episode(11, played=True), make_episode(12)]),
        make_podcast(2, [make_episode(21, 2, played=True), make_episode(22, 2, played=True)]),
    )
    ui = make_ui(config, store, terminal)
    assert press(ui, terminal, "M") == MarkAllPlayed(1, True)
    press(ui, terminal, "j")
    assert press(ui, terminal, "M") == MarkAllPlayed(2, False)


def test_help_popup_swallows_next_key(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    assert press(ui, terminal, "?") == NOOP
    assert ui.popup_win.is_non_welcome_popup_active()
    assert press(ui, terminal, "q") == NOOP
    assert not ui.popup_win.is_popup_active()
    assert press(ui, terminal, "q") == Quit()


def test_welcome_dismissed_once_podcasts_exist(config, terminal) -> None:
    store = make_store()
    ui = make_ui(config, store, terminal)
    assert ui.popup_win.welcome_win
    store.push(make_podcast(1, [make_episode(11)]))
    # the key is still handled after the welcome screen goes away
    assert press(ui, terminal, "s") == Sync(1)
    assert not ui.popup_win.welcome_win


def test_closing_popup_refreshes_menus(config, terminal) -> None:
    store = sample_store()
    ui = make_ui(config, store, terminal)
    ui.apply(SpawnDownloadSelectionPopup((NewEpisode(1, 11, "Episode 11", "Podcast 1"),)))
    assert press(ui, terminal, "j") == NOOP
    assert ui.podcast_menu.current_index() == 0

    store.remove(1)
    assert press(ui, terminal, "esc") == NOOP
    assert not ui.popup_win.is_popup_active()
    assert ui.get_current_ids() == (2, 21)
    assert ui.episode_menu.items is store.get(2).episodes
    assert ui.details_panel.details.ep_title == "Episode 21"


def test_every_action_is_dispatched(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    for action in UserAction:
        result = ui.dispatch(action, 1, 11)
        assert isinstance(result, UiMsg), action

from __future__ import annotations

from podterm.messages import NOOP
from podterm.ui.app import ActivePanel

from helpers import make_ui, sample_store


def test_shrinking_drops_details_and_moves_focus(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    terminal.press("l", "j", "l")
    for _ in range(3):
        ui.getch()
    assert ui.active_panel is ActivePanel.DETAILS_PANEL

    terminal.resize(100, 30)
    assert ui.getch() == NOOP
    assert ui.details_panel is None
    assert ui.active_panel is ActivePanel.EPISODE_MENU
    assert ui.episode_menu.active
    assert (ui.n_col, ui.n_row) == (100, 30)


def test_growing_recreates_populated_details(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    terminal.press("l", "j")
    ui.getch()
    ui.getch()

    terminal.resize(100, 30)
    ui.getch()
    assert ui.details_panel is None

    terminal.resize(160, 40)
    ui.getch()
    assert ui.details_panel is not None
    assert ui.details_panel.details.ep_title == "Episode 12"
    assert ui.active_panel is ActivePanel.EPISODE_MENU


def test_resize_in_place(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    details = ui.details_panel

    terminal.resize(170, 50)
    ui.getch()
    assert ui.details_panel is details
    assert details.n_col == 58
    assert details.n_row == 49
    assert ui.podcast_menu.n_col == 57
    assert ui.episode_menu.start_x == 56
    assert ui.popup_win.n_col == 170
    assert ui.notif_win.n_col == 170
    assert ui.notif_win.n_row == 50


def test_resize_keeps_selection_visible(config, terminal) -> None:
    ui = make_ui(config, sample_store(), terminal)
    terminal.press("G")
    ui.getch()
    terminal.resize(120, 4)
    ui.getch()
    assert ui.get_current_ids()[0] == 3
    visible = ui.podcast_menu.visible_rows()
    assert 0 <= ui.podcast_menu.selected < visible

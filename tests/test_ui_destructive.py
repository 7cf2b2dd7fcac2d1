from __future__ import annotations

import pytest

from podterm.messages import NOOP, Delete, RemoveAllEpisodes, RemoveEpisode, RemovePodcast

from helpers import make_episode, make_podcast, make_store, make_ui


def press(ui, terminal, key):
    terminal.press(key)
    return ui.getch()


def store_with_download(tmp_path):
    return make_store(
        make_podcast(1, [make_episode(11, path=tmp_path / "11.mp3"), make_episode(12)]),
        make_podcast(2, [make_episode(21, 2)]),
    )


def test_remove_podcast_without_files_asks_once(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    press(ui, terminal, "j")
    terminal.type_line("y")
    terminal.type_line("y")
    assert press(ui, terminal, "r") == RemovePodcast(2, False)
    # the second answer was never read
    assert list(terminal.keys) == ["y", "enter"]


def test_remove_podcast_with_files_asks_about_them(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    terminal.type_line("y")
    terminal.type_line("yes")
    assert press(ui, terminal, "r") == RemovePodcast(1, True)


@pytest.mark.parametrize("second_answer", [["n", "enter"], ["esc"], ["m", "enter"], ["enter"]])
def test_unclear_file_answer_keeps_files(config, terminal, tmp_path, second_answer) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    terminal.type_line("y")
    terminal.answer(*second_answer)
    assert press(ui, terminal, "r") == RemovePodcast(1, False)


@pytest.mark.parametrize("first_answer", [["n", "enter"], ["esc"], ["x", "enter"], ["enter"]])
def test_declined_confirmation_aborts(config, terminal, tmp_path, first_answer) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    terminal.answer(*first_answer)
    terminal.type_line("y")
    assert press(ui, terminal, "r") == NOOP
    assert list(terminal.keys) == ["y", "enter"]


def test_remove_episode_asks_about_its_own_file(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    press(ui, terminal, "l")
    terminal.type_line("Y")
    terminal.type_line("y")
    assert press(ui, terminal, "r") == RemoveEpisode(1, 11, True)

    press(ui, terminal, "j")
    terminal.type_line("y")
    terminal.type_line("y")
    assert press(ui, terminal, "r") == RemoveEpisode(1, 12, False)
    assert list(terminal.keys) == ["y", "enter"]


def test_remove_all_follows_focus(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    terminal.type_line("y")
    terminal.type_line("n")
    assert press(ui, terminal, "R") == RemovePodcast(1, False)

    press(ui, terminal, "l")
    terminal.type_line("y")
    terminal.type_line("y")
    assert press(ui, terminal, "R") == RemoveAllEpisodes(1, True)


def test_remove_in_details_does_nothing(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    press(ui, terminal, "l")
    press(ui, terminal, "l")
    terminal.type_line("y")
    assert press(ui, terminal, "r") == NOOP
    assert press(ui, terminal, "R") == NOOP
    assert list(terminal.keys) == ["y", "enter"]


def test_delete_confirms_in_episode_list_only(config, terminal, tmp_path) -> None:
    ui = make_ui(config, store_with_download(tmp_path), terminal)
    terminal.type_line("y")
    assert press(ui, terminal, "x") == NOOP
    assert list(terminal.keys) == ["y", "enter"]

    press(ui, terminal, "l")
    assert press(ui, terminal, "x") == Delete(1, 11)

    terminal.type_line("n")
    assert press(ui, terminal, "x") == NOOP

from __future__ import annotations

import io
import logging
import os
import threading
from datetime import datetime, timezone

import pytest
from rich.console import Console

from podterm import cli
from podterm.feeds import EpisodeData, FeedError, PodcastData
from podterm.storage import Storage

from helpers import make_config, make_episode, make_podcast, make_store


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("PODTERM_"):
            monkeypatch.delenv(name)
    yield
    root = logging.getLogger("podterm")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def base_args(tmp_path) -> list[str]:
    return [
        "--config",
        str(tmp_path / "config.json"),
        "--data-path",
        str(tmp_path / "podcasts.json"),
        "--download-path",
        str(tmp_path / "downloads"),
        "--log-level",
        "off",
    ]


def test_bad_setting_exits_with_config_error(tmp_path, capsys) -> None:
    assert cli.main([*base_args(tmp_path), "--simultaneous-downloads", "0"]) == 2
    assert "Configuration error" in capsys.readouterr().out


def test_unreadable_data_file_is_not_overwritten(tmp_path, capsys) -> None:
    data_file = tmp_path / "podcasts.json"
    data_file.write_text("{broken", encoding="utf-8")
    assert cli.main(base_args(tmp_path)) == 2
    assert data_file.read_text(encoding="utf-8") == "{broken"


def test_needs_an_interactive_terminal(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO())
    assert cli.main(base_args(tmp_path)) == 1
    assert "--sync" in capsys.readouterr().out


def test_sync_without_podcasts(tmp_path, capsys) -> None:
    assert cli.main([*base_args(tmp_path), "--sync"]) == 0
    assert "No podcasts to sync." in capsys.readouterr().out


def test_sync_reports_each_podcast(tmp_path, monkeypatch, capsys) -> None:
    storage = Storage(tmp_path / "podcasts.json")
    storage.save([make_podcast(1, [make_episode(11)]), make_podcast(2, title="Broken Show")])

    def fake_fetch(url, max_retries=3):
        if url.endswith("/2/feed.xml"):
            raise FeedError("HTTP 500")
        return PodcastData(
            title="Podcast 1",
            url=url,
            episodes=[
                EpisodeData("Episode 11", "https://example.com/1/11.mp3", "guid-1-11"),
                EpisodeData(
                    "Brand new",
                    "https://example.com/1/new.mp3",
                    "new",
                    pubdate=datetime(2025, 1, 1, tzinfo=timezone.utc),
                ),
            ],
        )

    monkeypatch.setattr(cli, "fetch_feed", fake_fetch)
    assert cli.main([*base_args(tmp_path), "--sync"]) == 1

    out = capsys.readouterr().out
    assert "Broken Show" in out
    assert "HTTP 500" in out
    loaded, error = storage.load()
    assert error is None
    synced = next(pod for pod in loaded if pod.id == 1)
    assert [ep.title for ep in synced.episodes.items()] == ["Brand new", "Episode 11"]


def test_log_file_is_written(tmp_path) -> None:
    log_file = tmp_path / "logs" / "podterm.log"
    args = [*base_args(tmp_path)[:-2], "--log-level", "debug", "--log-file", str(log_file), "--sync"]
    assert cli.main(args) == 0
    for handler in logging.getLogger("podterm").handlers:
        handler.flush()
    assert "loaded 0 podcast(s)" in log_file.read_text(encoding="utf-8")


class IdleDownloader:
    def __init__(self, *args, **kwargs) -> None:
        self.stopped = False

    def start(self) -> None:
        pass

    def stop(self) -> None:
        self.stopped = True


def finished_thread() -> threading.Thread:
    thread = threading.Thread(target=lambda: None)
    thread.start()
    thread.join()
    return thread


def test_crashed_interface_is_a_failure(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "DownloadManager", IdleDownloader)
    monkeypatch.setattr(cli, "spawn_ui", lambda *args: finished_thread())
    config = make_config(tmp_path)
    storage = Storage(config.data_path)
    assert cli.run(config, storage, make_store(), Console()) == 1
    assert "stopped unexpectedly" in capsys.readouterr().out

from __future__ import annotations

import queue
from datetime import datetime, timezone

import requests

from podterm.downloads import (
    DownloadComplete,
    DownloadFailed,
    DownloadManager,
    EpData,
    download_episode,
    episode_file_stem,
    extension_for,
    sanitize_filename,
)


class FakeStream:
    def __init__(self, chunks, content_type="audio/mpeg", fail_after=None) -> None:
        self.chunks = chunks
        self.headers = {"Content-Type": content_type}
        self.fail_after = fail_after

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def raise_for_status(self) -> None:
        return None

    def iter_content(self, chunk_size=None):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise requests.ConnectionError("connection reset")
            yield chunk


class FakeSession:
    def __init__(self, *streams) -> None:
        self.streams = list(streams)

    def get(self, url, stream=False, timeout=None, headers=None):
        return self.streams.pop(0)


def make_job(title: str = "Episode: One?") -> EpData:
    return EpData(
        pod_id=1,
        ep_id=7,
        title=title,
        url="https://example.com/audio/ep1.m4a?token=abc",
        pod_title="My/Podcast",
        pubdate=datetime(2024, 3, 9, tzinfo=timezone.utc),
    )


def test_sanitize_filename() -> None:
    assert sanitize_filename("Episode: One?") == "Episode_ One_"
    assert sanitize_filename("My/Podcast") == "My_Podcast"
    assert sanitize_filename(" ... ") == "untitled"
    assert len(sanitize_filename("x" * 300)) == 100


def test_extension_for() -> None:
    assert extension_for("audio/mpeg; charset=binary", "https://e.com/a") == "mp3"
    assert extension_for("application/octet-stream", "https://e.com/a.ogg?x=1") == "ogg"
    assert extension_for(None, "https://e.com/download") == "mp3"


def test_episode_file_stem_prefixes_date() -> None:
    assert episode_file_stem(make_job("Hello")) == "2024-03-09_Hello"


def test_download_episode_writes_file(tmp_path) -> None:
    session = FakeSession(FakeStream([b"abc", b"", b"def"], content_type="audio/mp4"))
    result = download_episode(make_job(), tmp_path, max_retries=1, session=session)
    assert isinstance(result, DownloadComplete)
    assert result.path == tmp_path / "My_Podcast" / "2024-03-09_Episode_ One_.m4a"
    assert result.path.read_bytes() == b"abcdef"
    assert list(result.path.parent.glob("*.part")) == []


def test_download_episode_failure_leaves_no_partial(tmp_path) -> None:
    session = FakeSession(
        FakeStream([b"abc", b"def"], fail_after=1),
        FakeStream([b"abc", b"def"], fail_after=1),
    )
    result = download_episode(make_job(), tmp_path, max_retries=2, session=session)
    assert isinstance(result, DownloadFailed)
    assert "connection reset" in result.error
    assert list((tmp_path / "My_Podcast").iterdir()) == []


def test_download_manager_posts_results(tmp_path) -> None:
    results: queue.Queue = queue.Queue()
    manager = DownloadManager(
        results,
        tmp_path,
        n_workers=2,
        max_retries=1,
        session_factory=lambda: FakeSession(FakeStream([b"data"]), FakeStream([b"data"])),
    )
    manager.start()
    try:
        assert manager.enqueue([make_job("a"), make_job("b")]) == 2
        received = [results.get(timeout=5), results.get(timeout=5)]
    finally:
        manager.stop()
    assert all(isinstance(item, DownloadComplete) for item in received)
    assert manager.workers == []

from __future__ import annotations

import io
from collections import deque
from datetime import datetime, timedelta, timezone
from pathlib import Path

from rich.console import Console, RenderableType

from podterm.config import AppConfig
from podterm.types import Episode, LockVec, Podcast
from podterm.ui.app import Ui
from podterm.ui.terminal import KeyEvent, ResizeEvent

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeTerminal:
    """Scripted stand-in for `Terminal`.

    `events` feeds the non-blocking poll, `keys` feeds blocking prompts; an
    exhausted prompt reads as esc so a test can never hang.
    """

    def __init__(self, columns: int = 160, rows: int = 40) -> None:
        self.columns = columns
        self.rows = rows
        self.events: deque[KeyEvent | ResizeEvent] = deque()
        self.keys: deque[str] = deque()
        self.entered = 0
        self.restored = 0
        self.frames = 0
        self.output = io.StringIO()

    def enter(self) -> None:
        self.entered += 1

    def restore(self) -> None:
        self.restored += 1

    def size(self) -> tuple[int, int]:
        return self.columns, self.rows

    def poll_event(self) -> KeyEvent | ResizeEvent | None:
        if self.events:
            return self.events.popleft()
        return None

    def read_key(self) -> str:
        if self.keys:
            return self.keys.popleft()
        return "esc"

    def draw(self, renderable: RenderableType) -> None:
        console = Console(
            file=self.output,
            width=self.columns,
            height=self.rows,
            force_terminal=False,
            color_system=None,
        )
        console.print(renderable)
        self.frames += 1

    def press(self, *keys: str) -> None:
        self.events.extend(KeyEvent(key) for key in keys)

    def answer(self, *keys: str) -> None:
        self.keys.extend(keys)

    def type_line(self, text: str) -> None:
        self.keys.extend(text)
        self.keys.append("enter")

    def resize(self, columns: int, rows: int) -> None:
        self.columns = columns
        self.rows = rows
        self.events.append(ResizeEvent(columns, rows))


def make_config(tmp_path: Path, **overrides: object) -> AppConfig:
    values: dict[str, object] = {
        "config_path": tmp_path / "config.json",
        "data_path": tmp_path / "podcasts.json",
        "download_path": tmp_path / "downloads",
        "log_file": None,
    }
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


def make_episode(
    ep_id: int,
    pod_id: int = 1,
    title: str | None = None,
    played: bool = False,
    path: Path | None = None,
    description: str = "",
    hidden: bool = False,
) -> Episode:
    return Episode(
        id=ep_id,
        pod_id=pod_id,
        title=title if title is not None else f"Episode {ep_id}",
        url=f"https://example.com/{pod_id}/{ep_id}.mp3",
        guid=f"guid-{pod_id}-{ep_id}",
        description=description,
        pubdate=BASE_DATE - timedelta(days=ep_id),
        duration=1800,
        path=path,
        played=played,
        hidden=hidden,
    )


def make_podcast(pod_id: int, episodes: list[Episode] | None = None, title: str | None = None) -> Podcast:
    return Podcast(
        id=pod_id,
        title=title if title is not None else f"Podcast {pod_id}",
        url=f"https://example.com/{pod_id}/feed.xml",
        episodes=LockVec(episodes or []),
    )


def make_store(*podcasts: Podcast) -> LockVec[Podcast]:
    return LockVec(podcasts)


def sample_store() -> LockVec[Podcast]:
    return make_store(
        make_podcast(1, [make_episode(ep_id, 1) for ep_id in (11, 12, 13)]),
        make_podcast(2, [make_episode(ep_id, 2) for ep_id in (21, 22)]),
        make_podcast(3, []),
    )


def make_ui(config: AppConfig, items: LockVec[Podcast], terminal: FakeTerminal) -> Ui:
    ui = Ui(config, items, terminal)
    ui.init()
    return ui

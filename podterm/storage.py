from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from .types import Episode, LockVec, Podcast

logger = logging.getLogger(__name__)

DATA_VERSION = 1


class Storage:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> tuple[list[Podcast], str | None]:
        if not self.path.exists():
            return [], None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            return [], f"Failed to read podcast data: {self.path} ({exc})"
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return [], f"Podcast data is not valid JSON: {self.path}"
        if not isinstance(data, dict) or not isinstance(data.get("podcasts"), list):
            return [], f"Podcast data has an unexpected layout: {self.path}"
        try:
            podcasts = [_podcast_from_dict(item) for item in data["podcasts"]]
        except (KeyError, TypeError, ValueError) as exc:
            return [], f"Podcast data is malformed: {self.path} ({exc})"
        return podcasts, None

    def save(self, podcasts: Iterable[Podcast]) -> str | None:
        payload = {
            "version": DATA_VERSION,
            "podcasts": [_podcast_to_dict(podcast) for podcast in podcasts],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            scratch = self.path.with_name(f"{self.path.name}.tmp")
            scratch.write_text(json.dumps(payload, ensure_ascii=True, indent=2), encoding="utf-8")
            scratch.replace(self.path)
        except OSError as exc:
            logger.error("saving podcast data failed: %s", exc)
            return f"Failed to save podcast data: {self.path} ({exc})"
        return None


def next_ids(podcasts: Iterable[Podcast]) -> tuple[int, int]:
    max_pod = 0
    max_ep = 0
    for podcast in podcasts:
        max_pod = max(max_pod, podcast.id)
        for ep_id in podcast.episodes.ids(filtered=False):
            max_ep = max(max_ep, ep_id)
    return max_pod + 1, max_ep + 1


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _episode_to_dict(episode: Episode) -> dict[str, Any]:
    return {
        "id": episode.id,
        "title": episode.title,
        "url": episode.url,
        "guid": episode.guid,
        "description": episode.description,
        "pubdate": _iso(episode.pubdate),
        "duration": episode.duration,
        "path": str(episode.path) if episode.path is not None else None,
        "played": episode.played,
        "hidden": episode.hidden,
    }


def _podcast_to_dict(podcast: Podcast) -> dict[str, Any]:
    return {
        "id": podcast.id,
        "title": podcast.title,
        "url": podcast.url,
        "sort_title": podcast.sort_title,
        "description": podcast.description,
        "author": podcast.author,
        "explicit": podcast.explicit,
        "last_checked": _iso(podcast.last_checked),
        "episodes": podcast.episodes.map(_episode_to_dict, filtered=False),
    }


def _episode_from_dict(pod_id: int, data: dict[str, Any]) -> Episode:
    path = data.get("path")
    duration = data.get("duration")
    return Episode(
        id=int(data["id"]),
        pod_id=pod_id,
        title=str(data.get("title") or ""),
        url=str(data["url"]),
        guid=str(data.get("guid") or data["url"]),
        description=str(data.get("description") or ""),
        pubdate=_parse_iso(data.get("pubdate")),
        duration=int(duration) if duration is not None else None,
        path=Path(path) if path else None,
        played=bool(data.get("played", False)),
        hidden=bool(data.get("hidden", False)),
    )


def _podcast_from_dict(data: dict[str, Any]) -> Podcast:
    pod_id = int(data["id"])
    episodes = [_episode_from_dict(pod_id, item) for item in data.get("episodes", [])]
    return Podcast(
        id=pod_id,
        title=str(data.get("title") or ""),
        url=str(data["url"]),
        sort_title=str(data.get("sort_title") or ""),
        description=data.get("description"),
        author=data.get("author"),
        explicit=data.get("explicit"),
        last_checked=_parse_iso(data.get("last_checked")),
        episodes=LockVec(episodes),
    )

from __future__ import annotations

import html
import logging
import queue
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import struct_time
from typing import Any

import feedparser
import requests
from dateutil import parser as date_parser

from .messages import Message

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 20
USER_AGENT = "podterm/0.1 (+https://pypi.org/project/podterm/)"

HTML_TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")

EXPLICIT_VALUES = {"yes": True, "true": True, "explicit": True, "no": False, "false": False, "clean": False}


class FeedError(Exception):
    pass


@dataclass
class EpisodeData:
    title: str
    url: str
    guid: str
    description: str = ""
    pubdate: datetime | None = None
    duration: int | None = None


@dataclass
class PodcastData:
    title: str
    url: str
    description: str = ""
    author: str = ""
    explicit: bool | None = None
    last_checked: datetime | None = None
    episodes: list[EpisodeData] = field(default_factory=list)


@dataclass(frozen=True)
class FeedJob:
    url: str
    pod_id: int | None = None


class FeedMessage(Message):
    pass


@dataclass(frozen=True)
class NewData(FeedMessage):
    data: PodcastData


@dataclass(frozen=True)
class SyncData(FeedMessage):
    pod_id: int
    data: PodcastData


@dataclass(frozen=True)
class FeedFailed(FeedMessage):
    url: str
    pod_id: int | None
    error: str


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (list, tuple)):
        raw = " ".join(str(piece) for piece in raw)
    if not isinstance(raw, str):
        raw = str(raw)
    unescaped = html.unescape(raw)
    no_html = HTML_TAG_RE.sub(" ", unescaped)
    return WHITESPACE_RE.sub(" ", no_html).strip()


def parse_date(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        parsed = raw
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    if isinstance(raw, (tuple, struct_time)):
        try:
            parsed = datetime(*list(raw)[:6], tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
        except (TypeError, ValueError):
            return None
    try:
        parsed = date_parser.parse(str(raw))
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_duration(raw: Any) -> int | None:
    """Seconds from `SS`, `MM:SS` or `HH:MM:SS`; None when unparseable."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return int(raw) if raw >= 0 else None
    parts = str(raw).strip().split(":")
    if not parts or len(parts) > 3:
        return None
    try:
        numbers = [int(float(part)) for part in parts]
    except ValueError:
        return None
    if any(number < 0 for number in numbers):
        return None
    seconds = 0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds


def parse_explicit(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return None
    return EXPLICIT_VALUES.get(str(raw).strip().lower())


def enclosure_url(entry: Any) -> str:
    for enclosure in entry.get("enclosures", []) or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return href
    for link in entry.get("links", []) or []:
        if link.get("rel") == "enclosure" and link.get("href"):
            return link["href"]
    return ""


def parse_entry(entry: Any) -> EpisodeData | None:
    url = enclosure_url(entry)
    if not url:
        return None
    return EpisodeData(
        title=normalize_text(entry.get("title", "")),
        url=url,
        guid=entry.get("id") or entry.get("guid") or url,
        # kept raw, the details panel sanitizes it for display
        description=entry.get("summary") or entry.get("description") or "",
        pubdate=parse_date(
            entry.get("published")
            or entry.get("updated")
            or entry.get("published_parsed")
            or entry.get("updated_parsed")
        ),
        duration=parse_duration(entry.get("itunes_duration")),
    )


def parse_feed(content: bytes | str, url: str) -> PodcastData:
    parsed = feedparser.parse(content)
    feed = parsed.feed
    if parsed.bozo and not parsed.entries and not feed.get("title"):
        raise FeedError(f"Could not parse feed at {url}")

    episodes: list[EpisodeData] = []
    for entry in parsed.entries:
        episode = parse_entry(entry)
        if episode is not None:
            episodes.append(episode)

    return PodcastData(
        title=normalize_text(feed.get("title")) or url,
        url=url,
        description=normalize_text(feed.get("subtitle") or feed.get("description")),
        author=normalize_text(feed.get("author") or feed.get("itunes_author")),
        explicit=parse_explicit(feed.get("itunes_explicit")),
        last_checked=now_utc(),
        episodes=episodes,
    )


def fetch_feed(
    url: str,
    max_retries: int = 3,
    timeout: int = FEED_TIMEOUT,
    session: requests.Session | None = None,
) -> PodcastData:
    http = session or requests.Session()
    last_error = "no attempts made"
    for attempt in range(1, max(max_retries, 1) + 1):
        try:
            response = http.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except requests.RequestException as exc:
            last_error = str(exc)
            logger.warning("fetching %s failed (attempt %s/%s): %s", url, attempt, max_retries, exc)
            continue
        return parse_feed(response.content, url)
    raise FeedError(f"Could not fetch {url}: {last_error}")


def check_feed(
    job: FeedJob,
    tx: queue.Queue[Message],
    max_retries: int = 3,
    session: requests.Session | None = None,
) -> None:
    try:
        data = fetch_feed(job.url, max_retries=max_retries, session=session)
    except FeedError as exc:
        logger.warning("feed check failed for %s: %s", job.url, exc)
        tx.put(FeedFailed(job.url, job.pod_id, str(exc)))
        return

    logger.info("fetched %s (%s episodes)", job.url, len(data.episodes))
    if job.pod_id is None:
        tx.put(NewData(data))
    else:
        tx.put(SyncData(job.pod_id, data))

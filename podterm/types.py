from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, Iterable, TypeVar

SORT_TITLE_PREFIX_RE = re.compile(r"^(a|an|the)\s+", re.IGNORECASE)

T = TypeVar("T")
R = TypeVar("R")


class LockVec(Generic[T]):
    """Ordered id -> item map shared between the controller and the UI.

    Writers hold the lock while they mutate and rebuild the filtered order;
    readers hold it only for the duration of a single call, so no caller ever
    keeps the store locked across a blocking operation.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._lock = threading.RLock()
        self._map: dict[int, T] = {}
        self._order: list[int] = []
        self._filtered_order: list[int] = []
        self._predicate: Callable[[T], bool] | None = None
        self._load(items)

    def _load(self, items: Iterable[T]) -> None:
        self._map = {}
        self._order = []
        for item in items:
            item_id = item.id  # type: ignore[attr-defined]
            if item_id not in self._map:
                self._order.append(item_id)
            self._map[item_id] = item
        self._rebuild()

    def _rebuild(self) -> None:
        if self._predicate is None:
            self._filtered_order = list(self._order)
            return
        self._filtered_order = [
            item_id for item_id in self._order if self._predicate(self._map[item_id])
        ]

    def id_at(self, index: int) -> int | None:
        with self._lock:
            if 0 <= index < len(self._filtered_order):
                return self._filtered_order[index]
            return None

    def get(self, item_id: int) -> T | None:
        with self._lock:
            return self._map.get(item_id)

    def map_single(self, item_id: int, fn: Callable[[T], R]) -> R | None:
        with self._lock:
            item = self._map.get(item_id)
            if item is None:
                return None
            return fn(item)

    def map(self, fn: Callable[[T], R], filtered: bool = True) -> list[R]:
        with self._lock:
            order = self._filtered_order if filtered else self._order
            return [fn(self._map[item_id]) for item_id in order]

    def ids(self, filtered: bool = True) -> list[int]:
        with self._lock:
            return list(self._filtered_order if filtered else self._order)

    def items(self, filtered: bool = True) -> list[T]:
        return self.map(lambda item: item, filtered=filtered)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._filtered_order

    def len(self, filtered: bool = True) -> int:
        with self._lock:
            return len(self._filtered_order if filtered else self._order)

    def push(self, item: T) -> None:
        with self._lock:
            item_id = item.id  # type: ignore[attr-defined]
            if item_id not in self._map:
                self._order.append(item_id)
            self._map[item_id] = item
            self._rebuild()

    def update(self, item_id: int, fn: Callable[[T], T]) -> T | None:
        with self._lock:
            item = self._map.get(item_id)
            if item is None:
                return None
            updated = fn(item)
            self._map[item_id] = updated
            self._rebuild()
            return updated

    def remove(self, item_id: int) -> T | None:
        with self._lock:
            item = self._map.pop(item_id, None)
            if item is None:
                return None
            self._order.remove(item_id)
            self._rebuild()
            return item

    def replace_all(self, items: Iterable[T]) -> None:
        with self._lock:
            self._load(items)

    def set_filter(self, predicate: Callable[[T], bool] | None) -> None:
        with self._lock:
            self._predicate = predicate
            self._rebuild()

    def __repr__(self) -> str:
        with self._lock:
            return f"LockVec(len={len(self._order)}, filtered={len(self._filtered_order)})"


@dataclass
class Episode:
    id: int
    pod_id: int
    title: str
    url: str
    guid: str = ""
    description: str = ""
    pubdate: datetime | None = None
    duration: int | None = None
    path: Path | None = None
    played: bool = False
    hidden: bool = False

    def is_played(self) -> bool:
        return self.played

    def is_downloaded(self) -> bool:
        return self.path is not None

    def format_duration(self) -> str:
        if self.duration is None:
            return "--:--:--"
        seconds = max(int(self.duration), 0)
        hours, remainder = divmod(seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02}:{minutes:02}:{seconds:02}"


@dataclass
class Podcast:
    id: int
    title: str
    url: str
    sort_title: str = ""
    description: str | None = None
    author: str | None = None
    explicit: bool | None = None
    last_checked: datetime | None = None
    episodes: LockVec[Episode] = field(default_factory=LockVec)

    def __post_init__(self) -> None:
        if not self.sort_title:
            self.sort_title = make_sort_title(self.title)

    def num_unplayed(self) -> int:
        return sum(
            self.episodes.map(lambda ep: not ep.hidden and not ep.is_played(), filtered=False)
        )

    def is_played(self) -> bool:
        return self.num_unplayed() == 0

    def any_downloaded(self) -> bool:
        return any(self.episodes.map(lambda ep: ep.is_downloaded(), filtered=False))


def make_sort_title(title: str) -> str:
    return SORT_TITLE_PREFIX_RE.sub("", title.strip()).lower()


class FilterType(Enum):
    PLAYED = "played"
    DOWNLOADED = "downloaded"


class FilterStatus(Enum):
    ALL = "all"
    POSITIVE_CASES = "positive"
    NEGATIVE_CASES = "negative"

    def next(self) -> FilterStatus:
        if self is FilterStatus.ALL:
            return FilterStatus.NEGATIVE_CASES
        if self is FilterStatus.NEGATIVE_CASES:
            return FilterStatus.POSITIVE_CASES
        return FilterStatus.ALL

    def accepts(self, value: bool) -> bool:
        if self is FilterStatus.ALL:
            return True
        if self is FilterStatus.POSITIVE_CASES:
            return value
        return not value


FILTER_LABELS: dict[FilterType, dict[FilterStatus, str]] = {
    FilterType.PLAYED: {
        FilterStatus.ALL: "Showing played and unplayed episodes",
        FilterStatus.NEGATIVE_CASES: "Showing unplayed episodes only",
        FilterStatus.POSITIVE_CASES: "Showing played episodes only",
    },
    FilterType.DOWNLOADED: {
        FilterStatus.ALL: "Showing downloaded and undownloaded episodes",
        FilterStatus.NEGATIVE_CASES: "Showing undownloaded episodes only",
        FilterStatus.POSITIVE_CASES: "Showing downloaded episodes only",
    },
}


@dataclass
class Filters:
    played: FilterStatus = FilterStatus.ALL
    downloaded: FilterStatus = FilterStatus.ALL

    def matches(self, episode: Episode) -> bool:
        if episode.hidden:
            return False
        return self.played.accepts(episode.is_played()) and self.downloaded.accepts(
            episode.is_downloaded()
        )

    def cycle(self, filter_type: FilterType) -> str:
        if filter_type is FilterType.PLAYED:
            self.played = self.played.next()
            return FILTER_LABELS[filter_type][self.played]
        self.downloaded = self.downloaded.next()
        return FILTER_LABELS[filter_type][self.downloaded]

from __future__ import annotations

from dataclasses import dataclass, field

from .types import FilterType


class UiMsg:
    """Base class of every intent the UI emits for the controller."""


@dataclass(frozen=True)
class AddFeed(UiMsg):
    url: str


@dataclass(frozen=True)
class Play(UiMsg):
    pod_id: int
    ep_id: int


@dataclass(frozen=True)
class MarkPlayed(UiMsg):
    pod_id: int
    ep_id: int
    played: bool


@dataclass(frozen=True)
class MarkAllPlayed(UiMsg):
    pod_id: int
    played: bool


@dataclass(frozen=True)
class Sync(UiMsg):
    pod_id: int


@dataclass(frozen=True)
class SyncAll(UiMsg):
    pass


@dataclass(frozen=True)
class Download(UiMsg):
    pod_id: int
    ep_id: int


@dataclass(frozen=True)
class DownloadMulti(UiMsg):
    episodes: tuple[tuple[int, int], ...]


@dataclass(frozen=True)
class DownloadAll(UiMsg):
    pod_id: int


@dataclass(frozen=True)
class UnmarkDownloaded(UiMsg):
    pod_id: int
    ep_id: int


@dataclass(frozen=True)
class Delete(UiMsg):
    pod_id: int
    ep_id: int


@dataclass(frozen=True)
class DeleteAll(UiMsg):
    pod_id: int


@dataclass(frozen=True)
class RemovePodcast(UiMsg):
    pod_id: int
    delete_files: bool


@dataclass(frozen=True)
class RemoveEpisode(UiMsg):
    pod_id: int
    ep_id: int
    delete_files: bool


@dataclass(frozen=True)
class RemoveAllEpisodes(UiMsg):
    pod_id: int
    delete_files: bool


@dataclass(frozen=True)
class FilterChange(UiMsg):
    filter_type: FilterType


@dataclass(frozen=True)
class Quit(UiMsg):
    pass


@dataclass(frozen=True)
class Noop(UiMsg):
    pass


NOOP = Noop()


# Controller -> UI instructions.


class MainMessage:
    pass


@dataclass(frozen=True)
class RefreshMenus(MainMessage):
    pass


@dataclass(frozen=True)
class SpawnTimedNotification(MainMessage):
    text: str
    duration: int
    is_error: bool = False


@dataclass(frozen=True)
class SpawnPersistentNotification(MainMessage):
    text: str
    is_error: bool = False


@dataclass(frozen=True)
class ClearPersistentNotification(MainMessage):
    pass


@dataclass(frozen=True)
class TearDown(MainMessage):
    pass


@dataclass(frozen=True)
class NewEpisode:
    pod_id: int
    ep_id: int
    title: str
    pod_title: str


@dataclass(frozen=True)
class SpawnDownloadSelectionPopup(MainMessage):
    episodes: tuple[NewEpisode, ...]
    preselected: frozenset[int] = field(default_factory=frozenset)


# Envelopes posted to the controller's inbound queue.


class Message:
    pass


@dataclass(frozen=True)
class UiMessage(Message):
    msg: UiMsg

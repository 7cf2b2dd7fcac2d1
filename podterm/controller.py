from __future__ import annotations

import logging
import queue
import shlex
import subprocess
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from .config import AppConfig
from .downloads import DownloadComplete, DownloadFailed, DownloadManager, EpData
from .feeds import EpisodeData, FeedFailed, FeedJob, NewData, PodcastData, SyncData, check_feed
from .messages import (
    AddFeed,
    ClearPersistentNotification,
    Delete,
    DeleteAll,
    Download,
    DownloadAll,
    DownloadMulti,
    FilterChange,
    MainMessage,
    MarkAllPlayed,
    MarkPlayed,
    Message,
    NewEpisode,
    Noop,
    Play,
    Quit,
    RefreshMenus,
    RemoveAllEpisodes,
    RemoveEpisode,
    RemovePodcast,
    SpawnDownloadSelectionPopup,
    SpawnPersistentNotification,
    SpawnTimedNotification,
    Sync,
    SyncAll,
    TearDown,
    UiMessage,
    UiMsg,
    UnmarkDownloaded,
)
from .storage import Storage, next_ids
from .types import Episode, Filters, LockVec, Podcast, make_sort_title

logger = logging.getLogger(__name__)

# milliseconds
TIMED_NOTIF_DURATION = 5000
# seconds between liveness checks of the UI thread while idle
POLL_INTERVAL = 0.25

EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def newest_first(episodes: Iterable[Episode]) -> list[Episode]:
    return sorted(episodes, key=lambda ep: ep.pubdate or EPOCH, reverse=True)


def build_play_args(command: str, target: str) -> list[str]:
    args = shlex.split(command)
    if any("%s" in arg for arg in args):
        return [arg.replace("%s", target) for arg in args]
    return [*args, target]


def delete_file(path: Path | None) -> str | None:
    if path is None:
        return None
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("deleting %s failed: %s", path, exc)
        return str(exc)
    return None


class Controller:
    """Main-thread owner of every store mutation.

    Consumes one ordered queue fed by the UI, the feed checks and the download
    workers, and answers the UI through `tx_to_ui`.
    """

    def __init__(
        self,
        config: AppConfig,
        podcasts: LockVec[Podcast],
        storage: Storage,
        tx_to_ui: queue.Queue[MainMessage],
        rx: queue.Queue[Message],
        downloader: DownloadManager | None = None,
        spawn_feed_check: Callable[[FeedJob], None] | None = None,
        launcher: Callable[..., object] = subprocess.Popen,
    ) -> None:
        self.config = config
        self.podcasts = podcasts
        self.storage = storage
        self.tx_to_ui = tx_to_ui
        self.rx = rx
        self.downloader = downloader
        self.spawn_feed_check = spawn_feed_check or self._start_feed_thread
        self.launcher = launcher
        self.filters = Filters()
        self.next_pod_id, self.next_ep_id = next_ids(podcasts.items(filtered=False))
        self.pending_checks = 0
        self.sync_new_episodes: list[NewEpisode] = []
        self.sync_errors = 0
        self.syncing = False
        self.downloading: set[tuple[int, int]] = set()
        self.ui_thread: threading.Thread | None = None
        self.running = True
        self.ui_failed = False
        self.apply_filters()

    def _start_feed_thread(self, job: FeedJob) -> None:
        thread = threading.Thread(
            target=check_feed,
            args=(job, self.rx, self.config.max_retries),
            name="podterm-feed",
            daemon=True,
        )
        thread.start()

    def send(self, message: MainMessage) -> None:
        self.tx_to_ui.put(message)

    def notify(self, text: str, error: bool = False) -> None:
        self.send(SpawnTimedNotification(text, TIMED_NOTIF_DURATION, error))

    def run(self) -> None:
        while self.running:
            try:
                message = self.rx.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if self.ui_thread is not None and not self.ui_thread.is_alive():
                    logger.error("ui thread exited unexpectedly")
                    self.ui_failed = True
                    self.shutdown()
                continue
            self.handle(message)

    def handle(self, message: Message) -> None:
        if isinstance(message, UiMessage):
            self.handle_intent(message.msg)
        elif isinstance(message, NewData):
            self.add_podcast(message.data)
            self.finish_check()
        elif isinstance(message, SyncData):
            self.sync_new_episodes.extend(self.sync_podcast(message.pod_id, message.data))
            self.finish_check()
        elif isinstance(message, FeedFailed):
            self.feed_failed(message)
            self.finish_check()
        elif isinstance(message, DownloadComplete):
            self.download_complete(message)
        elif isinstance(message, DownloadFailed):
            self.download_failed(message)

    def handle_intent(self, msg: UiMsg) -> None:
        logger.debug("handling %r", msg)
        if isinstance(msg, AddFeed):
            self.add_feed(msg.url)
        elif isinstance(msg, Sync):
            self.sync([msg.pod_id])
        elif isinstance(msg, SyncAll):
            self.sync(self.podcasts.ids(filtered=False))
        elif isinstance(msg, Play):
            self.play(msg.pod_id, msg.ep_id)
        elif isinstance(msg, MarkPlayed):
            self.mark_played(msg.pod_id, msg.ep_id, msg.played)
        elif isinstance(msg, MarkAllPlayed):
            self.mark_all_played(msg.pod_id, msg.played)
        elif isinstance(msg, Download):
            self.queue_downloads([(msg.pod_id, msg.ep_id)])
        elif isinstance(msg, DownloadMulti):
            self.queue_downloads(msg.episodes)
        elif isinstance(msg, DownloadAll):
            self.queue_downloads((msg.pod_id, ep_id) for ep_id in self.visible_episode_ids(msg.pod_id))
        elif isinstance(msg, UnmarkDownloaded):
            self.unmark_downloaded(msg.pod_id, msg.ep_id)
        elif isinstance(msg, Delete):
            self.delete(msg.pod_id, msg.ep_id)
        elif isinstance(msg, DeleteAll):
            self.delete_all(msg.pod_id)
        elif isinstance(msg, RemovePodcast):
            self.remove_podcast(msg.pod_id, msg.delete_files)
        elif isinstance(msg, RemoveEpisode):
            self.remove_episode(msg.pod_id, msg.ep_id, msg.delete_files)
        elif isinstance(msg, RemoveAllEpisodes):
            self.remove_all_episodes(msg.pod_id, msg.delete_files)
        elif isinstance(msg, FilterChange):
            label = self.filters.cycle(msg.filter_type)
            self.apply_filters()
            self.send(RefreshMenus())
            self.notify(label)
        elif isinstance(msg, Quit):
            self.shutdown()
        elif isinstance(msg, Noop):
            pass

    # -- store helpers

    def episodes_of(self, pod_id: int) -> LockVec[Episode] | None:
        return self.podcasts.map_single(pod_id, lambda pod: pod.episodes)

    def visible_episode_ids(self, pod_id: int) -> list[int]:
        episodes = self.episodes_of(pod_id)
        if episodes is None:
            return []
        return [ep.id for ep in episodes.items(filtered=False) if not ep.hidden]

    def update_episode(self, pod_id: int, ep_id: int, **changes: object) -> Episode | None:
        episodes = self.episodes_of(pod_id)
        if episodes is None:
            return None
        return episodes.update(ep_id, lambda ep: replace(ep, **changes))

    def apply_filters(self) -> None:
        for podcast in self.podcasts.items(filtered=False):
            podcast.episodes.set_filter(self.filters.matches)

    def save(self) -> None:
        error = self.storage.save(self.podcasts.items(filtered=False))
        if error:
            self.notify(error, error=True)

    def sort_podcasts(self) -> None:
        ordered = sorted(self.podcasts.items(filtered=False), key=lambda pod: pod.sort_title)
        self.podcasts.replace_all(ordered)

    def commit(self) -> None:
        self.save()
        self.send(RefreshMenus())

    # -- feeds

    def add_feed(self, url: str) -> None:
        if any(pod.url == url for pod in self.podcasts.items(filtered=False)):
            self.notify("Podcast feed already exists.", error=True)
            return
        self.start_checks([FeedJob(url)], "Fetching feed data...")

    def sync(self, pod_ids: Iterable[int]) -> None:
        jobs = []
        for pod_id in pod_ids:
            url = self.podcasts.map_single(pod_id, lambda pod: pod.url)
            if url is not None:
                jobs.append(FeedJob(url, pod_id))
        if not jobs:
            return
        self.syncing = True
        self.start_checks(jobs, "Syncing...")

    def start_checks(self, jobs: list[FeedJob], label: str) -> None:
        self.pending_checks += len(jobs)
        self.send(SpawnPersistentNotification(label))
        for job in jobs:
            self.spawn_feed_check(job)

    def finish_check(self) -> None:
        self.pending_checks = max(self.pending_checks - 1, 0)
        if self.pending_checks:
            return
        self.send(ClearPersistentNotification())
        if not self.syncing:
            return

        new_episodes = self.sync_new_episodes
        errors = self.sync_errors
        self.syncing = False
        self.sync_new_episodes = []
        self.sync_errors = 0

        if errors:
            self.notify(f"Sync completed with {errors} error(s).", error=True)
        else:
            self.notify(f"Sync complete. {len(new_episodes)} new episode(s).")
        if new_episodes:
            self.handle_new_episodes(new_episodes)

    def handle_new_episodes(self, new_episodes: list[NewEpisode]) -> None:
        mode = self.config.download_new_episodes
        if mode == "always":
            self.queue_downloads((ep.pod_id, ep.ep_id) for ep in new_episodes)
        elif mode == "ask-selected":
            self.send(
                SpawnDownloadSelectionPopup(
                    tuple(new_episodes), frozenset(range(len(new_episodes)))
                )
            )
        elif mode == "ask-unselected":
            self.send(SpawnDownloadSelectionPopup(tuple(new_episodes)))

    def feed_failed(self, message: FeedFailed) -> None:
        if message.pod_id is None:
            self.notify(f"Error retrieving RSS feed: {message.error}", error=True)
        else:
            self.sync_errors += 1

    def new_episode(self, pod_id: int, data_ep: EpisodeData) -> Episode:
        episode = Episode(
            id=self.next_ep_id,
            pod_id=pod_id,
            title=data_ep.title,
            url=data_ep.url,
            guid=data_ep.guid,
            description=data_ep.description,
            pubdate=data_ep.pubdate,
            duration=data_ep.duration,
        )
        self.next_ep_id += 1
        return episode

    def add_podcast(self, data: PodcastData) -> None:
        if any(pod.url == data.url for pod in self.podcasts.items(filtered=False)):
            self.notify("Podcast feed already exists.", error=True)
            return
        pod_id = self.next_pod_id
        self.next_pod_id += 1
        episodes = LockVec(newest_first(self.new_episode(pod_id, ep) for ep in data.episodes))
        episodes.set_filter(self.filters.matches)
        podcast = Podcast(
            id=pod_id,
            title=data.title,
            url=data.url,
            description=data.description or None,
            author=data.author or None,
            explicit=data.explicit,
            last_checked=data.last_checked,
            episodes=episodes,
        )
        self.podcasts.push(podcast)
        self.sort_podcasts()
        self.commit()
        logger.info("added podcast %s (%s)", podcast.title, podcast.url)
        self.notify(f"Successfully added {podcast.title}.")

    def sync_podcast(self, pod_id: int, data: PodcastData) -> list[NewEpisode]:
        podcast = self.podcasts.get(pod_id)
        if podcast is None:
            return []

        by_guid = {ep.guid: ep for ep in podcast.episodes.items(filtered=False)}
        merged: list[Episode] = []
        new_episodes: list[NewEpisode] = []
        seen: set[str] = set()
        for data_ep in data.episodes:
            if data_ep.guid in seen:
                continue
            seen.add(data_ep.guid)
            existing = by_guid.pop(data_ep.guid, None)
            if existing is None:
                episode = self.new_episode(pod_id, data_ep)
                new_episodes.append(NewEpisode(pod_id, episode.id, episode.title, data.title))
            else:
                # local state survives a sync
                episode = replace(
                    existing,
                    title=data_ep.title,
                    url=data_ep.url,
                    description=data_ep.description,
                    pubdate=data_ep.pubdate,
                    duration=data_ep.duration,
                )
            merged.append(episode)
        # episodes no longer in the feed stay in the list
        merged.extend(by_guid.values())

        podcast.episodes.replace_all(newest_first(merged))
        self.podcasts.update(
            pod_id,
            lambda pod: replace(
                pod,
                title=data.title,
                sort_title=make_sort_title(data.title),
                description=data.description or pod.description,
                author=data.author or pod.author,
                explicit=data.explicit if data.explicit is not None else pod.explicit,
                last_checked=data.last_checked,
            ),
        )
        self.sort_podcasts()
        self.commit()
        logger.info("synced %s: %s new episode(s)", data.url, len(new_episodes))
        return new_episodes

    # -- playback and played state

    def play(self, pod_id: int, ep_id: int) -> None:
        episodes = self.episodes_of(pod_id)
        episode = episodes.get(ep_id) if episodes is not None else None
        if episode is None:
            return
        target = episode.url
        if episode.path is not None and episode.path.exists():
            target = str(episode.path)
        try:
            self.launcher(
                build_play_args(self.config.play_command, target),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            logger.warning("launching player failed: %s", exc)
            self.notify(f"Error: Could not play episode: {exc}", error=True)
            return
        self.mark_played(pod_id, ep_id, True)

    def mark_played(self, pod_id: int, ep_id: int, played: bool) -> None:
        if self.update_episode(pod_id, ep_id, played=played) is None:
            return
        self.commit()

    def mark_all_played(self, pod_id: int, played: bool) -> None:
        ep_ids = self.visible_episode_ids(pod_id)
        if not ep_ids:
            return
        for ep_id in ep_ids:
            self.update_episode(pod_id, ep_id, played=played)
        self.commit()

    # -- downloads

    def queue_downloads(self, pairs: Iterable[tuple[int, int]]) -> None:
        jobs: list[EpData] = []
        for pod_id, ep_id in pairs:
            if (pod_id, ep_id) in self.downloading:
                continue
            podcast = self.podcasts.get(pod_id)
            if podcast is None:
                continue
            episode = podcast.episodes.get(ep_id)
            if episode is None or episode.is_downloaded():
                continue
            jobs.append(EpData(pod_id, ep_id, episode.title, episode.url, podcast.title, episode.pubdate))
            self.downloading.add((pod_id, ep_id))
        if not jobs:
            return
        if self.downloader is None:
            self.downloading.difference_update((job.pod_id, job.ep_id) for job in jobs)
            self.notify("Downloads are not available.", error=True)
            return
        self.downloader.enqueue(jobs)
        self.report_downloads()

    def report_downloads(self) -> None:
        if self.downloading:
            self.send(SpawnPersistentNotification(f"Downloading {len(self.downloading)} episode(s)..."))
        else:
            self.send(ClearPersistentNotification())

    def download_complete(self, message: DownloadComplete) -> None:
        self.downloading.discard((message.pod_id, message.ep_id))
        if self.update_episode(message.pod_id, message.ep_id, path=message.path) is not None:
            self.commit()
        self.report_downloads()
        if not self.downloading:
            self.notify("Downloads complete.")

    def download_failed(self, message: DownloadFailed) -> None:
        self.downloading.discard((message.pod_id, message.ep_id))
        self.report_downloads()
        self.notify(f"Error downloading {message.title}: {message.error}", error=True)

    def unmark_downloaded(self, pod_id: int, ep_id: int) -> None:
        if self.update_episode(pod_id, ep_id, path=None) is None:
            return
        self.commit()

    def delete(self, pod_id: int, ep_id: int) -> None:
        episodes = self.episodes_of(pod_id)
        episode = episodes.get(ep_id) if episodes is not None else None
        if episode is None or episode.path is None:
            return
        error = delete_file(episode.path)
        if error:
            self.notify(f"Error deleting episode: {error}", error=True)
            return
        self.update_episode(pod_id, ep_id, path=None)
        self.commit()
        self.notify("Deleted downloaded file.")

    def delete_all(self, pod_id: int) -> None:
        episodes = self.episodes_of(pod_id)
        if episodes is None:
            return
        errors = self.delete_files_of(pod_id, episodes.items(filtered=False))
        self.commit()
        if errors:
            self.notify(f"Error deleting {errors} file(s).", error=True)
        else:
            self.notify("Deleted all downloaded files.")

    def delete_files_of(self, pod_id: int, episodes: Iterable[Episode]) -> int:
        errors = 0
        for episode in episodes:
            if episode.path is None:
                continue
            if delete_file(episode.path):
                errors += 1
                continue
            self.update_episode(pod_id, episode.id, path=None)
        return errors

    # -- removal

    def remove_podcast(self, pod_id: int, delete_files: bool) -> None:
        podcast = self.podcasts.get(pod_id)
        if podcast is None:
            return
        errors = 0
        if delete_files:
            errors = self.delete_files_of(pod_id, podcast.episodes.items(filtered=False))
        self.podcasts.remove(pod_id)
        self.commit()
        logger.info("removed podcast %s", podcast.url)
        if errors:
            self.notify(f"Error deleting {errors} file(s).", error=True)

    def remove_episode(self, pod_id: int, ep_id: int, delete_files: bool) -> None:
        episodes = self.episodes_of(pod_id)
        episode = episodes.get(ep_id) if episodes is not None else None
        if episode is None:
            return
        changes: dict[str, object] = {"hidden": True}
        if delete_files and episode.path is not None:
            error = delete_file(episode.path)
            if error:
                self.notify(f"Error deleting episode: {error}", error=True)
            else:
                changes["path"] = None
        # hidden rather than dropped, so the next sync does not bring it back
        self.update_episode(pod_id, ep_id, **changes)
        self.commit()

    def remove_all_episodes(self, pod_id: int, delete_files: bool) -> None:
        episodes = self.episodes_of(pod_id)
        if episodes is None:
            return
        errors = 0
        if delete_files:
            errors = self.delete_files_of(pod_id, episodes.items(filtered=False))
        for ep_id in episodes.ids(filtered=False):
            self.update_episode(pod_id, ep_id, hidden=True)
        self.commit()
        if errors:
            self.notify(f"Error deleting {errors} file(s).", error=True)

    # -- lifecycle

    def shutdown(self) -> None:
        if not self.running:
            return
        self.running = False
        self.send(TearDown())
        if self.ui_thread is not None:
            self.ui_thread.join()
        if self.downloader is not None:
            self.downloader.stop()
        logger.info("controller stopped")
